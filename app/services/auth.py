"""Sign-up, sign-in, refresh, sign-out and password change flows with audit events."""

from __future__ import annotations

import contextlib
import logging
import uuid
from collections.abc import Iterator
from functools import lru_cache
from typing import TYPE_CHECKING

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import Clock, utc_now
from app.core.security import hash_password, validate_password_strength, verify_password
from app.models import User
from app.schemas.audit import AuditAction, AuditEvent
from app.schemas.auth import (
    AuthenticatedUser,
    AuthResult,
    PublicUser,
    RequestContext,
    SignInRequest,
    SignUpRequest,
    TokenPair,
)
from app.services.audit import AuditService
from app.services.exceptions import (
    AccountLockedError,
    AuthError,
    DuplicateIdentityError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    InvalidTokenError,
    StoreUnavailableError,
)
from app.services.lockout import LockoutPolicy, LockoutState
from app.services.sessions import SessionManager
from app.services.tokens import TokenIssuer

if TYPE_CHECKING:
    from app.core.config import Settings
    from app.models import UserSession

logger = logging.getLogger(__name__)

_NO_CONTEXT = RequestContext()


@lru_cache
def _dummy_hash(rounds: int) -> str:
    # Verified against when the email is unknown so both failure paths cost one bcrypt check.
    return hash_password(uuid.uuid4().hex, rounds=rounds)


class AuthService:
    """
    Composes password hashing, tokens, sessions and lockout into the auth flows.

    Each flow runs in one transaction on the given DB session and is committed
    before its audit event is written. Audit failures never fail the flow.
    """

    def __init__(
        self,
        db: Session,
        settings: "Settings",
        audit: AuditService,
        clock: Clock = utc_now,
        tokens: TokenIssuer | None = None,
    ) -> None:
        self._db = db
        self._settings = settings
        self._audit = audit
        self._clock = clock
        self._tokens = tokens or TokenIssuer(settings, clock)
        self._sessions = SessionManager(db, clock)
        self._lockout = LockoutPolicy.from_settings(settings)

    @contextlib.contextmanager
    def _transaction(
        self, on_integrity_error: AuthError | None = None
    ) -> Iterator[None]:
        """Commit on success; roll back on any error and map store failures to StoreUnavailableError."""
        try:
            yield
            self._db.commit()
        except IntegrityError as e:
            self._db.rollback()
            if on_integrity_error is not None:
                raise on_integrity_error from e
            logger.exception("Integrity error in auth flow")
            raise StoreUnavailableError() from e
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.exception("Store error in auth flow")
            raise StoreUnavailableError() from e
        except Exception:
            self._db.rollback()
            raise

    def _open_session(
        self, user_id: str, ctx: RequestContext
    ) -> tuple[TokenPair, "UserSession"]:
        access, refresh = self._tokens.issue_pair(user_id)
        session = self._sessions.create(
            user_id,
            refresh.token,
            refresh.expires_at,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        return TokenPair(access_token=access.token, refresh_token=refresh.token), session

    def _emit(
        self,
        action: AuditAction,
        resource: str,
        ctx: RequestContext,
        user_id: str | None = None,
        resource_id: str | None = None,
        new_values: dict | None = None,
    ) -> None:
        self._audit.record(
            AuditEvent(
                action=action,
                resource=resource,
                user_id=user_id,
                resource_id=resource_id,
                new_values=new_values,
                ip_address=ctx.ip_address,
                user_agent=ctx.user_agent,
                occurred_at=self._clock(),
            )
        )

    def _insert_user(self, request: SignUpRequest, role: str) -> User:
        """Add the user to the open transaction after the duplicate and strength checks."""
        email = str(request.email)
        existing = self._db.scalars(
            select(User.id).where(or_(User.email == email, User.username == request.username))
        ).first()
        if existing is not None:
            raise DuplicateIdentityError()

        validate_password_strength(request.password)

        user = User(
            email=email,
            username=request.username,
            password_hash=hash_password(request.password, rounds=self._settings.BCRYPT_ROUNDS),
            first_name=request.first_name,
            last_name=request.last_name,
            role=role,
            is_active=True,
            login_attempts=0,
            email_verification_token=str(uuid.uuid4()),
        )
        self._db.add(user)
        self._db.flush()
        return user

    def sign_up(self, request: SignUpRequest, ctx: RequestContext | None = None) -> AuthResult:
        """
        Register a user and open their first session.
        Raises DuplicateIdentityError, WeakPasswordError or StoreUnavailableError.
        """
        ctx = ctx or _NO_CONTEXT
        with self._transaction(on_integrity_error=DuplicateIdentityError()):
            user = self._insert_user(request, role="user")
            tokens, _ = self._open_session(user.id, ctx)
            public_user = PublicUser.model_validate(user)

        self._emit(
            AuditAction.USER_REGISTRATION,
            "User",
            ctx,
            user_id=public_user.id,
            resource_id=public_user.id,
        )
        logger.info("User registered: user_id=%s", public_user.id)
        return AuthResult(user=public_user, **tokens.model_dump())

    def create_user(
        self,
        request: SignUpRequest,
        role: str = "user",
        ctx: RequestContext | None = None,
    ) -> PublicUser:
        """
        Provision a user with the given role in one commit, without opening a session.
        Same duplicate and strength rules as sign_up.
        """
        ctx = ctx or _NO_CONTEXT
        with self._transaction(on_integrity_error=DuplicateIdentityError()):
            user = self._insert_user(request, role=role)
            public_user = PublicUser.model_validate(user)

        self._emit(
            AuditAction.USER_REGISTRATION,
            "User",
            ctx,
            user_id=public_user.id,
            resource_id=public_user.id,
            new_values={"role": role},
        )
        logger.info("User provisioned: user_id=%s role=%s", public_user.id, role)
        return public_user

    def sign_in(self, request: SignInRequest, ctx: RequestContext | None = None) -> AuthResult:
        """
        Authenticate by email and password.

        Unknown email, inactive account and wrong password all raise the same
        InvalidCredentialsError. A locked account raises AccountLockedError
        before the password is checked and without counting the attempt.
        """
        ctx = ctx or _NO_CONTEXT
        now = self._clock()
        with self._transaction():
            user = self._db.scalars(select(User).where(User.email == str(request.email))).first()
            if user is None or not user.is_active:
                verify_password(request.password, _dummy_hash(self._settings.BCRYPT_ROUNDS))
                raise InvalidCredentialsError()

            state = LockoutState.from_user(user)
            if self._lockout.is_locked(state, now):
                remaining = self._lockout.remaining_minutes(state, now)
                logger.info("Sign-in refused for locked account: user_id=%s", user.id)
                raise AccountLockedError(remaining)

            authenticated = verify_password(request.password, user.password_hash)
            if authenticated:
                self._lockout.register_success(state).apply_to(user)
                user.last_login = now
                tokens, _ = self._open_session(user.id, ctx)
            else:
                failed = self._lockout.register_failure(state, now)
                failed.apply_to(user)
            user_id = user.id
            public_user = PublicUser.model_validate(user)

        if not authenticated:
            self._emit(
                AuditAction.LOGIN_FAILED,
                "User",
                ctx,
                user_id=user_id,
                resource_id=user_id,
                new_values={"login_attempts": failed.attempts},
            )
            if failed.attempts >= self._lockout.max_attempts:
                logger.warning(
                    "User account locked after failed sign-ins: user_id=%s lock_until=%s",
                    user_id,
                    failed.lock_until.isoformat(),
                )
                self._emit(
                    AuditAction.ACCOUNT_LOCKED,
                    "User",
                    ctx,
                    user_id=user_id,
                    resource_id=user_id,
                    new_values={"lock_until": failed.lock_until.isoformat()},
                )
            raise InvalidCredentialsError()

        self._emit(AuditAction.USER_LOGIN, "User", ctx, user_id=user_id, resource_id=user_id)
        logger.info("User signed in: user_id=%s", user_id)
        return AuthResult(user=public_user, **tokens.model_dump())

    def refresh(self, refresh_token: str, ctx: RequestContext | None = None) -> TokenPair:
        """
        Exchange a refresh token for a new pair. The old session is rotated and
        the new one created in the same commit. Every failure is InvalidRefreshTokenError.
        """
        ctx = ctx or _NO_CONTEXT
        try:
            payload = self._tokens.verify(refresh_token, "refresh")
        except InvalidTokenError:
            raise InvalidRefreshTokenError() from None

        with self._transaction():
            user_id = self._sessions.rotate(refresh_token)
            if user_id != payload.sub:
                raise InvalidRefreshTokenError()
            user = self._db.get(User, user_id)
            if user is None or not user.is_active:
                raise InvalidRefreshTokenError()
            tokens, session = self._open_session(user_id, ctx)
            session_id = session.id

        self._emit(
            AuditAction.TOKEN_REFRESH,
            "Session",
            ctx,
            user_id=user_id,
            resource_id=session_id,
        )
        return tokens

    def sign_out(
        self,
        user_id: str,
        refresh_token: str | None = None,
        ctx: RequestContext | None = None,
    ) -> None:
        """Close one session (token given) or all of the user's sessions. Zero sessions is fine."""
        ctx = ctx or _NO_CONTEXT
        with self._transaction():
            if refresh_token:
                closed = self._sessions.invalidate_one(user_id, refresh_token)
            else:
                closed = self._sessions.invalidate_all(user_id)

        self._emit(
            AuditAction.USER_LOGOUT,
            "Session",
            ctx,
            user_id=user_id,
            new_values={"sessions_closed": closed, "all_sessions": not refresh_token},
        )
        logger.info("User signed out: user_id=%s sessions_closed=%s", user_id, closed)

    def change_password(
        self,
        user_id: str,
        current_password: str,
        new_password: str,
        ctx: RequestContext | None = None,
    ) -> None:
        """
        Replace the password and invalidate every session of the user.
        A wrong current password raises InvalidCredentialsError and changes nothing.
        """
        ctx = ctx or _NO_CONTEXT
        with self._transaction():
            user = self._db.get(User, user_id)
            if user is None or not user.is_active:
                raise InvalidCredentialsError()
            if not verify_password(current_password, user.password_hash):
                raise InvalidCredentialsError()
            validate_password_strength(new_password)
            user.password_hash = hash_password(new_password, rounds=self._settings.BCRYPT_ROUNDS)
            closed = self._sessions.invalidate_all(user_id)

        self._emit(
            AuditAction.PASSWORD_CHANGE,
            "User",
            ctx,
            user_id=user_id,
            resource_id=user_id,
            new_values={"sessions_invalidated": closed},
        )
        logger.info("Password changed: user_id=%s sessions_invalidated=%s", user_id, closed)

    def authenticate(self, access_token: str) -> AuthenticatedUser:
        """Resolve an access token to an active user. Raises InvalidTokenError otherwise."""
        payload = self._tokens.verify(access_token, "access")
        with self._transaction():
            user = self._db.get(User, payload.sub)
            if user is None or not user.is_active:
                raise InvalidTokenError("User not found or inactive")
            identity = AuthenticatedUser(
                id=user.id,
                email=user.email,
                username=user.username,
                role=user.role,
            )
        return identity

    def get_profile(self, user_id: str) -> PublicUser:
        with self._transaction():
            user = self._db.get(User, user_id)
            if user is None or not user.is_active:
                raise InvalidTokenError("User not found or inactive")
            profile = PublicUser.model_validate(user)
        return profile
