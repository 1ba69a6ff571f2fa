"""Refresh-token sessions: creation, single-use rotation and invalidation."""

import hashlib
import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.clock import Clock, utc_now
from app.models import UserSession
from app.models.session import SESSION_ACTIVE, SESSION_INVALIDATED, SESSION_ROTATED
from app.services.exceptions import InvalidRefreshTokenError

logger = logging.getLogger(__name__)


def hash_refresh_token(refresh_token: str) -> str:
    """SHA-256 hex digest stored instead of the raw token."""
    return hashlib.sha256(refresh_token.encode("utf-8")).hexdigest()


class SessionManager:
    """
    Persists sessions through the caller's DB session; the caller commits.

    Rotation is one conditional UPDATE, so when two requests present the same
    refresh token only one of them can move the row out of 'active'.
    """

    def __init__(self, db: Session, clock: Clock = utc_now) -> None:
        self._db = db
        self._clock = clock

    def create(
        self,
        user_id: str,
        refresh_token: str,
        expires_at: datetime,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> UserSession:
        session = UserSession(
            user_id=user_id,
            refresh_token_hash=hash_refresh_token(refresh_token),
            state=SESSION_ACTIVE,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self._db.add(session)
        self._db.flush()
        return session

    def rotate(self, refresh_token: str) -> str:
        """
        Mark the active, unexpired session for this token as rotated and return its user id.
        Raises InvalidRefreshTokenError for unknown, expired, rotated or invalidated tokens alike.
        """
        now = self._clock()
        token_hash = hash_refresh_token(refresh_token)
        result = self._db.execute(
            update(UserSession)
            .where(
                UserSession.refresh_token_hash == token_hash,
                UserSession.state == SESSION_ACTIVE,
                UserSession.expires_at > now,
            )
            .values(state=SESSION_ROTATED, revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidRefreshTokenError()
        user_id = self._db.execute(
            select(UserSession.user_id).where(UserSession.refresh_token_hash == token_hash)
        ).scalar_one()
        return user_id

    def invalidate_all(self, user_id: str) -> int:
        """Invalidate every active session of the user; returns how many were closed."""
        result = self._db.execute(
            update(UserSession)
            .where(UserSession.user_id == user_id, UserSession.state == SESSION_ACTIVE)
            .values(state=SESSION_INVALIDATED, revoked_at=self._clock())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def invalidate_one(self, user_id: str, refresh_token: str) -> int:
        """Invalidate the user's active session for this token; 0 when nothing matched."""
        result = self._db.execute(
            update(UserSession)
            .where(
                UserSession.user_id == user_id,
                UserSession.refresh_token_hash == hash_refresh_token(refresh_token),
                UserSession.state == SESSION_ACTIVE,
            )
            .values(state=SESSION_INVALIDATED, revoked_at=self._clock())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def active_sessions(self, user_id: str) -> list[UserSession]:
        """Active, unexpired sessions of the user, newest first."""
        stmt = (
            select(UserSession)
            .where(
                UserSession.user_id == user_id,
                UserSession.state == SESSION_ACTIVE,
                UserSession.expires_at > self._clock(),
            )
            .order_by(UserSession.created_at.desc())
        )
        return list(self._db.scalars(stmt))
