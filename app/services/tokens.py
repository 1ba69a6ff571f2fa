"""Signed, time-boxed access and refresh tokens (JWT)."""

from __future__ import annotations

import uuid
from datetime import timedelta
from typing import TYPE_CHECKING

import jwt
from pydantic import ValidationError

from app.core.clock import Clock, utc_now
from app.schemas.token import IssuedToken, TokenKind, TokenPayload
from app.services.exceptions import InvalidTokenError

if TYPE_CHECKING:
    from app.core.config import Settings

REQUIRED_CLAIMS = ["sub", "iat", "exp", "jti", "type"]


class TokenIssuer:
    """
    Mints and verifies JWTs.

    Access and refresh tokens use different secrets, so a leaked access secret
    cannot forge refresh tokens. Expiry is checked against the injected clock
    rather than PyJWT's own time source.
    """

    def __init__(self, settings: "Settings", clock: Clock = utc_now) -> None:
        self._algorithm = settings.JWT_ALGORITHM
        self._secrets: dict[str, str] = {
            "access": settings.JWT_SECRET.get_secret_value(),
            "refresh": settings.JWT_REFRESH_SECRET.get_secret_value(),
        }
        self._lifetimes: dict[str, timedelta] = {
            "access": timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
            "refresh": timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS),
        }
        self._clock = clock

    def _issue(self, subject: str, kind: TokenKind) -> IssuedToken:
        now = self._clock()
        expires_at = now + self._lifetimes[kind]
        payload = {
            "sub": str(subject),
            "iat": now,
            "exp": expires_at,
            "jti": uuid.uuid4().hex,
            "type": kind,
        }
        token = jwt.encode(payload, self._secrets[kind], algorithm=self._algorithm)
        return IssuedToken(token=token, expires_at=expires_at)

    def issue_access(self, subject: str) -> IssuedToken:
        return self._issue(subject, "access")

    def issue_refresh(self, subject: str) -> IssuedToken:
        return self._issue(subject, "refresh")

    def issue_pair(self, subject: str) -> tuple[IssuedToken, IssuedToken]:
        """Return (access, refresh) for the subject."""
        return self.issue_access(subject), self.issue_refresh(subject)

    def verify(self, token: str, kind: TokenKind) -> TokenPayload:
        """
        Decode and validate a token of the given kind.
        Raises InvalidTokenError on bad signature, malformed structure, wrong kind or expiry.
        """
        if not token:
            raise InvalidTokenError()
        try:
            claims = jwt.decode(
                token,
                self._secrets[kind],
                algorithms=[self._algorithm],
                options={
                    "require": REQUIRED_CLAIMS,
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
            payload = TokenPayload.model_validate(claims)
        except (jwt.PyJWTError, ValidationError):
            raise InvalidTokenError()
        if payload.type != kind:
            raise InvalidTokenError()
        if self._clock().timestamp() >= payload.exp:
            raise InvalidTokenError()
        return payload
