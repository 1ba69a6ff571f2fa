"""Schemas for signed access/refresh tokens."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

TokenKind = Literal["access", "refresh"]


class TokenPayload(BaseModel):
    """Decoded and verified JWT claims."""

    sub: str = Field(..., min_length=1, description="Subject (user id)")
    iat: int = Field(..., description="Issued-at (unix seconds)")
    exp: int = Field(..., description="Expiry (unix seconds)")
    jti: str = Field(..., min_length=1, description="Unique token id")
    type: TokenKind


class IssuedToken(BaseModel):
    """Encoded token plus its expiry (used as the session expiry for refresh tokens)."""

    token: str
    expires_at: datetime
