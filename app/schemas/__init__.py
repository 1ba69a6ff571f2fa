"""Pydantic request/response schemas."""

from app.schemas.audit import AuditAction, AuditEvent
from app.schemas.auth import (
    AuthenticatedUser,
    AuthResponse,
    AuthResult,
    ChangePasswordRequest,
    LogoutRequest,
    MessageResponse,
    PublicUser,
    RefreshRequest,
    RefreshResponse,
    RequestContext,
    SignInRequest,
    SignUpRequest,
    TokenPair,
)
from app.schemas.health import HealthResponse
from app.schemas.token import IssuedToken, TokenKind, TokenPayload

__all__ = [
    "AuditAction",
    "AuditEvent",
    "AuthenticatedUser",
    "AuthResponse",
    "AuthResult",
    "ChangePasswordRequest",
    "HealthResponse",
    "IssuedToken",
    "LogoutRequest",
    "MessageResponse",
    "PublicUser",
    "RefreshRequest",
    "RefreshResponse",
    "RequestContext",
    "SignInRequest",
    "SignUpRequest",
    "TokenKind",
    "TokenPair",
    "TokenPayload",
]
