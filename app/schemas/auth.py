"""Request/response schemas for auth flows and endpoints."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.core.security import (
    PASSWORD_MAX_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
)


class RequestContext(BaseModel):
    """Request provenance recorded on sessions and audit events."""

    model_config = ConfigDict(frozen=True)

    ip_address: str | None = Field(default=None, max_length=64)
    user_agent: str | None = Field(default=None, max_length=512)


class SignUpRequest(BaseModel):
    """Registration payload. Strength rules are enforced by the service, not here."""

    email: EmailStr = Field(..., description="Email address (unique)")
    username: str = Field(
        ...,
        min_length=USERNAME_MIN_LEN,
        max_length=USERNAME_MAX_LEN,
        description="Username (unique)",
    )
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)


class SignInRequest(BaseModel):
    """Credentials for login."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")


class RefreshRequest(BaseModel):
    """Refresh token in the body; the API also accepts it from the cookie."""

    refresh_token: str | None = Field(default=None, description="Refresh token")


class LogoutRequest(BaseModel):
    """Optional refresh token; when absent every session of the user is closed."""

    refresh_token: str | None = Field(default=None, description="Refresh token to revoke")


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    new_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)


class PublicUser(BaseModel):
    """User view returned to clients (never includes the password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    username: str
    first_name: str | None = None
    last_name: str | None = None
    role: str


class AuthenticatedUser(BaseModel):
    """Identity resolved from an access token and passed explicitly to handlers."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    username: str
    role: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str


class AuthResult(TokenPair):
    """Result of sign-up and sign-in."""

    user: PublicUser


class AuthResponse(BaseModel):
    """HTTP body for register/login; the refresh token travels in an HTTP-only cookie."""

    user: PublicUser
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")


class RefreshResponse(BaseModel):
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="Rotated refresh token")
    token_type: str = Field(default="bearer", description="Token type")


class MessageResponse(BaseModel):
    message: str
