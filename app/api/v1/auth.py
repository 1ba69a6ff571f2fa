"""Auth endpoints and dependencies (get_auth_service, get_current_user)."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import SessionLocal, get_db
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
)
from app.services.audit import AuditService
from app.services.auth import AuthService
from app.services.exceptions import (
    AccountLockedError,
    AuthError,
    DuplicateIdentityError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    InvalidTokenError,
    StoreUnavailableError,
    WeakPasswordError,
)

router = APIRouter()
security = HTTPBearer(auto_error=False)

_STATUS_BY_ERROR: dict[type[AuthError], int] = {
    DuplicateIdentityError: status.HTTP_409_CONFLICT,
    # Literal: the named 422 constant differs across Starlette releases.
    WeakPasswordError: 422,
    InvalidCredentialsError: status.HTTP_401_UNAUTHORIZED,
    AccountLockedError: status.HTTP_423_LOCKED,
    InvalidTokenError: status.HTTP_401_UNAUTHORIZED,
    InvalidRefreshTokenError: status.HTTP_401_UNAUTHORIZED,
    StoreUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def to_http_exception(error: AuthError) -> HTTPException:
    """Map a service error to the HTTP response the client sees."""
    status_code = _STATUS_BY_ERROR.get(type(error), status.HTTP_400_BAD_REQUEST)
    headers = None
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return HTTPException(status_code=status_code, detail=error.message, headers=headers)


def get_audit_service() -> AuditService:
    """Dependency: audit sink writing through its own DB sessions."""
    return AuditService(SessionLocal)


def get_auth_service(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    audit: Annotated[AuditService, Depends(get_audit_service)],
) -> AuthService:
    return AuthService(db, settings, audit)


def request_context(request: Request) -> RequestContext:
    """Dependency: client IP and user agent for sessions and audit events."""
    client_host = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")
    return RequestContext(
        ip_address=client_host[:64] if client_host else None,
        user_agent=user_agent[:512] if user_agent else None,
    )


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthenticatedUser:
    """Dependency: require valid Bearer access token and return the current user. Raises 401 if missing or invalid."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return auth.authenticate(credentials.credentials)
    except AuthError as e:
        raise to_http_exception(e)


def _set_refresh_cookie(response: Response, refresh_token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=refresh_token,
        httponly=True,
        secure=settings.APP_ENV == "prod",
        samesite="strict",
        max_age=settings.JWT_REFRESH_EXPIRE_DAYS * 24 * 60 * 60,
    )


def _auth_response(result: AuthResult, response: Response, settings: Settings) -> AuthResponse:
    _set_refresh_cookie(response, result.refresh_token, settings)
    return AuthResponse(user=result.user, access_token=result.access_token)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: SignUpRequest,
    response: Response,
    auth: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    ctx: Annotated[RequestContext, Depends(request_context)],
) -> AuthResponse:
    """Register a new user. The refresh token is set as an HTTP-only cookie."""
    try:
        result = auth.sign_up(body, ctx)
    except AuthError as e:
        raise to_http_exception(e)
    return _auth_response(result, response, settings)


@router.post("/login", response_model=AuthResponse)
def login(
    body: SignInRequest,
    response: Response,
    auth: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    ctx: Annotated[RequestContext, Depends(request_context)],
) -> AuthResponse:
    """
    Authenticate with email and password; returns a JWT access token.
    Include the token in the Authorization header as: Bearer <access_token>
    """
    try:
        result = auth.sign_in(body, ctx)
    except AuthError as e:
        raise to_http_exception(e)
    return _auth_response(result, response, settings)


@router.post("/refresh", response_model=RefreshResponse)
def refresh(
    request: Request,
    response: Response,
    auth: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    ctx: Annotated[RequestContext, Depends(request_context)],
    body: RefreshRequest | None = None,
) -> RefreshResponse:
    """Rotate the refresh token (body or cookie) and return a new token pair."""
    refresh_token = (body.refresh_token if body else None) or request.cookies.get(
        settings.REFRESH_COOKIE_NAME
    )
    if not refresh_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        tokens = auth.refresh(refresh_token, ctx)
    except AuthError as e:
        raise to_http_exception(e)
    _set_refresh_cookie(response, tokens.refresh_token, settings)
    return RefreshResponse(access_token=tokens.access_token, refresh_token=tokens.refresh_token)


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    response: Response,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    ctx: Annotated[RequestContext, Depends(request_context)],
    body: LogoutRequest | None = None,
) -> MessageResponse:
    """Close the session for the given refresh token, or all sessions when none is sent."""
    refresh_token = (body.refresh_token if body else None) or request.cookies.get(
        settings.REFRESH_COOKIE_NAME
    )
    try:
        auth.sign_out(current_user.id, refresh_token, ctx)
    except AuthError as e:
        raise to_http_exception(e)
    response.delete_cookie(settings.REFRESH_COOKIE_NAME)
    return MessageResponse(message="Logout successful")


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    response: Response,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    ctx: Annotated[RequestContext, Depends(request_context)],
) -> MessageResponse:
    """Change the password; every session of the user is invalidated."""
    try:
        auth.change_password(current_user.id, body.current_password, body.new_password, ctx)
    except AuthError as e:
        raise to_http_exception(e)
    response.delete_cookie(settings.REFRESH_COOKIE_NAME)
    return MessageResponse(message="Password changed successfully")


@router.get("/me", response_model=PublicUser)
def me(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> PublicUser:
    """Return the current user's profile."""
    try:
        return auth.get_profile(current_user.id)
    except AuthError as e:
        raise to_http_exception(e)
