"""Auth error taxonomy raised by the services and mapped to HTTP responses by the API layer."""

# Deliberately identical for unknown user and wrong password.
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
INVALID_REFRESH_TOKEN_MESSAGE = "Invalid or expired refresh token"


class AuthError(Exception):
    """Base class for authentication/session errors."""

    code = "AUTH_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DuplicateIdentityError(AuthError):
    """Raised on sign-up when the email or username is already registered."""

    code = "DUPLICATE_IDENTITY"

    def __init__(self, message: str = "Email or username already exists") -> None:
        super().__init__(message)


class WeakPasswordError(AuthError):
    """Raised when a password does not satisfy the strength rules."""

    code = "WEAK_PASSWORD"

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(_describe_missing(self.missing))


class InvalidCredentialsError(AuthError):
    """Raised when sign-in or password verification fails, without saying why."""

    code = "INVALID_CREDENTIALS"

    def __init__(self) -> None:
        super().__init__(INVALID_CREDENTIALS_MESSAGE)


class AccountLockedError(AuthError):
    """Raised when sign-in is attempted on a temporarily locked account."""

    code = "ACCOUNT_LOCKED"

    def __init__(self, remaining_minutes: int) -> None:
        self.remaining_minutes = remaining_minutes
        super().__init__(f"Account is locked. Try again in {remaining_minutes} minutes.")


class InvalidTokenError(AuthError):
    """Raised when a JWT is malformed, badly signed, of the wrong kind, or expired."""

    code = "INVALID_TOKEN"

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class InvalidRefreshTokenError(AuthError):
    """Raised when a refresh token cannot be exchanged (unknown, expired, rotated or revoked)."""

    code = "INVALID_REFRESH_TOKEN"

    def __init__(self) -> None:
        super().__init__(INVALID_REFRESH_TOKEN_MESSAGE)


class StoreUnavailableError(AuthError):
    """Raised when the relational store fails in a way not otherwise classified."""

    code = "STORE_UNAVAILABLE"

    def __init__(self, message: str = "Credential store is unavailable") -> None:
        super().__init__(message)


class AuditWriteFailedError(AuthError):
    """Raised inside the audit sink when an event cannot be persisted. Never reaches callers."""

    code = "AUDIT_WRITE_FAILED"

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"Failed to write audit event {action}")


_REQUIREMENT_TEXT = {
    "length": "be at least 8 characters long",
    "max_length": "be at most 128 characters long",
    "uppercase": "contain an uppercase letter",
    "lowercase": "contain a lowercase letter",
    "digit": "contain a number",
    "symbol": "contain a special character",
}


def _describe_missing(missing: list[str]) -> str:
    parts = [_REQUIREMENT_TEXT.get(name, name) for name in missing]
    return "Password must " + ", ".join(parts) + "."
