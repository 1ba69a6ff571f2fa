"""Password hashing, verification and strength rules."""

import logging
import re

import bcrypt

from app.core.config import settings
from app.services.exceptions import WeakPasswordError

logger = logging.getLogger(__name__)

# Min/max lengths for username and password validation.
USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 64
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

# bcrypt only looks at the first 72 bytes of input.
BCRYPT_MAX_BYTES = 72

PASSWORD_SYMBOLS = '!@#$%^&*(),.?":{}|<>'

_UPPER_RE = re.compile(r"[A-Z]")
_LOWER_RE = re.compile(r"[a-z]")
_DIGIT_RE = re.compile(r"\d")
_SYMBOL_RE = re.compile("[" + re.escape(PASSWORD_SYMBOLS) + "]")


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    cost = rounds if rounds is not None else settings.BCRYPT_ROUNDS
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=cost)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        logger.warning("Stored password hash is malformed; treating as mismatch")
        return False


def check_password_strength(password: str) -> list[str]:
    """Return the names of the strength requirements the password misses (empty when strong)."""
    missing: list[str] = []
    if len(password) < PASSWORD_MIN_LEN:
        missing.append("length")
    if len(password) > PASSWORD_MAX_LEN:
        missing.append("max_length")
    if not _UPPER_RE.search(password):
        missing.append("uppercase")
    if not _LOWER_RE.search(password):
        missing.append("lowercase")
    if not _DIGIT_RE.search(password):
        missing.append("digit")
    if not _SYMBOL_RE.search(password):
        missing.append("symbol")
    return missing


def validate_password_strength(password: str) -> None:
    """Raise WeakPasswordError naming every missing requirement."""
    missing = check_password_strength(password)
    if missing:
        raise WeakPasswordError(missing)
