"""SQLAlchemy ORM models."""

from app.models.audit_log import AuditLog
from app.models.base import Base
from app.models.session import UserSession
from app.models.user import User

__all__ = ["AuditLog", "Base", "User", "UserSession"]
