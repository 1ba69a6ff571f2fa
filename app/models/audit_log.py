"""ORM model for append-only audit records."""

from sqlalchemy import JSON, Column, DateTime, Integer, String, func

from app.models.base import Base


class AuditLog(Base):
    """Security-relevant action (registration, login, refresh, logout, password change)."""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # No foreign key: records outlive the users they mention.
    user_id = Column(String(36), nullable=True, index=True)
    action = Column(String(64), nullable=False, index=True)
    resource = Column(String(64), nullable=False)
    resource_id = Column(String(64), nullable=True)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )
