"""ORM model for refresh-token sessions."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import relationship

from app.models.base import Base
from app.models.user import new_id

SESSION_ACTIVE = "active"
SESSION_ROTATED = "rotated"
SESSION_INVALIDATED = "invalidated"


class UserSession(Base):
    """
    One issued refresh token.

    Only the SHA-256 digest of the token is stored. state moves from 'active'
    to 'rotated' (refresh) or 'invalidated' (logout, password change) and
    never back. Rows are kept for history; pruning is a housekeeping job.
    """

    __tablename__ = "sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    refresh_token_hash = Column(String(64), nullable=False, unique=True)
    state = Column(String(16), nullable=False, default=SESSION_ACTIVE)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="sessions")

    __table_args__ = (
        Index("ix_sessions_user_state", "user_id", "state"),
        Index("ix_sessions_expires_at", "expires_at"),
    )
