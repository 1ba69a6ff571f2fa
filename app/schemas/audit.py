"""Pydantic schema for audit events handed to the audit sink."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuditAction(str, Enum):
    """Action tags written to the audit log."""

    USER_REGISTRATION = "USER_REGISTRATION"
    USER_LOGIN = "USER_LOGIN"
    LOGIN_FAILED = "LOGIN_FAILED"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    TOKEN_REFRESH = "TOKEN_REFRESH"
    USER_LOGOUT = "USER_LOGOUT"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"


class AuditEvent(BaseModel):
    """Immutable audit record; values must not contain secrets."""

    model_config = ConfigDict(frozen=True)

    action: AuditAction
    resource: str = Field(..., description="Resource type, e.g. User or Session")
    user_id: str | None = Field(default=None, description="Acting user, if known")
    resource_id: str | None = None
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    occurred_at: datetime | None = Field(
        default=None,
        description="Event time; the store default is used when omitted",
    )
