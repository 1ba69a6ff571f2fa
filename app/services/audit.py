"""Best-effort audit sink: failures are logged and never reach the calling flow."""

import contextlib
import logging
from collections.abc import Callable

from sqlalchemy.orm import Session

from app.models import AuditLog
from app.schemas.audit import AuditEvent
from app.services.exceptions import AuditWriteFailedError

logger = logging.getLogger(__name__)


class AuditService:
    """
    Writes audit events in a DB session of its own, so a failed write cannot
    roll back (or be rolled back with) the caller's transaction.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def record(self, event: AuditEvent) -> bool:
        """Persist the event; returns False (after logging) when the write failed."""
        try:
            self._write(event)
            return True
        except AuditWriteFailedError as e:
            logger.exception(
                "%s: action=%s user_id=%s",
                e.message,
                event.action.value,
                event.user_id,
            )
            return False

    def _write(self, event: AuditEvent) -> None:
        db = None
        try:
            db = self._session_factory()
            entry = AuditLog(
                user_id=event.user_id,
                action=event.action.value,
                resource=event.resource,
                resource_id=event.resource_id,
                old_values=event.old_values,
                new_values=event.new_values,
                ip_address=event.ip_address,
                user_agent=event.user_agent,
            )
            if event.occurred_at is not None:
                entry.created_at = event.occurred_at
            db.add(entry)
            db.commit()
        except Exception as e:
            if db is not None:
                # Keep the write error as the reported cause.
                with contextlib.suppress(Exception):
                    db.rollback()
            raise AuditWriteFailedError(event.action.value) from e
        finally:
            if db is not None:
                with contextlib.suppress(Exception):
                    db.close()
