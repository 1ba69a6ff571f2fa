"""
Session retention: delete session rows that expired more than SESSION_RETENTION_DAYS ago.

Run from cron, e.g. daily:

  0 3 * * * cd /path/to/keystone && .venv/bin/python -m app.services.retention
"""

import logging
import sys
from datetime import timedelta
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from app.core.clock import Clock, utc_now
from app.core.config import get_settings
from app.core.database import SessionLocal
from app.models import UserSession

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def run_retention(session: Session, settings: "Settings", clock: Clock = utc_now) -> int:
    """
    Delete sessions whose expiry is older than the retention window, whatever their state.
    Returns the number of rows deleted. Idempotent: safe to run repeatedly.
    """
    if not settings.RETENTION_ENABLED:
        logger.info("Retention is disabled (RETENTION_ENABLED=false); skipping.")
        return 0

    cutoff = clock() - timedelta(days=settings.SESSION_RETENTION_DAYS)
    deleted_count = (
        session.query(UserSession)
        .filter(UserSession.expires_at < cutoff)
        .delete(synchronize_session=False)
    )
    session.commit()

    if deleted_count > 0:
        logger.info(
            "Retention run: cutoff=%s, sessions_deleted=%s",
            cutoff.isoformat(),
            deleted_count,
        )
    return deleted_count


def main() -> int:
    """CLI entrypoint: one retention pass against the configured database. Exit code 1 on failure."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    db = SessionLocal()
    try:
        sessions_deleted = run_retention(db, get_settings())
        logger.info("Retention completed: sessions_deleted=%s", sessions_deleted)
        return 0
    except Exception as e:
        db.rollback()
        logger.exception("Retention job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
