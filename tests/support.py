"""Shared helpers: controllable clock, settings and a throwaway sqlite store."""

import tempfile
import unittest
from datetime import UTC, datetime, timedelta
from pathlib import Path

from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from app.core.config import Settings
from app.models import AuditLog, Base, User
from app.schemas.auth import RequestContext, SignInRequest, SignUpRequest
from app.services.audit import AuditService
from app.services.auth import AuthService

STRONG_PASSWORD = "Correct#Horse9"
OTHER_STRONG_PASSWORD = "Battery!Staple7"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 5, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current = self.current + timedelta(**kwargs)


def make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "APP_ENV": "dev",
        "DATABASE_URL": "sqlite://",
        "JWT_SECRET": "unit-access-secret-0123456789abcdef",
        "JWT_REFRESH_SECRET": "unit-refresh-secret-0123456789abcdef",
        "BCRYPT_ROUNDS": 4,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def sign_up_request(
    email: str = "ada@example.com",
    username: str = "ada",
    password: str = STRONG_PASSWORD,
) -> SignUpRequest:
    return SignUpRequest(
        email=email,
        username=username,
        password=password,
        first_name="Ada",
        last_name="Lovelace",
    )


def sign_in_request(email: str = "ada@example.com", password: str = STRONG_PASSWORD) -> SignInRequest:
    return SignInRequest(email=email, password=password)


class DatabaseTestCase(unittest.TestCase):
    """Fresh on-disk sqlite database per test, with an AuthService on a fake clock."""

    ctx = RequestContext(ip_address="203.0.113.7", user_agent="unittest")

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        db_path = Path(self._tmp.name) / "auth.db"
        self.engine = create_engine(
            f"sqlite:///{db_path}",
            connect_args={"check_same_thread": False},
        )
        Base.metadata.create_all(self.engine)
        self.SessionFactory = sessionmaker(bind=self.engine, autoflush=False)
        self.db = self.SessionFactory()
        self.clock = FakeClock()
        self.settings = make_settings()
        self.audit = AuditService(self.SessionFactory)
        self.service = self.make_service(self.db)

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()
        self._tmp.cleanup()

    def make_service(self, db) -> AuthService:
        return AuthService(db, self.settings, self.audit, clock=self.clock)

    def load_user(self, email: str = "ada@example.com") -> User:
        with self.SessionFactory() as db:
            user = db.scalars(select(User).where(User.email == email)).one()
            db.expunge(user)
            return user

    def audit_actions(self) -> list[str]:
        with self.SessionFactory() as db:
            return list(db.scalars(select(AuditLog.action).order_by(AuditLog.id)))
