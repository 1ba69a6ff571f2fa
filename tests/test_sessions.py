"""Tests for app.services.sessions against a real sqlite store: rotation is single-use."""

import unittest
from datetime import timedelta

from sqlalchemy import select

from app.models import User, UserSession
from app.models.session import SESSION_ACTIVE, SESSION_INVALIDATED, SESSION_ROTATED
from app.services.exceptions import InvalidRefreshTokenError
from app.services.sessions import SessionManager, hash_refresh_token
from support import DatabaseTestCase


class SessionManagerTestCase(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        user = User(email="ada@example.com", username="ada", password_hash="x")
        self.db.add(user)
        self.db.commit()
        self.user_id = user.id
        self.manager = SessionManager(self.db, clock=self.clock)
        self.expires_at = self.clock() + timedelta(days=7)

    def create(self, token: str, **kwargs) -> UserSession:
        session = self.manager.create(self.user_id, token, self.expires_at, **kwargs)
        self.db.commit()
        return session

    def state_of(self, token: str) -> str:
        self.db.expire_all()
        return self.db.scalars(
            select(UserSession.state).where(
                UserSession.refresh_token_hash == hash_refresh_token(token)
            )
        ).one()


class TestCreate(SessionManagerTestCase):
    def test_stores_digest_not_raw_token(self) -> None:
        session = self.create("raw-token", ip_address="198.51.100.1", user_agent="curl")
        self.assertEqual(session.refresh_token_hash, hash_refresh_token("raw-token"))
        self.assertNotEqual(session.refresh_token_hash, "raw-token")
        self.assertEqual(session.state, SESSION_ACTIVE)
        self.assertEqual(session.ip_address, "198.51.100.1")
        self.assertEqual(session.user_agent, "curl")


class TestRotate(SessionManagerTestCase):
    def test_rotate_returns_owner_and_marks_rotated(self) -> None:
        self.create("token-a")
        self.assertEqual(self.manager.rotate("token-a"), self.user_id)
        self.db.commit()
        self.assertEqual(self.state_of("token-a"), SESSION_ROTATED)

    def test_second_rotation_fails(self) -> None:
        self.create("token-a")
        self.manager.rotate("token-a")
        self.db.commit()
        with self.assertRaises(InvalidRefreshTokenError):
            self.manager.rotate("token-a")

    def test_concurrent_sessions_only_one_wins(self) -> None:
        self.create("token-a")
        other_db = self.SessionFactory()
        try:
            other = SessionManager(other_db, clock=self.clock)
            self.assertEqual(self.manager.rotate("token-a"), self.user_id)
            self.db.commit()
            with self.assertRaises(InvalidRefreshTokenError):
                other.rotate("token-a")
            other_db.rollback()
        finally:
            other_db.close()

    def test_unknown_token(self) -> None:
        with self.assertRaises(InvalidRefreshTokenError):
            self.manager.rotate("never-issued")

    def test_expired_session(self) -> None:
        self.create("token-a")
        self.clock.advance(days=7)
        with self.assertRaises(InvalidRefreshTokenError):
            self.manager.rotate("token-a")
        self.db.rollback()
        self.assertEqual(self.state_of("token-a"), SESSION_ACTIVE)

    def test_invalidated_session_is_never_reactivated(self) -> None:
        self.create("token-a")
        self.manager.invalidate_one(self.user_id, "token-a")
        self.db.commit()
        with self.assertRaises(InvalidRefreshTokenError):
            self.manager.rotate("token-a")
        self.db.rollback()
        self.assertEqual(self.state_of("token-a"), SESSION_INVALIDATED)


class TestInvalidate(SessionManagerTestCase):
    def test_invalidate_one_only_touches_matching_session(self) -> None:
        self.create("token-a")
        self.create("token-b")
        self.assertEqual(self.manager.invalidate_one(self.user_id, "token-a"), 1)
        self.db.commit()
        self.assertEqual(self.state_of("token-a"), SESSION_INVALIDATED)
        self.assertEqual(self.state_of("token-b"), SESSION_ACTIVE)

    def test_invalidate_one_without_match_is_noop(self) -> None:
        self.assertEqual(self.manager.invalidate_one(self.user_id, "missing"), 0)

    def test_invalidate_one_requires_owner(self) -> None:
        self.create("token-a")
        self.assertEqual(self.manager.invalidate_one("someone-else", "token-a"), 0)

    def test_invalidate_all(self) -> None:
        self.create("token-a")
        self.create("token-b")
        self.create("token-c")
        self.manager.rotate("token-c")
        self.db.commit()
        self.assertEqual(self.manager.invalidate_all(self.user_id), 2)
        self.db.commit()
        self.assertEqual(self.state_of("token-a"), SESSION_INVALIDATED)
        self.assertEqual(self.state_of("token-b"), SESSION_INVALIDATED)
        self.assertEqual(self.state_of("token-c"), SESSION_ROTATED)
        self.assertEqual(self.manager.active_sessions(self.user_id), [])

    def test_active_sessions_excludes_expired(self) -> None:
        self.create("token-a")
        self.assertEqual(len(self.manager.active_sessions(self.user_id)), 1)
        self.clock.advance(days=8)
        self.assertEqual(self.manager.active_sessions(self.user_id), [])


if __name__ == "__main__":
    unittest.main()
