"""Unit tests for app.core.config validation."""

import unittest

from pydantic import ValidationError

from support import make_settings


class TestDefaults(unittest.TestCase):
    def test_auth_defaults(self) -> None:
        settings = make_settings(BCRYPT_ROUNDS=12)
        self.assertEqual(settings.BCRYPT_ROUNDS, 12)
        self.assertEqual(settings.JWT_REFRESH_EXPIRE_DAYS, 7)
        self.assertEqual(settings.MAX_LOGIN_ATTEMPTS, 5)
        self.assertEqual(settings.LOCKOUT_MINUTES, 15)
        self.assertEqual(settings.JWT_ALGORITHM, "HS256")


class TestValidation(unittest.TestCase):
    def test_secrets_must_differ(self) -> None:
        with self.assertRaises(ValidationError):
            make_settings(JWT_SECRET="same-secret", JWT_REFRESH_SECRET="same-secret")

    def test_short_secrets_rejected_in_prod(self) -> None:
        with self.assertRaises(ValidationError):
            make_settings(APP_ENV="prod", JWT_SECRET="short", JWT_REFRESH_SECRET="x" * 40)
        settings = make_settings(APP_ENV="prod", JWT_SECRET="a" * 32, JWT_REFRESH_SECRET="b" * 32)
        self.assertEqual(settings.APP_ENV, "prod")

    def test_short_secrets_allowed_in_dev(self) -> None:
        settings = make_settings(JWT_SECRET="short-a", JWT_REFRESH_SECRET="short-b")
        self.assertEqual(settings.JWT_SECRET.get_secret_value(), "short-a")

    def test_empty_secret(self) -> None:
        with self.assertRaises(ValidationError):
            make_settings(JWT_SECRET="   ")

    def test_database_url_scheme(self) -> None:
        with self.assertRaises(ValidationError):
            make_settings(DATABASE_URL="mysql://localhost/db")
        self.assertEqual(
            make_settings(DATABASE_URL=" postgresql://u:p@h/db ").DATABASE_URL,
            "postgresql://u:p@h/db",
        )

    def test_numeric_ranges(self) -> None:
        invalid = [
            {"BCRYPT_ROUNDS": 3},
            {"BCRYPT_ROUNDS": 32},
            {"MAX_LOGIN_ATTEMPTS": 0},
            {"LOCKOUT_MINUTES": 0},
            {"JWT_EXPIRE_MINUTES": 0},
            {"JWT_REFRESH_EXPIRE_DAYS": 91},
            {"SESSION_RETENTION_DAYS": 0},
        ]
        for overrides in invalid:
            with self.subTest(overrides=overrides):
                with self.assertRaises(ValidationError):
                    make_settings(**overrides)


if __name__ == "__main__":
    unittest.main()
