"""Test environment defaults. Set before any app module reads settings."""

import os
import tempfile

_TEST_DB_DIR = tempfile.mkdtemp(prefix="keystone-tests-")

os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DB_DIR}/app.db")
os.environ.setdefault("JWT_SECRET", "test-access-secret-0123456789abcdef")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-0123456789abcdef")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
