"""
Create a user (e.g. first admin). Run from project root:
  python -m app.scripts.create_user EMAIL USERNAME PASSWORD [role]
Example:
  python -m app.scripts.create_user admin@example.com admin 'S3cure!pass' admin
"""
import argparse
import logging
import sys

from pydantic import ValidationError

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.schemas.auth import SignUpRequest
from app.services.audit import AuditService
from app.services.auth import AuthService
from app.services.exceptions import AuthError

def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    parser = argparse.ArgumentParser(description="Create a Keystone user from the command line.")
    parser.add_argument("email", help="Email address")
    parser.add_argument("username", help="Username (3-64 chars)")
    parser.add_argument("password", help="Password (8-128 chars, mixed case, digit and symbol)")
    parser.add_argument("role", nargs="?", default="user", choices=["user", "admin"])
    args = parser.parse_args(argv)

    try:
        request = SignUpRequest(
            email=args.email.strip(),
            username=args.username.strip(),
            password=args.password,
        )
    except ValidationError as e:
        print(f"Invalid input: {e.errors()[0]['msg']}", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        auth = AuthService(db, get_settings(), AuditService(SessionLocal))
        try:
            user = auth.create_user(request, role=args.role)
        except AuthError as e:
            print(e.message, file=sys.stderr)
            return 1
        print(f"Created user '{user.username}' with role '{user.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
