"""
Create a user outside the registration flow (e.g. a first admin). Run from project root:
  python -m shiftpay.scripts.create_user USERNAME PASSWORD [ROLE]
Example:
  python -m shiftpay.scripts.create_user alice your-secure-password Admin
Roles must exist; run python -m shiftpay.scripts.seed first.
"""
import argparse
import sys

from shiftpay.core.database import SessionLocal
from shiftpay.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    hash_password,
)
from shiftpay.models import Role, User
from shiftpay.services.seed import ROLE_DEFINITIONS


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a shiftpay user without an employee profile.")
    parser.add_argument("username", help=f"Username (1-{USERNAME_MAX_LEN} chars)")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("role", nargs="?", default="Employee", choices=sorted(ROLE_DEFINITIONS))
    args = parser.parse_args(argv)

    username = args.username.strip()
    if not username or len(username) > USERNAME_MAX_LEN:
        print("Invalid username length.", file=sys.stderr)
        return 1
    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.username == username).first()
        if existing:
            print(f"User '{username}' already exists.", file=sys.stderr)
            return 1
        role = db.query(Role).filter(Role.name == args.role).first()
        if role is None:
            print(f"Role '{args.role}' not found. Run the seed first.", file=sys.stderr)
            return 1
        user = User(
            username=username,
            password_hash=hash_password(args.password),
            roles=[role],
        )
        db.add(user)
        db.commit()
        print(f"Created user '{username}' with role '{args.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
