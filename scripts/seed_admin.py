#!/usr/bin/env python3
"""
Create a back office admin account.

The admin has no MFA credential yet; the first login provisions one.

Usage:
    python scripts/seed_admin.py --username admin --email admin@example.com
    python scripts/seed_admin.py --username ops --role operator --password-stdin < pw.txt
"""

import argparse
import getpass
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import get_settings  # noqa: E402
from core.db import DatabaseManager  # noqa: E402
from backoffice.auth import hash_password, schema  # noqa: E402
from backoffice.auth.stores import SqlPrincipalStore  # noqa: E402

MIN_PASSWORD_LENGTH = 6


def _read_password(args) -> str:
    if args.password_stdin:
        return sys.stdin.readline().rstrip("\n")
    first = getpass.getpass("Password: ")
    if first != getpass.getpass("Repeat password: "):
        raise ValueError("Passwords do not match")
    return first


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create a back office admin")
    parser.add_argument("--username", required=True)
    parser.add_argument("--email", default=None)
    parser.add_argument("--role", default="admin")
    parser.add_argument("--inactive", action="store_true", help="Create the account deactivated")
    parser.add_argument("--password-stdin", action="store_true", help="Read the password from stdin")
    args = parser.parse_args(argv)

    try:
        password = _read_password(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"Error: password must be at least {MIN_PASSWORD_LENGTH} characters", file=sys.stderr)
        return 1

    settings = get_settings()
    db = DatabaseManager.get_instance(
        db_url=settings.database.database_url,
        db_path=settings.database.sqlite_path,
    )
    schema.initialize(db)

    try:
        principal = SqlPrincipalStore(db).create(
            username=args.username,
            password_hash=hash_password(password),
            email=args.email,
            role=args.role,
            active=not args.inactive,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Created {principal.role} '{principal.username}' (id {principal.id})")
    print("MFA will be set up on first login.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
