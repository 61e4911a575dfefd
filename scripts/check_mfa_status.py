#!/usr/bin/env python3
"""
Report MFA enrollment state for an admin.

Prints the enabled flag and the number of unused backup codes. Never prints
the secret or any code.

Usage:
    python scripts/check_mfa_status.py admin
    python scripts/check_mfa_status.py admin@example.com --json
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import get_settings  # noqa: E402
from core.db import DatabaseManager  # noqa: E402
from backoffice.auth import schema  # noqa: E402
from backoffice.auth.stores import SqlPrincipalStore, read_mfa_status  # noqa: E402


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Show MFA status for an admin")
    parser.add_argument("login", help="Username or email")
    parser.add_argument("--json", action="store_true", help="Machine-readable output")
    args = parser.parse_args(argv)

    settings = get_settings()
    db = DatabaseManager.get_instance(
        db_url=settings.database.database_url,
        db_path=settings.database.sqlite_path,
    )
    schema.initialize(db)

    principal = SqlPrincipalStore(db).find_by_login(args.login)
    if principal is None:
        print(f"Error: no admin '{args.login}'", file=sys.stderr)
        return 1

    status = read_mfa_status(db, principal.id)
    report = {
        "id": principal.id,
        "username": principal.username,
        "active": principal.active,
        "mfa_enabled": status.is_enabled,
        "mfa_pending": status.is_pending,
        "backup_codes_remaining": status.backup_codes_remaining,
    }

    if args.json:
        print(json.dumps(report))
    else:
        for key, value in report.items():
            print(f"{key:24} {value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
