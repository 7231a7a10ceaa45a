#!/usr/bin/env python3
"""
Remove invited accounts that never set a password.

    python scripts/cleanup_expired_invitations.py [days]

`days` defaults to CLEANUP_EXPIRATION_DAYS (7). Exit code 1 when any user
could not be cleaned up.
"""
import json
import logging
import os
import sys

# enable 'app.' imports
sys.path.append(os.getcwd())

from dotenv import load_dotenv  # noqa: E402

load_dotenv()

from app.db.session import SessionLocal  # noqa: E402
from app.services.cleanup import CLEANUP_EXPIRATION_DAYS, cleanup_expired_invitations  # noqa: E402


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())

    days = CLEANUP_EXPIRATION_DAYS
    if argv:
        try:
            days = int(argv[0])
        except ValueError:
            print(f"ERROR: days must be an integer, got {argv[0]!r}")
            return 2

    db = SessionLocal()
    try:
        result = cleanup_expired_invitations(db, expiration_days=days)
    finally:
        db.close()

    print(json.dumps(result.as_dict(), indent=2))
    return 0 if result.success and not result.errors else 1


if __name__ == "__main__":
    sys.exit(main())
