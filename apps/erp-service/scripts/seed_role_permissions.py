#!/usr/bin/env python3
"""
Seed or restore the role permission matrix.

Inserts any missing (role, resource) rows with their default flags. With
--reset every row is rewritten to the defaults, discarding admin edits.

Reads the database location from DATABASE_URL or POSTGRES_* (a local .env
file is loaded first).

Usage:
  python scripts/seed_role_permissions.py [--reset]
"""

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from erp.db.database import SessionLocal
from erp.db.repositories import permissions as permission_repo


def seed_role_permissions(reset: bool = False) -> int:
    """Return the number of rows added (or rewritten when resetting)."""
    db = SessionLocal()
    try:
        if reset:
            permission_repo.reset_role_permissions(db)
            rows = permission_repo.list_role_permissions(db)
            print(f"Reset {len(rows)} role permission rows to defaults")
            return len(rows)
        added = permission_repo.ensure_default_permissions(db)
        if added:
            print(f"Added {added} missing role permission rows")
        else:
            print("Role permission matrix already complete")
        return added
    except Exception as e:
        db.rollback()
        print(f"Error seeding role permissions: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--reset", action="store_true", help="rewrite every row to the default flags")
    args = parser.parse_args()
    seed_role_permissions(reset=args.reset)
