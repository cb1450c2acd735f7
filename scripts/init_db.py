#!/usr/bin/env python3
"""Initialize the database and optionally seed users from a YAML file."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from userapi.db.database import Database
from userapi.db.user_repo import UserRepository
from userapi.errors import UserAlreadyExists
from userapi.models.user import NewUser


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Initialize the database")
    parser.add_argument("--seed-users", type=str, help="YAML file with user definitions")
    parser.add_argument("--db-path", type=str, help="Override database path")
    args = parser.parse_args(argv)

    db_path = Path(args.db_path) if args.db_path else None
    db = Database(path=db_path)
    try:
        db.init()
        print(f"Database initialized at: {db.path}")

        if args.seed_users:
            _seed_users(db, Path(args.seed_users))
    finally:
        db.close()
    print("Done.")
    return 0


def _seed_users(db: Database, path: Path) -> int:
    import yaml
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    repo = UserRepository(db)
    created = 0
    for u in data.get("users", []):
        try:
            user = repo.create_user(NewUser(
                username=u["username"],
                email=u["email"],
                password_hash=u["password_hash"],
            ))
        except KeyError as e:
            print(f"  Skipping entry without {e}")
            continue
        except UserAlreadyExists as e:
            print(f"  Skipping {u['username']}: {e.message}")
            continue
        created += 1
        print(f"  Created user {user.id}: {user.username} ({user.email})")
    return created


if __name__ == "__main__":
    sys.exit(main())
