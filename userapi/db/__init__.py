"""Database layer — SQLite with ACID transactions and repository pattern."""

from userapi.db.database import Database, get_db, open_database, reset_db
from userapi.db.schema import SCHEMA_DDL
from userapi.db.user_repo import UserRepository

__all__ = ["Database", "get_db", "open_database", "reset_db", "SCHEMA_DDL", "UserRepository"]
