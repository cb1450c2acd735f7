"""Repository for the ``users`` table — full CRUD with ACID transactions."""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from userapi.db.database import Database
from userapi.errors import StoreError, UserAlreadyExists, UserNotFound
from userapi.models.user import NewUser, User, UserUpdate

logger = logging.getLogger(__name__)

_SELECT_BY_ID = "SELECT * FROM users WHERE id = ?"


class UserRepository:
    """Single-Responsibility repository for user persistence."""

    def __init__(self, db: Database):
        self._db = db

    def _fetch(self, user_id: int, conn: Optional[sqlite3.Connection] = None) -> Optional[User]:
        row = self._db.fetchone(_SELECT_BY_ID, (user_id,), conn=conn)
        return User.from_row(row) if row else None

    @staticmethod
    def _already_exists(user: NewUser) -> UserAlreadyExists:
        return UserAlreadyExists(
            f'User with username "{user.username}" or email "{user.email}" already exists'
        )

    # -- Create ----------------------------------------------------------------

    def create_user(self, new_user: NewUser) -> User:
        """Insert a new user and return it as stored. Raises on duplicate username/email."""
        self._db.ensure_session()
        try:
            with self._db.transaction() as conn:
                cursor = self._db.execute(
                    "INSERT INTO users (username, email, password_hash) VALUES (?, ?, ?)",
                    (new_user.username, new_user.email, new_user.password_hash),
                    conn=conn,
                )
                user = self._fetch(cursor.lastrowid, conn=conn)
                if user is None:
                    raise UserNotFound("User creation failed unexpectedly")
        except StoreError as exc:
            if exc.is_constraint_violation:
                logger.warning(f"Duplicate user rejected: {exc.message}")
                raise self._already_exists(new_user) from exc
            raise
        logger.info(f"Created user {user.id}: {user.username}")
        return user

    # -- Read ------------------------------------------------------------------

    def get_user_by_id(self, user_id: int) -> User:
        self._db.ensure_session()
        user = self._fetch(user_id)
        if user is None:
            raise UserNotFound(f"User with ID {user_id} not found")
        return user

    def get_all_users(self) -> list[User]:
        self._db.ensure_session()
        rows = self._db.fetchall("SELECT * FROM users ORDER BY id")
        return [User.from_row(r) for r in rows]

    # -- Update ----------------------------------------------------------------

    def update_user(self, user_id: int, changes: UserUpdate) -> User:
        """
        Read-modify-write inside one transaction.  Fields left as ``None``
        in ``changes`` keep their stored value; all three are written.
        An empty change set only checks that the user exists.
        """
        self._db.ensure_session()
        try:
            with self._db.transaction() as conn:
                current = self._fetch(user_id, conn=conn)
                if current is None:
                    raise UserNotFound(f"User with ID {user_id} not found")
                if changes.is_empty():
                    return current

                merged = current.merged_with(changes)
                self._db.execute(
                    "UPDATE users SET username = ?, email = ?, password_hash = ? WHERE id = ?",
                    (merged.username, merged.email, merged.password_hash, user_id),
                    conn=conn,
                )
                user = self._fetch(user_id, conn=conn)
                if user is None:
                    raise UserNotFound(f"User with ID {user_id} not found")
        except StoreError as exc:
            if exc.is_constraint_violation:
                logger.warning(f"Update of user {user_id} rejected: {exc.message}")
                raise self._already_exists(merged) from exc
            raise
        logger.info(f"Updated user {user_id}")
        return user

    # -- Delete ----------------------------------------------------------------

    def delete_user(self, user_id: int) -> User:
        """Physically delete a user; returns the row as it was before removal."""
        self._db.ensure_session()
        with self._db.transaction() as conn:
            user = self._fetch(user_id, conn=conn)
            if user is None:
                raise UserNotFound(f"User with ID {user_id} not found")

            cursor = self._db.execute("DELETE FROM users WHERE id = ?", (user_id,), conn=conn)
            if not cursor.rowcount:
                raise UserNotFound(f"User with ID {user_id} could not be deleted")
        logger.info(f"Deleted user {user_id}: {user.username}")
        return user
