"""User domain model: the single persisted resource."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class NewUser:
    """Caller-supplied fields for a user that does not exist yet."""

    username: str
    email: str
    password_hash: str


@dataclass(frozen=True)
class UserUpdate:
    """Partial change set; ``None`` keeps the stored value."""

    username: Optional[str] = None
    email: Optional[str] = None
    password_hash: Optional[str] = None

    def is_empty(self) -> bool:
        return self.username is None and self.email is None and self.password_hash is None


@dataclass(frozen=True)
class User:
    """A stored user.  ``id`` and ``created_at`` are assigned by the store."""

    id: int
    username: str
    email: str
    password_hash: str
    created_at: str

    def merged_with(self, changes: UserUpdate) -> NewUser:
        return NewUser(
            username=changes.username if changes.username is not None else self.username,
            email=changes.email if changes.email is not None else self.email,
            password_hash=(
                changes.password_hash if changes.password_hash is not None else self.password_hash
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "password_hash": self.password_hash,
            "created_at": self.created_at,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "User":
        return cls(
            id=row["id"],
            username=row["username"],
            email=row["email"],
            password_hash=row["password_hash"],
            created_at=row["created_at"],
        )
