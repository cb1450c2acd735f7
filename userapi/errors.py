"""Error taxonomy for the user store.

Storage failures carry a ``kind`` tag so callers can tell a constraint
violation apart from any other failure without inspecting driver types.
"""

from __future__ import annotations

from enum import Enum


class StoreErrorKind(str, Enum):
    CONSTRAINT = "constraint"
    UNAVAILABLE = "unavailable"
    OTHER = "other"


class StoreError(Exception):
    """Any failure reported by the underlying store."""

    def __init__(self, message: str, kind: StoreErrorKind = StoreErrorKind.OTHER):
        super().__init__(message)
        self.message = message
        self.kind = kind

    @property
    def is_constraint_violation(self) -> bool:
        return self.kind is StoreErrorKind.CONSTRAINT


class StoreUnavailable(StoreError):
    """The database file could not be opened or bootstrapped."""

    def __init__(self, message: str):
        super().__init__(message, kind=StoreErrorKind.UNAVAILABLE)


class UserNotFound(Exception):
    """No user row matches the requested id."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UserAlreadyExists(Exception):
    """Username or email is already taken by another user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
