"""Domain models for the user store."""

from userapi.models.user import NewUser, User, UserUpdate

__all__ = ["NewUser", "User", "UserUpdate"]
