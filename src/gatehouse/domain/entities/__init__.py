"""Domain entities."""

from .user import DEFAULT_ROLE, Role, User

__all__ = ["DEFAULT_ROLE", "Role", "User"]
