"""User repository implementations."""

from .in_memory_user_repository import InMemoryUserRepository
from .sqlalchemy_user_repository import SqlAlchemyUserRepository

__all__ = ["InMemoryUserRepository", "SqlAlchemyUserRepository"]
