"""Repository interfaces for abstracting persistence of the User aggregate.

The domain layer uses these interfaces to load and store users without being
coupled to a specific storage technology. Implementations are event stores:
they persist the aggregate's pending events and rebuild users by replaying
their streams.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from gatehouse.domain.entities.user import User
from gatehouse.domain.value_objects.email import Email


class IUserRepository(ABC):
    """An interface defining the contract for user persistence operations.

    ``add`` and ``update`` durably append every pending event of the aggregate
    and then call ``User.mark_committed``. Appends are guarded by an optimistic
    version check on the stream.
    """

    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Retrieves a user by identity.

        Returns:
            The rebuilt `User`, or `None` if no stream exists.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_by_email(self, email: Email) -> Optional[User]:
        """Retrieves a user by normalized email address.

        Returns:
            The rebuilt `User`, or `None` if no user holds the address.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_by_google_id(self, google_id: str) -> Optional[User]:
        """Retrieves a user by linked Google subject."""
        raise NotImplementedError

    @abstractmethod
    async def add(self, user: User) -> None:
        """Persists a newly created user.

        Raises:
            DuplicateUserError: If the email or Google subject is already taken.
        """
        raise NotImplementedError

    @abstractmethod
    async def update(self, user: User) -> None:
        """Appends the pending events of an existing user.

        Raises:
            ConcurrencyError: If the stored stream advanced past ``user.version``.
            DuplicateUserError: If a newly linked Google subject is already taken.
        """
        raise NotImplementedError
