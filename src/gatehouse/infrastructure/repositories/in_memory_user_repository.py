"""In-memory event store for the User aggregate.

Used by local development and the test suite. Streams are kept as lists of
events; every read rebuilds a fresh aggregate so callers never share state.
"""

import asyncio
from typing import Dict, List, Optional
from uuid import UUID

import structlog

from gatehouse.core.exceptions import ConcurrencyError, DuplicateUserError
from gatehouse.domain.entities.user import User
from gatehouse.domain.events.user_events import UserEvent
from gatehouse.domain.interfaces.repositories import IUserRepository
from gatehouse.domain.interfaces.services import IEventPublisher
from gatehouse.domain.value_objects.email import Email

logger = structlog.get_logger(__name__)


class InMemoryUserRepository(IUserRepository):
    """Dictionary-backed event store with optimistic version checks.

    Appends run under an ``asyncio.Lock``; nothing is awaited while the lock
    is held. Persisted events are published after the lock is released.
    """

    def __init__(self, event_publisher: Optional[IEventPublisher] = None):
        self._streams: Dict[UUID, List[UserEvent]] = {}
        self._email_index: Dict[str, UUID] = {}
        self._google_index: Dict[str, UUID] = {}
        self._lock = asyncio.Lock()
        self._event_publisher = event_publisher

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        stream = self._streams.get(user_id)
        if not stream:
            return None
        return User.from_history(list(stream))

    async def get_by_email(self, email: Email) -> Optional[User]:
        user_id = self._email_index.get(email.value)
        return await self.get_by_id(user_id) if user_id else None

    async def get_by_google_id(self, google_id: str) -> Optional[User]:
        user_id = self._google_index.get(google_id)
        return await self.get_by_id(user_id) if user_id else None

    async def add(self, user: User) -> None:
        if user.version != 0:
            raise ValueError("add() expects a new user; use update() for loaded users")
        events = list(user.pending_events)

        async with self._lock:
            if user.id in self._streams or user.email.value in self._email_index:
                raise DuplicateUserError("A user with this email already exists")
            if user.google_id is not None and user.google_id in self._google_index:
                raise DuplicateUserError("This Google account is already registered")
            self._streams[user.id] = events
            self._index(user)
            user.mark_committed()

        logger.debug("user_stream_created", user_id=str(user.id), events=len(events))
        await self._publish(events)

    async def update(self, user: User) -> None:
        events = list(user.pending_events)
        if not events:
            return

        async with self._lock:
            stream = self._streams.get(user.id)
            if stream is None:
                raise ValueError(f"User {user.id} has no stream; use add() for new users")
            if len(stream) != user.version:
                raise ConcurrencyError(user.id, user.version, len(stream))
            owner = self._google_index.get(user.google_id) if user.google_id else None
            if owner is not None and owner != user.id:
                raise DuplicateUserError("This Google account is already registered")
            stream.extend(events)
            self._index(user)
            user.mark_committed()

        logger.debug("user_stream_appended", user_id=str(user.id), events=len(events), version=user.version)
        await self._publish(events)

    def _index(self, user: User) -> None:
        self._email_index[user.email.value] = user.id
        if user.google_id is not None:
            self._google_index[user.google_id] = user.id

    async def _publish(self, events: List[UserEvent]) -> None:
        if self._event_publisher is not None:
            await self._event_publisher.publish_many(events)
