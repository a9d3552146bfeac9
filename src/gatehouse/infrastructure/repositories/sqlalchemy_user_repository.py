"""User repository backed by a SQL event store.

Each domain event becomes a ``user_events`` row; ``user_lookup`` maps email
and Google subject to the stream and holds its current version. An append
first advances the lookup version with a conditional ``UPDATE`` and fails
with ``ConcurrencyError`` when another writer got there first; the unique
``(aggregate_id, version)`` constraint backs the same guarantee.
"""

from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from gatehouse.core.exceptions import ConcurrencyError, DatabaseError, DuplicateUserError
from gatehouse.domain.entities.user import User
from gatehouse.domain.events.user_events import (
    GoogleAccountLinked,
    UserEvent,
    event_from_payload,
    event_to_payload,
)
from gatehouse.domain.interfaces.repositories import IUserRepository
from gatehouse.domain.interfaces.services import IEventPublisher
from gatehouse.domain.value_objects.email import Email
from gatehouse.infrastructure.database.models import UserEventRecord, UserLookup

logger = get_logger(__name__)


def _to_records(user: User, events: List[UserEvent]) -> List[UserEventRecord]:
    return [
        UserEventRecord(
            aggregate_id=user.id,
            version=user.version + offset,
            event_type=event.event_type,
            payload=event_to_payload(event),
            occurred_at=event.occurred_at,
        )
        for offset, event in enumerate(events, start=1)
    ]


class SqlAlchemyUserRepository(IUserRepository):
    """SQLAlchemy implementation of the user event store.

    Args:
        session_factory: Callable returning a new ``AsyncSession``; every
            repository call uses its own short-lived session.
        event_publisher: Receives events after a successful commit.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        event_publisher: Optional[IEventPublisher] = None,
    ):
        self._session_factory = session_factory
        self._event_publisher = event_publisher

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        async with self._session_factory() as session:
            return await self._load(session, user_id)

    async def get_by_email(self, email: Email) -> Optional[User]:
        async with self._session_factory() as session:
            result = await session.execute(select(UserLookup.user_id).where(UserLookup.email == email.value))
            user_id = result.scalar_one_or_none()
            return await self._load(session, user_id) if user_id else None

    async def get_by_google_id(self, google_id: str) -> Optional[User]:
        async with self._session_factory() as session:
            result = await session.execute(select(UserLookup.user_id).where(UserLookup.google_id == google_id))
            user_id = result.scalar_one_or_none()
            return await self._load(session, user_id) if user_id else None

    async def add(self, user: User) -> None:
        if user.version != 0:
            raise ValueError("add() expects a new user; use update() for loaded users")
        events = list(user.pending_events)

        async with self._session_factory() as session:
            session.add(
                UserLookup(user_id=user.id, email=user.email.value, google_id=user.google_id, version=len(events))
            )
            session.add_all(_to_records(user, events))
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                logger.warning("duplicate_user_rejected", email=user.email.mask_for_logging())
                raise DuplicateUserError("A user with this email or Google account already exists") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to persist user: {e}") from e

        user.mark_committed()
        logger.debug("user_stream_created", user_id=str(user.id), events=len(events))
        await self._publish(events)

    async def update(self, user: User) -> None:
        events = list(user.pending_events)
        if not events:
            return
        new_version = user.version + len(events)

        async with self._session_factory() as session:
            try:
                result = await session.execute(
                    update(UserLookup)
                    .where(UserLookup.user_id == user.id, UserLookup.version == user.version)
                    .values(version=new_version, google_id=user.google_id)
                )
                if result.rowcount != 1:
                    await session.rollback()
                    actual = await self._current_version(session, user.id)
                    raise ConcurrencyError(user.id, user.version, actual)

                session.add_all(_to_records(user, events))
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if any(isinstance(event, GoogleAccountLinked) for event in events):
                    raise DuplicateUserError("This Google account is already registered") from e
                raise ConcurrencyError(user.id, user.version, await self._current_version(session, user.id)) from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to append user events: {e}") from e

        user.mark_committed()
        logger.debug("user_stream_appended", user_id=str(user.id), events=len(events), version=user.version)
        await self._publish(events)

    async def _load(self, session: AsyncSession, user_id: UUID) -> Optional[User]:
        result = await session.execute(
            select(UserEventRecord)
            .where(UserEventRecord.aggregate_id == user_id)
            .order_by(UserEventRecord.version)
        )
        records = result.scalars().all()
        if not records:
            return None
        return User.from_history(event_from_payload(r.event_type, r.payload) for r in records)

    @staticmethod
    async def _current_version(session: AsyncSession, user_id: UUID) -> int:
        result = await session.execute(
            select(func.max(UserEventRecord.version)).where(UserEventRecord.aggregate_id == user_id)
        )
        return result.scalar() or 0

    async def _publish(self, events: List[UserEvent]) -> None:
        if self._event_publisher is not None:
            await self._event_publisher.publish_many(events)
