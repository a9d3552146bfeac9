"""Event Publisher Infrastructure Service.

Concrete implementation of the domain event publishing interface. Repositories
hand persisted events to the publisher after a successful write.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence
from uuid import UUID

import structlog

from gatehouse.domain.events.user_events import BaseUserEvent
from gatehouse.domain.interfaces.services import IEventPublisher

logger = structlog.get_logger(__name__)

Subscriber = Callable[[BaseUserEvent], Awaitable[None]]


class InMemoryEventPublisher(IEventPublisher):
    """In-memory event publisher.

    Forwards every published event to async subscribers. A failing
    subscriber is logged; it does not fail the operation whose events were
    already persisted.

    Args:
        retain_events: Keep published events for inspection. Only tests
            should turn this on; nothing ever drains the buffer.
    """

    def __init__(self, retain_events: bool = False):
        self._retain_events = retain_events
        self._published_events: List[BaseUserEvent] = []
        self._subscribers: List[Subscriber] = []

    async def publish(self, event: BaseUserEvent) -> None:
        if self._retain_events:
            self._published_events.append(event)
        if self._subscribers:
            await self._notify_subscribers(event)

        logger.debug(
            "domain_event_published",
            event_type=event.event_type,
            user_id=str(event.user_id),
            occurred_at=event.occurred_at.isoformat(),
        )

    async def publish_many(self, events: Sequence[BaseUserEvent]) -> None:
        # Sequential so subscribers observe stream order.
        for event in events:
            await self.publish(event)

    def add_subscriber(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def get_published_events(
        self,
        event_type: Optional[str] = None,
        user_id: Optional[UUID] = None,
    ) -> List[BaseUserEvent]:
        """Get retained events with optional filtering.

        Always empty unless the publisher was built with ``retain_events``.

        Args:
            event_type: Filter by event type name
            user_id: Filter by aggregate id
        """
        events = self._published_events
        if event_type:
            events = [e for e in events if e.event_type == event_type]
        if user_id is not None:
            events = [e for e in events if e.user_id == user_id]
        return list(events)

    def clear_published_events(self) -> None:
        self._published_events.clear()

    async def _notify_subscribers(self, event: BaseUserEvent) -> None:
        results = await asyncio.gather(
            *(subscriber(event) for subscriber in self._subscribers), return_exceptions=True
        )
        for result in results:
            if isinstance(result, Exception):
                logger.error(
                    "event_subscriber_failed",
                    event_type=event.event_type,
                    error=str(result),
                    error_type=type(result).__name__,
                )
