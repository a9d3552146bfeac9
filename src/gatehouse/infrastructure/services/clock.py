"""System clock adapter."""

from datetime import datetime, timezone

from gatehouse.domain.interfaces.clock import IClock


class SystemClock(IClock):
    """Reads the wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
