"""Clock interface.

Time is a collaborator like any other: the aggregate and the workflows ask
an injected clock for the current instant so that event timestamps and
lockout windows stay deterministic under test.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class IClock(ABC):
    """Source of the current instant."""

    @abstractmethod
    def now(self) -> datetime:
        """Returns the current time as a timezone-aware UTC datetime."""
        raise NotImplementedError
