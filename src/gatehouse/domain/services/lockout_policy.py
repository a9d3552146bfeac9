"""Brute-force lockout policy.

A lockout is expressed as a future timestamp rather than a flag: after the
configured number of consecutive failures the account is refused until
``now + lockout_duration``.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any


@dataclass(frozen=True)
class LockoutPolicy:
    """Threshold and duration of the failed-login lockout.

    Attributes:
        max_failed_attempts: Consecutive failures that trigger a lockout.
        lockout_duration: How long a triggered lockout lasts.
    """

    max_failed_attempts: int
    lockout_duration: timedelta

    def __post_init__(self):
        if self.max_failed_attempts < 1:
            raise ValueError("max_failed_attempts must be at least 1")
        if self.lockout_duration <= timedelta(0):
            raise ValueError("lockout_duration must be positive")

    def should_lock(self, failed_attempts: int) -> bool:
        """Whether the post-increment failure count reaches the threshold."""
        return failed_attempts >= self.max_failed_attempts

    def lockout_end(self, now: datetime) -> datetime:
        return now + self.lockout_duration

    @classmethod
    def from_settings(cls, settings: Any) -> "LockoutPolicy":
        return cls(
            max_failed_attempts=settings.MAX_FAILED_LOGIN_ATTEMPTS,
            lockout_duration=timedelta(minutes=settings.LOCKOUT_DURATION_MINUTES),
        )


DEFAULT_LOCKOUT_POLICY = LockoutPolicy(max_failed_attempts=5, lockout_duration=timedelta(minutes=30))

# Earlier releases locked accounts for 15 minutes.
LEGACY_LOCKOUT_POLICY = LockoutPolicy(max_failed_attempts=5, lockout_duration=timedelta(minutes=15))
