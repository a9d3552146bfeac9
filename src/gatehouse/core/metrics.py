"""
In-process metrics for authentication use cases.
"""
from typing import Any, Dict
from datetime import datetime, timezone

import structlog

logger = structlog.get_logger(__name__)


class UseCaseMetrics:
    """
    Collects call counts, outcome counts and durations per use case.

    Outcome labels come from the result objects (``success``,
    ``mfa_required``, ``failure:<kind>``) or ``error`` when the use case raised.
    """

    def __init__(self):
        self._metrics: Dict[str, Dict[str, Any]] = {}
        self._start_time = datetime.now(timezone.utc)

    def record_use_case(self, name: str, outcome: str, duration: float) -> None:
        """Record one completed use-case invocation."""
        if name not in self._metrics:
            self._metrics[name] = {
                "count": 0,
                "total_duration": 0.0,
                "max_duration": 0.0,
                "outcomes": {},
            }

        entry = self._metrics[name]
        entry["count"] += 1
        entry["total_duration"] += duration
        entry["max_duration"] = max(entry["max_duration"], duration)
        entry["outcomes"][outcome] = entry["outcomes"].get(outcome, 0) + 1

    def get_use_case(self, name: str) -> Dict[str, Any]:
        return self._metrics.get(name, {"count": 0, "total_duration": 0.0, "max_duration": 0.0, "outcomes": {}})

    def get_metrics(self) -> Dict[str, Any]:
        """Get all collected metrics."""
        return {
            "uptime": (datetime.now(timezone.utc) - self._start_time).total_seconds(),
            "use_cases": self._metrics,
        }

    def reset_metrics(self) -> None:
        """Reset all metrics to initial state."""
        self._metrics = {}
        self._start_time = datetime.now(timezone.utc)
        logger.debug("use_case_metrics_reset")
