"""Use-case pipeline.

Cross-cutting behaviour (logging, metrics, deadlines) is composed explicitly
around each workflow use case. A pipeline is an ordered list of middlewares;
the first one is outermost. Workflow services mark their use cases with the
``use_case`` decorator, which routes the call through ``self._pipeline``.
"""

import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from functools import partial, wraps
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

import structlog

from gatehouse.core.metrics import UseCaseMetrics

logger = structlog.get_logger(__name__)

T = TypeVar("T")
CallNext = Callable[[], Awaitable[Any]]


def outcome_label(result: Any) -> str:
    """Short label describing a use-case result, for logs and metrics."""
    return getattr(result, "outcome", type(result).__name__)


class Middleware(ABC):
    """A single pipeline stage."""

    @abstractmethod
    async def __call__(self, use_case: str, call_next: CallNext) -> Any:
        raise NotImplementedError


class LoggingMiddleware(Middleware):
    """Logs start, outcome and failures under a per-invocation correlation id.

    Nested use cases reuse the correlation id of the outer invocation.
    """

    async def __call__(self, use_case: str, call_next: CallNext) -> Any:
        correlation_id = structlog.contextvars.get_contextvars().get("correlation_id") or uuid.uuid4().hex[:12]
        with structlog.contextvars.bound_contextvars(correlation_id=correlation_id):
            logger.debug("use_case_started", use_case=use_case)
            try:
                result = await call_next()
            except Exception as e:
                logger.error("use_case_failed", use_case=use_case, error=str(e), error_type=type(e).__name__)
                raise
            logger.info("use_case_completed", use_case=use_case, outcome=outcome_label(result))
            return result


class MetricsMiddleware(Middleware):
    """Records duration and outcome of every invocation."""

    def __init__(self, metrics: UseCaseMetrics):
        self._metrics = metrics

    async def __call__(self, use_case: str, call_next: CallNext) -> Any:
        start_time = time.perf_counter()
        outcome = "error"
        try:
            result = await call_next()
            outcome = outcome_label(result)
            return result
        finally:
            self._metrics.record_use_case(use_case, outcome, time.perf_counter() - start_time)


class TimeoutMiddleware(Middleware):
    """Cancels the use case when it exceeds its deadline.

    Cancellation propagates into whichever external call is suspended, so a
    slow dependency cannot stall the caller indefinitely.

    Raises:
        TimeoutError: When the deadline expires.
    """

    def __init__(self, timeout_seconds: float):
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self._timeout_seconds = timeout_seconds

    async def __call__(self, use_case: str, call_next: CallNext) -> Any:
        try:
            async with asyncio.timeout(self._timeout_seconds):
                return await call_next()
        except TimeoutError:
            logger.warning("use_case_timed_out", use_case=use_case, timeout_seconds=self._timeout_seconds)
            raise


class UseCasePipeline:
    """Ordered middleware composition around use-case handlers."""

    def __init__(self, middlewares: Sequence[Middleware] = ()):
        self._middlewares = tuple(middlewares)

    @property
    def middlewares(self) -> Sequence[Middleware]:
        return self._middlewares

    async def execute(self, use_case: str, handler: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        async def terminal() -> T:
            return await handler(*args, **kwargs)

        call: CallNext = terminal
        for middleware in reversed(self._middlewares):
            call = partial(middleware, use_case, call)
        return await call()

    @classmethod
    def default(cls, timeout_seconds: float, metrics: Optional[UseCaseMetrics] = None) -> "UseCasePipeline":
        """Logging, then metrics, then the deadline."""
        return cls(
            [
                LoggingMiddleware(),
                MetricsMiddleware(metrics or UseCaseMetrics()),
                TimeoutMiddleware(timeout_seconds),
            ]
        )


def use_case(name: Optional[str] = None):
    """Routes a service coroutine method through the service's ``_pipeline``."""

    def decorator(func):
        use_case_name = name or func.__name__

        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            return await self._pipeline.execute(use_case_name, func, self, *args, **kwargs)

        return wrapper

    return decorator
