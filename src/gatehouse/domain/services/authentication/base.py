"""Shared plumbing for the workflow services."""

from typing import Callable, Optional, Union

import structlog

from gatehouse.core.exceptions import ConcurrencyError
from gatehouse.core.pipeline import UseCasePipeline
from gatehouse.domain.entities.user import User
from gatehouse.domain.interfaces.clock import IClock
from gatehouse.domain.interfaces.repositories import IUserRepository
from gatehouse.domain.services.authentication.results import AuthFailure

logger = structlog.get_logger(__name__)

DEFAULT_MAX_CONCURRENCY_RETRIES = 3

UserCommand = Callable[[User], Optional[AuthFailure]]


class WorkflowService:
    """Base class holding the repository, clock and pipeline.

    Args:
        users: User event store.
        clock: Injected time source.
        pipeline: Middleware composition applied to every use case.
        max_concurrency_retries: Attempts at appending to a contended stream.
    """

    def __init__(
        self,
        users: IUserRepository,
        clock: IClock,
        pipeline: Optional[UseCasePipeline] = None,
        max_concurrency_retries: int = DEFAULT_MAX_CONCURRENCY_RETRIES,
    ):
        if max_concurrency_retries < 1:
            raise ValueError("max_concurrency_retries must be at least 1")
        self._users = users
        self._clock = clock
        self._pipeline = pipeline or UseCasePipeline()
        self._max_concurrency_retries = max_concurrency_retries

    async def _persist_with_retry(self, user: User, command: UserCommand) -> Union[User, AuthFailure]:
        """Applies ``command`` and appends the resulting events.

        On a version conflict the user is reloaded and the command re-run
        against the fresh state, so preconditions are always checked against
        what is actually stored. The command must be synchronous: nothing
        external is awaited between the reload and the append.

        Returns:
            The committed user, or the failure the command reported.

        Raises:
            ConcurrencyError: If every attempt lost the race.
        """
        attempt = 1
        while True:
            failure = command(user)
            if failure is not None:
                return failure
            try:
                await self._users.update(user)
                return user
            except ConcurrencyError as e:
                if attempt >= self._max_concurrency_retries:
                    logger.error("concurrency_retries_exhausted", user_id=str(user.id), attempts=attempt)
                    raise
                attempt += 1
                logger.info(
                    "concurrency_conflict_retrying",
                    user_id=str(user.id),
                    expected_version=e.expected_version,
                    actual_version=e.actual_version,
                )
                reloaded = await self._users.get_by_id(user.id)
                if reloaded is None:
                    raise
                user = reloaded
