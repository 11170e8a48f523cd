"""
Client middleware for the queuing pipeline.

Sits between job submission and the queue: resolves the job type's
uniqueness configuration, asks the coordinator for a decision, stamps
the fingerprint onto admitted payloads so the retry path can find them,
and drops rejected duplicates without raising.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from unique_jobs.constants import UNIQUE_HASH_FIELD
from unique_jobs.coordinator import UniquenessCoordinator
from unique_jobs.registry import JobTypeRegistry
from unique_jobs.types.job import JobRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")

PushFn = Callable[[dict[str, Any]], Awaitable[T]]


class UniqueJobsMiddleware:
    """
    Uniqueness gate in front of a push function.

    Example:
        middleware = UniqueJobsMiddleware(coordinator)
        await middleware({"class": "SyncUser", "queue": "default", "args": [42]}, queue.push)
    """

    def __init__(
        self,
        coordinator: UniquenessCoordinator,
        registry: JobTypeRegistry | None = None,
    ):
        """
        Initialize the middleware.

        Args:
            coordinator: Coordinator making the decisions.
            registry: Registry for job type options. Defaults to the coordinator's.
        """
        self._coordinator = coordinator
        self._registry = registry or coordinator.registry

    async def __call__(self, item: dict[str, Any], push: PushFn[T]) -> T | None:
        """
        Push the job unless it is a duplicate.

        Args:
            item: Job payload. Mutated to carry the fingerprint when admitted.
            push: Coroutine function enqueuing the payload.

        Returns:
            The push result, or None if the job was dropped.
        """
        request = JobRequest.from_item(item)
        config = self._registry.resolve(request)

        if not config.enabled:
            return await push(item)

        decision = await self._coordinator.evaluate(request, config)
        if not decision.admitted:
            logger.debug(
                "Dropped duplicate job",
                extra={
                    "job_type": request.job_type,
                    "fingerprint": decision.fingerprint,
                    "outcome": decision.outcome.value,
                },
            )
            return None

        item[UNIQUE_HASH_FIELD] = decision.fingerprint
        return await push(item)
