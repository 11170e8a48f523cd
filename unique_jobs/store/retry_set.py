"""
Retry set reconciliation.

The retry set is a sorted set of JSON job payloads parked after failure.
Both queries here are read-only scans; results may be stale by the time
the decision commits.
"""

import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import aclosing

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from unique_jobs.constants import DEFAULT_RETRY_SCAN_PAGE_SIZE, DEFAULT_RETRY_SET_KEY, SPAN_RETRY_SCAN
from unique_jobs.errors import RetrySetQueryError
from unique_jobs.observability.metrics import MetricsCollector, get_metrics
from unique_jobs.observability.tracing import get_tracer
from unique_jobs.types.job import RetryEntry

logger = logging.getLogger(__name__)


class RetryReconciler:
    """
    Queries the retry set for jobs sharing a fingerprint.

    - has_pending_retry: any parked job with the fingerprint
    - find_retry_for: the parked job with the fingerprint and job id
    """

    def __init__(
        self,
        client: Redis,
        key: str = DEFAULT_RETRY_SET_KEY,
        page_size: int = DEFAULT_RETRY_SCAN_PAGE_SIZE,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the reconciler.

        Args:
            client: Async Redis client.
            key: Retry set key.
            page_size: Members fetched per ZRANGE call.
            metrics: Metrics collector. Uses the global one if not provided.
        """
        self._client = client
        self.key = key
        self._page_size = max(1, page_size)
        self._metrics = metrics or get_metrics()

    async def entries(self) -> AsyncGenerator[RetryEntry]:
        """
        Iterate over parked jobs in score order.

        Malformed members are skipped.

        Raises:
            RetrySetQueryError: If the retry set cannot be read.
        """
        start = 0
        while True:
            end = start + self._page_size - 1
            try:
                members = await self._client.zrange(self.key, start, end)
            except (RedisConnectionError, RedisTimeoutError) as e:
                raise RetrySetQueryError(
                    f"ZRANGE {self.key} {start} {end} failed: {e}", key=self.key
                ) from e

            for raw in members:
                try:
                    yield RetryEntry.model_validate_json(raw)
                except ValidationError:
                    logger.warning("Skipping malformed retry entry", extra={"retry_set": self.key})

            if len(members) < self._page_size:
                return
            start += self._page_size

    async def has_pending_retry(self, fingerprint: str) -> bool:
        """
        Check if any parked job carries the fingerprint, whatever its job id.

        Args:
            fingerprint: Fingerprint to look for.

        Returns:
            True if a failed instance of the job is waiting to be retried.
        """
        entry = await self._scan("pending", lambda e: e.unique_hash == fingerprint)
        return entry is not None

    async def find_retry_for(self, fingerprint: str, jid: str | None) -> RetryEntry | None:
        """
        Find the parked job with both the fingerprint and the job id.

        Args:
            fingerprint: Fingerprint to look for.
            jid: Job identifier of the request; None never matches.

        Returns:
            The matching entry, or None.
        """
        if jid is None:
            return None
        return await self._scan(
            "retried",
            lambda e: e.unique_hash == fingerprint and e.jid == jid,
        )

    async def _scan(self, query: str, match: Callable[[RetryEntry], bool]) -> RetryEntry | None:
        self._metrics.record_retry_scan(query)
        with get_tracer().start_as_current_span(SPAN_RETRY_SCAN) as span:
            span.set_attribute("unique_jobs.retry_set", self.key)
            span.set_attribute("unique_jobs.retry_query", query)
            async with aclosing(self.entries()) as entries:
                async for entry in entries:
                    if match(entry):
                        span.set_attribute("unique_jobs.retry_found", True)
                        return entry
            span.set_attribute("unique_jobs.retry_found", False)
        return None
