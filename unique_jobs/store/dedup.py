"""
Dedup store adapter.

Narrow optimistic-transaction primitive over Redis: WATCH a key, read it,
then either UNWATCH or commit a single SETEX inside MULTI/EXEC. If another
client touches the watched key in between, EXEC aborts and nothing is
written. Values are not interpreted here.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from redis.asyncio import Redis
from redis.asyncio.client import Pipeline
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.exceptions import WatchError

from unique_jobs.constants import MIN_TTL_SECONDS, DedupState
from unique_jobs.errors import StoreUnavailableError
from unique_jobs.observability.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)

TRANSPORT_ERRORS = (RedisConnectionError, RedisTimeoutError)


class DedupTransaction:
    """
    One optimistic attempt against a single watched key.

    Obtained from `DedupStore.watch`; not reusable after commit.
    """

    def __init__(self, pipeline: Pipeline, key: str, metrics: MetricsCollector):
        self._pipe = pipeline
        self._metrics = metrics
        self.key = key

    async def get(self) -> DedupState:
        """Read the current state of the watched key."""
        try:
            raw = await self._pipe.get(self.key)
        except TRANSPORT_ERRORS as e:
            self._metrics.record_store_error("get")
            raise StoreUnavailableError(f"GET {self.key} failed: {e}", operation="get") from e
        return DedupState.from_raw(raw)

    async def unwatch(self) -> None:
        """Release the watch without writing."""
        try:
            await self._pipe.unwatch()
        except TRANSPORT_ERRORS as e:
            self._metrics.record_store_error("unwatch")
            raise StoreUnavailableError(f"UNWATCH failed: {e}", operation="unwatch") from e

    async def commit(self, value: DedupState, ttl_seconds: int) -> bool:
        """
        Write the record with its TTL if the key is unchanged since WATCH.

        Args:
            value: State to store.
            ttl_seconds: Expiry in seconds, clamped to at least 1.

        Returns:
            True if committed, False if the transaction was aborted by a
            concurrent writer.
        """
        ttl_seconds = max(int(ttl_seconds), MIN_TTL_SECONDS)
        self._pipe.multi()
        self._pipe.setex(self.key, ttl_seconds, int(value))
        try:
            await self._pipe.execute()
        except WatchError:
            logger.debug("Optimistic transaction aborted", extra={"fingerprint": self.key})
            return False
        except TRANSPORT_ERRORS as e:
            self._metrics.record_store_error("commit")
            raise StoreUnavailableError(
                f"MULTI/EXEC on {self.key} failed: {e}", operation="commit"
            ) from e
        return True


class DedupStore:
    """
    Optimistic transaction primitives against the shared Redis instance.

    Usage:
        async with store.watch(key) as txn:
            state = await txn.get()
            committed = await txn.commit(DedupState.QUEUED, 1800)
    """

    def __init__(self, client: Redis, metrics: MetricsCollector | None = None):
        """
        Initialize the store adapter.

        Args:
            client: Async Redis client.
            metrics: Metrics collector. Uses the global one if not provided.
        """
        self._client = client
        self._metrics = metrics or get_metrics()

    @property
    def client(self) -> Redis:
        return self._client

    @asynccontextmanager
    async def watch(self, key: str) -> AsyncGenerator[DedupTransaction]:
        """
        WATCH a key for the duration of the block.

        The pipeline is reset on exit, which drops any remaining watch, so
        a cancelled decision leaves nothing behind.

        Yields:
            DedupTransaction: Transaction bound to the watched key.

        Raises:
            StoreUnavailableError: If the WATCH cannot be issued.
        """
        async with self._client.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(key)
            except TRANSPORT_ERRORS as e:
                self._metrics.record_store_error("watch")
                raise StoreUnavailableError(f"WATCH {key} failed: {e}", operation="watch") from e
            yield DedupTransaction(pipe, key, self._metrics)

    async def state(self, key: str) -> DedupState:
        """Read a record without a transaction."""
        try:
            raw = await self._client.get(key)
        except TRANSPORT_ERRORS as e:
            self._metrics.record_store_error("get")
            raise StoreUnavailableError(f"GET {key} failed: {e}", operation="get") from e
        return DedupState.from_raw(raw)

    async def ttl(self, key: str) -> int:
        """
        Get the remaining TTL of a record.

        Returns:
            Seconds remaining; -2 if the key does not exist, -1 if it has no expiry.
        """
        try:
            return await self._client.ttl(key)
        except TRANSPORT_ERRORS as e:
            self._metrics.record_store_error("ttl")
            raise StoreUnavailableError(f"TTL {key} failed: {e}", operation="ttl") from e
