"""
Unit tests for the dedup store adapter.
"""

import pytest

from unique_jobs.constants import DedupState
from unique_jobs.errors import StoreUnavailableError
from unique_jobs.observability.metrics import MetricsCollector
from unique_jobs.store.dedup import DedupStore


class TestDedupStore:
    """Tests for DedupStore and DedupTransaction."""

    async def test_get_absent_key(self, store: DedupStore):
        async with store.watch("fp") as txn:
            assert await txn.get() is DedupState.ABSENT

    async def test_commit_writes_value_and_ttl(self, store: DedupStore, fake_redis):
        async with store.watch("fp") as txn:
            committed = await txn.commit(DedupState.QUEUED, 3600)

        assert committed is True
        assert await fake_redis.get("fp") == "1"
        assert await store.state("fp") is DedupState.QUEUED
        assert abs(await store.ttl("fp") - 3600) <= 1

    async def test_commit_overwrites_record(self, store: DedupStore, fake_redis):
        await fake_redis.setex("fp", 100, 2)

        async with store.watch("fp") as txn:
            assert await txn.get() is DedupState.SCHEDULED
            assert await txn.commit(DedupState.QUEUED, 50) is True

        assert await store.state("fp") is DedupState.QUEUED

    async def test_concurrent_writer_aborts_commit(self, store: DedupStore, fake_redis):
        """A write between WATCH and EXEC aborts the transaction."""
        async with store.watch("fp") as txn:
            assert await txn.get() is DedupState.ABSENT

            # Another producer claims the key first
            await fake_redis.setex("fp", 60, 1)

            committed = await txn.commit(DedupState.QUEUED, 3600)

        assert committed is False
        assert abs(await store.ttl("fp") - 60) <= 1

    async def test_two_transactions_only_one_wins(self, store: DedupStore):
        async with store.watch("fp") as first:
            async with store.watch("fp") as second:
                assert await first.get() is DedupState.ABSENT
                assert await second.get() is DedupState.ABSENT

                assert await first.commit(DedupState.QUEUED, 60) is True
                assert await second.commit(DedupState.QUEUED, 60) is False

    async def test_ttl_clamped_to_one_second(self, store: DedupStore, fake_redis):
        async with store.watch("fp") as txn:
            assert await txn.commit(DedupState.SCHEDULED, -30) is True

        assert ("SETEX", ("fp", 1, 2)) in fake_redis.commands

    async def test_unwatch(self, store: DedupStore, fake_redis):
        async with store.watch("fp") as txn:
            await txn.unwatch()

        assert ("UNWATCH", ()) in fake_redis.commands
        assert await fake_redis.get("fp") is None

    async def test_missing_key_ttl(self, store: DedupStore):
        assert await store.ttl("nope") == -2

    async def test_transport_failure_propagates(
        self,
        store: DedupStore,
        fake_redis,
        metrics: MetricsCollector,
    ):
        """Store outages surface as StoreUnavailableError."""
        fake_redis.down = True

        with pytest.raises(StoreUnavailableError) as exc_info:
            async with store.watch("fp"):
                pass

        assert exc_info.value.operation == "watch"
        assert exc_info.value.code == "STORE_UNAVAILABLE"
        assert metrics.store_errors.labels(operation="watch")._value.get() == 1

    async def test_transport_failure_on_commit(self, store: DedupStore, fake_redis):
        with pytest.raises(StoreUnavailableError):
            async with store.watch("fp") as txn:
                await txn.get()
                fake_redis.down = True
                await txn.commit(DedupState.QUEUED, 60)

        fake_redis.down = False
        assert await fake_redis.get("fp") is None
