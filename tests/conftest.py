"""
Pytest configuration and shared fixtures.

Unit tests run against FakeRedis, an in-memory async Redis double that
implements the commands the package uses: GET/SETEX/TTL, sorted sets for
the retry set, and WATCH/MULTI/EXEC with per-key versions so a write to a
watched key aborts EXEC with WatchError.
"""

import json
import os
import time
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from prometheus_client import CollectorRegistry
from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import WatchError

from unique_jobs.config import Settings
from unique_jobs.coordinator import UniquenessCoordinator
from unique_jobs.observability.metrics import MetricsCollector
from unique_jobs.registry import JobTypeRegistry
from unique_jobs.store.dedup import DedupStore
from unique_jobs.store.retry_set import RetryReconciler

TEST_REDIS_URL = os.getenv("TEST_REDIS_URL", "redis://localhost:6379/15")

class FakeRedis:
    """Async in-memory Redis with expiring string keys and sorted sets."""

    def __init__(self):
        self._strings: dict[str, tuple[str, float | None]] = {}
        self._zsets: dict[str, dict[str, float]] = {}
        self._versions: dict[str, int] = {}
        self.down = False
        self.commands: list[tuple[str, tuple[Any, ...]]] = []

    def _check(self, command: str, *args: Any) -> None:
        if self.down:
            raise RedisConnectionError("Connection refused")
        self.commands.append((command, args))

    def _bump(self, key: str) -> None:
        self._versions[key] = self._versions.get(key, 0) + 1

    def version(self, key: str) -> int:
        self._expire(key)
        return self._versions.get(key, 0)

    def _expire(self, key: str) -> None:
        entry = self._strings.get(key)
        if entry is not None and entry[1] is not None and entry[1] <= time.time():
            del self._strings[key]
            self._bump(key)

    async def get(self, key: str) -> str | None:
        self._check("GET", key)
        self._expire(key)
        entry = self._strings.get(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: Any) -> bool:
        self._check("SET", key, value)
        self._strings[key] = (str(value), None)
        self._bump(key)
        return True

    async def setex(self, key: str, seconds: int, value: Any) -> bool:
        self._check("SETEX", key, seconds, value)
        if int(seconds) <= 0:
            raise ValueError("invalid expire time in 'setex' command")
        self._strings[key] = (str(value), time.time() + int(seconds))
        self._bump(key)
        return True

    async def ttl(self, key: str) -> int:
        self._check("TTL", key)
        self._expire(key)
        entry = self._strings.get(key)
        if entry is None:
            return -2
        if entry[1] is None:
            return -1
        return int(round(entry[1] - time.time()))

    async def zadd(self, key: str, mapping: dict[str, float]) -> int:
        self._check("ZADD", key, mapping)
        zset = self._zsets.setdefault(key, {})
        added = sum(1 for member in mapping if member not in zset)
        zset.update(mapping)
        self._bump(key)
        return added

    async def zrange(self, key: str, start: int, end: int) -> list[str]:
        self._check("ZRANGE", key, start, end)
        members = [m for m, _ in sorted(self._zsets.get(key, {}).items(), key=lambda kv: (kv[1], kv[0]))]
        if end < 0:
            end = len(members) + end
        return members[start : end + 1]

    async def zcard(self, key: str) -> int:
        return len(self._zsets.get(key, {}))

    def add_retry(self, payload: dict[str, Any], key: str = "retry", score: float = 0.0) -> None:
        """Park a job payload in the retry set."""
        self._zsets.setdefault(key, {})[json.dumps(payload)] = score

    def pipeline(self, transaction: bool = True) -> "FakePipeline":
        return FakePipeline(self)


class FakePipeline:
    """Pipeline supporting the WATCH / GET / MULTI / SETEX / EXEC sequence."""

    def __init__(self, redis: FakeRedis):
        self._redis = redis
        self._watched: dict[str, int] = {}
        self._stack: list[tuple[str, tuple[Any, ...]]] = []
        self._multi = False
        self.reset_calls = 0

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.reset()

    async def reset(self) -> None:
        self.reset_calls += 1
        self._watched.clear()
        self._stack.clear()
        self._multi = False

    @property
    def watching(self) -> bool:
        return bool(self._watched)

    async def watch(self, *keys: str) -> bool:
        self._redis._check("WATCH", *keys)
        for key in keys:
            self._watched[key] = self._redis.version(key)
        return True

    async def unwatch(self) -> bool:
        self._redis._check("UNWATCH")
        self._watched.clear()
        return True

    async def get(self, key: str) -> str | None:
        return await self._redis.get(key)

    def multi(self) -> None:
        self._multi = True

    def setex(self, key: str, seconds: int, value: Any) -> "FakePipeline":
        self._stack.append(("setex", (key, seconds, value)))
        return self

    async def execute(self) -> list[Any]:
        self._redis._check("EXEC")
        try:
            for key, version in self._watched.items():
                if self._redis.version(key) != version:
                    raise WatchError("Watched variable changed.")
            return [await getattr(self._redis, name)(*args) for name, args in self._stack]
        finally:
            await self.reset()


# Fixed "now" for deterministic TTL arithmetic
FROZEN_NOW = 1_700_000_000.0


@pytest.fixture
def frozen_now() -> float:
    """The coordinator clock used by the coordinator fixture."""
    return FROZEN_NOW


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        redis_url=TEST_REDIS_URL,
        unique_prefix="test_unique",
        default_expiration_seconds=1800,
        unique_checks_retry_queue=False,
        retry_scan_page_size=2,
        log_level="DEBUG",
        log_format="console",
    )


@pytest.fixture
def metrics() -> MetricsCollector:
    """Metrics collector on an isolated registry."""
    return MetricsCollector(registry=CollectorRegistry())


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def store(fake_redis: FakeRedis, metrics: MetricsCollector) -> DedupStore:
    return DedupStore(fake_redis, metrics=metrics)


@pytest.fixture
def reconciler(
    fake_redis: FakeRedis,
    test_settings: Settings,
    metrics: MetricsCollector,
) -> RetryReconciler:
    return RetryReconciler(
        fake_redis,
        key=test_settings.retry_set_key,
        page_size=test_settings.retry_scan_page_size,
        metrics=metrics,
    )


@pytest.fixture
def registry(test_settings: Settings) -> JobTypeRegistry:
    return JobTypeRegistry(test_settings)


@pytest.fixture
def coordinator(
    store: DedupStore,
    reconciler: RetryReconciler,
    test_settings: Settings,
    registry: JobTypeRegistry,
    metrics: MetricsCollector,
) -> UniquenessCoordinator:
    """Coordinator over the in-memory Redis with a frozen clock."""
    return UniquenessCoordinator(
        store,
        reconciler,
        settings=test_settings,
        registry=registry,
        metrics=metrics,
        clock=lambda: FROZEN_NOW,
    )


@pytest_asyncio.fixture
async def redis_client() -> AsyncGenerator[Redis]:
    """Real Redis client on a scratch database; skips when Redis is down."""
    client = Redis.from_url(TEST_REDIS_URL, decode_responses=True)
    try:
        await client.ping()
    except (RedisConnectionError, OSError):
        await client.aclose()
        pytest.skip(f"Redis not available at {TEST_REDIS_URL}")

    await client.flushdb()
    yield client
    await client.flushdb()
    await client.aclose()
