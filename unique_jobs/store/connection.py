"""
Redis connection management.
Handles the shared async Redis client and its connection pool.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from redis.asyncio import ConnectionPool, Redis

from unique_jobs.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Global client instance
_client: Redis | None = None


def create_redis(settings: Settings | None = None) -> Redis:
    """
    Create an async Redis client from settings.

    Args:
        settings: Connection settings. Uses cached settings if not provided.

    Returns:
        Redis: A client backed by its own connection pool.
    """
    settings = settings or get_settings()
    pool = ConnectionPool.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout_seconds,
        socket_connect_timeout=settings.redis_socket_timeout_seconds,
        decode_responses=True,
    )
    return Redis(connection_pool=pool)


async def init_redis(settings: Settings | None = None) -> Redis:
    """
    Initialize the shared Redis client.
    Should be called on application startup.
    """
    global _client
    if _client is None:
        _client = create_redis(settings)
        logger.info("Redis connection initialized")
    return _client


def get_redis() -> Redis:
    """
    Get the shared Redis client.

    Returns:
        Redis: The initialized client.

    Raises:
        RuntimeError: If Redis is not initialized.
    """
    if _client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _client


async def close_redis() -> None:
    """
    Close the shared Redis client and its pool.
    Should be called on application shutdown.
    """
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("Redis connection closed")


@asynccontextmanager
async def get_redis_context(settings: Settings | None = None) -> AsyncGenerator[Redis]:
    """
    Context manager for a dedicated Redis client.
    Useful for scripts and tests that should not touch the shared client.

    Yields:
        Redis: A client closed on exit.
    """
    client = create_redis(settings)
    try:
        yield client
    finally:
        await client.aclose()
