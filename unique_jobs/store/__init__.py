"""
Store module.
Contains the Redis connection, the dedup store adapter and the retry set reconciler.
"""

from unique_jobs.store.connection import (
    close_redis,
    create_redis,
    get_redis,
    get_redis_context,
    init_redis,
)
from unique_jobs.store.dedup import DedupStore, DedupTransaction
from unique_jobs.store.retry_set import RetryReconciler

__all__ = [
    "create_redis",
    "init_redis",
    "get_redis",
    "close_redis",
    "get_redis_context",
    "DedupStore",
    "DedupTransaction",
    "RetryReconciler",
]
