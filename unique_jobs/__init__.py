"""
Unique Jobs

Duplicate suppression for background jobs shared by many producers.
Fingerprints each submission and claims it in Redis with an optimistic
WATCH/MULTI/EXEC transaction, reconciling against the retry set so a
failed job's automatic re-enqueue is neither blocked nor duplicated.
"""

__version__ = "1.0.0"

from unique_jobs.config import Settings, get_settings
from unique_jobs.constants import DecisionOutcome, DedupState
from unique_jobs.coordinator import UniquenessCoordinator
from unique_jobs.errors import (
    ConfigurationError,
    RetrySetQueryError,
    StoreUnavailableError,
    UniqueJobsError,
)
from unique_jobs.fingerprint import fingerprint
from unique_jobs.middleware import UniqueJobsMiddleware
from unique_jobs.registry import JobTypeRegistry
from unique_jobs.store import DedupStore, RetryReconciler
from unique_jobs.types import (
    Decision,
    JobRequest,
    RetryEntry,
    UniquenessConfig,
    UniquenessOptions,
)

__all__ = [
    "__version__",
    "Settings",
    "get_settings",
    "DecisionOutcome",
    "DedupState",
    "UniquenessCoordinator",
    "UniqueJobsMiddleware",
    "JobTypeRegistry",
    "DedupStore",
    "RetryReconciler",
    "fingerprint",
    "Decision",
    "JobRequest",
    "RetryEntry",
    "UniquenessConfig",
    "UniquenessOptions",
    "UniqueJobsError",
    "StoreUnavailableError",
    "RetrySetQueryError",
    "ConfigurationError",
]
