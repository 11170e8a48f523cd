"""
Type definitions for unique jobs.
"""

from unique_jobs.types.job import (
    Decision,
    JobRequest,
    RetryEntry,
)
from unique_jobs.types.options import (
    ArgsFilter,
    UniquenessConfig,
    UniquenessOptions,
)

__all__ = [
    # Job types
    "JobRequest",
    "RetryEntry",
    "Decision",
    # Option types
    "ArgsFilter",
    "UniquenessOptions",
    "UniquenessConfig",
]
