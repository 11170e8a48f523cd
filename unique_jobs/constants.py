"""
Application constants.
Centralized location for all constant values used across the package.
"""

from enum import IntEnum, StrEnum


class DedupState(IntEnum):
    """
    Value stored under a fingerprint key.

    State transitions:
    - ABSENT -> QUEUED (immediate job admitted)
    - ABSENT -> SCHEDULED (scheduled job admitted)
    - QUEUED/SCHEDULED -> ABSENT (TTL expiry only)
    """

    ABSENT = 0
    QUEUED = 1
    SCHEDULED = 2

    @classmethod
    def from_raw(cls, raw: str | bytes | None) -> "DedupState":
        """Parse a raw store value; anything unrecognised reads as ABSENT."""
        if raw is None:
            return cls.ABSENT
        try:
            return cls(int(raw))
        except ValueError:
            return cls.ABSENT


class DecisionOutcome(StrEnum):
    """Result of one uniqueness decision."""

    ADMITTED = "admitted"
    DISABLED = "disabled"
    DUPLICATE = "duplicate"
    RETRY_PENDING = "retry_pending"
    CONFLICT = "conflict"


# Outcomes that let the job through to the queue
ADMITTING_OUTCOMES: frozenset[DecisionOutcome] = frozenset(
    {DecisionOutcome.ADMITTED, DecisionOutcome.DISABLED}
)

# Fingerprint defaults
DEFAULT_UNIQUE_PREFIX = "unique_jobs"
SCHEDULED_SUFFIX = "_scheduled"
DEFAULT_QUEUE = "default"

# Default values
DEFAULT_EXPIRATION_SECONDS = 30 * 60
DEFAULT_RETRY_SET_KEY = "retry"
DEFAULT_RETRY_SCAN_PAGE_SIZE = 500
MIN_TTL_SECONDS = 1

# Job payload fields
UNIQUE_HASH_FIELD = "unique_hash"
JOB_CLASS_FIELD = "class"

# Metrics names
METRIC_DECISIONS = "unique_jobs_decisions_total"
METRIC_DECISION_LATENCY = "unique_jobs_decision_latency_seconds"
METRIC_RETRY_SET_SCANS = "unique_jobs_retry_set_scans_total"
METRIC_STORE_ERRORS = "unique_jobs_store_errors_total"

# Trace span names
SPAN_DECIDE = "unique_jobs.decide"
SPAN_RETRY_SCAN = "unique_jobs.retry_scan"
