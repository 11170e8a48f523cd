"""
Job-related type definitions.
"""

import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from unique_jobs.constants import (
    ADMITTING_OUTCOMES,
    DEFAULT_QUEUE,
    JOB_CLASS_FIELD,
    DecisionOutcome,
    DedupState,
)


def _job_type_name(job_class: Any) -> str:
    if isinstance(job_class, str):
        return job_class
    return getattr(job_class, "__name__", str(job_class))


@dataclass(frozen=True)
class JobRequest:
    """
    One submission attempt of a job.

    Built by the caller and passed to a single decision call.
    `at` is the scheduled execution time in epoch seconds; None means
    run immediately. `failed_at` is set when the request is itself the
    re-submission of a previously failed job.
    """

    job_type: str
    queue: str = DEFAULT_QUEUE
    args: tuple[Any, ...] = ()
    at: float | None = None
    jid: str | None = None
    failed_at: float | None = None

    # Per-request overrides
    unique: bool | None = None
    unique_checks_retry_queue: bool | None = None
    unique_expiration_seconds: int | None = None

    @property
    def is_scheduled(self) -> bool:
        """Check if the job is scheduled for later execution."""
        return self.at is not None

    @property
    def is_failed_retry(self) -> bool:
        """Check if the request carries a failure marker."""
        return self.failed_at is not None

    def seconds_until_scheduled(self, now: float | None = None) -> float:
        """Get seconds until the scheduled time, 0.0 for immediate jobs."""
        if self.at is None:
            return 0.0
        if now is None:
            now = time.time()
        return self.at - now

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> "JobRequest":
        """
        Build a request from a job payload dict.

        Args:
            item: Payload with `class`, `queue`, `args` and optional
                `at`, `jid`, `failed_at` and uniqueness overrides.

        Returns:
            JobRequest: The immutable request.
        """
        checks_retry = item.get("unique_job_checks_retry_queue")
        if checks_retry is None:
            checks_retry = item.get("unique_checks_retry_queue")

        return cls(
            job_type=_job_type_name(item[JOB_CLASS_FIELD]),
            queue=item.get("queue") or DEFAULT_QUEUE,
            args=tuple(item.get("args") or ()),
            at=item.get("at"),
            jid=item.get("jid"),
            failed_at=item.get("failed_at"),
            unique=item.get("unique"),
            unique_checks_retry_queue=checks_retry,
            unique_expiration_seconds=item.get("unique_expiration_seconds"),
        )


class RetryEntry(BaseModel):
    """
    A failed job parked in the retry set.
    Members of the set are JSON job payloads.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    unique_hash: str | None = None
    jid: str | None = None
    job_type: str | None = Field(default=None, alias=JOB_CLASS_FIELD)
    queue: str | None = None
    args: list[Any] = Field(default_factory=list)
    failed_at: float | None = None
    retry_count: int | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class Decision:
    """
    Outcome of one uniqueness decision.
    Used by the middleware to attach the fingerprint and by observability.
    """

    outcome: DecisionOutcome
    fingerprint: str | None = None
    state: DedupState = DedupState.ABSENT
    ttl_seconds: int | None = None

    @property
    def admitted(self) -> bool:
        """Check if the job may be enqueued."""
        return self.outcome in ADMITTING_OUTCOMES
