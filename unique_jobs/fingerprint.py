"""
Fingerprint generation for job requests.

A fingerprint is the dedup store key for a job: a digest of the job type,
queue and filtered arguments under a configurable prefix, with a suffix
when the job is scheduled for later.
"""

import hashlib
import json
from collections.abc import Sequence
from typing import Any

from unique_jobs.constants import DEFAULT_UNIQUE_PREFIX, SCHEDULED_SUFFIX
from unique_jobs.types.job import JobRequest
from unique_jobs.types.options import ArgsFilter, UniquenessConfig


def unique_args(args: Sequence[Any], args_filter: ArgsFilter | None = None) -> Any:
    """
    Reduce job arguments to the value that identifies the job.

    Args:
        args: The full argument list.
        args_filter: Optional reducer; identity when not set.

    Returns:
        The filtered arguments.
    """
    if args_filter is None:
        return list(args)
    return args_filter(list(args))


def payload_digest(
    job_type: str,
    queue: str,
    args: Any,
    on_all_queues: bool = False,
) -> str:
    """Hash the serialized (job type, queue, args) identity."""
    identity: dict[str, Any] = {"class": job_type}
    if not on_all_queues:
        identity["queue"] = queue
    identity["args"] = args

    serialized = json.dumps(identity, separators=(",", ":"), default=str)
    return hashlib.sha256(serialized.encode()).hexdigest()


def fingerprint(
    job_type: str,
    queue: str,
    args: Sequence[Any],
    args_filter: ArgsFilter | None = None,
    on_all_queues: bool = False,
    scheduled: bool = False,
    prefix: str = DEFAULT_UNIQUE_PREFIX,
) -> str:
    """
    Compute the fingerprint for a job.

    Args:
        job_type: Job type identifier.
        queue: Target queue name; ignored when on_all_queues is set.
        args: Job arguments.
        args_filter: Optional argument reducer.
        on_all_queues: Treat the same job on different queues as one.
        scheduled: Whether the job runs at a later time.
        prefix: Key namespace.

    Returns:
        str: The fingerprint, e.g. "unique_jobs:<sha256>" or
        "unique_jobs:<sha256>_scheduled".
    """
    digest = payload_digest(job_type, queue, unique_args(args, args_filter), on_all_queues)
    key = f"{prefix}:{digest}"
    if scheduled:
        key += SCHEDULED_SUFFIX
    return key


def fingerprint_for(
    request: JobRequest,
    config: UniquenessConfig,
    prefix: str = DEFAULT_UNIQUE_PREFIX,
) -> str:
    """Compute the fingerprint of a request under its resolved config."""
    return fingerprint(
        request.job_type,
        request.queue,
        request.args,
        args_filter=config.args_filter,
        on_all_queues=config.on_all_queues,
        scheduled=request.is_scheduled,
        prefix=prefix,
    )
