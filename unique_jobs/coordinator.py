"""
Uniqueness coordinator.

Decides whether a job submission is admitted or dropped as a duplicate.
Mutual exclusion per fingerprint comes entirely from the store's
WATCH/MULTI/EXEC; there is no in-process locking and no internal retry.
"""

import logging
import time
from collections.abc import Callable

from opentelemetry.trace import Span

from unique_jobs.config import Settings, get_settings
from unique_jobs.constants import SPAN_DECIDE, DecisionOutcome, DedupState
from unique_jobs.fingerprint import fingerprint_for
from unique_jobs.observability.metrics import MetricsCollector, get_metrics
from unique_jobs.observability.tracing import get_tracer
from unique_jobs.registry import JobTypeRegistry
from unique_jobs.store.dedup import DedupStore
from unique_jobs.store.retry_set import RetryReconciler
from unique_jobs.types.job import Decision, JobRequest
from unique_jobs.types.options import UniquenessConfig

logger = logging.getLogger(__name__)


class UniquenessCoordinator:
    """
    Entry point invoked by the queuing pipeline before a job is enqueued.

    Decision protocol:
    1. Fingerprint the request and WATCH the fingerprint key
    2. Reject if the job is already queued, or already scheduled and this
       request is scheduled too, unless it is the retried version
    3. Reject if retry checking is on and a different failed instance of
       the job is parked in the retry set
    4. Otherwise SETEX the key inside MULTI/EXEC; an aborted EXEC rejects
    """

    def __init__(
        self,
        store: DedupStore,
        reconciler: RetryReconciler | None = None,
        settings: Settings | None = None,
        registry: JobTypeRegistry | None = None,
        metrics: MetricsCollector | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the coordinator.

        Args:
            store: Dedup store adapter.
            reconciler: Retry set reconciler. Built over the store's client
                and the configured retry set if not provided.
            settings: Global defaults. Uses cached settings if not provided.
            registry: Job type registry used when no config is passed to decide.
            metrics: Metrics collector. Uses the global one if not provided.
            clock: Returns the current epoch time in seconds.
        """
        self._store = store
        self._settings = settings or get_settings()
        self._registry = registry or JobTypeRegistry(self._settings)
        self._metrics = metrics or get_metrics()
        self._reconciler = reconciler or RetryReconciler(
            store.client,
            key=self._settings.retry_set_key,
            page_size=self._settings.retry_scan_page_size,
            metrics=self._metrics,
        )
        self._clock = clock

    @property
    def registry(self) -> JobTypeRegistry:
        return self._registry

    async def decide(self, request: JobRequest, config: UniquenessConfig | None = None) -> bool:
        """
        Decide whether a request may be enqueued.

        Args:
            request: The job request.
            config: Resolved configuration. Resolved from the registry if not provided.

        Returns:
            True to enqueue, False to drop the submission silently.

        Raises:
            StoreUnavailableError: If the dedup store cannot be reached.
            RetrySetQueryError: If the retry set cannot be scanned.
        """
        decision = await self.evaluate(request, config)
        return decision.admitted

    async def evaluate(
        self,
        request: JobRequest,
        config: UniquenessConfig | None = None,
    ) -> Decision:
        """
        Run the decision protocol and report how it ended.

        Same as decide, but returns the full Decision so callers can tell
        a definite duplicate from a lost optimistic race.
        """
        if config is None:
            config = self._registry.resolve(request)

        if not config.enabled:
            return Decision(outcome=DecisionOutcome.DISABLED)

        started = time.perf_counter()
        with get_tracer().start_as_current_span(SPAN_DECIDE) as span:
            span.set_attribute("job.type", request.job_type)
            span.set_attribute("job.queue", request.queue)
            decision = await self._run_protocol(request, config)
            self._annotate(span, decision)

        self._metrics.record_decision(
            request.job_type,
            decision.outcome.value,
            time.perf_counter() - started,
        )
        logger.debug(
            "Uniqueness decision",
            extra={
                "job_type": request.job_type,
                "queue": request.queue,
                "jid": request.jid,
                "fingerprint": decision.fingerprint,
                "outcome": decision.outcome.value,
            },
        )
        return decision

    async def _run_protocol(self, request: JobRequest, config: UniquenessConfig) -> Decision:
        fp = fingerprint_for(request, config, self._settings.unique_prefix)

        async with self._store.watch(fp) as txn:
            state = await txn.get()
            retried = await self.is_retried_version(request, fp, config)

            already_waiting = state == DedupState.QUEUED or (
                state == DedupState.SCHEDULED and request.is_scheduled
            )
            if already_waiting and not retried:
                await txn.unwatch()
                return Decision(DecisionOutcome.DUPLICATE, fp, state)

            if config.checks_retry_queue and not retried and await self.has_retried_version(fp, config):
                await txn.unwatch()
                return Decision(DecisionOutcome.RETRY_PENDING, fp, state)

            value = DedupState.SCHEDULED if request.is_scheduled else DedupState.QUEUED
            ttl = self.expiration_for(request, config)
            if not await txn.commit(value, ttl):
                return Decision(DecisionOutcome.CONFLICT, fp, state)

        if request.is_scheduled:
            logger.info(
                "Scheduled job admitted",
                extra={"job_type": request.job_type, "fingerprint": fp, "ttl_seconds": ttl},
            )
        return Decision(DecisionOutcome.ADMITTED, fp, value, ttl)

    async def has_retried_version(self, fp: str, config: UniquenessConfig) -> bool:
        """Check if a failed instance of the job is parked in the retry set."""
        if not config.checks_retry_queue:
            return False
        return await self._reconciler.has_pending_retry(fp)

    async def is_retried_version(
        self,
        request: JobRequest,
        fp: str,
        config: UniquenessConfig,
    ) -> bool:
        """
        Check if the request is the automatic re-enqueue of a failed job.

        True when retry checking is on and either the retry set holds an
        entry with this fingerprint and job id, or the request carries a
        failure marker itself.
        """
        if not config.checks_retry_queue:
            return False
        if await self._reconciler.find_retry_for(fp, request.jid) is not None:
            return True
        return request.is_failed_retry

    def expiration_for(self, request: JobRequest, config: UniquenessConfig) -> int:
        """
        Compute the dedup record TTL.

        Scheduled jobs keep their record until the configured expiration
        has passed after the scheduled time.
        """
        expiration = config.expiration_seconds
        if request.is_scheduled:
            return int(expiration + request.seconds_until_scheduled(self._clock()))
        return int(expiration)

    @staticmethod
    def _annotate(span: Span, decision: Decision) -> None:
        span.set_attribute("unique_jobs.outcome", decision.outcome.value)
        if decision.fingerprint is not None:
            span.set_attribute("unique_jobs.fingerprint", decision.fingerprint)
