"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from unique_jobs.constants import (
    METRIC_DECISION_LATENCY,
    METRIC_DECISIONS,
    METRIC_RETRY_SET_SCANS,
    METRIC_STORE_ERRORS,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for uniqueness decisions.

    Collects metrics for:
    - Decisions by job type and outcome
    - Decision latency
    - Retry set scans
    - Store transport errors
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.decisions = Counter(
            METRIC_DECISIONS,
            "Total number of uniqueness decisions",
            ["job_type", "outcome"],
            registry=self._registry,
        )

        self.decision_latency = Histogram(
            METRIC_DECISION_LATENCY,
            "Uniqueness decision latency in seconds",
            ["outcome"],
            buckets=(0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 1.0),
            registry=self._registry,
        )

        self.retry_set_scans = Counter(
            METRIC_RETRY_SET_SCANS,
            "Total number of retry set scans",
            ["kind"],
            registry=self._registry,
        )

        self.store_errors = Counter(
            METRIC_STORE_ERRORS,
            "Total number of dedup store transport errors",
            ["operation"],
            registry=self._registry,
        )

    def record_decision(self, job_type: str, outcome: str, duration_seconds: float) -> None:
        """Record a uniqueness decision."""
        self.decisions.labels(job_type=job_type, outcome=outcome).inc()
        self.decision_latency.labels(outcome=outcome).observe(duration_seconds)

    def record_retry_scan(self, kind: str) -> None:
        """Record a retry set scan."""
        self.retry_set_scans.labels(kind=kind).inc()

    def record_store_error(self, operation: str) -> None:
        """Record a store transport error."""
        self.store_errors.labels(operation=operation).inc()

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
