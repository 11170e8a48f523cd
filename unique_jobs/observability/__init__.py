"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from unique_jobs.observability.logging import get_logger, setup_logging
from unique_jobs.observability.metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
)
from unique_jobs.observability.tracing import get_tracer, instrument_redis, setup_tracing

__all__ = [
    "setup_logging",
    "get_logger",
    "setup_metrics",
    "get_metrics",
    "MetricsCollector",
    "setup_tracing",
    "get_tracer",
    "instrument_redis",
]
