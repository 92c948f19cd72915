"""Prometheus metrics for webhook deliveries.

Metrics Defined:
- kernel_webhook_deliveries_total: Counter of deliveries by event and status code
- kernel_webhook_processing_duration_seconds: Histogram of request handling time

Metrics are exposed at the ``/metrics`` endpoint in Prometheus format.
"""

from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


DEFAULT_DURATION_BUCKETS = (
    0.01,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
)


class WebhookMetrics:
    """Container for the kernel's Prometheus metrics.

    Pass a custom ``CollectorRegistry`` for testing.

    Example:
        >>> metrics = WebhookMetrics(registry=CollectorRegistry())
        >>> metrics.record_delivery("issues", 200, 0.12)
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY

        self.deliveries_total = Counter(
            "kernel_webhook_deliveries_total",
            "Total number of webhook deliveries handled",
            labelnames=["event", "status"],
            registry=self.registry,
        )

        self.processing_duration_seconds = Histogram(
            "kernel_webhook_processing_duration_seconds",
            "Time spent handling a webhook delivery",
            labelnames=["event"],
            buckets=DEFAULT_DURATION_BUCKETS,
            registry=self.registry,
        )

    def record_delivery(self, event: Optional[str], status: int, duration: float) -> None:
        # Unknown or missing event names share one label value
        label = event or "unknown"
        self.deliveries_total.labels(event=label, status=str(status)).inc()
        self.processing_duration_seconds.labels(event=label).observe(duration)

    def generate(self) -> bytes:
        """Render the registry in Prometheus text format."""
        return generate_latest(self.registry)


_metrics: Optional[WebhookMetrics] = None


def get_metrics() -> WebhookMetrics:
    """Return the process-wide metrics, registering them on first use."""
    global _metrics
    if _metrics is None:
        _metrics = WebhookMetrics()
    return _metrics
