"""
Prometheus self-metrics for the monitoring agent.

These describe the agent itself, not the host it monitors:
- Tick count and duration
- Degraded collector readings
- Alert delivery outcomes
- Gateway push outcomes

Exposed via an optional HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

logger = logging.getLogger(__name__)

# Buckets for tick duration (in seconds)
TICK_BUCKETS = (0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the agent.

    Usage:
        metrics = get_metrics()
        metrics.start_server(9100)
        metrics.record_tick(duration=1.2, samples=13)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        self.ticks = Counter(
            "infra_monitor_ticks_total",
            "Total number of completed ticks",
        )

        self.tick_duration = Histogram(
            "infra_monitor_tick_duration_seconds",
            "Time to collect, evaluate, alert and export one tick",
            buckets=TICK_BUCKETS,
        )

        self.batch_size = Gauge(
            "infra_monitor_batch_samples",
            "Number of samples in the last exported batch",
        )

        self.collector_degraded = Counter(
            "infra_monitor_collector_degraded_total",
            "Readings replaced by the failure default",
            ["metric", "reason"],  # reason: timeout, unavailable, <exception>
        )

        self.alerts = Counter(
            "infra_monitor_alerts_total",
            "Alert deliveries by severity, channel and outcome",
            ["severity", "channel", "status"],  # status: sent, failed
        )

        self.exports = Counter(
            "infra_monitor_exports_total",
            "Gateway pushes by outcome",
            ["status"],  # status: success, failure
        )

        self.last_export_success = Gauge(
            "infra_monitor_last_export_success",
            "Whether the last gateway push succeeded (1=yes, 0=no)",
        )

    def start_server(self, port: int) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to listen on
        """
        logger.info("Starting metrics server on port %d", port)
        start_http_server(port, registry=REGISTRY)

    def record_tick(self, duration: float, samples: int) -> None:
        """
        Record a completed tick.

        Args:
            duration: Tick wall time in seconds
            samples: Samples in the exported batch
        """
        self.ticks.inc()
        self.tick_duration.observe(duration)
        self.batch_size.set(samples)

    def record_collector_degraded(self, metric: str, reason: str) -> None:
        """
        Record a reading replaced by its failure default.

        Args:
            metric: Metric name
            reason: Why the reading was unavailable
        """
        self.collector_degraded.labels(metric=metric, reason=reason).inc()

    def record_alert(self, severity: str, channel: str, delivered: bool) -> None:
        """
        Record one alert delivery attempt.

        Args:
            severity: Severity tag
            channel: Channel name ("log" when no channel is configured)
            delivered: Whether the channel accepted the alert
        """
        status = "sent" if delivered else "failed"
        self.alerts.labels(severity=severity, channel=channel, status=status).inc()

    def record_export(self, success: bool) -> None:
        """
        Record a gateway push outcome.

        Args:
            success: Whether the push succeeded
        """
        self.exports.labels(status="success" if success else "failure").inc()
        self.last_export_success.set(1 if success else 0)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
