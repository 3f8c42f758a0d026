"""Observability layer - logging, self-metrics, and tracing."""

from infra_monitor.observability.logging import setup_logging
from infra_monitor.observability.metrics import MetricsCollector, get_metrics
from infra_monitor.observability.tracing import get_tracer, setup_tracing

__all__ = ["setup_logging", "MetricsCollector", "get_metrics", "setup_tracing", "get_tracer"]
