"""
Tick tracing.

The scheduler opens a ``tick`` span per tick and every collector a
``collect`` child span, flagged ``degraded`` when the default was used.
Log lines written inside a tick carry its trace and span ids.

Without setup_tracing() the global provider is a no-op, so the spans cost
nothing when OTEL_EXPORTER_OTLP_ENDPOINT is unset.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.trace import Span, Tracer

logger = structlog.get_logger(__name__)


def setup_tracing(
    service_name: str,
    otlp_endpoint: str | None = None,
    *,
    exporter: SpanExporter | None = None,
) -> TracerProvider:
    """
    Install the global TracerProvider.

    Spans are batched to the OTLP gRPC endpoint, or handed synchronously to
    ``exporter`` when one is given.
    """
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))

    if exporter is not None:
        provider.add_span_processor(SimpleSpanProcessor(exporter))
    else:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )

    trace.set_tracer_provider(provider)
    logger.info("Tracing enabled", service=service_name, endpoint=otlp_endpoint)
    return provider


def get_tracer(name: str) -> Tracer:
    return trace.get_tracer(name)


@contextmanager
def traced(
    tracer: Tracer,
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span]:
    """Open a current span; an escaping exception marks it as an error."""
    with tracer.start_as_current_span(name, attributes=attributes) as span:
        yield span


def add_trace_context(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor: add ``trace_id`` and ``span_id`` inside a span."""
    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict
