"""
Structured logging configuration using structlog.

Every line carries an ISO timestamp. Development gets pretty console
output, production gets JSON. Lines go to stdout and, when a log file is
configured, are appended to it as well. Rotation of that file is left to
the host (logrotate, newsyslog).
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

from infra_monitor.observability.tracing import add_trace_context

if TYPE_CHECKING:
    from infra_monitor.config.settings import Settings


def setup_logging(settings: "Settings") -> None:
    """
    Configure structured logging for the agent.

    Stdlib loggers (used by the alert channels) are routed through the same
    processors, so their lines are timestamped too.

    Usage:
        setup_logging(settings)
        logger = structlog.get_logger()
        logger.info("Checking metric", metric="cpu_usage")
    """
    # Common processors for structlog and stdlib records
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        add_trace_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_production:
        # Production: JSON output
        renderer: Processor = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        # Development: Pretty console output
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    def _formatter(final: Processor) -> structlog.stdlib.ProcessorFormatter:
        return structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                final,
            ],
        )

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_formatter(renderer))
    handlers: list[logging.Handler] = [console]

    if settings.log_file:
        # Append-only sink, no colour codes
        sink = logging.FileHandler(settings.log_file, mode="a", encoding="utf-8")
        sink.setFormatter(_formatter(
            structlog.processors.JSONRenderer()
            if settings.is_production
            else structlog.dev.ConsoleRenderer(colors=False)
        ))
        handlers.append(sink)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(getattr(logging, settings.log_level))

    # Set log levels for noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def bind_context(**kwargs) -> None:
    """
    Bind context variables to all subsequent log messages.

    The scheduler binds the tick number so every line of a tick can be
    correlated.

    Args:
        **kwargs: Key-value pairs to bind
    """
    structlog.contextvars.bind_contextvars(**kwargs)

