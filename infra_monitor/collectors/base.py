"""
Base collector and the default-on-failure policy.

A Collector wraps one metric source and produces exactly one MetricSample
per call to ``collect()``. It never raises: source errors, timeouts and
missing or non-numeric output are replaced by a fixed default for the
metric kind, and the degraded condition is logged instead of propagated.
"""

import asyncio
import math
from abc import ABC, abstractmethod

import structlog

from infra_monitor.collectors.schemas import MetricSample
from infra_monitor.collectors.sources import RawReading
from infra_monitor.errors import SourceBusyError, SourceUnavailableError
from infra_monitor.observability.metrics import get_metrics
from infra_monitor.observability.tracing import get_tracer, traced

logger = structlog.get_logger(__name__)


def parse_number(raw: RawReading) -> float:
    """
    Convert a raw source reading to a float.

    Accepts numbers and numeric strings, with an optional trailing ``%``.

    Raises:
        SourceUnavailableError: For None, empty, non-numeric or non-finite input.
    """
    if raw is None:
        raise SourceUnavailableError("no output")
    if isinstance(raw, bool):
        raise SourceUnavailableError(f"non-numeric output {raw!r}")
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = raw.strip().rstrip("%").strip()
        if not text:
            raise SourceUnavailableError("empty output")
        try:
            value = float(text)
        except ValueError:
            raise SourceUnavailableError(f"non-numeric output {raw!r}") from None
    if not math.isfinite(value):
        raise SourceUnavailableError(f"non-finite output {raw!r}")
    return value


class Collector(ABC):
    """
    Abstract base class for metric collectors.

    Subclasses implement ``read()``, which may raise. The base class handles:
        - Per-call timeout
        - Substitution of the failure default
        - Logging and self-metrics for degraded readings
    """

    def __init__(
        self,
        name: str,
        labels: tuple[tuple[str, str], ...] = (),
        default: float = 0.0,
    ):
        self.name = name
        self.labels = labels
        self.default = default

    @property
    def description(self) -> str:
        """Human-readable name used in log lines."""
        return self.name

    @abstractmethod
    async def read(self) -> float:
        """Obtain the normalized reading. May raise."""
        ...

    def close(self) -> None:
        """Release the underlying source. Called once when the agent stops."""

    async def collect(self, timeout: float | None = None) -> MetricSample:
        """
        Produce this tick's sample.

        Args:
            timeout: Seconds to wait for the source before using the default.

        Returns:
            MetricSample with the reading, or the failure default.
        """
        logger.info("Checking metric", metric=self.description)

        with traced(get_tracer(__name__), "collect", {"metric": self.name}) as span:
            try:
                value = await asyncio.wait_for(self.read(), timeout=timeout)
            except asyncio.TimeoutError:
                span.set_attribute("degraded", True)
                return self._degraded("timeout", f"no reading after {timeout}s")
            except SourceBusyError as e:
                span.set_attribute("degraded", True)
                return self._degraded("busy", str(e))
            except SourceUnavailableError as e:
                span.set_attribute("degraded", True)
                return self._degraded("unavailable", str(e))
            except Exception as e:
                span.set_attribute("degraded", True)
                return self._degraded(type(e).__name__, str(e))

        return MetricSample(name=self.name, value=value, labels=self.labels)

    def _degraded(self, reason: str, detail: str) -> MetricSample:
        logger.warning(
            "Collector degraded, using default",
            metric=self.description,
            reason=reason,
            detail=detail,
            default=self.default,
        )
        get_metrics().record_collector_degraded(self.name, reason)
        return MetricSample(
            name=self.name,
            value=self.default,
            labels=self.labels,
            degraded=True,
        )
