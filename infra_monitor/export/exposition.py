"""
Prometheus text exposition for one tick's samples.

Rendering is pure and deterministic: the same batch always renders to the
same bytes. Samples keep collection order, the ``instance`` label is always
last, and values use a fixed number of decimals per metric.

Example:
    # TYPE cpu_usage gauge
    cpu_usage{type="percent",instance="web-01"} 42.50
    # TYPE service_status gauge
    service_status{service="nginx",port="80",instance="web-01"} 1
    service_status{service="redis",port="6379",instance="web-01"} 0
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from infra_monitor.collectors.schemas import (
    NET_BYTES_IN,
    NET_BYTES_OUT,
    NET_PACKETS_IN,
    NET_PACKETS_OUT,
    SERVICE_STATUS,
    MetricSample,
)

# Counters and status are whole numbers; percentages and rates get 2 decimals.
VALUE_DECIMALS: dict[str, int] = {
    NET_BYTES_IN: 0,
    NET_BYTES_OUT: 0,
    NET_PACKETS_IN: 0,
    NET_PACKETS_OUT: 0,
    SERVICE_STATUS: 0,
}
DEFAULT_DECIMALS = 2


@dataclass(frozen=True)
class ExportBatch:
    """All samples of one tick, in collection order. Immutable after handoff."""

    samples: tuple[MetricSample, ...] = ()

    @classmethod
    def from_samples(cls, samples: Iterable[MetricSample]) -> "ExportBatch":
        return cls(samples=tuple(samples))

    def __iter__(self) -> Iterator[MetricSample]:
        return iter(self.samples)

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def degraded(self) -> list[str]:
        """Names of samples that hold a failure default."""
        return [s.name for s in self.samples if s.degraded]


def escape_label_value(value: str) -> str:
    """Escape backslash, double quote and newline for the text format."""
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def format_value(name: str, value: float) -> str:
    """Format a sample value with the fixed decimals of its metric."""
    decimals = VALUE_DECIMALS.get(name, DEFAULT_DECIMALS)
    return f"{value:.{decimals}f}"


def render_sample(sample: MetricSample, instance: str) -> str:
    """Render one sample line, with ``instance`` as the last label."""
    labels = sample.labels + (("instance", instance),)
    rendered = ",".join(f'{k}="{escape_label_value(v)}"' for k, v in labels)
    return f"{sample.name}{{{rendered}}} {format_value(sample.name, sample.value)}"


def render_payload(batch: ExportBatch | Iterable[MetricSample], instance: str) -> str:
    """
    Render a batch in the gateway's text exposition format.

    A ``# TYPE`` line precedes the first sample of each metric name, so the
    service block shares one declaration.

    Args:
        batch: Samples in collection order.
        instance: Value of the ``instance`` label on every sample.

    Returns:
        Newline-terminated payload, or an empty string for an empty batch.
    """
    lines: list[str] = []
    declared: set[str] = set()

    for sample in batch:
        if sample.name not in declared:
            lines.append(f"# TYPE {sample.name} gauge")
            declared.add(sample.name)
        lines.append(render_sample(sample, instance))

    if not lines:
        return ""
    return "\n".join(lines) + "\n"
