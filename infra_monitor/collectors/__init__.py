"""Metric collection for the monitoring agent.

Components:
- MetricSample / ServiceSpec / MemoryPages: Immutable collection schemas
- MetricSource / PageSource / ServiceCheck: OS adapter interfaces
- Collector: Timeout and default-on-failure policy around one adapter
- GaugeCollector / MemoryCollector / ServiceCollector: Concrete collectors
- build_collectors: Factory producing the full collector set in export order
"""

from infra_monitor.collectors.base import Collector, parse_number
from infra_monitor.collectors.schemas import (
    METRIC_ORDER,
    MemoryPages,
    MetricSample,
    ServiceSpec,
)
from infra_monitor.collectors.sources import (
    MetricSource,
    PageSource,
    ServiceCheck,
    SourceSet,
)
from infra_monitor.collectors.system import (
    GaugeCollector,
    MemoryCollector,
    ServiceCollector,
    build_collectors,
    collectors_from_sources,
)

__all__ = [
    "Collector",
    "GaugeCollector",
    "METRIC_ORDER",
    "MemoryCollector",
    "MemoryPages",
    "MetricSample",
    "MetricSource",
    "PageSource",
    "ServiceCollector",
    "ServiceCheck",
    "ServiceSpec",
    "SourceSet",
    "build_collectors",
    "collectors_from_sources",
    "parse_number",
]
