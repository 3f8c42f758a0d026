"""
Concrete collectors for host and service health.

Collection order is fixed: cpu, memory, disk, packet loss, disk ops,
network counters, then one service collector per configured service in
configuration order. The exported payload follows the same order.
"""

from typing import TYPE_CHECKING

from infra_monitor.collectors.base import Collector, parse_number
from infra_monitor.collectors.mock_source import create_mock_sources
from infra_monitor.collectors.schemas import (
    CPU_USAGE,
    DISK_READ_OPS,
    DISK_USAGE,
    DISK_WRITE_OPS,
    MEMORY_USAGE,
    NET_BYTES_IN,
    NET_BYTES_OUT,
    NET_PACKETS_IN,
    NET_PACKETS_OUT,
    NETWORK_PACKET_LOSS,
    PERCENT_LABELS,
    SERVICE_STATUS,
    ServiceSpec,
)
from infra_monitor.collectors.sources import (
    MetricSource,
    PageSource,
    ServiceCheck,
    SourceSet,
    create_system_sources,
)

if TYPE_CHECKING:
    from infra_monitor.config.settings import Settings

# Assume total loss when ping gives no answer, so the failure is alerted on.
PACKET_LOSS_DEFAULT = 100.0


class GaugeCollector(Collector):
    """Reads one numeric value straight from a source."""

    def __init__(
        self,
        name: str,
        source: MetricSource,
        labels: tuple[tuple[str, str], ...] = (),
        default: float = 0.0,
    ):
        super().__init__(name, labels=labels, default=default)
        self.source = source

    async def read(self) -> float:
        return parse_number(await self.source.read())

    def close(self) -> None:
        self.source.close()


class MemoryCollector(Collector):
    """Memory usage percent computed from VM page counts."""

    def __init__(self, source: PageSource):
        super().__init__(MEMORY_USAGE, labels=PERCENT_LABELS)
        self.source = source

    async def read(self) -> float:
        pages = await self.source.read_pages()
        return pages.usage_percent()

    def close(self) -> None:
        self.source.close()


class ServiceCollector(Collector):
    """Service status: 1 when reachable, 0 when down or the check fails."""

    def __init__(self, service: ServiceSpec, check: ServiceCheck):
        super().__init__(SERVICE_STATUS, labels=service.labels, default=0.0)
        self.service = service
        self.service_check = check

    @property
    def description(self) -> str:
        return f"service {self.service.name}:{self.service.port}"

    async def read(self) -> float:
        return 1.0 if await self.service_check.check() else 0.0

    def close(self) -> None:
        self.service_check.close()


def collectors_from_sources(
    sources: SourceSet,
    services: tuple[ServiceSpec, ...],
) -> list[Collector]:
    """
    Build the full collector list in export order.

    Args:
        sources: Adapters for every metric.
        services: Configured services; each must have a check in ``sources``.

    Returns:
        One collector per configured metric and per service.
    """
    collectors: list[Collector] = [
        GaugeCollector(CPU_USAGE, sources.cpu, labels=PERCENT_LABELS),
        MemoryCollector(sources.memory),
        GaugeCollector(DISK_USAGE, sources.disk, labels=PERCENT_LABELS),
        GaugeCollector(
            NETWORK_PACKET_LOSS,
            sources.packet_loss,
            labels=PERCENT_LABELS,
            default=PACKET_LOSS_DEFAULT,
        ),
        GaugeCollector(DISK_READ_OPS, sources.disk_read_ops),
        GaugeCollector(DISK_WRITE_OPS, sources.disk_write_ops),
        GaugeCollector(NET_BYTES_IN, sources.net_bytes_in),
        GaugeCollector(NET_BYTES_OUT, sources.net_bytes_out),
        GaugeCollector(NET_PACKETS_IN, sources.net_packets_in),
        GaugeCollector(NET_PACKETS_OUT, sources.net_packets_out),
    ]
    for spec in services:
        collectors.append(ServiceCollector(spec, sources.service_checks[spec.name]))
    return collectors


def build_collectors(settings: "Settings", use_mock: bool = False) -> list[Collector]:
    """Create collectors for this host from configuration."""
    services = settings.services
    if use_mock:
        sources = create_mock_sources(services)
    else:
        sources = create_system_sources(
            services,
            cpu_sample_seconds=settings.cpu_sample_seconds,
            disk_path=settings.disk_path,
            disk_io_window_seconds=settings.disk_io_window_seconds,
            ping_host=settings.ping_host,
            ping_count=settings.ping_count,
            check_timeout=settings.collector_timeout_seconds,
        )
    return collectors_from_sources(sources, services)
