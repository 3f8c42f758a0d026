"""Schema definitions for metric samples and collector inputs."""

from dataclasses import dataclass, field

# Sample names in fixed collection order. Export follows this order, then
# one service_status sample per configured service.
CPU_USAGE = "cpu_usage"
MEMORY_USAGE = "memory_usage"
DISK_USAGE = "disk_usage"
NETWORK_PACKET_LOSS = "network_packet_loss"
DISK_READ_OPS = "disk_read_ops"
DISK_WRITE_OPS = "disk_write_ops"
NET_BYTES_IN = "net_bytes_in"
NET_BYTES_OUT = "net_bytes_out"
NET_PACKETS_IN = "net_packets_in"
NET_PACKETS_OUT = "net_packets_out"
SERVICE_STATUS = "service_status"

METRIC_ORDER: tuple[str, ...] = (
    CPU_USAGE,
    MEMORY_USAGE,
    DISK_USAGE,
    NETWORK_PACKET_LOSS,
    DISK_READ_OPS,
    DISK_WRITE_OPS,
    NET_BYTES_IN,
    NET_BYTES_OUT,
    NET_PACKETS_IN,
    NET_PACKETS_OUT,
)

PERCENT_LABELS: tuple[tuple[str, str], ...] = (("type", "percent"),)


@dataclass(frozen=True)
class MetricSample:
    """One normalized reading for one tick.

    Attributes:
        name: Metric name as exported.
        value: Reading, or the failure default when the source was unavailable.
        labels: Ordered label pairs, excluding ``instance``.
        degraded: True when ``value`` is the failure default.
    """

    name: str
    value: float
    labels: tuple[tuple[str, str], ...] = ()
    degraded: bool = field(default=False, compare=False)

    def label(self, key: str) -> str | None:
        """Return a label value by key, or None."""
        for k, v in self.labels:
            if k == key:
                return v
        return None


@dataclass(frozen=True)
class ServiceSpec:
    """A local service checked by TCP connect."""

    name: str
    port: int

    def __post_init__(self) -> None:
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port {self.port!r} for service {self.name!r}")

    @property
    def labels(self) -> tuple[tuple[str, str], ...]:
        return (("service", self.name), ("port", str(self.port)))


@dataclass(frozen=True)
class MemoryPages:
    """VM page counts used for the memory usage computation."""

    active: int
    wired: int
    compressed: int
    inactive: int
    free: int

    @property
    def used(self) -> int:
        return self.active + self.wired + self.compressed

    @property
    def total(self) -> int:
        return self.used + self.inactive + self.free

    def usage_percent(self) -> float:
        """Used share of pages, rounded to two decimals; 0 when total is 0.

        Wired and compressor-resident pages count as used, inactive and free
        pages do not.
        """
        total = self.total
        if total == 0:
            return 0.0
        return round(self.used / total * 100, 2)
