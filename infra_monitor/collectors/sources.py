"""
Metric source adapters.

Each adapter obtains one raw reading from the operating system and either
returns it or raises. Adapters do no normalization or defaulting: that is
the Collector's job. Readings may be numbers or the raw text an OS tool
printed (e.g. ``"87"`` for disk usage).

Blocking psutil calls run through a BlockingCall: one daemon thread per
source, at most one call in flight. A call that hangs (a stuck NFS mount
under disk_usage) only makes its own source report busy; it cannot use up a
shared pool or hold the process open at exit. Command-line tools run as
asyncio subprocesses that are killed and reaped if the collector times out.
"""

import asyncio
import concurrent.futures
import mmap
import re
import sys
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import psutil

from infra_monitor.collectors.schemas import MemoryPages, ServiceSpec
from infra_monitor.errors import SourceBusyError, SourceUnavailableError

RawReading = float | int | str | None

_PACKET_LOSS_RE = re.compile(r"([0-9]+(?:\.[0-9]+)?)% packet loss")
_VM_STAT_LINE_RE = re.compile(r"^(Pages [^:]+):\s+(\d+)\.?\s*$", re.MULTILINE)

# vm_stat line label -> MemoryPages field
_VM_STAT_FIELDS = {
    "Pages active": "active",
    "Pages wired down": "wired",
    "Pages occupied by compressor": "compressed",
    "Pages inactive": "inactive",
    "Pages free": "free",
}


class MetricSource(ABC):
    """Returns a single raw numeric reading."""

    @abstractmethod
    async def read(self) -> RawReading:
        """Obtain the reading. Raises on failure."""

    def close(self) -> None:
        """Stop starting new OS calls. Called when the agent stops."""


class PageSource(ABC):
    """Returns VM page counts for the memory usage computation."""

    @abstractmethod
    async def read_pages(self) -> MemoryPages:
        """Obtain page counts. Raises SourceUnavailableError when incomplete."""

    def close(self) -> None:
        """Stop starting new OS calls. Called when the agent stops."""


class ServiceCheck(ABC):
    """Decides whether a local service is reachable."""

    @abstractmethod
    async def check(self) -> bool:
        """Return True when the service accepts connections."""

    def close(self) -> None:
        """Release resources. Called when the agent stops."""


# ── Parsing helpers (pure) ───────────────────────────────────


def parse_packet_loss(output: str) -> str | None:
    """Extract the loss percentage from ``ping`` summary output.

    Handles both BSD (``0.0% packet loss``) and Linux (``0% packet loss``)
    summaries. Returns None when no summary line is present.
    """
    match = _PACKET_LOSS_RE.search(output)
    if match is None:
        return None
    return match.group(1)


def parse_vm_stat(output: str) -> MemoryPages:
    """Parse page counts from macOS ``vm_stat`` output.

    Raises:
        SourceUnavailableError: If any of the required page lines is missing.
    """
    found = {label: int(value) for label, value in _VM_STAT_LINE_RE.findall(output)}
    missing = [label for label in _VM_STAT_FIELDS if label not in found]
    if missing:
        raise SourceUnavailableError(f"vm_stat output incomplete, missing {missing}")
    return MemoryPages(**{attr: found[label] for label, attr in _VM_STAT_FIELDS.items()})


async def run_command(*args: str) -> str:
    """Run a command and return its combined output.

    The exit status is ignored: tools like ``ping`` exit non-zero on loss
    but still print the summary we need.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as e:
        raise SourceUnavailableError(f"{args[0]} unavailable: {e}") from e

    try:
        stdout, _ = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await asyncio.shield(proc.wait())
        raise
    return stdout.decode(errors="replace")


class BlockingCall:
    """
    Runs a blocking function off the event loop, one call at a time.

    Each call gets a fresh daemon thread. Cancelling the awaiting coroutine
    (collector timeout) does not stop the thread; instead, until that call
    returns, new calls raise SourceBusyError without starting another thread.
    So a hung OS call costs one thread in total, not one per tick, and
    daemon threads never delay interpreter exit.

    Usage:
        usage = BlockingCall(psutil.disk_usage, name="disk_usage")
        reading = await usage("/")
    """

    def __init__(self, func: Callable[..., Any], name: str):
        self._func = func
        self.name = name
        self._pending: concurrent.futures.Future | None = None
        self._closed = False

    @property
    def busy(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def __call__(self, *args: Any, **kwargs: Any) -> Any:
        if self._closed:
            raise SourceUnavailableError(f"{self.name} is closed")
        if self.busy:
            raise SourceBusyError(f"{self.name} still running from an earlier call")

        future: concurrent.futures.Future = concurrent.futures.Future()

        def run() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self._func(*args, **kwargs))
            except Exception as e:
                future.set_exception(e)

        self._pending = future
        threading.Thread(target=run, name=f"source-{self.name}", daemon=True).start()
        return await asyncio.wrap_future(future)

    def close(self) -> None:
        """Refuse further calls. A call still running is left to finish."""
        self._closed = True
        if self._pending is not None:
            self._pending.cancel()


# ── System adapters ──────────────────────────────────────────


class CpuPercentSource(MetricSource):
    """System-wide CPU utilisation sampled over a short interval."""

    def __init__(self, sample_seconds: float = 1.0):
        self._sample_seconds = sample_seconds
        self._call = BlockingCall(psutil.cpu_percent, name="cpu_percent")

    async def read(self) -> float:
        return await self._call(interval=self._sample_seconds)

    def close(self) -> None:
        self._call.close()


class DiskUsageSource(MetricSource):
    """Used percentage of the filesystem holding ``path``."""

    def __init__(self, path: str = "/"):
        self.path = path
        self._call = BlockingCall(psutil.disk_usage, name="disk_usage")

    async def read(self) -> float:
        usage = await self._call(self.path)
        return usage.percent

    def close(self) -> None:
        self._call.close()


class DiskIOSource(MetricSource):
    """Disk operations per second, measured over a short window.

    Args:
        counter: ``read_count`` or ``write_count``.
        window_seconds: Time between the two counter snapshots.
    """

    def __init__(self, counter: str, window_seconds: float = 1.0):
        if counter not in ("read_count", "write_count"):
            raise ValueError(f"Unsupported disk counter {counter!r}")
        self._counter = counter
        self._window = window_seconds
        self._call = BlockingCall(psutil.disk_io_counters, name=f"disk_io_{counter}")

    async def _snapshot(self) -> int:
        counters = await self._call()
        if counters is None:
            raise SourceUnavailableError("No disk I/O counters on this host")
        return getattr(counters, self._counter)

    async def read(self) -> float:
        before = await self._snapshot()
        await asyncio.sleep(self._window)
        after = await self._snapshot()
        return round(max(after - before, 0) / self._window, 2)

    def close(self) -> None:
        self._call.close()


class NetIOSource(MetricSource):
    """Cumulative network counter (bytes or packets, in or out).

    Sums every interface except loopback (``lo``, ``lo0``), so local
    traffic between services does not inflate the host's external counters.
    """

    COUNTERS = ("bytes_recv", "bytes_sent", "packets_recv", "packets_sent")

    def __init__(self, counter: str):
        if counter not in self.COUNTERS:
            raise ValueError(f"Unsupported network counter {counter!r}")
        self._counter = counter
        self._call = BlockingCall(psutil.net_io_counters, name=f"net_io_{counter}")

    async def read(self) -> int:
        per_nic = await self._call(pernic=True)
        external = [
            counters for nic, counters in (per_nic or {}).items()
            if not nic.startswith("lo")
        ]
        if not external:
            raise SourceUnavailableError("No non-loopback network interfaces")
        return sum(getattr(counters, self._counter) for counters in external)

    def close(self) -> None:
        self._call.close()


class PacketLossSource(MetricSource):
    """Packet loss percentage from ``ping -c <count> <host>``."""

    def __init__(self, host: str = "8.8.8.8", count: int = 3):
        self.host = host
        self.count = count

    async def read(self) -> str | None:
        output = await run_command("ping", "-c", str(self.count), self.host)
        return parse_packet_loss(output)


class VmStatPageSource(PageSource):
    """Page counts from macOS ``vm_stat``."""

    async def read_pages(self) -> MemoryPages:
        return parse_vm_stat(await run_command("vm_stat"))


class PsutilPageSource(PageSource):
    """Page counts derived from psutil on hosts without ``vm_stat``.

    Platforms that do not report wired or compressed memory count them as 0.
    """

    def __init__(self):
        self._call = BlockingCall(psutil.virtual_memory, name="virtual_memory")

    def close(self) -> None:
        self._call.close()

    async def read_pages(self) -> MemoryPages:
        vm = await self._call()
        page = mmap.PAGESIZE
        return MemoryPages(
            active=getattr(vm, "active", 0) // page,
            wired=getattr(vm, "wired", 0) // page,
            compressed=0,
            inactive=getattr(vm, "inactive", 0) // page,
            free=vm.free // page,
        )


class TcpPortCheck(ServiceCheck):
    """Reachability by TCP connect to ``host:port``."""

    def __init__(self, port: int, host: str = "localhost", timeout: float = 3.0):
        self.host = host
        self.port = port
        self._timeout = timeout

    async def check(self) -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self._timeout,
            )
        except (OSError, asyncio.TimeoutError):
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True


def default_page_source() -> PageSource:
    """vm_stat on macOS (wired and compressor pages available), psutil elsewhere."""
    if sys.platform == "darwin":
        return VmStatPageSource()
    return PsutilPageSource()


@dataclass
class SourceSet:
    """All adapters needed for one agent, keyed by what they measure."""

    cpu: MetricSource
    memory: PageSource
    disk: MetricSource
    packet_loss: MetricSource
    disk_read_ops: MetricSource
    disk_write_ops: MetricSource
    net_bytes_in: MetricSource
    net_bytes_out: MetricSource
    net_packets_in: MetricSource
    net_packets_out: MetricSource
    service_checks: dict[str, ServiceCheck] = field(default_factory=dict)


def create_system_sources(
    services: tuple[ServiceSpec, ...],
    *,
    cpu_sample_seconds: float = 1.0,
    disk_path: str = "/",
    disk_io_window_seconds: float = 1.0,
    ping_host: str = "8.8.8.8",
    ping_count: int = 3,
    check_timeout: float = 3.0,
) -> SourceSet:
    """Create the real OS adapters for this host."""
    return SourceSet(
        cpu=CpuPercentSource(sample_seconds=cpu_sample_seconds),
        memory=default_page_source(),
        disk=DiskUsageSource(path=disk_path),
        packet_loss=PacketLossSource(host=ping_host, count=ping_count),
        disk_read_ops=DiskIOSource("read_count", window_seconds=disk_io_window_seconds),
        disk_write_ops=DiskIOSource("write_count", window_seconds=disk_io_window_seconds),
        net_bytes_in=NetIOSource("bytes_recv"),
        net_bytes_out=NetIOSource("bytes_sent"),
        net_packets_in=NetIOSource("packets_recv"),
        net_packets_out=NetIOSource("packets_sent"),
        service_checks={
            spec.name: TcpPortCheck(port=spec.port, timeout=check_timeout)
            for spec in services
        },
    )
