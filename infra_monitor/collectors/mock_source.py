"""
Mock metric sources for testing and development.

Generates synthetic readings that look like a moderately busy host.
Useful for:
- Running the agent on hosts without the real tools (``--mock``)
- Exercising alerting and the gateway push end to end
- Tests that need fixed or failing readings
"""

import random

from infra_monitor.collectors.schemas import MemoryPages, ServiceSpec
from infra_monitor.collectors.sources import (
    MetricSource,
    PageSource,
    RawReading,
    ServiceCheck,
    SourceSet,
)


class StaticSource(MetricSource):
    """Always returns the same raw reading."""

    def __init__(self, value: RawReading):
        self.value = value

    async def read(self) -> RawReading:
        return self.value


class FailingSource(MetricSource, PageSource, ServiceCheck):
    """Raises on every call, for any kind of adapter."""

    def __init__(self, error: Exception | None = None):
        self.error = error or RuntimeError("source failed")

    async def read(self) -> RawReading:
        raise self.error

    async def read_pages(self) -> MemoryPages:
        raise self.error

    async def check(self) -> bool:
        raise self.error


class StaticPageSource(PageSource):
    """Returns fixed page counts."""

    def __init__(self, pages: MemoryPages):
        self.pages = pages

    async def read_pages(self) -> MemoryPages:
        return self.pages


class StaticServiceCheck(ServiceCheck):
    """Reports a fixed up/down state."""

    def __init__(self, up: bool = True):
        self.up = up

    async def check(self) -> bool:
        return self.up


class RandomSource(MetricSource):
    """Uniform random reading in ``[low, high]``."""

    def __init__(self, low: float, high: float, decimals: int = 2):
        self.low = low
        self.high = high
        self.decimals = decimals

    async def read(self) -> float:
        return round(random.uniform(self.low, self.high), self.decimals)


class RandomPageSource(PageSource):
    """Random page counts around 40-85% usage."""

    async def read_pages(self) -> MemoryPages:
        total = 1_000_000
        used = random.randint(400_000, 850_000)
        active = used // 2
        wired = used // 3
        inactive = (total - used) // 2
        return MemoryPages(
            active=active,
            wired=wired,
            compressed=used - active - wired,
            inactive=inactive,
            free=total - used - inactive,
        )


class RandomServiceCheck(ServiceCheck):
    """Up with probability ``availability``."""

    def __init__(self, availability: float = 0.95):
        self.availability = availability

    async def check(self) -> bool:
        return random.random() < self.availability


def create_mock_sources(services: tuple[ServiceSpec, ...]) -> SourceSet:
    """
    Create random sources for every metric and service.

    Args:
        services: Configured services; each gets a RandomServiceCheck.

    Returns:
        SourceSet backed entirely by synthetic readings.
    """
    return SourceSet(
        cpu=RandomSource(5, 99),
        memory=RandomPageSource(),
        disk=RandomSource(30, 95, decimals=0),
        packet_loss=RandomSource(0, 30, decimals=1),
        disk_read_ops=RandomSource(0, 500),
        disk_write_ops=RandomSource(0, 300),
        net_bytes_in=RandomSource(1e6, 5e9, decimals=0),
        net_bytes_out=RandomSource(1e6, 2e9, decimals=0),
        net_packets_in=RandomSource(1e3, 5e6, decimals=0),
        net_packets_out=RandomSource(1e3, 3e6, decimals=0),
        service_checks={spec.name: RandomServiceCheck() for spec in services},
    )
