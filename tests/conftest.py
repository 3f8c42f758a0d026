"""Pytest fixtures for infra-monitor tests."""

import pytest

from infra_monitor.alerts.schemas import Threshold, Thresholds
from infra_monitor.collectors.mock_source import (
    FailingSource,
    StaticPageSource,
    StaticServiceCheck,
    StaticSource,
)
from infra_monitor.collectors.schemas import MemoryPages, ServiceSpec
from infra_monitor.collectors.sources import SourceSet
from infra_monitor.config.settings import Settings


@pytest.fixture
def services() -> tuple[ServiceSpec, ...]:
    """Three services in configured order."""
    return (
        ServiceSpec(name="nginx", port=80),
        ServiceSpec(name="postgres", port=5432),
        ServiceSpec(name="redis", port=6379),
    )


@pytest.fixture
def thresholds() -> Thresholds:
    """Default thresholds from the stock configuration."""
    return Thresholds(
        cpu=Threshold(warn=80, crit=95),
        memory=Threshold(warn=70, crit=90),
        disk=Threshold(warn=80, crit=90),
    )


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings configured for testing, without a config file."""
    return Settings(
        _env_file=None,
        environment="development",
        log_level="DEBUG",
        log_file=None,
        instance_name="test-host",
        prometheus_pushgateway="http://gateway.test:9091",
        interval_seconds=0.01,
        collector_timeout_seconds=0.5,
    )


@pytest.fixture
def healthy_sources(services) -> SourceSet:
    """Fixed readings: every metric OK, every service up."""
    return SourceSet(
        cpu=StaticSource(12.5),
        memory=StaticPageSource(
            MemoryPages(active=30, wired=20, compressed=10, inactive=20, free=20)
        ),
        disk=StaticSource("42"),
        packet_loss=StaticSource("0.0"),
        disk_read_ops=StaticSource(15.25),
        disk_write_ops=StaticSource(7.5),
        net_bytes_in=StaticSource(123456789),
        net_bytes_out=StaticSource(98765432),
        net_packets_in=StaticSource(1000),
        net_packets_out=StaticSource(900),
        service_checks={spec.name: StaticServiceCheck(up=True) for spec in services},
    )


@pytest.fixture
def failing_sources(services) -> SourceSet:
    """Every adapter raises."""
    failing = FailingSource()
    return SourceSet(
        cpu=failing,
        memory=failing,
        disk=failing,
        packet_loss=failing,
        disk_read_ops=failing,
        disk_write_ops=failing,
        net_bytes_in=failing,
        net_bytes_out=failing,
        net_packets_in=failing,
        net_packets_out=failing,
        service_checks={spec.name: failing for spec in services},
    )
