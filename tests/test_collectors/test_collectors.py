"""Tests for collectors and the default-on-failure policy."""

import asyncio

import pytest

from infra_monitor.collectors.base import parse_number
from infra_monitor.collectors.mock_source import (
    FailingSource,
    StaticPageSource,
    StaticServiceCheck,
    StaticSource,
)
from infra_monitor.collectors.schemas import (
    METRIC_ORDER,
    MemoryPages,
    MetricSample,
    ServiceSpec,
)
from infra_monitor.collectors.sources import MetricSource
from infra_monitor.collectors.system import (
    PACKET_LOSS_DEFAULT,
    GaugeCollector,
    MemoryCollector,
    ServiceCollector,
    build_collectors,
    collectors_from_sources,
)
from infra_monitor.errors import SourceUnavailableError


class HangingSource(MetricSource):
    """Never returns."""

    async def read(self):
        await asyncio.sleep(3600)


# ── parse_number ─────────────────────────────────────────────


class TestParseNumber:
    def test_int(self):
        assert parse_number(42) == 42.0

    def test_float(self):
        assert parse_number(12.5) == 12.5

    def test_numeric_string(self):
        assert parse_number("87") == 87.0

    def test_string_with_percent_and_whitespace(self):
        assert parse_number(" 66.7% \n") == 66.7

    @pytest.mark.parametrize("raw", [None, "", "   ", "%", "n/a", "1,5", True])
    def test_unusable_output_raises(self, raw):
        with pytest.raises(SourceUnavailableError):
            parse_number(raw)

    @pytest.mark.parametrize("raw", ["nan", "inf", float("nan")])
    def test_non_finite_raises(self, raw):
        with pytest.raises(SourceUnavailableError):
            parse_number(raw)


# ── Memory usage ─────────────────────────────────────────────


class TestMemoryPages:
    def test_usage_formula(self):
        pages = MemoryPages(active=100, wired=50, compressed=10, inactive=30, free=10)
        assert pages.used == 160
        assert pages.total == 200
        assert pages.usage_percent() == 80.00

    def test_rounds_to_two_decimals(self):
        pages = MemoryPages(active=1, wired=0, compressed=0, inactive=1, free=1)
        assert pages.usage_percent() == 33.33

    def test_zero_total_is_zero(self):
        pages = MemoryPages(active=0, wired=0, compressed=0, inactive=0, free=0)
        assert pages.usage_percent() == 0.0

    def test_inactive_and_free_count_as_unused(self):
        pages = MemoryPages(active=0, wired=0, compressed=0, inactive=500, free=500)
        assert pages.usage_percent() == 0.0

    def test_all_used(self):
        pages = MemoryPages(active=10, wired=10, compressed=10, inactive=0, free=0)
        assert pages.usage_percent() == 100.0


# ── Collector behaviour ──────────────────────────────────────


class TestGaugeCollector:
    @pytest.mark.asyncio
    async def test_reading_becomes_sample(self):
        collector = GaugeCollector("cpu_usage", StaticSource(37.5), labels=(("type", "percent"),))

        sample = await collector.collect(timeout=1.0)

        assert sample == MetricSample("cpu_usage", 37.5, (("type", "percent"),))
        assert sample.degraded is False

    @pytest.mark.asyncio
    async def test_string_reading_parsed(self):
        collector = GaugeCollector("disk_usage", StaticSource("87"))
        sample = await collector.collect(timeout=1.0)
        assert sample.value == 87.0

    @pytest.mark.asyncio
    async def test_empty_output_uses_default(self):
        collector = GaugeCollector("disk_usage", StaticSource(""))
        sample = await collector.collect(timeout=1.0)
        assert sample.value == 0.0
        assert sample.degraded is True

    @pytest.mark.asyncio
    async def test_non_numeric_output_uses_default(self):
        collector = GaugeCollector("disk_usage", StaticSource("Filesystem"))
        sample = await collector.collect(timeout=1.0)
        assert sample.value == 0.0
        assert sample.degraded is True

    @pytest.mark.asyncio
    async def test_exception_uses_default(self):
        collector = GaugeCollector("cpu_usage", FailingSource(OSError("boom")))
        sample = await collector.collect(timeout=1.0)
        assert sample.value == 0.0
        assert sample.degraded is True

    @pytest.mark.asyncio
    async def test_timeout_uses_default(self):
        collector = GaugeCollector("cpu_usage", HangingSource())
        sample = await collector.collect(timeout=0.05)
        assert sample.value == 0.0
        assert sample.degraded is True

    @pytest.mark.asyncio
    async def test_labels_kept_on_failure(self):
        collector = GaugeCollector(
            "cpu_usage", FailingSource(), labels=(("type", "percent"),),
        )
        sample = await collector.collect(timeout=1.0)
        assert sample.labels == (("type", "percent"),)


class TestPacketLossDefault:
    @pytest.mark.asyncio
    async def test_failed_adapter_yields_total_loss(self):
        collector = GaugeCollector(
            "network_packet_loss", FailingSource(), default=PACKET_LOSS_DEFAULT,
        )
        sample = await collector.collect(timeout=1.0)
        assert sample.value == 100.0

    @pytest.mark.asyncio
    async def test_missing_summary_yields_total_loss(self):
        collector = GaugeCollector(
            "network_packet_loss", StaticSource(None), default=PACKET_LOSS_DEFAULT,
        )
        sample = await collector.collect(timeout=1.0)
        assert sample.value == 100.0

    @pytest.mark.asyncio
    async def test_hung_ping_yields_total_loss(self):
        collector = GaugeCollector(
            "network_packet_loss", HangingSource(), default=PACKET_LOSS_DEFAULT,
        )
        sample = await collector.collect(timeout=0.05)
        assert sample.value == 100.0


class TestMemoryCollector:
    @pytest.mark.asyncio
    async def test_computes_usage(self):
        pages = MemoryPages(active=100, wired=50, compressed=10, inactive=30, free=10)
        sample = await MemoryCollector(StaticPageSource(pages)).collect(timeout=1.0)

        assert sample.name == "memory_usage"
        assert sample.value == 80.00
        assert sample.label("type") == "percent"

    @pytest.mark.asyncio
    async def test_incomplete_pages_use_default(self):
        source = FailingSource(SourceUnavailableError("vm_stat output incomplete"))
        sample = await MemoryCollector(source).collect(timeout=1.0)
        assert sample.value == 0.0
        assert sample.degraded is True


class TestServiceCollector:
    @pytest.mark.asyncio
    async def test_up_is_one(self):
        spec = ServiceSpec("nginx", 80)
        sample = await ServiceCollector(spec, StaticServiceCheck(up=True)).collect(timeout=1.0)

        assert sample.name == "service_status"
        assert sample.value == 1.0
        assert sample.labels == (("service", "nginx"), ("port", "80"))

    @pytest.mark.asyncio
    async def test_down_is_zero(self):
        spec = ServiceSpec("redis", 6379)
        sample = await ServiceCollector(spec, StaticServiceCheck(up=False)).collect(timeout=1.0)
        assert sample.value == 0.0
        assert sample.degraded is False

    @pytest.mark.asyncio
    async def test_check_error_is_down(self):
        spec = ServiceSpec("redis", 6379)
        sample = await ServiceCollector(spec, FailingSource()).collect(timeout=1.0)
        assert sample.value == 0.0
        assert sample.label("service") == "redis"


class TestServiceSpec:
    @pytest.mark.parametrize("port", [0, -1, 65536])
    def test_invalid_port_rejected(self, port):
        with pytest.raises(ValueError):
            ServiceSpec("bad", port)


# ── Collector set ────────────────────────────────────────────


class TestCollectorSet:
    def test_order_matches_export_order(self, healthy_sources, services):
        collectors = collectors_from_sources(healthy_sources, services)

        names = [c.name for c in collectors]
        assert tuple(names[: len(METRIC_ORDER)]) == METRIC_ORDER
        assert names[len(METRIC_ORDER):] == ["service_status"] * len(services)

    def test_services_in_configured_order(self, healthy_sources, services):
        collectors = collectors_from_sources(healthy_sources, services)
        service_collectors = [c for c in collectors if isinstance(c, ServiceCollector)]
        assert [c.service.name for c in service_collectors] == ["nginx", "postgres", "redis"]

    @pytest.mark.asyncio
    async def test_one_sample_per_metric_when_everything_fails(self, failing_sources, services):
        collectors = collectors_from_sources(failing_sources, services)

        samples = await asyncio.gather(*(c.collect(timeout=0.5) for c in collectors))

        assert len(samples) == len(METRIC_ORDER) + len(services)
        assert all(s.degraded for s in samples)
        by_name = {s.name: s.value for s in samples if s.name != "service_status"}
        assert by_name["network_packet_loss"] == 100.0
        assert all(v == 0.0 for k, v in by_name.items() if k != "network_packet_loss")
        assert [s.value for s in samples if s.name == "service_status"] == [0.0, 0.0, 0.0]

    def test_build_collectors_mock(self, test_settings):
        collectors = build_collectors(test_settings, use_mock=True)
        assert len(collectors) == len(METRIC_ORDER) + len(test_settings.services)

    def test_build_collectors_system(self, test_settings):
        collectors = build_collectors(test_settings)
        assert len(collectors) == len(METRIC_ORDER) + len(test_settings.services)

    @pytest.mark.asyncio
    async def test_mock_sources_produce_real_readings(self, test_settings):
        collectors = build_collectors(test_settings, use_mock=True)
        samples = await asyncio.gather(*(c.collect(timeout=1.0) for c in collectors))
        assert not any(s.degraded for s in samples)
        memory = next(s for s in samples if s.name == "memory_usage")
        assert 0 <= memory.value <= 100
