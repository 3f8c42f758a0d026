"""
Scheduler - drives the collect, evaluate, alert, export cycle.

Runs one tick at a time from a single coroutine. Each tick fans out every
collector concurrently, joins, and only then touches the tick's results,
so collectors never share mutable state.

Per tick:
1. Collect all samples concurrently, each with its own timeout
2. Evaluate thresholds and service status
3. Dispatch alerts (before export, so alerting survives a failed push)
4. Push the batch to the gateway
5. Wait for the interval or a stop request
"""

import asyncio
import enum
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from infra_monitor.alerts.dispatcher import AlertDispatcher, create_dispatcher
from infra_monitor.alerts.evaluator import evaluate_batch
from infra_monitor.alerts.schemas import AlertEvent, Thresholds
from infra_monitor.collectors.base import Collector
from infra_monitor.collectors.system import build_collectors
from infra_monitor.errors import ExportError
from infra_monitor.export.exposition import ExportBatch
from infra_monitor.export.pushgateway import MetricsExporter
from infra_monitor.observability.logging import bind_context
from infra_monitor.observability.metrics import get_metrics
from infra_monitor.observability.tracing import get_tracer, traced

if TYPE_CHECKING:
    from infra_monitor.config.settings import Settings

logger = structlog.get_logger(__name__)


class SchedulerState(enum.Enum):
    """Scheduler lifecycle states."""
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class TickResult:
    """Outcome of one tick.

    Attributes:
        tick: 1-based tick number.
        batch: Every sample collected in the tick.
        alerts: Alerts dispatched, in sample order.
        exported: Whether the gateway push succeeded.
        duration: Tick wall time in seconds.
    """

    tick: int
    batch: ExportBatch
    alerts: tuple[AlertEvent, ...]
    exported: bool
    duration: float


class Scheduler:
    """
    Runs ticks on a fixed interval until stopped.

    Usage:
        scheduler = Scheduler.from_settings(settings)
        await scheduler.start()  # Runs until stop() is called
    """

    def __init__(
        self,
        collectors: list[Collector],
        dispatcher: AlertDispatcher,
        exporter: MetricsExporter,
        thresholds: Thresholds,
        *,
        interval: float = 5.0,
        collector_timeout: float = 5.0,
        disk_path: str = "/",
        push: bool = True,
    ):
        """
        Initialize the scheduler.

        Args:
            collectors: Collectors in export order
            dispatcher: Alert delivery
            exporter: Gateway push
            thresholds: Immutable threshold table
            interval: Seconds to wait between ticks
            collector_timeout: Per-collector timeout in seconds
            disk_path: Mount point named in disk alerts
            push: Push batches to the gateway (disable for dry runs)
        """
        self._collectors = list(collectors)
        self._dispatcher = dispatcher
        self._exporter = exporter
        self._thresholds = thresholds
        self._interval = interval
        self._collector_timeout = collector_timeout
        self._disk_path = disk_path
        self._push = push

        self._state = SchedulerState.IDLE
        self._stop_event = asyncio.Event()
        self._tick_count = 0
        self._last_result: TickResult | None = None
        self._metrics = get_metrics()
        self._tracer = get_tracer(__name__)

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        use_mock: bool = False,
        push: bool = True,
    ) -> "Scheduler":
        """Build a scheduler and all its collaborators from configuration."""
        scheduler = cls(
            collectors=build_collectors(settings, use_mock=use_mock),
            dispatcher=create_dispatcher(settings),
            exporter=MetricsExporter(
                gateway_url=settings.prometheus_pushgateway,
                job=settings.job_name,
                instance=settings.instance_name,
                timeout=settings.http_timeout_seconds,
            ),
            thresholds=settings.thresholds,
            interval=settings.interval_seconds,
            collector_timeout=settings.collector_timeout_seconds,
            disk_path=settings.disk_path,
            push=push,
        )
        logger.info(
            "Scheduler initialized",
            collectors=len(scheduler._collectors),
            services=[s.name for s in settings.services],
            interval=settings.interval_seconds,
            gateway=settings.prometheus_pushgateway,
            instance=settings.instance_name,
        )
        return scheduler

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        """Check if the loop is active (idle between ticks or inside one)."""
        return self._state is not SchedulerState.STOPPED and not self._stop_event.is_set()

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def exporter(self) -> MetricsExporter:
        return self._exporter

    async def collect(self) -> ExportBatch:
        """
        Run every collector concurrently and join.

        Collectors never raise and time out individually, so the batch always
        holds one sample per collector, in collector order.
        """
        samples = await asyncio.gather(
            *(c.collect(timeout=self._collector_timeout) for c in self._collectors)
        )
        return ExportBatch.from_samples(samples)

    async def run_tick(self) -> TickResult:
        """
        Run one full tick.

        Returns:
            TickResult describing what was collected, alerted and pushed.
        """
        self._state = SchedulerState.RUNNING
        self._tick_count += 1
        tick = self._tick_count
        bind_context(tick=tick)
        start_time = time.monotonic()

        try:
            with traced(self._tracer, "tick", {"tick": tick}):
                batch = await self.collect()

                alerts = evaluate_batch(
                    batch.samples,
                    self._thresholds,
                    disk_path=self._disk_path,
                )
                await self._dispatcher.dispatch_batch(alerts)

                exported = await self._export(batch)
        finally:
            if self._state is SchedulerState.RUNNING:
                self._state = SchedulerState.IDLE

        elapsed = time.monotonic() - start_time
        self._metrics.record_tick(elapsed, samples=len(batch))

        logger.info(
            "Tick completed",
            samples=len(batch),
            degraded=batch.degraded,
            alerts=len(alerts),
            exported=exported,
            elapsed_seconds=round(elapsed, 2),
        )

        result = TickResult(
            tick=tick,
            batch=batch,
            alerts=tuple(alerts),
            exported=exported,
            duration=elapsed,
        )
        self._last_result = result
        return result

    async def _export(self, batch: ExportBatch) -> bool:
        """Push the batch; a failure is logged and contained to this tick."""
        if not self._push:
            return False
        try:
            await self._exporter.export(batch)
        except ExportError as e:
            logger.error("Metrics push failed", error=str(e), status_code=e.status_code)
            self._metrics.record_export(False)
            return False
        self._metrics.record_export(True)
        return True

    async def start(self) -> None:
        """
        Run ticks until stop() is called.

        A stop request is honoured at tick boundaries: a tick in progress
        finishes, then the loop exits without a further push.
        """
        logger.info("Starting scheduler", interval=self._interval)
        self._state = SchedulerState.IDLE

        try:
            while not self._stop_event.is_set():
                try:
                    await self.run_tick()
                except Exception as e:
                    logger.error("Tick failed", error=str(e), exc_info=True)

                if self._stop_event.is_set():
                    break

                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            self._state = SchedulerState.STOPPED
            self.close()
            logger.info("Scheduler stopped", ticks=self._tick_count)

    def close(self) -> None:
        """Close every collector's source so no new OS calls start."""
        for collector in self._collectors:
            collector.close()

    async def stop(self) -> None:
        """Request a graceful stop at the next tick boundary."""
        logger.info("Stopping scheduler")
        self._stop_event.set()

    async def health_check(self) -> dict[str, Any]:
        """
        Report scheduler health.

        Returns:
            Dictionary with state and the last tick's outcome
        """
        last = self._last_result
        return {
            "state": self._state.value,
            "ticks": self._tick_count,
            "collectors": len(self._collectors),
            "last_tick_exported": last.exported if last else None,
            "last_tick_degraded": last.batch.degraded if last else [],
        }
