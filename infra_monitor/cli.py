"""
Command-line interface for infra-monitor.

Usage:
    infra-monitor run            # Run the agent until SIGINT/SIGTERM
    infra-monitor run-once       # Run a single tick and print the payload
    infra-monitor check-config   # Validate and print the configuration
"""

import asyncio
import os
import signal
import sys

import click
import structlog

from infra_monitor.config.settings import Settings, load_settings
from infra_monitor.errors import ConfigMissingError
from infra_monitor.observability.logging import setup_logging
from infra_monitor.observability.metrics import get_metrics

logger = structlog.get_logger(__name__)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option(
    "--config",
    "config_file",
    default=None,
    type=click.Path(dir_okay=False),
    help="Config file (default: $INFRA_MONITOR_CONFIG or ./infra_monitor.conf)",
)
@click.pass_context
def main(ctx: click.Context, debug: bool, config_file: str | None) -> None:
    """Infra Monitor - host telemetry, alerting and Pushgateway export."""
    if debug:
        os.environ["LOG_LEVEL"] = "DEBUG"
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file


def _load_settings(ctx: click.Context) -> Settings:
    """Load configuration or exit non-zero, then set up logging and tracing."""
    try:
        settings = load_settings(ctx.obj.get("config_file"))
    except ConfigMissingError as e:
        click.echo(click.style(f"Configuration error: {e}", fg="red"), err=True)
        ctx.exit(1)

    setup_logging(settings)

    if settings.tracing_enabled:
        from infra_monitor.observability.tracing import setup_tracing

        setup_tracing(
            service_name=settings.otel_service_name,
            otlp_endpoint=settings.otel_exporter_otlp_endpoint,
        )

    return settings


@main.command()
@click.option("--mock", is_flag=True, help="Use mock metric sources")
@click.option("--metrics/--no-metrics", default=True, help="Serve self-metrics on METRICS_PORT")
@click.pass_context
def run(ctx: click.Context, mock: bool, metrics: bool) -> None:
    """Run the agent until interrupted."""
    from infra_monitor.services.scheduler import Scheduler

    settings = _load_settings(ctx)

    async def _run():
        scheduler = Scheduler.from_settings(settings, use_mock=mock)

        if metrics and settings.metrics_port:
            get_metrics().start_server(settings.metrics_port)

        # Handle shutdown signals
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, lambda: asyncio.create_task(scheduler.stop()))

        await scheduler.start()

    asyncio.run(_run())
    logger.info("Agent terminated")


@main.command("run-once")
@click.option("--mock", is_flag=True, help="Use mock metric sources")
@click.option("--push/--no-push", default=True, help="Push the batch to the gateway")
@click.pass_context
def run_once(ctx: click.Context, mock: bool, push: bool) -> None:
    """Run one tick and print the exposition payload.

    Exits 1 when the push was requested and failed.
    """
    from infra_monitor.services.scheduler import Scheduler

    settings = _load_settings(ctx)

    async def _run():
        scheduler = Scheduler.from_settings(settings, use_mock=mock, push=push)
        try:
            result = await scheduler.run_tick()
        finally:
            scheduler.close()

        click.echo(scheduler.exporter.render(result.batch), nl=False)

        if result.alerts:
            click.echo("\nAlerts:")
            for event in result.alerts:
                color = "red" if event.severity.tag == "CRITICAL" else "yellow"
                click.echo(click.style(f"  {event.text}", fg=color))

        if push and not result.exported:
            click.echo(click.style("Push to gateway failed", fg="red"), err=True)
            sys.exit(1)

    asyncio.run(_run())


@main.command("check-config")
@click.pass_context
def check_config(ctx: click.Context) -> None:
    """Validate the configuration and print the effective values."""
    settings = _load_settings(ctx)
    thresholds = settings.thresholds

    click.echo("\nConfiguration:")
    click.echo("-" * 40)
    click.echo(f"  gateway:   {settings.prometheus_pushgateway}")
    click.echo(f"  job:       {settings.job_name}")
    click.echo(f"  instance:  {settings.instance_name}")
    click.echo(f"  interval:  {settings.interval_seconds}s")
    click.echo(f"  timeout:   {settings.collector_timeout_seconds}s per collector")
    click.echo("\nThresholds (warn / crit):")
    click.echo(f"  cpu:       {thresholds.cpu.warn} / {thresholds.cpu.crit}")
    click.echo(f"  memory:    {thresholds.memory.warn} / {thresholds.memory.crit}")
    click.echo(f"  disk:      {thresholds.disk.warn} / {thresholds.disk.crit}")
    click.echo(
        f"  loss:      > {thresholds.network_loss.warn} / > {thresholds.network_loss.crit}"
    )
    click.echo("\nServices:")
    for spec in settings.services:
        click.echo(f"  {spec.name}: {spec.port}")
    click.echo("\nAlert channels:")
    click.echo(f"  telegram:  {settings.telegram_configured}")
    click.echo(f"  webhook:   {bool(settings.alert_webhook_url)}")
    click.echo("-" * 40)
    click.echo(click.style("Configuration OK", fg="green"))


if __name__ == "__main__":
    main()
