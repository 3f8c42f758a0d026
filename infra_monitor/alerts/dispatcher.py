"""Alert dispatcher delivering alert events across notification channels.

Delivery is best-effort and attempted once per tick: a failed channel is
logged and the alert is not retried or queued. The next tick re-evaluates
and re-alerts on its own. Dispatch never raises.
"""

import logging
from typing import TYPE_CHECKING

from infra_monitor.alerts.channels import (
    NotificationChannel,
    TelegramChannel,
    WebhookChannel,
)
from infra_monitor.alerts.schemas import AlertEvent, Severity
from infra_monitor.observability.metrics import get_metrics

if TYPE_CHECKING:
    from infra_monitor.config.settings import Settings

logger = logging.getLogger(__name__)


class AlertDispatcher:
    """Sends alert events to all configured channels.

    With no channels configured, alerts are only written to the log.
    """

    def __init__(self, channels: list[NotificationChannel] | None = None) -> None:
        self._channels = list(channels or [])

    @property
    def channels(self) -> list[NotificationChannel]:
        """Configured channels (for inspection/testing)."""
        return self._channels

    async def send(self, severity: Severity, message: str) -> list[tuple[str, bool]]:
        """Build an event from a severity and message and dispatch it."""
        return await self.dispatch(AlertEvent(severity=severity, message=message))

    async def dispatch(self, event: AlertEvent) -> list[tuple[str, bool]]:
        """Send an alert to all configured channels.

        Args:
            event: Alert to deliver.

        Returns:
            List of (channel_name, success) tuples.
        """
        logger.warning("Sending alert: %s", event.text)
        results: list[tuple[str, bool]] = []

        for channel in self._channels:
            try:
                success = await channel.send(event)
            except Exception as e:
                logger.error(
                    "Channel %s raised while sending alert %r: %s",
                    channel.name, event.message, e,
                )
                success = False
            results.append((channel.name, success))

        self._record_delivery(event, results)
        return results

    async def dispatch_batch(self, events: list[AlertEvent]) -> None:
        """Send a batch of alerts in order, isolating failures per alert."""
        for event in events:
            try:
                await self.dispatch(event)
            except Exception as e:
                logger.error(
                    "Unexpected error dispatching alert %r: %s",
                    event.message, e,
                )

    def _record_delivery(
        self,
        event: AlertEvent,
        results: list[tuple[str, bool]],
    ) -> None:
        """Log delivery results and update self-metrics."""
        successes = [name for name, ok in results if ok]
        failures = [name for name, ok in results if not ok]
        metrics = get_metrics()

        for name, ok in results:
            metrics.record_alert(event.severity.tag, name, ok)
        if not results:
            metrics.record_alert(event.severity.tag, "log", True)

        if failures and not successes:
            logger.error(
                "Alert %r (%s) failed ALL channels: %s",
                event.message, event.severity.tag, failures,
            )
        elif failures:
            logger.warning(
                "Alert %r partial delivery: ok=%s failed=%s",
                event.message, successes, failures,
            )
        elif successes:
            logger.debug(
                "Alert %r delivered to all channels: %s",
                event.message, successes,
            )


def create_dispatcher(settings: "Settings") -> AlertDispatcher:
    """Create a dispatcher with every channel the configuration enables."""
    channels: list[NotificationChannel] = []

    if settings.telegram_configured:
        channels.append(
            TelegramChannel(
                bot_token=settings.telegram_bot_token,
                chat_id=settings.telegram_chat_id,
                timeout=settings.http_timeout_seconds,
            )
        )
        logger.info("Telegram alert channel enabled")

    if settings.alert_webhook_url:
        channels.append(
            WebhookChannel(
                url=settings.alert_webhook_url,
                timeout=settings.http_timeout_seconds,
                instance=settings.instance_name,
            )
        )
        logger.info("Webhook alert channel enabled")

    if not channels:
        logger.warning("No alert channels configured, alerts are logged only")

    return AlertDispatcher(channels)
