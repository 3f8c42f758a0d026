"""Notification channel implementations for alert delivery.

Provides an ABC for notification channels plus concrete implementations
for Telegram bots and generic webhooks. Channels report success as a bool
and never raise: delivery is best-effort and a failed send must not affect
the rest of the tick.
"""

import logging
from abc import ABC, abstractmethod

import httpx

from infra_monitor.alerts.schemas import AlertEvent

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"


class NotificationChannel(ABC):
    """Abstract base for notification delivery channels."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this channel (e.g. 'telegram', 'webhook')."""

    @abstractmethod
    async def send(self, event: AlertEvent) -> bool:
        """Deliver an alert through this channel.

        Args:
            event: Alert to deliver.

        Returns:
            True if delivery succeeded, False otherwise.
        """


class TelegramChannel(NotificationChannel):
    """Delivers alerts as Telegram bot messages.

    Creates a new ``httpx.AsyncClient`` per call (short-lived, no pooling).
    The bot token is part of the URL, so it is never logged.
    """

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        timeout: float = 10.0,
        api_base: str = TELEGRAM_API_BASE,
    ) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._timeout = timeout
        self._api_base = api_base.rstrip("/")

    @property
    def name(self) -> str:
        return "telegram"

    @property
    def url(self) -> str:
        return f"{self._api_base}/bot{self._bot_token}/sendMessage"

    def _build_payload(self, event: AlertEvent) -> dict:
        return {"chat_id": self._chat_id, "text": event.text}

    async def send(self, event: AlertEvent) -> bool:
        payload = self._build_payload(event)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(self.url, json=payload)
                if resp.is_success:
                    return True
                logger.warning(
                    "Telegram returned %d for alert %r",
                    resp.status_code, event.message,
                )
                return False
        except httpx.TimeoutException:
            logger.warning("Telegram timed out for alert %r", event.message)
            return False
        except Exception as e:
            logger.warning(
                "Telegram send failed for alert %r: %s",
                event.message, type(e).__name__,
            )
            return False


class WebhookChannel(NotificationChannel):
    """Delivers alerts as JSON POST to an arbitrary HTTP endpoint."""

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
        instance: str | None = None,
    ) -> None:
        self._url = url
        self._headers = headers or {}
        self._timeout = timeout
        self._instance = instance

    @property
    def name(self) -> str:
        return "webhook"

    def _build_payload(self, event: AlertEvent) -> dict:
        """Build the webhook JSON payload from an alert.

        Keys: severity, message, metric, timestamp, instance.
        """
        payload = event.to_dict()
        payload["instance"] = self._instance
        return payload

    async def send(self, event: AlertEvent) -> bool:
        payload = self._build_payload(event)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(
                    self._url,
                    json=payload,
                    headers=self._headers,
                )
                if resp.is_success:
                    return True
                logger.warning(
                    "Webhook %s returned %d for alert %r",
                    self._url, resp.status_code, event.message,
                )
                return False
        except httpx.TimeoutException:
            logger.warning(
                "Webhook %s timed out for alert %r",
                self._url, event.message,
            )
            return False
        except Exception as e:
            logger.warning(
                "Webhook %s failed for alert %r: %s",
                self._url, event.message, e,
            )
            return False
