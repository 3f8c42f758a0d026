"""Tests for the alert dispatcher."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from infra_monitor.alerts.channels import NotificationChannel, TelegramChannel, WebhookChannel
from infra_monitor.alerts.dispatcher import AlertDispatcher, create_dispatcher
from infra_monitor.alerts.schemas import AlertEvent, Severity


def _channel(name: str, result=True, side_effect=None) -> MagicMock:
    channel = MagicMock(spec=NotificationChannel)
    channel.name = name
    channel.send = AsyncMock(return_value=result, side_effect=side_effect)
    return channel


@pytest.fixture
def event():
    return AlertEvent(severity=Severity.WARN, message="CPU usage is at 85.5%", metric="cpu_usage")


class TestAlertDispatcher:
    @pytest.mark.asyncio
    async def test_dispatch_to_all_channels(self, event):
        telegram = _channel("telegram")
        webhook = _channel("webhook")
        dispatcher = AlertDispatcher([telegram, webhook])

        results = await dispatcher.dispatch(event)

        assert results == [("telegram", True), ("webhook", True)]
        telegram.send.assert_awaited_once_with(event)
        webhook.send.assert_awaited_once_with(event)

    @pytest.mark.asyncio
    async def test_failed_channel_does_not_block_others(self, event):
        broken = _channel("telegram", result=False)
        webhook = _channel("webhook")
        dispatcher = AlertDispatcher([broken, webhook])

        results = await dispatcher.dispatch(event)

        assert results == [("telegram", False), ("webhook", True)]

    @pytest.mark.asyncio
    async def test_raising_channel_is_contained(self, event):
        raising = _channel("telegram", side_effect=RuntimeError("boom"))
        webhook = _channel("webhook")
        dispatcher = AlertDispatcher([raising, webhook])

        results = await dispatcher.dispatch(event)

        assert results == [("telegram", False), ("webhook", True)]

    @pytest.mark.asyncio
    async def test_always_logs_alert(self, event, caplog):
        dispatcher = AlertDispatcher()

        with caplog.at_level(logging.WARNING, logger="infra_monitor.alerts.dispatcher"):
            results = await dispatcher.dispatch(event)

        assert results == []
        assert "Sending alert: [WARNING] CPU usage is at 85.5%" in caplog.text

    @pytest.mark.asyncio
    async def test_send_builds_event(self):
        channel = _channel("telegram")
        dispatcher = AlertDispatcher([channel])

        await dispatcher.send(Severity.CRIT, "Service redis is DOWN!")

        sent = channel.send.call_args.args[0]
        assert sent.text == "[CRITICAL] Service redis is DOWN!"

    @pytest.mark.asyncio
    async def test_batch_preserves_order(self):
        channel = _channel("telegram")
        dispatcher = AlertDispatcher([channel])
        events = [
            AlertEvent(severity=Severity.CRIT, message="first"),
            AlertEvent(severity=Severity.WARN, message="second"),
        ]

        await dispatcher.dispatch_batch(events)

        sent = [call.args[0].message for call in channel.send.call_args_list]
        assert sent == ["first", "second"]


class TestCreateDispatcher:
    def test_no_channels_when_unconfigured(self, test_settings):
        dispatcher = create_dispatcher(test_settings)
        assert dispatcher.channels == []

    def test_telegram_when_configured(self, test_settings):
        settings = test_settings.model_copy(
            update={"telegram_bot_token": "123:abc", "telegram_chat_id": "42"}
        )

        dispatcher = create_dispatcher(settings)

        assert len(dispatcher.channels) == 1
        assert isinstance(dispatcher.channels[0], TelegramChannel)

    def test_telegram_needs_chat_id(self, test_settings):
        settings = test_settings.model_copy(update={"telegram_bot_token": "123:abc"})
        assert create_dispatcher(settings).channels == []

    def test_webhook_when_configured(self, test_settings):
        settings = test_settings.model_copy(
            update={"alert_webhook_url": "https://hooks.test/alerts"}
        )

        dispatcher = create_dispatcher(settings)

        assert [c.name for c in dispatcher.channels] == ["webhook"]
        assert isinstance(dispatcher.channels[0], WebhookChannel)
