"""Threshold evaluation and alert delivery.

Components:
- Severity / Threshold / Thresholds / AlertEvent: Evaluation schemas
- evaluate / check_sample / check_service / evaluate_batch: Pure evaluator
- NotificationChannel / TelegramChannel / WebhookChannel: Delivery channels
- AlertDispatcher: Best-effort fan-out to channels
"""

from infra_monitor.alerts.channels import (
    NotificationChannel,
    TelegramChannel,
    WebhookChannel,
)
from infra_monitor.alerts.dispatcher import AlertDispatcher, create_dispatcher
from infra_monitor.alerts.evaluator import (
    check_sample,
    check_service,
    evaluate,
    evaluate_batch,
)
from infra_monitor.alerts.schemas import (
    PACKET_LOSS_THRESHOLD,
    AlertEvent,
    Severity,
    Threshold,
    Thresholds,
)

__all__ = [
    "AlertDispatcher",
    "AlertEvent",
    "NotificationChannel",
    "PACKET_LOSS_THRESHOLD",
    "Severity",
    "TelegramChannel",
    "Threshold",
    "Thresholds",
    "WebhookChannel",
    "check_sample",
    "check_service",
    "create_dispatcher",
    "evaluate",
    "evaluate_batch",
]
