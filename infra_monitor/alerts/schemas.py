"""Schema definitions for threshold evaluation and alert events.

An AlertEvent is ephemeral: created and consumed within one tick, never
persisted. Severity is totally ordered so callers can take the worst of a set.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


class Severity(enum.IntEnum):
    """Classification of a sample against its threshold."""

    OK = 0
    WARN = 1
    CRIT = 2

    @property
    def tag(self) -> str:
        """Tag used in alert text (``[CRITICAL] ...``)."""
        return _SEVERITY_TAGS[self]


_SEVERITY_TAGS = {
    Severity.OK: "OK",
    Severity.WARN: "WARNING",
    Severity.CRIT: "CRITICAL",
}


@dataclass(frozen=True)
class Threshold:
    """Warning/critical boundary pair.

    Attributes:
        warn: Value at which a sample becomes WARN.
        crit: Value at which a sample becomes CRIT.
        inclusive: Compare with ``>=`` when True, strict ``>`` otherwise.
    """

    warn: float
    crit: float
    inclusive: bool = True


# Packet loss boundaries are fixed and strict: 20% is still OK, 50% is WARN.
PACKET_LOSS_THRESHOLD = Threshold(warn=20.0, crit=50.0, inclusive=False)


@dataclass(frozen=True)
class Thresholds:
    """Configured thresholds, read-only after startup."""

    cpu: Threshold
    memory: Threshold
    disk: Threshold
    network_loss: Threshold = PACKET_LOSS_THRESHOLD


@dataclass(frozen=True)
class AlertEvent:
    """A single alert raised during a tick.

    Attributes:
        severity: WARN or CRIT.
        message: Human-readable description of the condition.
        metric: Name of the sample that raised the alert.
        timestamp: When the alert was raised (UTC).
    """

    severity: Severity
    message: str
    metric: str = ""
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def text(self) -> str:
        """Transport text: severity tag followed by the message."""
        return f"[{self.severity.tag}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "severity": self.severity.tag,
            "message": self.message,
            "metric": self.metric,
            "timestamp": self.timestamp.isoformat(),
        }
