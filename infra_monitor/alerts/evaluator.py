"""Stateless threshold evaluation for collected samples.

Each function checks one sample and returns an AlertEvent when the sample
crosses its threshold, or None otherwise. No I/O, no state: every tick
re-evaluates from scratch, so a metric that stays high alerts on every tick.

Service status has no threshold tier: a down service is always CRIT.
"""

from infra_monitor.alerts.schemas import AlertEvent, Severity, Threshold, Thresholds
from infra_monitor.collectors.schemas import (
    CPU_USAGE,
    DISK_USAGE,
    MEMORY_USAGE,
    NETWORK_PACKET_LOSS,
    SERVICE_STATUS,
    MetricSample,
)


def evaluate(value: float, threshold: Threshold) -> Severity:
    """Classify a value against a warning/critical pair.

    The critical boundary is checked first, so a value at or above both
    boundaries is CRIT.

    Args:
        value: The measured value (higher = worse).
        threshold: Boundaries; ``inclusive`` selects ``>=`` over ``>``.

    Returns:
        Severity: OK, WARN or CRIT.
    """
    if threshold.inclusive:
        if value >= threshold.crit:
            return Severity.CRIT
        if value >= threshold.warn:
            return Severity.WARN
        return Severity.OK

    if value > threshold.crit:
        return Severity.CRIT
    if value > threshold.warn:
        return Severity.WARN
    return Severity.OK


def threshold_for(name: str, thresholds: Thresholds) -> Threshold | None:
    """Return the threshold for a metric name, or None for untiered metrics."""
    return {
        CPU_USAGE: thresholds.cpu,
        MEMORY_USAGE: thresholds.memory,
        DISK_USAGE: thresholds.disk,
        NETWORK_PACKET_LOSS: thresholds.network_loss,
    }.get(name)


def _format_value(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def describe(sample: MetricSample, disk_path: str = "/") -> str:
    """Alert message for a threshold-bearing sample."""
    value = _format_value(sample.value)
    if sample.name == CPU_USAGE:
        return f"CPU usage is at {value}%"
    if sample.name == MEMORY_USAGE:
        return f"Memory usage is at {value}%"
    if sample.name == DISK_USAGE:
        return f"Disk usage on {disk_path} is at {value}%"
    if sample.name == NETWORK_PACKET_LOSS:
        return f"Network packet loss is at {value}%"
    return f"{sample.name} is at {value}"


def check_sample(
    sample: MetricSample,
    threshold: Threshold,
    disk_path: str = "/",
) -> AlertEvent | None:
    """Alert for a sample at WARN or CRIT.

    Args:
        sample: Collected sample.
        threshold: Threshold for the sample's metric.
        disk_path: Mount point named in disk alerts.

    Returns:
        AlertEvent or None.
    """
    severity = evaluate(sample.value, threshold)
    if severity is Severity.OK:
        return None
    return AlertEvent(
        severity=severity,
        message=describe(sample, disk_path=disk_path),
        metric=sample.name,
    )


def check_service(sample: MetricSample) -> AlertEvent | None:
    """CRIT alert for a service status sample of 0, independent of thresholds."""
    if sample.name != SERVICE_STATUS or sample.value != 0:
        return None
    service = sample.label("service") or "unknown"
    return AlertEvent(
        severity=Severity.CRIT,
        message=f"Service {service} is DOWN!",
        metric=SERVICE_STATUS,
    )


def evaluate_batch(
    samples: tuple[MetricSample, ...] | list[MetricSample],
    thresholds: Thresholds,
    disk_path: str = "/",
) -> list[AlertEvent]:
    """
    Evaluate every sample of a tick.

    Failure defaults are evaluated like real readings, so an unreachable
    ping target (100% loss) raises a CRIT alert.

    Args:
        samples: The tick's batch, in collection order.
        thresholds: Configured thresholds.
        disk_path: Mount point named in disk alerts.

    Returns:
        Alert events in sample order.
    """
    events: list[AlertEvent] = []
    for sample in samples:
        if sample.name == SERVICE_STATUS:
            event = check_service(sample)
        else:
            threshold = threshold_for(sample.name, thresholds)
            if threshold is None:
                continue
            event = check_sample(sample, threshold, disk_path=disk_path)
        if event is not None:
            events.append(event)
    return events
