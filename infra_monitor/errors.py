"""Error taxonomy for the monitoring agent.

Only ConfigMissingError is allowed to terminate the process. Everything else
is contained to the tick that produced it and retried on the next tick.
"""


class InfraMonitorError(Exception):
    """Base class for agent errors."""


class SourceUnavailableError(InfraMonitorError):
    """A metric source produced no output or output that is not a number."""


class SourceBusyError(SourceUnavailableError):
    """An earlier call to the same source has not returned yet."""


class TransportError(InfraMonitorError):
    """An outbound delivery (alert send or metrics push) failed."""


class ExportError(TransportError):
    """The metrics push to the gateway failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigMissingError(InfraMonitorError):
    """Configuration file is missing or invalid. Fatal at startup."""
