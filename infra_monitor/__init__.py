"""Host-local telemetry agent: collect, evaluate, alert, push."""

__version__ = "0.1.0"
