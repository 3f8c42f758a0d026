"""Agent configuration."""

from infra_monitor.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
