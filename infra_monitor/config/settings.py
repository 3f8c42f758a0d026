"""Agent settings using Pydantic Settings, loaded once from a declarative config file."""

import os
import socket
from pathlib import Path
from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from infra_monitor.alerts.schemas import Threshold, Thresholds
from infra_monitor.collectors.schemas import ServiceSpec
from infra_monitor.errors import ConfigMissingError

DEFAULT_CONFIG_FILE = "infra_monitor.conf"


class Settings(BaseSettings):
    """
    Central configuration for the monitoring agent.

    Values come from a ``KEY=value`` config file (never executed) and can be
    overridden by environment variables. Keys are case-insensitive, so the
    file may use ``CPU_WARN=80`` style names.
    """

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_file: str | None = "infra_monitor.log"

    # Thresholds (percent)
    cpu_warn: float = 80.0
    cpu_crit: float = 95.0
    mem_warn: float = 70.0
    mem_crit: float = 90.0
    disk_warn: float = 80.0
    disk_crit: float = 90.0

    # Services checked on localhost, in export order
    service_ports: dict[str, int] = Field(
        default_factory=lambda: {"nginx": 80, "postgres": 5432, "redis": 6379}
    )

    # Alert transports
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None
    alert_webhook_url: str | None = None

    # Metrics gateway
    prometheus_pushgateway: str = "http://localhost:9091"
    instance_name: str = Field(default_factory=socket.gethostname)
    job_name: str = "infra_monitor"

    # Scheduling
    interval_seconds: float = Field(default=5.0, gt=0)
    collector_timeout_seconds: float = Field(default=5.0, gt=0)
    http_timeout_seconds: float = Field(default=10.0, gt=0)

    # Metric sources
    cpu_sample_seconds: float = Field(default=1.0, ge=0)
    disk_io_window_seconds: float = Field(default=1.0, gt=0)
    disk_path: str = "/"
    ping_host: str = "8.8.8.8"
    ping_count: int = Field(default=3, ge=1, le=100)

    # Observability
    metrics_port: int = Field(default=0, ge=0, le=65535)
    otel_exporter_otlp_endpoint: str | None = None
    otel_service_name: str = "infra-monitor"

    @field_validator("service_ports")
    @classmethod
    def _check_ports(cls, value: dict[str, int]) -> dict[str, int]:
        for name, port in value.items():
            if not 0 < port < 65536:
                raise ValueError(f"Port for service {name!r} out of range: {port}")
        return value

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def telegram_configured(self) -> bool:
        """Check if Telegram alert delivery is configured."""
        return bool(self.telegram_bot_token) and bool(self.telegram_chat_id)

    @property
    def tracing_enabled(self) -> bool:
        """Tracing is on when an OTLP endpoint is configured."""
        return bool(self.otel_exporter_otlp_endpoint)

    @property
    def thresholds(self) -> Thresholds:
        """Immutable threshold table built from the configured pairs."""
        return Thresholds(
            cpu=Threshold(warn=self.cpu_warn, crit=self.cpu_crit),
            memory=Threshold(warn=self.mem_warn, crit=self.mem_crit),
            disk=Threshold(warn=self.disk_warn, crit=self.disk_crit),
        )

    @property
    def services(self) -> tuple[ServiceSpec, ...]:
        """Configured services in configuration order."""
        return tuple(
            ServiceSpec(name=name, port=port)
            for name, port in self.service_ports.items()
        )


def load_settings(config_file: str | Path | None = None) -> Settings:
    """
    Load settings from a config file.

    The file is required: a missing or invalid file raises
    ConfigMissingError so the process can exit before entering the loop.

    Args:
        config_file: Path to the config file. Defaults to
            ``$INFRA_MONITOR_CONFIG`` or ``./infra_monitor.conf``.

    Returns:
        Validated, frozen Settings.
    """
    path = Path(
        config_file
        or os.environ.get("INFRA_MONITOR_CONFIG")
        or DEFAULT_CONFIG_FILE
    )
    if not path.is_file():
        raise ConfigMissingError(f"Configuration file not found: {path}")

    try:
        return Settings(_env_file=path)
    except ValidationError as e:
        raise ConfigMissingError(f"Invalid configuration in {path}: {e}") from e

