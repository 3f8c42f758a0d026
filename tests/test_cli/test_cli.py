"""Tests for the command-line interface."""

import http.server
import logging
import os
import signal
import subprocess
import sys
import threading
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from infra_monitor.cli import main
from infra_monitor.errors import ExportError

CONFIG = """\
SERVICE_PORTS={"nginx": 80, "redis": 6379}
PROMETHEUS_PUSHGATEWAY=http://gateway.test:9091
INSTANCE_NAME=cli-host
LOG_FILE=
COLLECTOR_TIMEOUT_SECONDS=1
"""


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """Commands install their own root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "infra_monitor.conf"
    path.write_text(CONFIG)
    return str(path)


class TestCheckConfig:
    def test_prints_configuration(self, runner, config_file):
        result = runner.invoke(main, ["--config", config_file, "check-config"])

        assert result.exit_code == 0, result.output
        assert "cli-host" in result.output
        assert "nginx: 80" in result.output
        assert "Configuration OK" in result.output

    def test_empty_webhook_url_is_not_a_channel(self, runner, tmp_path):
        path = tmp_path / "infra_monitor.conf"
        path.write_text(CONFIG + "ALERT_WEBHOOK_URL=\n")

        result = runner.invoke(main, ["--config", str(path), "check-config"])

        assert result.exit_code == 0, result.output
        assert "webhook:   False" in result.output

    def test_missing_config_exits_nonzero(self, runner, tmp_path):
        missing = str(tmp_path / "missing.conf")

        result = runner.invoke(main, ["--config", missing, "check-config"])

        assert result.exit_code == 1
        assert "Configuration error" in result.output


class TestRunOnce:
    def test_mock_tick_without_push(self, runner, config_file):
        result = runner.invoke(main, ["--config", config_file, "run-once", "--mock", "--no-push"])

        assert result.exit_code == 0, result.output
        assert 'instance="cli-host"' in result.output
        assert "# TYPE cpu_usage gauge" in result.output
        assert 'service_status{service="redis",port="6379",instance="cli-host"}' in result.output

    def test_failed_push_exits_nonzero(self, runner, config_file):
        with patch(
            "infra_monitor.export.pushgateway.MetricsExporter.export",
            new=AsyncMock(side_effect=ExportError("Gateway returned 500", status_code=500)),
        ):
            result = runner.invoke(main, ["--config", config_file, "run-once", "--mock"])

        assert result.exit_code == 1
        assert "Push to gateway failed" in result.output

    def test_successful_push(self, runner, config_file):
        with patch(
            "infra_monitor.export.pushgateway.MetricsExporter.export",
            new=AsyncMock(return_value=""),
        ) as mock_export:
            result = runner.invoke(main, ["--config", config_file, "run-once", "--mock"])

        assert result.exit_code == 0, result.output
        mock_export.assert_awaited_once()


class TestHelp:
    def test_help_needs_no_config(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "run-once" in result.output
        assert "check-config" in result.output


class _GatewayHandler(http.server.BaseHTTPRequestHandler):
    """Accepts pushes and remembers their paths."""

    pushes: list[str] = []

    def do_POST(self):
        self.rfile.read(int(self.headers.get("Content-Length", 0)))
        self.pushes.append(self.path)
        self.send_response(200)
        self.end_headers()

    def log_message(self, format, *args):
        pass


@pytest.fixture
def gateway():
    _GatewayHandler.pushes = []
    server = http.server.ThreadingHTTPServer(("127.0.0.1", 0), _GatewayHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.mark.skipif(sys.platform == "win32", reason="needs SIGTERM")
class TestRunSignals:
    def test_sigterm_stops_cleanly_without_another_push(self, tmp_path, gateway):
        config = tmp_path / "infra_monitor.conf"
        config.write_text(
            f"PROMETHEUS_PUSHGATEWAY=http://127.0.0.1:{gateway.server_port}\n"
            "INSTANCE_NAME=signal-host\n"
            "INTERVAL_SECONDS=60\n"
            "LOG_FILE=\n"
        )
        env = {
            **os.environ,
            "PYTHONPATH": str(Path(__file__).resolve().parents[2]),
            "PYTHONUNBUFFERED": "1",
        }

        proc = subprocess.Popen(
            [
                sys.executable, "-m", "infra_monitor.cli",
                "--config", str(config), "run", "--mock", "--no-metrics",
            ],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            env=env,
        )
        watchdog = threading.Timer(30, proc.kill)
        watchdog.start()
        try:
            lines = []
            for line in proc.stdout:
                lines.append(line)
                if "Tick completed" in line:
                    break

            proc.send_signal(signal.SIGTERM)
            rest, _ = proc.communicate(timeout=15)
        finally:
            watchdog.cancel()
        output = "".join(lines) + rest

        assert proc.returncode == 0, output
        assert "Agent terminated" in output
        assert gateway.RequestHandlerClass.pushes == [
            "/metrics/job/infra_monitor/instance/signal-host"
        ]
        after_stop = output.split("Stopping scheduler", 1)[1]
        assert "Pushing all metrics" not in after_stop
