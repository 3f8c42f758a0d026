"""Exposition-format rendering and gateway push."""

from infra_monitor.export.exposition import ExportBatch, render_payload
from infra_monitor.export.pushgateway import MetricsExporter

__all__ = ["ExportBatch", "MetricsExporter", "render_payload"]
