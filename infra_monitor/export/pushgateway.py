"""
Metrics push to a Prometheus Pushgateway.

One HTTP push per tick carries the whole batch to
``<gateway>/metrics/job/<job>/instance/<host>``, replacing the metrics this
instance pushed before. A failed push raises ExportError; the caller logs it
and the next tick pushes fresh data. Nothing is queued or retried.
"""

from urllib.parse import quote

import httpx
import structlog

from infra_monitor.errors import ExportError
from infra_monitor.export.exposition import ExportBatch, render_payload

logger = structlog.get_logger(__name__)

CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


class MetricsExporter:
    """
    Pushes rendered batches to the gateway.

    Creates a new ``httpx.AsyncClient`` per push (one request per tick,
    nothing to pool).

    Usage:
        exporter = MetricsExporter("http://localhost:9091", "infra_monitor", "web-01")
        await exporter.export(batch)
    """

    def __init__(
        self,
        gateway_url: str,
        job: str,
        instance: str,
        timeout: float = 10.0,
    ):
        self.gateway_url = gateway_url.rstrip("/")
        self.job = job
        self.instance = instance
        self._timeout = timeout

    @property
    def url(self) -> str:
        """Grouping-key URL for this job and instance."""
        return (
            f"{self.gateway_url}/metrics/job/{quote(self.job, safe='')}"
            f"/instance/{quote(self.instance, safe='')}"
        )

    def render(self, batch: ExportBatch) -> str:
        """Render a batch with this exporter's instance label."""
        return render_payload(batch, self.instance)

    async def export(self, batch: ExportBatch) -> str:
        """
        Push a batch to the gateway.

        Args:
            batch: The tick's samples.

        Returns:
            The payload that was pushed.

        Raises:
            ExportError: On connection failure, timeout or non-2xx response.
        """
        payload = self.render(batch)
        logger.info("Pushing all metrics to gateway", url=self.url, samples=len(batch))
        logger.info("Payload to push", payload=payload)

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(
                    self.url,
                    content=payload.encode("utf-8"),
                    headers={"Content-Type": CONTENT_TYPE},
                )
        except httpx.TimeoutException as e:
            raise ExportError(f"Push to {self.url} timed out") from e
        except httpx.HTTPError as e:
            raise ExportError(f"Push to {self.url} failed: {e}") from e

        if not resp.is_success:
            raise ExportError(
                f"Gateway returned {resp.status_code} for {self.url}",
                status_code=resp.status_code,
            )
        return payload
