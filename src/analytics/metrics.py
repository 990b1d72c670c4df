"""
Prometheus metric source.

Runs a PromQL range query over a window and returns the series keyed by label.
Transient failures (503, timeouts, network errors) are retried with exponential
backoff; API errors are raised immediately.

Usage:
    async with PrometheusMetricSource("http://localhost:9090", "rate(http_requests_total[1m])") as ms:
        result = await ms.query(from_, to, step)
"""

import asyncio
from typing import Any, Optional

import aiohttp
import structlog

from .errors import MetricQueryError
from .models import MetricQueryResult, Sample, TimeSeries

logger = structlog.get_logger(__name__)


def series_label(metric: dict[str, str]) -> str:
    """Render a Prometheus label set as name{k="v",...}"""
    name = metric.get("__name__", "")
    labels = ",".join(f'{k}="{v}"' for k, v in sorted(metric.items()) if k != "__name__")
    return f"{name}{{{labels}}}" if labels else name or "{}"


def parse_range_result(data: dict[str, Any]) -> MetricQueryResult:
    """Convert the data field of a query_range response"""
    result = MetricQueryResult()
    for item in data.get("result", []):
        series: TimeSeries = [
            Sample(int(float(ts)), float(value)) for ts, value in item.get("values", [])
        ]
        result.data[series_label(item.get("metric", {}))] = series
    return result


class PrometheusMetricSource:
    """Async metric source backed by the Prometheus HTTP API"""

    def __init__(
        self,
        base_url: str,
        query: str,
        max_retries: int = 3,
        timeout_seconds: int = 30,
    ):
        self.base_url = base_url.rstrip("/")
        self.promql = query
        self.max_retries = max_retries
        self.timeout_seconds = timeout_seconds
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            headers={"Accept": "application/json"},
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.session = None

    async def query(self, from_: int, to: int, step: int) -> MetricQueryResult:
        """Run the configured query over [from_, to] at step seconds

        Raises:
            MetricQueryError: If Prometheus cannot answer after all retries
        """
        params = {"query": self.promql, "start": from_, "end": to, "step": step}
        data = await self._get_with_retry(f"{self.base_url}/api/v1/query_range", params)
        result = parse_range_result(data)

        logger.debug(
            "Prometheus range query finished",
            query=self.promql,
            from_=from_,
            to=to,
            step=step,
            series=len(result.data),
        )
        return result

    async def _get_with_retry(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        if not self.session:
            raise RuntimeError("Metric source not opened. Use 'async with'.")

        for attempt in range(1, self.max_retries + 1):
            try:
                async with self.session.get(url, params=params) as resp:
                    if resp.status == 503:
                        raise aiohttp.ClientError("Prometheus unavailable (503)")

                    if resp.status != 200:
                        text = await resp.text()
                        raise MetricQueryError(f"HTTP {resp.status}: {text}")

                    body = await resp.json()
                    if body.get("status") != "success":
                        raise MetricQueryError(
                            f"Prometheus query failed [{body.get('errorType', 'unknown')}]: "
                            f"{body.get('error', 'unknown error')}"
                        )
                    return body.get("data", {})

            except (asyncio.TimeoutError, aiohttp.ClientError) as e:
                logger.warning(
                    "Prometheus request failed",
                    attempt=attempt,
                    max_retries=self.max_retries,
                    error=str(e) or type(e).__name__,
                )
                if attempt == self.max_retries:
                    raise MetricQueryError(
                        f"Prometheus query failed after {self.max_retries} attempts: {e}"
                    ) from e
                await asyncio.sleep(2**attempt)

        raise MetricQueryError("Prometheus query was not attempted (max_retries < 1)")
