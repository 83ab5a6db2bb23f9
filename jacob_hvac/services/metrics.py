"""Per-call metrics for the external collaborators.

Every call to the model backend, the availability surface and Twilio is
wrapped in :meth:`MetricsClient.track`, which buffers a request count, a
latency sample and (on failure) an error count tagged with the exception
type.  Once :meth:`MetricsClient.configure` enables export (from
``Settings.metrics_enabled``), a daemon thread ships the buffer to
CloudWatch every minute; otherwise flushing just logs and discards.

>>> with metrics.track("availability", "GET /availability"):
...     client.slots_between(start, end)
"""

from __future__ import annotations

import atexit
import logging
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "JacobHVAC"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # PutMetricData limit


class MetricsClient:
    """Thread-safe metric buffer with optional CloudWatch export."""

    def __init__(self, enabled: bool = False) -> None:
        self._enabled = False
        self._flush_thread_started = False
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None
        self.configure(enabled)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def configure(self, enabled: bool) -> None:
        """Turn CloudWatch export on or off; the flush thread starts once."""
        self._enabled = enabled
        if enabled and not self._flush_thread_started:
            self._start_flush_thread()
            self._flush_thread_started = True

    @contextmanager
    def track(self, service: str, operation: str) -> Iterator[None]:
        """Time the wrapped block and record its outcome.

        Exceptions are recorded and re-raised unchanged.
        """
        started = time.perf_counter()
        try:
            yield
        except Exception as exc:
            self._record(service, operation, started, error_type=type(exc).__name__)
            raise
        self._record(service, operation, started)

    def flush(self) -> int:
        """Send buffered points to CloudWatch.  Returns the number sent."""
        with self._lock:
            batch, self._buffer = self._buffer, []
        if not batch:
            return 0
        if not self._enabled:
            logger.debug("Metrics disabled; dropped %d buffered points", len(batch))
            return 0

        sent = 0
        try:
            cloudwatch = self._get_cw_client()
            for offset in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[offset:offset + MAX_BATCH_SIZE]
                cloudwatch.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metric points to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._buffer)

    def _record(
        self,
        service: str,
        operation: str,
        started: float,
        error_type: str | None = None,
    ) -> None:
        latency_ms = (time.perf_counter() - started) * 1000
        now = datetime.now(UTC)
        outcome = "failure" if error_type else "success"
        points = [
            _point("ExternalCall/Count", now, 1, "Count",
                   Service=service, Operation=operation, Status=outcome),
            _point("ExternalCall/Latency", now, latency_ms, "Milliseconds",
                   Service=service, Operation=operation),
        ]
        if error_type:
            points.append(
                _point("ExternalCall/Errors", now, 1, "Count",
                       Service=service, ErrorType=error_type)
            )
        with self._lock:
            self._buffer.extend(points)
        logger.debug(
            "Metric: %s %s %s in %.1fms%s", service, operation, outcome, latency_ms,
            f" ({error_type})" if error_type else "",
        )

    def _get_cw_client(self):
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    def _start_flush_thread(self) -> None:
        def _loop():
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                self.flush()

        threading.Thread(target=_loop, daemon=True, name="metrics-flush").start()
        atexit.register(self.flush)
        logger.info("Metrics export enabled (every %ds)", FLUSH_INTERVAL_SECONDS)


def _point(name: str, timestamp: datetime, value: float, unit: str, **dimensions: str) -> dict:
    return {
        "MetricName": name,
        "Dimensions": [{"Name": key, "Value": val} for key, val in dimensions.items()],
        "Timestamp": timestamp,
        "Value": value,
        "Unit": unit,
    }


metrics = MetricsClient()
