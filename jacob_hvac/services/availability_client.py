"""Availability lookups used by the chat tool path.

The orchestrator never touches the database for availability; it goes
through an :class:`AvailabilityLookup`:

* :class:`AvailabilityClient` calls the booking API's ``GET /availability``
  endpoint over HTTP, with exponential-backoff retries for timeouts,
  connection errors and 5xx responses.
* :class:`LocalAvailabilityLookup` runs the engine in-process on a fresh
  database session (single-process deployments, the CLI).
"""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Any, Protocol

import httpx
from sqlalchemy.orm import Session, sessionmaker

from jacob_hvac.config import Settings
from jacob_hvac.db import session_scope
from jacob_hvac.errors import UpstreamError
from jacob_hvac.services.availability import AvailabilityEngine, validate_range
from jacob_hvac.services.metrics import metrics

logger = logging.getLogger(__name__)

# ── Retry configuration ─────────────────────────────────────────────
MAX_RETRIES = 3
INITIAL_BACKOFF_SECONDS = 1.0
REQUEST_TIMEOUT_SECONDS = 15.0


class AvailabilityLookup(Protocol):
    def slots_between(self, start: date, end: date) -> dict[str, list[str]]:
        """Map ISO date -> available ``HH:00`` slots for each day in range."""


class AvailabilityClient:
    """HTTP client for the availability query surface."""

    def __init__(self, base_url: str, *, http_client: httpx.Client | None = None):
        self._base_url = base_url.rstrip("/")
        self._client = http_client or httpx.Client(
            base_url=self._base_url, timeout=REQUEST_TIMEOUT_SECONDS,
        )

    def close(self) -> None:
        self._client.close()

    def _get(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        """GET with retries.  4xx responses fail immediately."""
        last_error: Exception | None = None
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                response = self._client.request("GET", path, params=params)
                if response.status_code >= 500:
                    raise UpstreamError(
                        f"Availability service error {response.status_code}: {response.text}",
                        status_code=response.status_code,
                    )
                if response.status_code >= 400:
                    raise UpstreamError(
                        f"Availability request rejected ({response.status_code}): {response.text}",
                        status_code=response.status_code,
                    )
                return response.json()

            except (httpx.TimeoutException, httpx.ConnectError) as exc:
                last_error = exc
            except UpstreamError as exc:
                if not exc.upstream_status or exc.upstream_status < 500:
                    raise
                last_error = exc

            if attempt < MAX_RETRIES:
                backoff = INITIAL_BACKOFF_SECONDS * (2 ** (attempt - 1))
                logger.warning(
                    "Availability lookup attempt %d/%d failed (%s). Retrying in %.1fs",
                    attempt, MAX_RETRIES, last_error, backoff,
                )
                time.sleep(backoff)

        raise UpstreamError(
            f"Availability lookup failed after {MAX_RETRIES} attempts: {last_error}"
        )

    def slots_between(self, start: date | str, end: date | str) -> dict[str, list[str]]:
        """Fetch a whole date range in one request."""
        start_date, end_date = validate_range(start, end)
        with metrics.track("availability", "GET /availability range"):
            data = self._get(
                "/availability",
                {"startDate": start_date.isoformat(), "endDate": end_date.isoformat()},
            )
        return {day["date"]: list(day["availableSlots"]) for day in data.get("days", [])}


class LocalAvailabilityLookup:
    """Runs :class:`AvailabilityEngine` directly against the database."""

    def __init__(self, session_factory: sessionmaker[Session], settings: Settings):
        self._session_factory = session_factory
        self._settings = settings

    def slots_between(self, start: date | str, end: date | str) -> dict[str, list[str]]:
        with metrics.track("availability", "local"), session_scope(self._session_factory) as session:
            return AvailabilityEngine(session, self._settings).slots_between(start, end)
