"""Slot availability computed from the fixed daily catalog.

A slot is an ``"HH:00"`` string.  A slot is free on a date unless an
*active* appointment (neither cancelled nor completed) starts within that
hour.  Minutes are ignored: 10:00 and 10:45 bookings both block ``10:00``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.orm import Session

from jacob_hvac.config import Settings
from jacob_hvac.errors import ValidationError
from jacob_hvac.models import INACTIVE_STATUSES, Appointment

logger = logging.getLogger(__name__)

MAX_RANGE_DAYS = 31


def parse_date(value: date | str) -> date:
    """Accept a ``date`` or a ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise ValidationError(
            f"Invalid date {value!r}: expected YYYY-MM-DD format."
        ) from exc


def parse_timestamp(value: datetime | str, timezone: str) -> datetime:
    """Parse an ISO 8601 timestamp into naive business-local time.

    Offsets (including a trailing ``Z``) are converted to *timezone*; naive
    input is taken as already local.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationError(
                f"Invalid timestamp {value!r}: expected ISO 8601 format."
            ) from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(ZoneInfo(timezone)).replace(tzinfo=None)
    return parsed


def iter_dates(start: date, end: date):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def validate_range(start: date | str, end: date | str) -> tuple[date, date]:
    start_date, end_date = parse_date(start), parse_date(end)
    if end_date < start_date:
        raise ValidationError(
            f"End date {end_date.isoformat()} is before start date {start_date.isoformat()}."
        )
    if (end_date - start_date).days >= MAX_RANGE_DAYS:
        raise ValidationError(
            f"Date range too long: at most {MAX_RANGE_DAYS} days can be checked at once."
        )
    return start_date, end_date


class AvailabilityEngine:
    """Computes open slots against the appointments stored in *session*."""

    def __init__(self, session: Session, settings: Settings):
        self._session = session
        self._catalog = list(settings.slot_catalog)

    @property
    def catalog(self) -> list[str]:
        return list(self._catalog)

    def occupied_hours(self, day: date) -> set[int]:
        """Hours on *day* taken by at least one active appointment."""
        day_start = datetime.combine(day, time.min)
        day_end = day_start + timedelta(days=1)
        rows = self._session.execute(
            select(Appointment.scheduled_date).where(
                Appointment.scheduled_date >= day_start,
                Appointment.scheduled_date < day_end,
                Appointment.status.not_in(INACTIVE_STATUSES),
            )
        ).scalars()
        return {scheduled.hour for scheduled in rows}

    def available_slots(self, day: date | str) -> list[str]:
        """Catalog slots on *day* not occupied by an active appointment."""
        target = parse_date(day)
        occupied = self.occupied_hours(target)
        available = [slot for slot in self._catalog if int(slot.split(":")[0]) not in occupied]
        logger.debug(
            "Availability %s: %d/%d slots free (occupied hours: %s)",
            target, len(available), len(self._catalog), sorted(occupied),
        )
        return available

    def slots_between(self, start: date | str, end: date | str) -> dict[str, list[str]]:
        """Available slots for every date in ``[start, end]``, ascending."""
        start_date, end_date = validate_range(start, end)
        return {
            day.isoformat(): self.available_slots(day)
            for day in iter_dates(start_date, end_date)
        }
