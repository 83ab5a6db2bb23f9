"""Tests for the slot availability engine."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from jacob_hvac.config import DEFAULT_SLOT_CATALOG, Settings
from jacob_hvac.errors import ValidationError
from jacob_hvac.services.availability import (
    MAX_RANGE_DAYS,
    AvailabilityEngine,
    parse_date,
    parse_timestamp,
)

CATALOG = ["08:00", "09:00", "10:00", "11:00", "13:00", "14:00", "15:00", "16:00", "17:00"]


@pytest.fixture
def engine(db, settings):
    return AvailabilityEngine(db, settings)


class TestAvailableSlots:
    def test_catalog_is_the_default(self):
        assert list(DEFAULT_SLOT_CATALOG) == CATALOG

    def test_empty_day_returns_full_catalog(self, engine):
        assert engine.available_slots("2026-02-10") == CATALOG

    def test_active_appointment_removes_its_hour(self, engine, make_customer, make_appointment):
        customer = make_customer()
        make_appointment(customer, "2026-02-10T10:00:00")

        slots = engine.available_slots("2026-02-10")
        assert slots == [s for s in CATALOG if s != "10:00"]

    def test_accepts_date_objects(self, engine, make_customer, make_appointment):
        make_appointment(make_customer(), "2026-02-10T08:00:00")
        assert "08:00" not in engine.available_slots(date(2026, 2, 10))

    @pytest.mark.parametrize("status", ["cancelled", "completed"])
    def test_inactive_appointments_do_not_block(self, engine, make_customer, make_appointment, status):
        make_appointment(make_customer(), "2026-02-10T14:00:00", status=status)
        assert engine.available_slots("2026-02-10") == CATALOG

    @pytest.mark.parametrize("status", ["pending", "confirmed", "rescheduled"])
    def test_other_statuses_block(self, engine, make_customer, make_appointment, status):
        make_appointment(make_customer(), "2026-02-10T14:00:00", status=status)
        assert "14:00" not in engine.available_slots("2026-02-10")

    def test_minutes_within_an_hour_block_the_whole_slot(self, engine, make_customer, make_appointment):
        customer = make_customer()
        make_appointment(customer, "2026-02-10T09:15:00")
        make_appointment(customer, "2026-02-10T09:45:00")

        slots = engine.available_slots("2026-02-10")
        assert "09:00" not in slots
        assert len(slots) == len(CATALOG) - 1

    def test_other_days_are_unaffected(self, engine, make_customer, make_appointment):
        customer = make_customer()
        make_appointment(customer, "2026-02-09T23:00:00")
        make_appointment(customer, "2026-02-11T08:00:00")
        assert engine.available_slots("2026-02-10") == CATALOG

    def test_hours_outside_catalog_are_ignored(self, engine, make_customer, make_appointment):
        make_appointment(make_customer(), "2026-02-10T12:30:00")
        assert engine.available_slots("2026-02-10") == CATALOG

    def test_result_stays_ascending(self, engine, make_customer, make_appointment):
        customer = make_customer()
        for hour in ("17", "08", "13"):
            make_appointment(customer, f"2026-02-10T{hour}:00:00")
        slots = engine.available_slots("2026-02-10")
        assert slots == sorted(slots)
        assert slots == ["09:00", "10:00", "11:00", "14:00", "15:00", "16:00"]

    def test_custom_catalog_is_sorted(self, db):
        engine = AvailabilityEngine(db, Settings(slot_catalog=("15:00", "09:00")))
        assert engine.available_slots("2026-02-10") == ["09:00", "15:00"]

    def test_unpadded_catalog_comes_back_in_hour_order(self, db, make_customer, make_appointment):
        make_appointment(make_customer(), "2026-02-10T09:00:00")
        engine = AvailabilityEngine(db, Settings(slot_catalog=("8:00", "9:00", "10:00", "13:00")))
        assert engine.available_slots("2026-02-10") == ["08:00", "10:00", "13:00"]

    @pytest.mark.parametrize("bad", ["02/10/2026", "2026-13-01", "tomorrow", ""])
    def test_invalid_date_raises_validation_error(self, engine, bad):
        with pytest.raises(ValidationError):
            engine.available_slots(bad)


class TestSlotsBetween:
    def test_one_entry_per_day_in_order(self, engine, make_customer, make_appointment):
        make_appointment(make_customer(), "2026-02-11T11:00:00")

        days = engine.slots_between("2026-02-10", "2026-02-12")
        assert list(days) == ["2026-02-10", "2026-02-11", "2026-02-12"]
        assert days["2026-02-10"] == CATALOG
        assert "11:00" not in days["2026-02-11"]

    def test_single_day_range(self, engine):
        assert list(engine.slots_between("2026-02-10", "2026-02-10")) == ["2026-02-10"]

    def test_end_before_start_rejected(self, engine):
        with pytest.raises(ValidationError, match="before start date"):
            engine.slots_between("2026-02-12", "2026-02-10")

    def test_range_too_long_rejected(self, engine):
        with pytest.raises(ValidationError, match=str(MAX_RANGE_DAYS)):
            engine.slots_between("2026-01-01", "2026-03-01")


class TestParsing:
    def test_parse_date_string(self):
        assert parse_date("2026-02-10") == date(2026, 2, 10)

    def test_parse_date_from_datetime(self):
        assert parse_date(datetime(2026, 2, 10, 9, 30)) == date(2026, 2, 10)

    def test_naive_timestamp_kept_as_local(self):
        assert parse_timestamp("2026-02-10T10:00:00", "America/New_York") == datetime(2026, 2, 10, 10, 0)

    def test_utc_timestamp_converted_to_business_time(self):
        # 15:00 UTC is 10:00 in New York during EST.
        parsed = parse_timestamp("2026-02-10T15:00:00Z", "America/New_York")
        assert parsed == datetime(2026, 2, 10, 10, 0)
        assert parsed.tzinfo is None

    def test_invalid_timestamp(self):
        with pytest.raises(ValidationError, match="ISO 8601"):
            parse_timestamp("next tuesday", "America/New_York")
