"""Tests for the appointment ledger."""

from __future__ import annotations

from datetime import datetime

import pytest

from jacob_hvac.errors import NotFoundError, ValidationError
from jacob_hvac.models import Appointment
from jacob_hvac.services.availability import AvailabilityEngine
from jacob_hvac.services.ledger import AppointmentLedger
from jacob_hvac.services.notifications import DeliveryResult


@pytest.fixture
def ledger(db, settings, mock_dispatcher):
    return AppointmentLedger(db, settings, mock_dispatcher)


class TestCreate:
    def test_creates_pending_appointment(self, ledger, make_customer):
        customer = make_customer()
        appointment = ledger.create(
            customer.id, "heater-repair", "2026-02-10T10:00:00", "No heat upstairs", None,
        )
        assert appointment.id is not None
        assert appointment.status == "pending"
        assert appointment.urgency == "normal"
        assert appointment.scheduled_date == datetime(2026, 2, 10, 10, 0)
        assert appointment.notes == "No heat upstairs"

    def test_sends_confirmation_template(self, ledger, make_customer, mock_dispatcher, settings):
        customer = make_customer(phone="412-555-0199", first_name="Sam")
        ledger.create(customer.id, "ac-repair", "2026-02-10T14:00:00", None, "emergency")

        mock_dispatcher.send.assert_called_once()
        phone, template, variables = mock_dispatcher.send.call_args[0]
        assert phone == "412-555-0199"
        assert template == "appointmentConfirmation"
        assert variables["customerName"] == "Sam"
        assert variables["serviceType"] == "ac-repair"
        assert variables["businessName"] == settings.business_name
        assert variables["businessPhone"] == settings.business_phone
        assert variables["date"] == "02/10/2026"
        assert variables["time"] == "2:00 PM"

    def test_failed_delivery_keeps_appointment(self, ledger, make_customer, mock_dispatcher, db):
        mock_dispatcher.send.return_value = DeliveryResult(to="x", success=False, error="down")
        appointment = ledger.create(make_customer().id, "installation", "2026-02-10T09:00:00")
        assert db.get(Appointment, appointment.id) is not None

    def test_dispatcher_exception_keeps_appointment(self, ledger, make_customer, mock_dispatcher, db):
        mock_dispatcher.send.side_effect = RuntimeError("transport exploded")
        appointment = ledger.create(make_customer().id, "installation", "2026-02-10T09:00:00")
        assert db.get(Appointment, appointment.id).status == "pending"

    def test_works_without_dispatcher(self, db, settings, make_customer):
        ledger = AppointmentLedger(db, settings)
        assert ledger.create(make_customer().id, "water-heater", "2026-02-10T09:00:00").id

    def test_unknown_customer(self, ledger):
        with pytest.raises(NotFoundError, match="Customer 999"):
            ledger.create(999, "ac-repair", "2026-02-10T09:00:00")

    def test_unknown_service_type(self, ledger, make_customer):
        with pytest.raises(ValidationError, match="service type"):
            ledger.create(make_customer().id, "plumbing", "2026-02-10T09:00:00")

    def test_unknown_urgency(self, ledger, make_customer):
        with pytest.raises(ValidationError, match="urgency"):
            ledger.create(make_customer().id, "ac-repair", "2026-02-10T09:00:00", None, "asap")

    def test_bad_timestamp(self, ledger, make_customer):
        with pytest.raises(ValidationError):
            ledger.create(make_customer().id, "ac-repair", "Feb 10th")

    def test_double_booking_same_hour_is_allowed(self, ledger, make_customer, db, settings):
        """Creation does not re-check the slot; both bookings are kept."""
        first = ledger.create(make_customer("412-555-0001").id, "ac-repair", "2026-02-10T10:00:00")
        second = ledger.create(make_customer("412-555-0002").id, "heater-repair", "2026-02-10T10:30:00")

        assert first.id != second.id
        assert db.get(Appointment, first.id) is not None
        assert db.get(Appointment, second.id) is not None
        assert "10:00" not in AvailabilityEngine(db, settings).available_slots("2026-02-10")


class TestList:
    def test_orders_by_scheduled_time(self, ledger, make_customer, make_appointment):
        customer = make_customer()
        make_appointment(customer, "2026-02-12T09:00:00")
        make_appointment(customer, "2026-02-10T15:00:00")
        make_appointment(customer, "2026-02-10T08:00:00")

        rows = ledger.list()
        times = [appointment.scheduled_date for appointment, _ in rows]
        assert times == sorted(times)
        assert len(rows) == 3

    def test_rows_carry_customer_fields(self, ledger, make_customer, make_appointment):
        make_appointment(make_customer(first_name="Ann", last_name="Lee"), "2026-02-10T09:00:00")
        (appointment, customer), = ledger.list()
        assert (customer.first_name, customer.last_name, customer.phone) == ("Ann", "Lee", "412-555-0100")

    def test_filters_combine_with_and(self, ledger, make_customer, make_appointment):
        alice = make_customer("412-555-0001", "Alice")
        bob = make_customer("412-555-0002", "Bob")
        make_appointment(alice, "2026-02-10T09:00:00", status="confirmed")
        make_appointment(alice, "2026-02-10T11:00:00", status="pending")
        make_appointment(alice, "2026-02-11T09:00:00", status="confirmed")
        make_appointment(bob, "2026-02-10T13:00:00", status="confirmed")

        assert len(ledger.list(customer_id=alice.id)) == 3
        assert len(ledger.list(status="confirmed")) == 3
        assert len(ledger.list(day="2026-02-10")) == 3
        rows = ledger.list(customer_id=alice.id, status="confirmed", day="2026-02-10")
        assert [a.scheduled_date.hour for a, _ in rows] == [9]

    def test_no_matches(self, ledger):
        assert ledger.list(status="completed") == []

    def test_invalid_date_filter(self, ledger):
        with pytest.raises(ValidationError):
            ledger.list(day="10-02-2026")


class TestUpdateStatus:
    def test_updates_and_stamps(self, ledger, make_customer, make_appointment):
        appointment = make_appointment(make_customer(), "2026-02-10T09:00:00")
        before = appointment.updated_at

        updated = ledger.update_status(appointment.id, "confirmed")
        assert updated.status == "confirmed"
        assert updated.updated_at >= before

    @pytest.mark.parametrize("status", ["completed", "pending", "on-hold", "anything at all"])
    def test_accepts_any_status_string(self, ledger, make_customer, make_appointment, status):
        """No transition table: even values outside the enum are stored."""
        appointment = make_appointment(make_customer(), "2026-02-10T09:00:00", status="cancelled")
        assert ledger.update_status(appointment.id, status).status == status

    def test_unknown_appointment(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.update_status(4242, "confirmed")

    def test_cancelling_frees_the_slot(self, ledger, make_customer, make_appointment, db, settings):
        appointment = make_appointment(make_customer(), "2026-02-10T16:00:00")
        engine = AvailabilityEngine(db, settings)
        assert "16:00" not in engine.available_slots("2026-02-10")

        ledger.update_status(appointment.id, "cancelled")
        assert "16:00" in engine.available_slots("2026-02-10")
