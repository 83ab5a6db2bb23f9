"""Appointment ledger: create, list and update bookings.

Known limitation: :meth:`AppointmentLedger.create` does not check the slot
against existing bookings.  Callers consult the availability engine first,
but nothing stops two concurrent requests for the same hour from both
committing.  Both rows are kept.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from jacob_hvac.config import Settings
from jacob_hvac.errors import NotFoundError, ValidationError
from jacob_hvac.models import (
    Appointment,
    AppointmentStatus,
    Customer,
    ServiceType,
    Urgency,
    utcnow,
)
from jacob_hvac.services.availability import parse_date, parse_timestamp
from jacob_hvac.services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

CONFIRMATION_TEMPLATE = "appointmentConfirmation"


def _enum_value(enum_cls, value: str, field: str) -> str:
    try:
        return enum_cls(value).value
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field} {value!r}. Expected one of: {allowed}.") from exc


class AppointmentLedger:
    def __init__(
        self,
        session: Session,
        settings: Settings,
        dispatcher: NotificationDispatcher | None = None,
    ):
        self._session = session
        self._settings = settings
        self._dispatcher = dispatcher

    def get(self, appointment_id: int) -> Appointment:
        appointment = self._session.get(Appointment, appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment {appointment_id} not found.")
        return appointment

    def create(
        self,
        customer_id: int,
        service_type: str,
        scheduled_date: datetime | str,
        notes: str | None = None,
        urgency: str | None = None,
    ) -> Appointment:
        """Book an appointment in ``pending`` status and text a confirmation."""
        customer = self._session.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found.")

        appointment = Appointment(
            customer_id=customer.id,
            service_type=_enum_value(ServiceType, service_type, "service type"),
            scheduled_date=parse_timestamp(scheduled_date, self._settings.timezone),
            notes=notes,
            urgency=_enum_value(Urgency, urgency or Urgency.NORMAL.value, "urgency"),
            status=AppointmentStatus.PENDING.value,
        )
        self._session.add(appointment)
        self._session.commit()
        self._session.refresh(appointment)
        logger.info(
            "Created appointment %s: customer=%s service=%s at %s (%s)",
            appointment.id, customer.id, appointment.service_type,
            appointment.scheduled_date.isoformat(), appointment.urgency,
        )

        self._send_confirmation(customer, appointment)
        return appointment

    def list(
        self,
        customer_id: int | None = None,
        status: str | None = None,
        day: date | str | None = None,
    ) -> list[tuple[Appointment, Customer]]:
        """Appointments joined with their customer, oldest slot first.

        Filters are ANDed; ``None`` means "no constraint".
        """
        query = select(Appointment, Customer).join(Customer, Appointment.customer_id == Customer.id)
        if customer_id is not None:
            query = query.where(Appointment.customer_id == customer_id)
        if status:
            query = query.where(Appointment.status == status)
        if day:
            day_start = datetime.combine(parse_date(day), time.min)
            query = query.where(
                Appointment.scheduled_date >= day_start,
                Appointment.scheduled_date < day_start + timedelta(days=1),
            )
        query = query.order_by(Appointment.scheduled_date.asc(), Appointment.id.asc())
        return [tuple(row) for row in self._session.execute(query).all()]

    def update_status(self, appointment_id: int, new_status: str) -> Appointment:
        """Set *new_status* unconditionally.

        There is no transition table: any string is stored, including values
        outside :class:`AppointmentStatus`.
        """
        appointment = self.get(appointment_id)
        previous = appointment.status
        appointment.status = new_status
        appointment.updated_at = utcnow()
        self._session.commit()
        self._session.refresh(appointment)
        logger.info("Appointment %s status %s -> %s", appointment_id, previous, new_status)
        return appointment

    def _send_confirmation(self, customer: Customer, appointment: Appointment) -> None:
        if self._dispatcher is None:
            return
        scheduled = appointment.scheduled_date
        variables = {
            "businessName": self._settings.business_name,
            "customerName": customer.first_name,
            "serviceType": appointment.service_type,
            "date": scheduled.strftime("%m/%d/%Y"),
            "time": scheduled.strftime("%I:%M %p").lstrip("0"),
            "businessPhone": self._settings.business_phone,
        }
        try:
            result = self._dispatcher.send(customer.phone, CONFIRMATION_TEMPLATE, variables)
        except Exception:
            logger.exception("Confirmation SMS for appointment %s failed", appointment.id)
            return
        if not result.success:
            logger.warning(
                "Confirmation SMS for appointment %s not delivered: %s",
                appointment.id, result.error,
            )
