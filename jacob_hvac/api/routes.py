"""FastAPI route definitions for the booking, chat and SMS API.

Database-backed endpoints are plain ``def`` handlers (FastAPI runs them in
its threadpool) and get a fresh SQLAlchemy session per request.  Errors are
not caught here: :class:`SchedulingError` subclasses and unexpected
exceptions are turned into the ``{"success": false, "error": ...}`` envelope
by the handlers registered in ``server.py``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from jacob_hvac.api.schemas import (
    AppointmentListItem,
    AppointmentListResponse,
    AppointmentOut,
    AppointmentResponse,
    AvailabilityRangeResponse,
    AvailabilityResponse,
    BatchSMSRequest,
    BatchSMSResponse,
    ChatMessageRequest,
    ChatMessageResponse,
    CreateAppointmentRequest,
    DayAvailability,
    DeliveryResultOut,
    HealthResponse,
    SendSMSRequest,
    SendSMSResponse,
    StartChatRequest,
    StartChatResponse,
    TemplatesResponse,
    UpdateStatusRequest,
)
from jacob_hvac.config import Settings
from jacob_hvac.db import session_scope
from jacob_hvac.errors import ValidationError
from jacob_hvac.prompts import get_greeting
from jacob_hvac.services.availability import AvailabilityEngine
from jacob_hvac.services.chat_store import ChatSessionStore
from jacob_hvac.services.ledger import AppointmentLedger
from jacob_hvac.services.notifications import TEMPLATES, NotificationDispatcher

logger = logging.getLogger(__name__)

router = APIRouter()

# Senders a client may post as; "user" is accepted for older widgets.
_CUSTOMER_SENDERS = {"customer", "user"}


# ── Dependencies ─────────────────────────────────────────────────────


def _app_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=503,
            detail="The service is still starting up. Please try again in a moment.",
        )
    return value


def get_settings(request: Request) -> Settings:
    return _app_state(request, "settings")


def get_db(request: Request) -> Iterator[Session]:
    with session_scope(_app_state(request, "session_factory")) as session:
        yield session


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return _app_state(request, "dispatcher")


def get_ledger(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> AppointmentLedger:
    return AppointmentLedger(db, settings, dispatcher)


# ── Health ───────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


# ── Appointments ─────────────────────────────────────────────────────


@router.post("/appointments/create", response_model=AppointmentResponse)
def create_appointment(
    body: CreateAppointmentRequest,
    ledger: AppointmentLedger = Depends(get_ledger),
):
    """Book an appointment.

    The slot is not re-checked here: two bookings for the same hour are both
    accepted.
    """
    appointment = ledger.create(
        customer_id=body.customer_id,
        service_type=body.service_type,
        scheduled_date=body.scheduled_date,
        notes=body.notes,
        urgency=body.urgency,
    )
    return AppointmentResponse(appointment=AppointmentOut.model_validate(appointment))


@router.get(
    "/availability",
    response_model=AvailabilityResponse | AvailabilityRangeResponse,
)
def get_availability(
    date: str | None = Query(None, description="Single day, YYYY-MM-DD"),
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Open slots for one ``date``, or for every day from ``startDate`` to ``endDate``."""
    engine = AvailabilityEngine(db, settings)
    if date:
        return AvailabilityResponse(date=date, available_slots=engine.available_slots(date))
    if start_date and end_date:
        days = engine.slots_between(start_date, end_date)
        return AvailabilityRangeResponse(
            start_date=start_date,
            end_date=end_date,
            days=[DayAvailability(date=day, available_slots=slots) for day, slots in days.items()],
        )
    raise ValidationError("Provide either date, or both startDate and endDate (YYYY-MM-DD).")


@router.get("/appointments/list", response_model=AppointmentListResponse)
def list_appointments(
    customer_id: int | None = Query(None, alias="customerId"),
    status: str | None = Query(None),
    date: str | None = Query(None),
    ledger: AppointmentLedger = Depends(get_ledger),
):
    rows = ledger.list(customer_id=customer_id, status=status, day=date)
    appointments = [
        AppointmentListItem(
            **AppointmentOut.model_validate(appointment).model_dump(),
            first_name=customer.first_name,
            last_name=customer.last_name,
            phone=customer.phone,
        )
        for appointment, customer in rows
    ]
    return AppointmentListResponse(appointments=appointments)


@router.put("/appointments/{appointment_id}/status", response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    body: UpdateStatusRequest,
    ledger: AppointmentLedger = Depends(get_ledger),
):
    """Set any status string; transitions are not validated."""
    appointment = ledger.update_status(appointment_id, body.status)
    return AppointmentResponse(appointment=AppointmentOut.model_validate(appointment))


# ── Chat ─────────────────────────────────────────────────────────────


@router.post("/chat/start", response_model=StartChatResponse)
def start_chat(
    body: StartChatRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    started = ChatSessionStore(db).start_session(
        body.customer_name, body.customer_phone, body.customer_email,
    )
    return StartChatResponse(
        session_id=started.session_id,
        customer_id=started.customer_id,
        message=get_greeting(settings, started.first_name),
    )


@router.post("/chat/message", response_model=ChatMessageResponse)
async def send_chat_message(body: ChatMessageRequest, request: Request):
    """Run one conversational turn and return the assistant's reply.

    ``handle_message`` blocks on the database and the model backend, so it
    runs in a worker thread to keep the event loop free.
    """
    orchestrator = _app_state(request, "orchestrator")
    if body.sender not in _CUSTOMER_SENDERS:
        raise ValidationError(f"Invalid sender {body.sender!r}: only customer messages can be posted.")

    reply = await asyncio.to_thread(orchestrator.handle_message, body.session_id, body.message)
    return ChatMessageResponse(response=reply)


# ── SMS ──────────────────────────────────────────────────────────────


@router.post("/sms/send", response_model=SendSMSResponse)
def send_sms(body: SendSMSRequest, dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    result = dispatcher.send(body.to, body.message, body.variables)
    return SendSMSResponse(result=DeliveryResultOut.model_validate(result))


@router.post("/sms/batch", response_model=BatchSMSResponse)
def send_batch_sms(body: BatchSMSRequest, dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    results = dispatcher.send_batch(body.recipients, body.message, body.variables)
    return BatchSMSResponse(results=[DeliveryResultOut.model_validate(r) for r in results])


@router.get("/sms/templates", response_model=TemplatesResponse)
async def list_templates():
    return TemplatesResponse(templates=TEMPLATES)
