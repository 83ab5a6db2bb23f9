"""Pydantic schemas for the booking, chat and SMS endpoints.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True,
    )


class Envelope(ApiModel):
    success: bool = True


# ── Appointments ─────────────────────────────────────────────────────


class CreateAppointmentRequest(ApiModel):
    customer_id: int
    service_type: str = Field(..., description="One of the ServiceType values")
    scheduled_date: str = Field(..., description="ISO 8601 timestamp")
    notes: str | None = Field(None, max_length=4000)
    urgency: str | None = Field(None, description="normal (default) or emergency")


class UpdateStatusRequest(ApiModel):
    status: str = Field(..., min_length=1, max_length=50)


class AppointmentOut(ApiModel):
    id: int
    customer_id: int
    service_type: str
    scheduled_date: datetime
    notes: str | None = None
    urgency: str
    status: str
    created_at: datetime
    updated_at: datetime


class AppointmentListItem(AppointmentOut):
    first_name: str
    last_name: str
    phone: str


class AppointmentResponse(Envelope):
    appointment: AppointmentOut


class AppointmentListResponse(Envelope):
    appointments: list[AppointmentListItem]


class DayAvailability(ApiModel):
    date: str
    available_slots: list[str]


class AvailabilityResponse(Envelope):
    date: str
    available_slots: list[str]


class AvailabilityRangeResponse(Envelope):
    start_date: str
    end_date: str
    days: list[DayAvailability]


# ── Chat ─────────────────────────────────────────────────────────────


class StartChatRequest(ApiModel):
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_phone: str = Field(..., min_length=1, max_length=32)
    customer_email: str | None = Field(None, max_length=320)


class StartChatResponse(Envelope):
    session_id: int
    customer_id: int
    message: str


class ChatMessageRequest(ApiModel):
    session_id: int
    message: str = Field(..., min_length=1, max_length=2000)
    sender: str = Field("customer", description="customer (or legacy 'user')")


class ChatMessageResponse(Envelope):
    response: str


# ── SMS ──────────────────────────────────────────────────────────────


class SendSMSRequest(ApiModel):
    to: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1, description="Template name or literal text")
    variables: dict[str, str] | None = None


class BatchSMSRequest(ApiModel):
    recipients: list[str] = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    variables: dict[str, str] | None = None


class DeliveryResultOut(ApiModel):
    to: str
    success: bool
    sid: str | None = None
    error: str | None = None


class SendSMSResponse(Envelope):
    result: DeliveryResultOut


class BatchSMSResponse(Envelope):
    results: list[DeliveryResultOut]


class TemplatesResponse(Envelope):
    templates: dict[str, str]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "jacob-hvac-assistant"
