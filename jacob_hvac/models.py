"""ORM models for customers, appointments and chat sessions."""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from jacob_hvac.db import Base


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class ServiceType(str, enum.Enum):
    HEATER_REPAIR = "heater-repair"
    AC_REPAIR = "ac-repair"
    INSTALLATION = "installation"
    FAN_MOTOR_REPLACEMENT = "fan-motor-replacement"
    MAINTENANCE_PLAN = "maintenance-plan"
    WATER_HEATER = "water-heater"


class Urgency(str, enum.Enum):
    NORMAL = "normal"
    EMERGENCY = "emergency"


class AppointmentStatus(str, enum.Enum):
    """Well-known statuses.

    The ``status`` column is a plain string: ``update_status`` accepts any
    value, these are only the ones the business uses.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Appointments in these states no longer occupy a slot.
INACTIVE_STATUSES = (AppointmentStatus.CANCELLED.value, AppointmentStatus.COMPLETED.value)


class MessageSender(str, enum.Enum):
    CUSTOMER = "customer"
    ASSISTANT = "assistant"


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False, default="")
    phone = Column(String, nullable=False, unique=True, index=True)
    email = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    appointments = relationship("Appointment", back_populates="customer")
    chat_sessions = relationship("ChatSession", back_populates="customer")


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    service_type = Column(String, nullable=False)
    # Business-local wall-clock time, stored naive.
    scheduled_date = Column(DateTime, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    urgency = Column(String, nullable=False, default=Urgency.NORMAL.value)
    status = Column(String, nullable=False, default=AppointmentStatus.PENDING.value, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    customer = relationship("Customer", back_populates="appointments")


class ChatSession(Base):
    __tablename__ = "chat_sessions"

    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    started_at = Column(DateTime, default=utcnow, nullable=False)

    customer = relationship("Customer", back_populates="chat_sessions")
    messages = relationship(
        "ChatMessage", back_populates="session", order_by="ChatMessage.id",
    )


class ChatMessage(Base):
    """One entry of a session transcript.  Rows are only ever inserted."""

    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True)
    session_id = Column(Integer, ForeignKey("chat_sessions.id"), nullable=False, index=True)
    sender = Column(String, nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    session = relationship("ChatSession", back_populates="messages")
