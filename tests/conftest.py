"""Shared test fixtures for the scheduling assistant test suite."""

from __future__ import annotations

import os
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from jacob_hvac.config import Settings
from jacob_hvac.db import create_db_engine, create_session_factory, init_db
from jacob_hvac.models import Appointment, Customer
from jacob_hvac.services.notifications import DeliveryResult


def pytest_configure(config):
    """Keep tests independent of any developer ``.env`` values."""
    os.environ["METRICS_ENABLED"] = "false"
    for name in ("ANTHROPIC_API_KEY", "AVAILABILITY_API_URL", "TWILIO_ACCOUNT_SID"):
        os.environ.pop(name, None)
    os.environ.setdefault("DATABASE_URL", "sqlite://")


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite://", anthropic_api_key="test-anthropic-key-123")


@pytest.fixture
def session_factory():
    """A fresh in-memory database per test."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_customer(db):
    """Factory fixture that inserts a customer row."""

    def _make(phone: str = "412-555-0100", first_name: str = "Jane", last_name: str = "Doe"):
        customer = Customer(first_name=first_name, last_name=last_name, phone=phone, email=None)
        db.add(customer)
        db.commit()
        return customer

    return _make


@pytest.fixture
def make_appointment(db):
    """Factory fixture that inserts an appointment row directly (no SMS)."""

    def _make(customer: Customer, when: str, status: str = "pending", service: str = "ac-repair"):
        appointment = Appointment(
            customer_id=customer.id,
            service_type=service,
            scheduled_date=datetime.fromisoformat(when),
            urgency="normal",
            status=status,
        )
        db.add(appointment)
        db.commit()
        return appointment

    return _make


@pytest.fixture
def mock_dispatcher():
    dispatcher = MagicMock()
    dispatcher.send.return_value = DeliveryResult(to="412-555-0100", success=True, sid="SM123")
    return dispatcher
