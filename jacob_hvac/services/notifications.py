"""SMS notifications sent through Twilio.

Delivery is best-effort: transport errors are logged and reported in the
returned :class:`DeliveryResult`, never raised to the caller.  Only a
malformed template call (missing variable) raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from jacob_hvac.config import Settings
from jacob_hvac.errors import ValidationError
from jacob_hvac.services.metrics import metrics

logger = logging.getLogger(__name__)

TEMPLATES: dict[str, str] = {
    "appointmentConfirmation": (
        "Hi {customerName}, your {serviceType} appointment with {businessName} "
        "is booked for {date} at {time}. Questions? Call us at {businessPhone}. "
        "Reply STOP to opt out."
    ),
    "appointmentReminder": (
        "Reminder from {businessName}: your {serviceType} appointment is on "
        "{date} at {time}. Need to reschedule? Call {businessPhone}."
    ),
    "appointmentCancelled": (
        "Hi {customerName}, your {serviceType} appointment on {date} has been "
        "cancelled. Call {businessName} at {businessPhone} to rebook."
    ),
    "technicianEnRoute": (
        "Hi {customerName}, your {businessName} technician is on the way and "
        "should arrive in about {eta} minutes."
    ),
}


@dataclass
class DeliveryResult:
    to: str
    success: bool
    sid: str | None = None
    error: str | None = None

    def as_dict(self) -> dict:
        return {"to": self.to, "success": self.success, "sid": self.sid, "error": self.error}


class SMSTransport(Protocol):
    def send(self, phone: str, body: str) -> DeliveryResult: ...


class TwilioTransport:
    """Sends message bodies with the Twilio REST API."""

    def __init__(self, settings: Settings, client: Client | None = None):
        self._settings = settings
        self._client = client

    def _get_client(self) -> Client:
        if self._client is None:
            self._client = Client(
                self._settings.twilio_account_sid, self._settings.twilio_auth_token,
            )
        return self._client

    def send(self, phone: str, body: str) -> DeliveryResult:
        if not self._settings.sms_enabled:
            logger.warning("Twilio credentials not configured - skipping SMS to %s", phone)
            return DeliveryResult(to=phone, success=False, error="SMS is not configured")

        try:
            with metrics.track("twilio", "messages.create"):
                message = self._get_client().messages.create(
                    body=body,
                    from_=self._settings.twilio_phone_number,
                    to=phone,
                )
        except TwilioRestException as exc:
            logger.error("Twilio error sending SMS to %s: %s", phone, exc)
            return DeliveryResult(to=phone, success=False, error=str(exc))
        logger.info("SMS sent to %s (SID %s)", phone, message.sid)
        return DeliveryResult(to=phone, success=True, sid=message.sid)


def render_template(name: str, variables: dict[str, object]) -> str:
    try:
        return TEMPLATES[name].format(**variables)
    except KeyError as exc:
        raise ValidationError(
            f"Template {name!r} requires variable {exc.args[0]!r}."
        ) from exc


class NotificationDispatcher:
    """Renders templates and hands message bodies to an :class:`SMSTransport`."""

    def __init__(self, transport: SMSTransport):
        self._transport = transport

    def send(
        self,
        phone: str,
        template_or_message: str,
        variables: dict[str, object] | None = None,
    ) -> DeliveryResult:
        """Send a named template, or the text itself if it is not a template name."""
        if template_or_message in TEMPLATES:
            body = render_template(template_or_message, variables or {})
        else:
            body = template_or_message
        try:
            return self._transport.send(phone, body)
        except Exception as exc:
            logger.exception("SMS transport failed for %s", phone)
            return DeliveryResult(to=phone, success=False, error=str(exc))

    def send_batch(
        self,
        recipients: list[str],
        template_or_message: str,
        variables: dict[str, object] | None = None,
    ) -> list[DeliveryResult]:
        results = [self.send(phone, template_or_message, variables) for phone in recipients]
        delivered = sum(1 for result in results if result.success)
        logger.info("Batch SMS: %d/%d delivered", delivered, len(results))
        return results
