"""Error taxonomy shared by the services and the HTTP layer.

Every error carries the HTTP status the API returns for it; the message is
surfaced to the client verbatim in the ``{"success": false, "error": ...}``
envelope.
"""

from __future__ import annotations


class SchedulingError(Exception):
    """Base class for all expected failures."""

    status_code: int = 500


class ValidationError(SchedulingError):
    """Malformed input: bad date format, unknown enum value, missing field."""

    status_code = 400


class NotFoundError(SchedulingError):
    """No matching customer, appointment or chat session."""

    status_code = 404


class UpstreamError(SchedulingError):
    """A collaborator (model backend, availability surface, SMS) failed."""

    status_code = 502

    def __init__(self, message: str, status_code: int | None = None):
        self.upstream_status = status_code
        super().__init__(message)


class ModelUnavailableError(UpstreamError):
    """The language-model backend could not be reached."""


class ConflictError(SchedulingError):
    """Reserved for slot conflicts.

    Not raised today: appointment creation deliberately admits two bookings
    in the same hour.
    """

    status_code = 409
