"""The ``check_availability`` tool exposed to the language model.

The model only ever sees :data:`CHECK_AVAILABILITY_TOOL`; execution happens
in the orchestrator, which validates the arguments here before touching the
availability surface.
"""

from __future__ import annotations

import json
import logging
from datetime import date

from jacob_hvac.errors import ValidationError
from jacob_hvac.services.availability import validate_range
from jacob_hvac.services.availability_client import AvailabilityLookup

logger = logging.getLogger(__name__)

TOOL_NAME = "check_availability"

CHECK_AVAILABILITY_TOOL = {
    "name": TOOL_NAME,
    "description": (
        "Check available appointment time slots in the calendar. Use this when "
        "customers ask about scheduling, available times, or booking appointments."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "startDate": {
                "type": "string",
                "description": "Start date in YYYY-MM-DD format (e.g., 2026-02-10)",
            },
            "endDate": {
                "type": "string",
                "description": "End date in YYYY-MM-DD format (e.g., 2026-02-17)",
            },
        },
        "required": ["startDate", "endDate"],
    },
}


def parse_tool_args(args: dict | None) -> tuple[date, date]:
    """Validate ``startDate``/``endDate`` from a model tool call."""
    args = args or {}
    missing = [key for key in ("startDate", "endDate") if not args.get(key)]
    if missing:
        raise ValidationError(
            f"{TOOL_NAME} is missing required argument(s): {', '.join(missing)}."
        )
    return validate_range(args["startDate"], args["endDate"])


def run_check_availability(start: date, end: date, lookup: AvailabilityLookup) -> str:
    """Query *lookup* once for the range and return the JSON payload fed back to the model."""
    logger.info("Tool %s: %s to %s", TOOL_NAME, start, end)
    days = lookup.slots_between(start, end)
    return json.dumps(
        {
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
            "days": [{"date": day, "availableSlots": slots} for day, slots in days.items()],
        }
    )
