"""Centralized configuration for the Jacob HVAC scheduling assistant.

Values are read once from the environment (and a local ``.env`` file) into
an immutable :class:`Settings` object.  Components receive the settings
explicitly instead of reading ``os.environ`` themselves, which keeps them
easy to construct in isolation.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_SLOT_CATALOG: tuple[str, ...] = (
    "08:00", "09:00", "10:00", "11:00",
    "13:00", "14:00", "15:00", "16:00", "17:00",
)


def _optional_env(name: str) -> str | None:
    """Return an env value, treating blanks and ``your_...`` placeholders as unset."""
    value = os.getenv(name, "").strip()
    if not value or value.startswith("your_"):
        return None
    return value


def normalize_slot(value: str) -> str:
    """Return *value* as a zero-padded ``HH:00`` slot (``"8:00"`` -> ``"08:00"``)."""
    hour, sep, minute = value.strip().partition(":")
    if not (sep and hour.isdigit() and minute == "00" and 0 <= int(hour) <= 23):
        raise ValueError(f"Invalid slot {value!r}: expected an on-the-hour HH:00 time.")
    return f"{int(hour):02d}:00"


def normalize_catalog(slots) -> tuple[str, ...]:
    """Deduplicate and order slots by hour."""
    return tuple(sorted({normalize_slot(slot) for slot in slots}))


def _parse_catalog(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return DEFAULT_SLOT_CATALOG
    return normalize_catalog(part for part in raw.split(",") if part.strip()) or DEFAULT_SLOT_CATALOG


@dataclass(frozen=True)
class Settings:
    """Runtime configuration shared by every component."""

    # ── Business identity ───────────────────────────────────────────
    business_name: str = "M. Jacob Company"
    business_phone: str = "412-512-0425"
    business_owner: str = "Mark Jacob"
    service_area: str = "Pittsburgh and surrounding areas"
    timezone: str = "America/New_York"
    slot_catalog: tuple[str, ...] = DEFAULT_SLOT_CATALOG

    # ── LLM ─────────────────────────────────────────────────────────
    anthropic_api_key: str | None = None
    model_name: str = "claude-sonnet-4-5"
    model_temperature: float = 0.7
    model_max_tokens: int = 500

    # ── Persistence & collaborators ─────────────────────────────────
    database_url: str = "sqlite:///./jacob_hvac.db"
    availability_api_url: str | None = None
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_phone_number: str | None = None

    # ── Server ──────────────────────────────────────────────────────
    server_host: str = "0.0.0.0"
    server_port: int = 8000
    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"],
    )
    metrics_enabled: bool = False

    def __post_init__(self):
        object.__setattr__(self, "slot_catalog", normalize_catalog(self.slot_catalog))

    @property
    def chat_enabled(self) -> bool:
        return self.anthropic_api_key is not None

    @property
    def sms_enabled(self) -> bool:
        return all(
            (self.twilio_account_sid, self.twilio_auth_token, self.twilio_phone_number)
        )


def load_settings() -> Settings:
    """Build :class:`Settings` from environment variables and ``.env``."""
    load_dotenv()
    defaults = Settings()

    settings = Settings(
        business_name=os.getenv("BUSINESS_NAME", defaults.business_name),
        business_phone=os.getenv("BUSINESS_PHONE", defaults.business_phone),
        business_owner=os.getenv("BUSINESS_OWNER", defaults.business_owner),
        service_area=os.getenv("SERVICE_AREA", defaults.service_area),
        timezone=os.getenv("BUSINESS_TIMEZONE", defaults.timezone),
        slot_catalog=_parse_catalog(os.getenv("SLOT_CATALOG")),
        anthropic_api_key=_optional_env("ANTHROPIC_API_KEY"),
        model_name=os.getenv("MODEL_NAME", defaults.model_name),
        model_temperature=float(os.getenv("MODEL_TEMPERATURE", str(defaults.model_temperature))),
        model_max_tokens=int(os.getenv("MODEL_MAX_TOKENS", str(defaults.model_max_tokens))),
        database_url=os.getenv("DATABASE_URL", defaults.database_url),
        availability_api_url=_optional_env("AVAILABILITY_API_URL"),
        twilio_account_sid=_optional_env("TWILIO_ACCOUNT_SID"),
        twilio_auth_token=_optional_env("TWILIO_AUTH_TOKEN"),
        twilio_phone_number=_optional_env("TWILIO_PHONE_NUMBER"),
        server_host=os.getenv("SERVER_HOST", defaults.server_host),
        server_port=int(os.getenv("SERVER_PORT", str(defaults.server_port))),
        cors_origins=os.getenv(
            "CORS_ORIGINS", ",".join(defaults.cors_origins),
        ).split(","),
        metrics_enabled=os.getenv("METRICS_ENABLED", "false").lower() == "true",
    )

    if not settings.chat_enabled:
        logger.warning("ANTHROPIC_API_KEY is not set - chat will run in degraded mode")
    if not settings.sms_enabled:
        logger.info("Twilio credentials not configured - SMS confirmations are disabled")
    return settings
