"""Tests for environment-driven settings."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from jacob_hvac.config import DEFAULT_SLOT_CATALOG, Settings, load_settings


def _load(env: dict[str, str]) -> Settings:
    with patch.dict("os.environ", env, clear=True), patch("jacob_hvac.config.load_dotenv"):
        return load_settings()


class TestLoadSettings:
    def test_defaults(self):
        settings = _load({})
        assert settings.business_name == "M. Jacob Company"
        assert settings.slot_catalog == DEFAULT_SLOT_CATALOG
        assert settings.chat_enabled is False
        assert settings.sms_enabled is False
        assert settings.availability_api_url is None

    def test_placeholder_api_key_counts_as_unset(self):
        assert _load({"ANTHROPIC_API_KEY": "your_key_here"}).chat_enabled is False

    def test_api_key_enables_chat(self):
        assert _load({"ANTHROPIC_API_KEY": "sk-ant-123"}).chat_enabled is True

    def test_custom_catalog_is_deduplicated_and_sorted(self):
        settings = _load({"SLOT_CATALOG": "14:00, 09:00,09:00 ,"})
        assert settings.slot_catalog == ("09:00", "14:00")

    def test_business_identity_and_server(self):
        settings = _load({
            "BUSINESS_NAME": "Allegheny Heating",
            "BUSINESS_PHONE": "555-0100",
            "SERVER_PORT": "9000",
            "CORS_ORIGINS": "https://a.example,https://b.example",
        })
        assert settings.business_name == "Allegheny Heating"
        assert settings.business_phone == "555-0100"
        assert settings.server_port == 9000
        assert settings.cors_origins == ["https://a.example", "https://b.example"]

    def test_twilio_requires_all_three_values(self):
        partial = _load({"TWILIO_ACCOUNT_SID": "AC1", "TWILIO_AUTH_TOKEN": "t"})
        assert partial.sms_enabled is False
        full = _load({
            "TWILIO_ACCOUNT_SID": "AC1",
            "TWILIO_AUTH_TOKEN": "t",
            "TWILIO_PHONE_NUMBER": "+14125550000",
        })
        assert full.sms_enabled is True

    def test_unpadded_catalog_is_normalised_and_ordered_by_hour(self):
        settings = _load({"SLOT_CATALOG": "8:00,9:00,10:00,13:00"})
        assert settings.slot_catalog == ("08:00", "09:00", "10:00", "13:00")

    @pytest.mark.parametrize("bad", ["8:30", "25:00", "noon", "10"])
    def test_invalid_catalog_entry_is_rejected(self, bad):
        with pytest.raises(ValueError, match="HH:00"):
            _load({"SLOT_CATALOG": f"09:00,{bad}"})


class TestSettings:
    def test_directly_built_catalog_is_normalised(self):
        assert Settings(slot_catalog=("10:00", "8:00", "9:00")).slot_catalog == (
            "08:00", "09:00", "10:00",
        )
