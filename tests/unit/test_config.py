"""Unit tests for core configuration.

Pattern: Pydantic Settings testing
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from flex_consensus.core.config import Settings, get_settings


class TestSettings:
    """Tests for Settings configuration class."""

    def test_settings_default_values(self) -> None:
        """Field defaults are checked on the model so the environment cannot interfere."""
        fields = Settings.model_fields
        assert fields["port"].default == 3000
        assert fields["environment"].default == "development"
        assert fields["log_level"].default == "INFO"
        assert fields["openai_model"].default == "gpt-5"
        assert fields["xai_model"].default == "grok-beta"
        assert fields["anthropic_version"].default == "2023-06-01"
        assert fields["provider_timeout_seconds"].default == 30.0
        assert fields["orchestration_timeout_seconds"].default == 90.0
        assert fields["provider_confidence"].default == 0.85
        assert fields["confidence_jitter"].default == 0.0
        assert fields["database_path"].default is None

    def test_default_plan_limits(self) -> None:
        settings = Settings(_env_file=None)

        assert settings.plan_limits == {
            "free": 10,
            "pro": 100,
            "researcher": 500,
            "guardian": 999_999,
        }

    def test_settings_from_environment(self) -> None:
        env_vars = {
            "FLEX_OPENAI_API_KEY": "sk-test",
            "FLEX_PROVIDER_TIMEOUT_SECONDS": "12.5",
            "FLEX_DATABASE_PATH": "/tmp/flex.db",
            "FLEX_LOG_LEVEL": "DEBUG",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            settings = Settings(_env_file=None)

        assert settings.openai_api_key.get_secret_value() == "sk-test"
        assert settings.provider_timeout_seconds == 12.5
        assert settings.database_path == "/tmp/flex.db"
        assert settings.log_level == "DEBUG"

    def test_settings_env_prefix(self) -> None:
        """Non-prefixed variables are ignored."""
        env_vars = {
            "PORT": "9999",
            "FLEX_PORT": "8123",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            settings = Settings(_env_file=None)

        assert settings.port == 8123

    def test_plan_limits_from_json_environment(self) -> None:
        with patch.dict(os.environ, {"FLEX_PLAN_LIMITS": '{"free": 3, "pro": 30}'}):
            settings = Settings(_env_file=None)

        assert settings.plan_limits == {"free": 3, "pro": 30}

    def test_api_keys_are_secret(self) -> None:
        settings = Settings(_env_file=None, gemini_api_key="g-key")

        assert "g-key" not in repr(settings)
        assert settings.gemini_api_key.get_secret_value() == "g-key"

    def test_provider_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, provider_timeout_seconds=0)

    def test_confidence_bounds_are_validated(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, provider_confidence=1.5)
        with pytest.raises(ValidationError):
            Settings(_env_file=None, confidence_jitter=0.9)

    @pytest.mark.parametrize("confidence", [0.0, 1.2])
    def test_per_provider_confidence_bounds(self, confidence: float) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, provider_confidences={"gpt5": confidence})

    def test_per_provider_confidence_from_environment(self) -> None:
        with patch.dict(os.environ, {"FLEX_PROVIDER_CONFIDENCES": '{"GPT5": 0.9}'}):
            settings = Settings(_env_file=None)

        assert settings.confidence_for("gpt5") == 0.9
        assert settings.confidence_for("claude") == settings.provider_confidence


class TestGetSettings:
    """Tests for the cached settings accessor."""

    def test_get_settings_returns_settings(self) -> None:
        assert isinstance(get_settings(), Settings)

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()
