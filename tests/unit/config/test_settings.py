"""
Module: test_settings.py
Description: Unit tests for SQSSettings validation and defaults.

Covers defaulting of optional tuning values, the visibility window
invariant, batch size bounds and environment variable loading.
"""

import pytest
from pydantic import ValidationError

from sqs_dispatch.config.settings import SQSSettings, load_settings

from conftest import make_settings


class TestSQSSettings:
    """Test cases for settings defaults and validation."""

    def test_defaults(self):
        """Optional values fall back to documented defaults."""
        settings = SQSSettings(_env_file=None)

        assert settings.aws_access_key_id is None
        assert settings.aws_secret_access_key is None
        assert settings.prefix == ""
        assert settings.messages_per_req == 10
        assert settings.visibility_timeout == 30
        assert settings.visibility_reserve == 10
        assert settings.aws_reiteration_time == 2
        assert settings.http_retry_count == 2
        assert settings.http_retry_delay == 1
        assert settings.http_open_timeout == 2
        assert settings.http_read_timeout == 10
        assert settings.max_queue_name_length == 80
        assert settings.visibility_reserve < settings.visibility_timeout

    def test_delivery_window(self):
        settings = make_settings(visibility_timeout=30, visibility_reserve=10)
        assert settings.delivery_window == 20

    @pytest.mark.parametrize("reserve", [30, 45])
    def test_reserve_must_be_below_timeout(self, reserve):
        """Reserve equal to or above the timeout is rejected."""
        with pytest.raises(ValidationError, match="visibility_reserve must be less than"):
            make_settings(visibility_timeout=30, visibility_reserve=reserve)

    def test_reserve_check_applies_to_defaults(self):
        """A timeout below the default reserve is rejected."""
        with pytest.raises(ValidationError):
            make_settings(visibility_timeout=5)

    @pytest.mark.parametrize("batch", [0, 11])
    def test_messages_per_req_bounds(self, batch):
        """Batch size is capped at the SQS per-request maximum."""
        with pytest.raises(ValidationError):
            make_settings(messages_per_req=batch)

    def test_log_level_normalized(self):
        assert make_settings(log_level="debug").log_level == "DEBUG"

        with pytest.raises(ValidationError):
            make_settings(log_level="chatty")

    def test_has_credentials(self):
        assert make_settings().has_credentials is True
        assert SQSSettings(_env_file=None, aws_access_key_id="id").has_credentials is False
        assert SQSSettings(
            _env_file=None, aws_access_key_id="id", aws_secret_access_key=""
        ).has_credentials is False

    def test_secret_not_rendered(self):
        """The secret key never appears in reprs or logs."""
        settings = make_settings(aws_secret_access_key="super-secret")
        assert "super-secret" not in repr(settings)

    def test_frozen(self):
        settings = make_settings()
        with pytest.raises(ValidationError):
            settings.visibility_timeout = 60

    def test_load_from_environment(self, monkeypatch):
        """SQS_-prefixed environment variables populate the settings."""
        monkeypatch.setenv("SQS_AWS_ACCESS_KEY_ID", "env-id")
        monkeypatch.setenv("SQS_AWS_SECRET_ACCESS_KEY", "env-secret")
        monkeypatch.setenv("SQS_PREFIX", "acme_")
        monkeypatch.setenv("SQS_VISIBILITY_TIMEOUT", "60")
        monkeypatch.setenv("SQS_MESSAGES_PER_REQ", "5")

        settings = load_settings(_env_file=None)

        assert settings.aws_access_key_id == "env-id"
        assert settings.aws_secret_access_key.get_secret_value() == "env-secret"
        assert settings.prefix == "acme_"
        assert settings.visibility_timeout == 60
        assert settings.messages_per_req == 5

    def test_overrides_win_over_environment(self, monkeypatch):
        monkeypatch.setenv("SQS_PREFIX", "env_")
        assert load_settings(_env_file=None, prefix="explicit_").prefix == "explicit_"
