"""Tests for configuration loading and validation."""

import pytest

from wabco_booking.config import (
    AppConfig,
    DatabaseConfig,
    EmailConfig,
    SchedulingConfig,
    _safe_bool,
    _safe_float,
    _safe_int,
    _validate_config,
)


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        _validate_config(AppConfig())  # should not raise

    def test_day_end_before_start(self):
        config = AppConfig(scheduling=SchedulingConfig(day_start="17:00", day_end="09:00"))
        with pytest.raises(ValueError, match="SLOT_DAY_END"):
            _validate_config(config)

    def test_malformed_clock(self):
        config = AppConfig(scheduling=SchedulingConfig(day_start="9am"))
        with pytest.raises(ValueError, match="SLOT_DAY_START"):
            _validate_config(config)

    def test_unsupported_step(self):
        config = AppConfig(scheduling=SchedulingConfig(slot_step_minutes=20))
        with pytest.raises(ValueError, match="SLOT_STEP_MINUTES"):
            _validate_config(config)

    def test_horizon_must_be_positive(self):
        config = AppConfig(scheduling=SchedulingConfig(booking_horizon_days=0))
        with pytest.raises(ValueError, match="BOOKING_HORIZON_DAYS"):
            _validate_config(config)

    def test_email_attempts_must_be_positive(self):
        config = AppConfig(email=EmailConfig(max_attempts=0))
        with pytest.raises(ValueError, match="EMAIL_MAX_ATTEMPTS"):
            _validate_config(config)

    def test_negative_backoff(self):
        config = AppConfig(email=EmailConfig(retry_backoff_sec=-1.0))
        with pytest.raises(ValueError, match="EMAIL_RETRY_BACKOFF"):
            _validate_config(config)

    def test_pool_size(self):
        config = AppConfig(database=DatabaseConfig(pool_size=0))
        with pytest.raises(ValueError, match="DB_POOL_SIZE"):
            _validate_config(config)


class TestEmailConfig:
    def test_disabled_without_credentials(self):
        assert not EmailConfig(tenant_id="", client_id="", client_secret="", sender_email="").enabled

    def test_enabled_with_credentials(self):
        config = EmailConfig(
            tenant_id="t", client_id="c", client_secret="s", sender_email="bookings@example.com"
        )
        assert config.enabled

    def test_admin_falls_back_to_sender(self):
        config = EmailConfig(sender_email="bookings@example.com", admin_recipient="")
        assert config.admin_address == "bookings@example.com"


class TestCorsOrigins:
    def test_split_and_trimmed(self):
        config = AppConfig(allowed_origins="https://a.example, https://b.example ,")
        assert config.cors_origins == ["https://a.example", "https://b.example"]


class TestSafeParsers:
    def test_safe_int_valid(self, monkeypatch):
        monkeypatch.setenv("TEST_INT", "42")
        assert _safe_int("TEST_INT", "0") == 42

    def test_safe_int_invalid(self, monkeypatch):
        monkeypatch.setenv("TEST_INT", "abc")
        with pytest.raises(ValueError, match="Invalid integer for TEST_INT"):
            _safe_int("TEST_INT", "0")

    def test_safe_int_uses_default(self, monkeypatch):
        monkeypatch.delenv("TEST_INT_MISSING", raising=False)
        assert _safe_int("TEST_INT_MISSING", "99") == 99

    def test_safe_float_invalid(self, monkeypatch):
        monkeypatch.setenv("TEST_FLOAT", "not_a_float")
        with pytest.raises(ValueError, match="Invalid float for TEST_FLOAT"):
            _safe_float("TEST_FLOAT", "0.0")

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("YES", True), ("off", False)])
    def test_safe_bool(self, monkeypatch, raw, expected):
        monkeypatch.setenv("TEST_BOOL", raw)
        assert _safe_bool("TEST_BOOL", "false") is expected
