"""
Centralized configuration with environment variable overrides.

Business contact details, the booking slot grid, database and e-mail
settings are all configurable here. Nothing is hardcoded in the wizard,
tools or API layers.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime

from dotenv import load_dotenv

from wabco_booking.logging_context import install_request_id_filter

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    return os.getenv(env_var, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class BusinessConfig:
    """Business-specific settings used in customer-facing copy."""

    name: str = os.getenv("BUSINESS_NAME", "WABCO Mobility")
    tagline: str = os.getenv("BUSINESS_TAGLINE", "Your Trusted Automotive Partner")
    contact_phone: str = os.getenv("BUSINESS_PHONE", "+971 04 746 8773")
    contact_email: str = os.getenv("BUSINESS_EMAIL", "admin@wabcomobility.com")
    website: str = os.getenv("BUSINESS_WEBSITE", "www.wabcomobility.com")


@dataclass(frozen=True)
class SchedulingConfig:
    """Slot grid and booking date window."""

    day_start: str = os.getenv("SLOT_DAY_START", "09:00")
    day_end: str = os.getenv("SLOT_DAY_END", "17:30")
    slot_step_minutes: int = _safe_int("SLOT_STEP_MINUTES", "30")
    booking_horizon_days: int = _safe_int("BOOKING_HORIZON_DAYS", "60")


@dataclass(frozen=True)
class DatabaseConfig:
    """SQLAlchemy engine settings."""

    url: str = os.getenv("DATABASE_URL", "sqlite:///./wabco_booking.db")
    echo: bool = _safe_bool("DB_ECHO", "false")
    pool_size: int = _safe_int("DB_POOL_SIZE", "10")
    max_overflow: int = _safe_int("DB_MAX_OVERFLOW", "20")
    pool_recycle: int = _safe_int("DB_POOL_RECYCLE", "300")


@dataclass(frozen=True)
class EmailConfig:
    """Microsoft Graph credentials and delivery policy for notifications."""

    tenant_id: str = os.getenv("TENANT_ID", "")
    client_id: str = os.getenv("CLIENT_ID", "")
    client_secret: str = os.getenv("CLIENT_SECRET", "")
    sender_email: str = os.getenv("SENDER_EMAIL", "")
    admin_recipient: str = os.getenv("ADMIN_NOTIFICATION_EMAIL", "")
    max_attempts: int = _safe_int("EMAIL_MAX_ATTEMPTS", "3")
    retry_backoff_sec: float = _safe_float("EMAIL_RETRY_BACKOFF", "1.0")
    timeout_sec: float = _safe_float("EMAIL_TIMEOUT", "10.0")

    @property
    def enabled(self) -> bool:
        return all((self.tenant_id, self.client_id, self.client_secret, self.sender_email))

    @property
    def admin_address(self) -> str:
        return self.admin_recipient or self.sender_email


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    business: BusinessConfig = field(default_factory=BusinessConfig)
    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "wabco-booking")
    admin_api_key: str = os.getenv("ADMIN_API_KEY", "")
    allowed_origins: str = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000")

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


def _parse_clock(env_var: str, value: str) -> datetime:
    try:
        return datetime.strptime(value, "%H:%M")
    except ValueError:
        raise ValueError(f"{env_var} must be HH:MM, got {value!r}") from None


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    start = _parse_clock("SLOT_DAY_START", config.scheduling.day_start)
    end = _parse_clock("SLOT_DAY_END", config.scheduling.day_end)
    if end < start:
        raise ValueError(
            f"SLOT_DAY_END must not be before SLOT_DAY_START, "
            f"got {config.scheduling.day_start}-{config.scheduling.day_end}"
        )
    if config.scheduling.slot_step_minutes not in (15, 30, 60):
        raise ValueError(
            f"SLOT_STEP_MINUTES must be 15, 30 or 60, got {config.scheduling.slot_step_minutes}"
        )
    if config.scheduling.booking_horizon_days < 1:
        raise ValueError(
            f"BOOKING_HORIZON_DAYS must be >= 1, got {config.scheduling.booking_horizon_days}"
        )
    if config.email.max_attempts < 1:
        raise ValueError(
            f"EMAIL_MAX_ATTEMPTS must be >= 1, got {config.email.max_attempts}"
        )
    if config.email.retry_backoff_sec < 0:
        raise ValueError(
            f"EMAIL_RETRY_BACKOFF must be >= 0, got {config.email.retry_backoff_sec}"
        )
    if config.email.timeout_sec <= 0:
        raise ValueError(
            f"EMAIL_TIMEOUT must be > 0, got {config.email.timeout_sec}"
        )
    if config.database.pool_size < 1:
        raise ValueError(
            f"DB_POOL_SIZE must be >= 1, got {config.database.pool_size}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    install_request_id_filter()
    logger.info("Configuration loaded for '%s'", config.business.name)
    if not config.email.enabled:
        logger.warning("E-mail notifications disabled: Graph credentials not configured")
    return config


# Singleton instance
settings = load_config()
