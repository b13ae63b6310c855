"""Application configuration."""

import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings, SettingsConfigDict

from snapnow_live.domain.window import WindowClosePolicy

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_base_url: str
    session_cookie: str | None = None
    session_cookie_name: str = "connect.sid"
    http_timeout_seconds: float = 10.0
    timezone: str | None = None
    window_lead_minutes: int = 10
    window_check_interval_seconds: float = 30.0
    counterparty_poll_interval_seconds: float = 15.0
    geolocation_high_accuracy: bool = True
    geolocation_timeout_ms: int = 10_000
    geolocation_maximum_age_ms: int = 5_000
    window_close_policy: WindowClosePolicy = WindowClosePolicy.NEVER
    window_close_after_minutes: int = 180
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_timezone(raw: str | None) -> ZoneInfo | None:
    """Resolve a configured IANA time zone name, or None for local time."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if not cleaned:
        return None
    try:
        return ZoneInfo(cleaned)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {cleaned}") from exc
