from __future__ import annotations

import os
from dataclasses import dataclass

import pytz
from dotenv import load_dotenv

from salonbook.domain import BusinessHours


@dataclass(frozen=True)
class Settings:
    # Business hours are deployment-wide, never per request.
    open_hour: int = 9
    close_hour: int = 18
    slot_step_minutes: int = 15
    timezone: str = "UTC"

    default_duration_minutes: int = 30

    # External calendar free/busy endpoint. None disables the lookup.
    external_busy_url: str | None = None
    external_busy_timeout_seconds: float = 5.0
    external_busy_retry_attempts: int = 1

    # Without a token reminders are only logged.
    telegram_bot_token: str | None = None

    # Where bookings are saved between runs. None keeps them in memory only.
    state_file: str | None = None

    @property
    def business_hours(self) -> BusinessHours:
        return BusinessHours(
            open_hour=self.open_hour,
            close_hour=self.close_hour,
            step_minutes=self.slot_step_minutes,
            timezone=self.timezone,
        )


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected an integer.") from e


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected a number.") from e


def _optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def load_settings(dotenv_path: str | None = None) -> Settings:
    # Prefer .env in repo root; dotenv_path allows overriding in tests.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    open_hour = _int_env("SALON_OPEN_HOUR", 9)
    close_hour = _int_env("SALON_CLOSE_HOUR", 18)
    if not 0 <= open_hour < close_hour <= 24:
        raise RuntimeError(
            f"SALON_OPEN_HOUR/SALON_CLOSE_HOUR must satisfy 0 <= open < close <= 24 (got {open_hour}, {close_hour})"
        )

    slot_step_minutes = _int_env("SLOT_STEP_MINUTES", 15)
    if slot_step_minutes < 1:
        raise RuntimeError("SLOT_STEP_MINUTES must be >= 1")

    timezone = os.getenv("SALON_TIMEZONE", "UTC").strip() or "UTC"
    try:
        pytz.timezone(timezone)
    except pytz.UnknownTimeZoneError as e:
        raise RuntimeError(f"Invalid SALON_TIMEZONE value: {timezone!r}") from e

    default_duration_minutes = _int_env("DEFAULT_DURATION_MINUTES", 30)
    if default_duration_minutes < 1:
        raise RuntimeError("DEFAULT_DURATION_MINUTES must be >= 1")

    external_busy_timeout_seconds = _float_env("EXTERNAL_BUSY_TIMEOUT_SECONDS", 5.0)
    if external_busy_timeout_seconds <= 0:
        raise RuntimeError("EXTERNAL_BUSY_TIMEOUT_SECONDS must be > 0")

    external_busy_retry_attempts = _int_env("EXTERNAL_BUSY_RETRY_ATTEMPTS", 1)
    if external_busy_retry_attempts < 1:
        raise RuntimeError("EXTERNAL_BUSY_RETRY_ATTEMPTS must be >= 1")

    return Settings(
        open_hour=open_hour,
        close_hour=close_hour,
        slot_step_minutes=slot_step_minutes,
        timezone=timezone,
        default_duration_minutes=default_duration_minutes,
        external_busy_url=_optional("EXTERNAL_BUSY_URL"),
        external_busy_timeout_seconds=external_busy_timeout_seconds,
        external_busy_retry_attempts=external_busy_retry_attempts,
        telegram_bot_token=_optional("TELEGRAM_BOT_TOKEN"),
        state_file=_optional("STATE_FILE"),
    )
