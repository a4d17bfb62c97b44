from __future__ import annotations

import pytest

from salonbook.config import load_settings

_ENV_VARS = (
    "SALON_OPEN_HOUR",
    "SALON_CLOSE_HOUR",
    "SLOT_STEP_MINUTES",
    "SALON_TIMEZONE",
    "DEFAULT_DURATION_MINUTES",
    "EXTERNAL_BUSY_URL",
    "EXTERNAL_BUSY_TIMEOUT_SECONDS",
    "EXTERNAL_BUSY_RETRY_ATTEMPTS",
    "TELEGRAM_BOT_TOKEN",
    "STATE_FILE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the tests.
    monkeypatch.chdir(tmp_path)


def test_defaults_match_salon_business_hours() -> None:
    settings = load_settings(dotenv_path=None)

    assert (settings.open_hour, settings.close_hour, settings.slot_step_minutes) == (9, 18, 15)
    assert settings.timezone == "UTC"
    assert settings.default_duration_minutes == 30
    assert settings.external_busy_url is None
    assert settings.telegram_bot_token is None
    assert settings.state_file is None


def test_business_hours_are_read_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SALON_OPEN_HOUR", "8")
    monkeypatch.setenv("SALON_CLOSE_HOUR", "20")
    monkeypatch.setenv("SLOT_STEP_MINUTES", "30")
    monkeypatch.setenv("SALON_TIMEZONE", "America/Sao_Paulo")

    hours = load_settings(dotenv_path=None).business_hours

    assert (hours.open_hour, hours.close_hour, hours.step_minutes, hours.timezone) == (8, 20, 30, "America/Sao_Paulo")


def test_rejects_closing_before_opening(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SALON_OPEN_HOUR", "18")
    monkeypatch.setenv("SALON_CLOSE_HOUR", "9")

    with pytest.raises(RuntimeError, match=r"SALON_OPEN_HOUR/SALON_CLOSE_HOUR"):
        load_settings(dotenv_path=None)


def test_rejects_non_integer_step(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SLOT_STEP_MINUTES", "abc")

    with pytest.raises(RuntimeError, match=r"Invalid SLOT_STEP_MINUTES"):
        load_settings(dotenv_path=None)


def test_rejects_unknown_timezone(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SALON_TIMEZONE", "Mars/Olympus")

    with pytest.raises(RuntimeError, match=r"Invalid SALON_TIMEZONE"):
        load_settings(dotenv_path=None)


def test_rejects_zero_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXTERNAL_BUSY_TIMEOUT_SECONDS", "0")

    with pytest.raises(RuntimeError, match=r"EXTERNAL_BUSY_TIMEOUT_SECONDS must be > 0"):
        load_settings(dotenv_path=None)


def test_rejects_zero_retry_attempts(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXTERNAL_BUSY_RETRY_ATTEMPTS", "0")

    with pytest.raises(RuntimeError, match=r"EXTERNAL_BUSY_RETRY_ATTEMPTS must be >= 1"):
        load_settings(dotenv_path=None)


def test_blank_optional_values_are_treated_as_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "  ")
    monkeypatch.setenv("STATE_FILE", "")

    settings = load_settings(dotenv_path=None)

    assert settings.telegram_bot_token is None
    assert settings.state_file is None


def test_does_not_override_existing_env_with_dotenv(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    # load_dotenv(override=False) must not overwrite already-set env vars.
    monkeypatch.setenv("SALON_OPEN_HOUR", "10")

    dotenv = tmp_path / "custom.env"
    dotenv.write_text("SALON_OPEN_HOUR=7\n")

    settings = load_settings(dotenv_path=str(dotenv))
    assert settings.open_hour == 10
