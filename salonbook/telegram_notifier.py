from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


def send_telegram_message(*, bot_token: str, chat_id: str, text: str, timeout_seconds: float = 20.0) -> None:
    url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
    payload = {
        "chat_id": chat_id,
        "text": text,
        "disable_web_page_preview": True,
    }

    with httpx.Client(timeout=timeout_seconds) as client:
        r = client.post(url, json=payload)
        r.raise_for_status()
        data = r.json()
        if not data.get("ok", False):
            raise RuntimeError(f"Telegram API error: {data}")


class TelegramDelivery:
    """Reminder sink that treats the client contact as a Telegram chat id."""

    def __init__(self, bot_token: str, *, timeout_seconds: float = 20.0) -> None:
        self._bot_token = bot_token
        self._timeout_seconds = timeout_seconds

    def __call__(self, recipient: str, text: str) -> None:
        send_telegram_message(
            bot_token=self._bot_token,
            chat_id=recipient,
            text=text,
            timeout_seconds=self._timeout_seconds,
        )


def log_delivery(recipient: str, text: str) -> None:
    # Used when no delivery channel is configured.
    logger.info("[demo] reminder to %s: %s", recipient, text)
