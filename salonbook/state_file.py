from __future__ import annotations

import datetime as dt
import json
import logging
import os
import tempfile
from typing import Iterable

from salonbook.domain import Booking, Service

logger = logging.getLogger(__name__)


def _booking_to_dict(b: Booking) -> dict:
    return {
        "id": b.id,
        "client_name": b.client_name,
        "client_contact": b.client_contact,
        "service": {"name": b.service.name, "duration_minutes": b.service.duration_minutes},
        "start": b.start.isoformat(),
    }


def load_bookings(path: str) -> list[Booking]:
    if not os.path.exists(path):
        return []

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError:
        # Corrupted state shouldn't brick the service; start fresh.
        logger.warning("State file %s is not valid JSON, starting with no bookings", path)
        return []

    bookings: list[Booking] = []
    for item in raw.get("bookings", []):
        try:
            start = dt.datetime.fromisoformat(item["start"])
            if start.tzinfo is None:
                raise ValueError("naive start")
            bookings.append(
                Booking(
                    id=str(item["id"]),
                    client_name=str(item["client_name"]),
                    client_contact=str(item["client_contact"]),
                    service=Service(
                        name=str(item["service"]["name"]),
                        duration_minutes=int(item["service"]["duration_minutes"]),
                    ),
                    start=start,
                )
            )
        except Exception:
            logger.warning("Skipping malformed booking entry in %s: %r", path, item)
            continue
    return bookings


def save_bookings(path: str, bookings: Iterable[Booking]) -> None:
    data = {
        "bookings": [_booking_to_dict(b) for b in sorted(bookings, key=lambda b: b.start)],
    }

    folder = os.path.dirname(os.path.abspath(path))
    if folder and not os.path.exists(folder):
        os.makedirs(folder, exist_ok=True)

    # Atomic write
    with tempfile.NamedTemporaryFile("w", delete=False, encoding="utf-8", dir=folder, suffix=".tmp") as tf:
        json.dump(data, tf, ensure_ascii=False, indent=2)
        tmp_name = tf.name

    os.replace(tmp_name, path)
