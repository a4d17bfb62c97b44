from __future__ import annotations

import datetime as dt
import json

import pytz

from salonbook.domain import Booking, Service
from salonbook.state_file import load_bookings, save_bookings


def _booking(booking_id: str, hh: int) -> Booking:
    return Booking(
        id=booking_id,
        client_name="Ana",
        client_contact="555",
        service=Service(name="Haircut", duration_minutes=30),
        start=dt.datetime(2024, 6, 1, hh, tzinfo=pytz.UTC),
    )


def test_missing_file_loads_as_empty(tmp_path) -> None:
    assert load_bookings(str(tmp_path / "nope.json")) == []


def test_saved_file_is_sorted_and_readable(tmp_path) -> None:
    path = tmp_path / "nested" / "state.json"

    save_bookings(str(path), [_booking("late", 15), _booking("early", 9)])

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert [b["id"] for b in raw["bookings"]] == ["early", "late"]
    assert [b.id for b in load_bookings(str(path))] == ["early", "late"]
    assert not list(path.parent.glob("*.tmp"))


def test_corrupted_file_loads_as_empty(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")

    assert load_bookings(str(path)) == []


def test_malformed_entries_are_skipped(tmp_path) -> None:
    path = tmp_path / "state.json"
    save_bookings(str(path), [_booking("ok", 10)])
    raw = json.loads(path.read_text(encoding="utf-8"))
    raw["bookings"].append({"id": "broken", "start": "2024-06-01T11:00:00"})
    raw["bookings"].append(dict(raw["bookings"][0], id="naive", start="2024-06-01T12:00:00"))
    path.write_text(json.dumps(raw), encoding="utf-8")

    assert [b.id for b in load_bookings(str(path))] == ["ok"]
