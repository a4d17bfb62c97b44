from __future__ import annotations

import datetime as dt
import logging
from typing import Any

import httpx
import pytz

from salonbook.domain import TimeInterval, parse_instant

logger = logging.getLogger(__name__)


def _busy_entries(data: Any) -> list[dict[str, Any]]:
    # {"busy": [...]} or Google free/busy: {"calendars": {"id": {"busy": [...]}}}
    if not isinstance(data, dict):
        raise ValueError(f"Unexpected free/busy payload: {type(data).__name__}")
    if "calendars" in data:
        entries: list[dict[str, Any]] = []
        for calendar in (data.get("calendars") or {}).values():
            entries.extend(calendar.get("busy") or [])
        return entries
    return list(data.get("busy") or [])


class HttpBusySource:
    """Busy intervals from a JSON free/busy endpoint, queried with `?date=YYYY-MM-DD`."""

    def __init__(self, url: str, *, timeout_seconds: float = 5.0, tz: dt.tzinfo = pytz.UTC) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.tz = tz

    def __call__(self, day: dt.date) -> list[TimeInterval]:
        with httpx.Client(timeout=self.timeout_seconds) as client:
            r = client.get(self.url, params={"date": day.isoformat()})
            r.raise_for_status()
            data = r.json()

        intervals: list[TimeInterval] = []
        for entry in _busy_entries(data):
            start = parse_instant(str(entry["start"]), self.tz)
            end = parse_instant(str(entry["end"]), self.tz)
            if end <= start:
                logger.warning("Ignoring empty busy range from %s: %s", self.url, entry)
                continue
            intervals.append(TimeInterval(start, end))
        return intervals
