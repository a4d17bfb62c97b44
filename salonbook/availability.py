from __future__ import annotations

import datetime as dt
from typing import Iterable

from salonbook.domain import BusinessHours, BusyInterval, TimeInterval, ValidationError, localize
from salonbook.intervals import generate_grid, overlaps


def find_available_slots(
    day: dt.date,
    duration_minutes: int,
    now: dt.datetime,
    busy: Iterable[BusyInterval],
    hours: BusinessHours,
) -> list[dt.datetime]:
    """Bookable start instants on `day`, ascending.

    A grid instant survives when it falls on `day` in the salon time zone,
    is not earlier than `now`, and `[start, start + duration)` overlaps no
    busy interval. Nothing passed in is mutated.
    """
    if isinstance(duration_minutes, bool) or duration_minutes <= 0:
        raise ValidationError(f"duration_minutes must be positive, got {duration_minutes!r}", fields=("duration_minutes",))

    try:
        duration = dt.timedelta(minutes=duration_minutes)
        dt.datetime.combine(day, dt.time.max) + duration
    except OverflowError as e:
        raise ValidationError(f"duration_minutes is too large: {duration_minutes!r}", fields=("duration_minutes",)) from e

    tz = hours.tz
    now = localize(now, tz)
    blocked = [b.interval for b in busy]

    available: list[dt.datetime] = []
    for start in generate_grid(day, hours.open_hour, hours.close_hour, hours.step_minutes, tz):
        if start.astimezone(tz).date() != day:
            continue
        if start < now:
            continue
        candidate = TimeInterval(start, start + duration)
        if any(overlaps(candidate, b) for b in blocked):
            continue
        available.append(start)
    return available
