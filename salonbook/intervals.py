from __future__ import annotations

import datetime as dt

from salonbook.domain import TimeInterval, localize


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    # Strict: [10:00, 10:30) and [10:30, 11:00) only touch.
    return a.start < b.end and b.start < a.end


def generate_grid(
    day: dt.date,
    open_hour: int,
    close_hour: int,
    step_minutes: int,
    tz: dt.tzinfo | None = None,
) -> list[dt.datetime]:
    """Every `day@open_hour + k*step_minutes` strictly before `day@close_hour`.

    Steps are taken on the wall clock and each instant is then localized to
    `tz` (when given), so a DST switch does not shift the grid. Bad bounds
    give an empty list.
    """
    if step_minutes <= 0 or not (0 <= open_hour < close_hour <= 24):
        return []

    midnight = dt.datetime.combine(day, dt.time())
    current = midnight + dt.timedelta(hours=open_hour)
    close = midnight + dt.timedelta(hours=close_hour)
    step = dt.timedelta(minutes=step_minutes)

    grid: list[dt.datetime] = []
    while current < close:
        grid.append(localize(current, tz) if tz is not None else current)
        current += step
    return grid
