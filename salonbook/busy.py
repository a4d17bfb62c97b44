from __future__ import annotations

import datetime as dt
import logging
import threading
from typing import Any, Callable, Iterable, Mapping

import pytz
from tenacity import RetryCallState, retry, stop_after_attempt, wait_exponential

from salonbook.domain import Booking, BusyInterval, BusySource, ExternalSourceUnavailable, TimeInterval, parse_instant

logger = logging.getLogger(__name__)

BusyFetcher = Callable[[dt.date], Iterable[Any]]


def _short_exc(retry_state: RetryCallState) -> str | None:
    if retry_state.outcome is None or not retry_state.outcome.failed:
        return None
    exc = retry_state.outcome.exception()
    if exc is None:
        return None
    msg = str(exc).strip()
    return f"{type(exc).__name__}: {msg}" if msg else type(exc).__name__


def _log_after_attempt(retry_state: RetryCallState) -> None:
    reason = _short_exc(retry_state)
    if reason:
        logger.info("External busy lookup attempt %s failed (%s)", retry_state.attempt_number, reason)


def _call_with_timeout(fetcher: BusyFetcher, day: dt.date, timeout_seconds: float) -> list[Any]:
    # Daemon thread: a fetcher that never returns must not hold up interpreter exit.
    outcome: dict[str, Any] = {}

    def run() -> None:
        try:
            outcome["value"] = list(fetcher(day))
        except Exception as e:
            outcome["error"] = e

    worker = threading.Thread(target=run, name="busy-fetch", daemon=True)
    worker.start()
    worker.join(timeout_seconds)

    if worker.is_alive():
        raise TimeoutError(f"no answer within {timeout_seconds:g}s")
    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]


def _to_interval(entry: Any, tz: dt.tzinfo) -> TimeInterval:
    # TimeInterval-like objects or {"start": ..., "end": ...} mappings; naive bounds are salon time.
    if isinstance(entry, Mapping):
        start, end = entry["start"], entry["end"]
    else:
        start, end = entry.start, entry.end
    return TimeInterval(parse_instant(start, tz), parse_instant(end, tz))


def fetch_external_busy(
    fetcher: BusyFetcher,
    day: dt.date,
    *,
    timeout_seconds: float,
    retry_attempts: int = 1,
    tz: dt.tzinfo = pytz.UTC,
) -> list[TimeInterval]:
    decorated = retry(
        stop=stop_after_attempt(max(1, retry_attempts)),
        wait=wait_exponential(multiplier=0.2, max=1),
        after=_log_after_attempt,
        reraise=True,
    )(_call_with_timeout)

    try:
        return [_to_interval(entry, tz) for entry in decorated(fetcher, day, timeout_seconds)]
    except Exception as e:
        raise ExternalSourceUnavailable(f"external busy lookup for {day} failed ({type(e).__name__}: {e})") from e


def collect_busy(
    day: dt.date,
    bookings: Iterable[Booking],
    fetcher: BusyFetcher | None,
    *,
    tz: dt.tzinfo,
    timeout_seconds: float,
    retry_attempts: int = 1,
) -> set[BusyInterval]:
    """Local booking intervals starting on `day` plus the external calendar's busy ranges.

    An unreachable external calendar degrades to "no external data".
    Overlapping entries are kept as they are.
    """
    busy: set[BusyInterval] = {
        BusyInterval(b.start, b.end, BusySource.LOCAL_BOOKING)
        for b in bookings
        if b.start.astimezone(tz).date() == day
    }

    if fetcher is None:
        return busy

    try:
        external = fetch_external_busy(
            fetcher,
            day,
            timeout_seconds=timeout_seconds,
            retry_attempts=retry_attempts,
            tz=tz,
        )
    except ExternalSourceUnavailable as e:
        logger.warning("Using local bookings only: %s", e)
        return busy

    local_count = len(busy)
    for interval in external:
        busy.add(BusyInterval(interval.start, interval.end, BusySource.EXTERNAL_CALENDAR))

    logger.debug("Busy intervals for %s: local=%d external=%d", day, local_count, len(external))
    return busy
