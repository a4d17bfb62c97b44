from __future__ import annotations

import datetime as dt
import logging
import threading
from typing import Callable, Protocol

import pytz

from salonbook.domain import REMINDER_OFFSETS, Booking, DeliveryFailure, PendingReminder, ReminderLabel

logger = logging.getLogger(__name__)

Deliver = Callable[[str, str], None]


class _Timer(Protocol):
    daemon: bool

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[..., _Timer]


def render_reminder(booking: Booking, label: ReminderLabel, tz: dt.tzinfo = pytz.UTC) -> str:
    local_start = booking.start.astimezone(tz)
    lead = label.value.removeprefix("T-")
    return (
        f"Reminder: your {booking.service.name} appointment is on "
        f"{local_start:%Y-%m-%d at %H:%M} ({lead} notice)."
    )


class ReminderScheduler:
    """Process-local reminder timers, one per booking and offset.

    Nothing is persisted: pending reminders die with the process.
    """

    def __init__(
        self,
        deliver: Deliver,
        *,
        tz: dt.tzinfo = pytz.UTC,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self._deliver = deliver
        self._tz = tz
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timers: dict[str, dict[ReminderLabel, tuple[PendingReminder, _Timer]]] = {}

    def schedule(self, booking: Booking, now: dt.datetime) -> list[PendingReminder]:
        scheduled: list[PendingReminder] = []

        for label, offset in REMINDER_OFFSETS.items():
            fire_at = booking.start - offset
            if fire_at <= now:
                logger.info("Reminder %s for booking %s skipped (fire time already passed)", label.value, booking.id)
                continue

            reminder = PendingReminder(booking_id=booking.id, fire_at=fire_at, label=label)
            delay = (fire_at - now).total_seconds()
            timer = self._timer_factory(delay, self._fire, args=(booking, label))
            timer.daemon = True

            with self._lock:
                previous = self._timers.setdefault(booking.id, {}).pop(label, None)
                self._timers[booking.id][label] = (reminder, timer)
            if previous is not None:
                previous[1].cancel()

            timer.start()
            scheduled.append(reminder)
            logger.info("Reminder %s for booking %s at %s", label.value, booking.id, fire_at.isoformat())

        return scheduled

    def pending(self, booking_id: str | None = None) -> list[PendingReminder]:
        with self._lock:
            if booking_id is not None:
                entries = list(self._timers.get(booking_id, {}).values())
            else:
                entries = [e for by_label in self._timers.values() for e in by_label.values()]
        return sorted((reminder for reminder, _ in entries), key=lambda r: r.fire_at)

    def cancel(self, booking_id: str) -> int:
        with self._lock:
            by_label = self._timers.pop(booking_id, {})
        for _, timer in by_label.values():
            timer.cancel()
        return len(by_label)

    def shutdown(self) -> None:
        with self._lock:
            booking_ids = list(self._timers)
        for booking_id in booking_ids:
            self.cancel(booking_id)

    def _fire(self, booking: Booking, label: ReminderLabel) -> None:
        with self._lock:
            by_label = self._timers.get(booking.id)
            entry = by_label.pop(label, None) if by_label is not None else None
            if by_label is not None and not by_label:
                del self._timers[booking.id]
        if entry is None:
            # Cancelled after the timer thread woke up.
            return

        text = render_reminder(booking, label, self._tz)
        logger.info("Sending reminder %s for booking %s to %s", label.value, booking.id, booking.client_contact)
        try:
            self._deliver(booking.client_contact, text)
        except Exception as e:
            failure = DeliveryFailure(f"{type(e).__name__}: {e}")
            logger.warning("Reminder %s for booking %s not delivered (%s)", label.value, booking.id, failure)
