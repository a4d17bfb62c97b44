from __future__ import annotations

import datetime as dt
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable

from salonbook.availability import find_available_slots
from salonbook.busy import BusyFetcher, collect_busy
from salonbook.config import Settings
from salonbook.domain import Booking, ValidationError, localize
from salonbook.external_calendar import HttpBusySource
from salonbook.ledger import BookingLedger
from salonbook.reminders import Deliver, ReminderScheduler
from salonbook.state_file import load_bookings, save_bookings
from salonbook.telegram_notifier import TelegramDelivery, log_delivery

logger = logging.getLogger(__name__)

MISSING_FIELDS = "missing-fields"
SLOT_CONFLICT = "slot-conflict"


@dataclass(frozen=True)
class BookingOutcome:
    booking: Booking | None = None
    error: str | None = None
    message: str | None = None
    fields: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.booking is not None


def build_deliver(settings: Settings) -> Deliver:
    if settings.telegram_bot_token:
        return TelegramDelivery(settings.telegram_bot_token)
    logger.info("TELEGRAM_BOT_TOKEN not set, reminders will only be logged")
    return log_delivery


def build_fetcher(settings: Settings) -> BusyFetcher | None:
    if not settings.external_busy_url:
        return None
    return HttpBusySource(
        settings.external_busy_url,
        timeout_seconds=settings.external_busy_timeout_seconds,
        tz=settings.business_hours.tz,
    )


class BookingService:
    """Wires the ledger, busy sources, availability and reminders together."""

    def __init__(
        self,
        settings: Settings,
        *,
        ledger: BookingLedger | None = None,
        fetcher: BusyFetcher | None = None,
        deliver: Deliver | None = None,
        scheduler: ReminderScheduler | None = None,
        clock: Callable[[], dt.datetime] | None = None,
    ) -> None:
        self.settings = settings
        self.tz = settings.business_hours.tz
        self.ledger = ledger if ledger is not None else BookingLedger(tz=self.tz)
        self.fetcher = fetcher
        self.scheduler = scheduler if scheduler is not None else ReminderScheduler(deliver or log_delivery, tz=self.tz)
        self._clock = clock or (lambda: dt.datetime.now(self.tz))
        self._save_lock = threading.Lock()

        if settings.state_file:
            restored = self.ledger.restore(load_bookings(settings.state_file))
            logger.info("Restored %d booking(s) from %s", restored, settings.state_file)

    @classmethod
    def from_settings(cls, settings: Settings) -> BookingService:
        return cls(settings, fetcher=build_fetcher(settings), deliver=build_deliver(settings))

    def now(self) -> dt.datetime:
        return localize(self._clock(), self.tz)

    def available_slots(
        self,
        day: dt.date,
        duration_minutes: int | None = None,
        now: dt.datetime | None = None,
    ) -> list[dt.datetime]:
        if duration_minutes is None:
            duration_minutes = self.settings.default_duration_minutes
        now = localize(now, self.tz) if now is not None else self.now()

        busy = collect_busy(
            day,
            self.ledger.list_bookings(),
            self.fetcher,
            tz=self.tz,
            timeout_seconds=self.settings.external_busy_timeout_seconds,
            retry_attempts=self.settings.external_busy_retry_attempts,
        )
        slots = find_available_slots(day, duration_minutes, now, busy, self.settings.business_hours)
        logger.info("Availability %s (%d min): %d slot(s), %d busy range(s)", day, duration_minutes, len(slots), len(busy))
        return slots

    def available_slot_isos(
        self,
        day: dt.date,
        duration_minutes: int | None = None,
        now: dt.datetime | None = None,
    ) -> list[str]:
        return [s.isoformat() for s in self.available_slots(day, duration_minutes, now)]

    def book(
        self,
        *,
        client_name: Any,
        client_contact: Any,
        service: Any,
        start: Any,
        now: dt.datetime | None = None,
    ) -> BookingOutcome:
        try:
            result = self.ledger.try_admit(
                client_name=client_name,
                client_contact=client_contact,
                service=service,
                start=start,
            )
        except ValidationError as e:
            return BookingOutcome(error=MISSING_FIELDS, message=str(e), fields=e.fields)

        booking = result.booking
        if booking is None:
            return BookingOutcome(error=SLOT_CONFLICT, message=str(result.error))

        self.scheduler.schedule(booking, localize(now, self.tz) if now is not None else self.now())
        self._save()
        return BookingOutcome(booking=booking)

    def list_bookings(self) -> tuple[Booking, ...]:
        return self.ledger.list_bookings()

    def resume_reminders(self, now: dt.datetime | None = None) -> int:
        now = localize(now, self.tz) if now is not None else self.now()
        count = 0
        for booking in self.ledger.list_bookings():
            if booking.start > now:
                count += len(self.scheduler.schedule(booking, now))
        return count

    def close(self) -> None:
        self.scheduler.shutdown()

    def _save(self) -> None:
        if not self.settings.state_file:
            return
        with self._save_lock:
            try:
                save_bookings(self.settings.state_file, self.ledger.list_bookings())
            except OSError as e:
                # The in-memory ledger stays authoritative; the next save retries the whole file.
                logger.warning("Failed to save bookings to %s (%s: %s)", self.settings.state_file, type(e).__name__, e)
