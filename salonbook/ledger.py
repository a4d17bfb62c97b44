from __future__ import annotations

import bisect
import datetime as dt
import logging
import threading
import uuid
from typing import Any, Iterable

import pytz

from salonbook.domain import AdmissionResult, Booking, BookingRequest, ConflictError
from salonbook.intervals import overlaps

logger = logging.getLogger(__name__)


def generate_booking_id() -> str:
    return uuid.uuid4().hex


class BookingLedger:
    """Confirmed bookings, ordered by start.

    No two bookings overlap (adjacent ones are fine). Admission runs
    check-then-insert under one lock; readers get an immutable snapshot.
    """

    def __init__(self, *, tz: dt.tzinfo = pytz.UTC) -> None:
        self._tz = tz
        self._lock = threading.RLock()
        self._bookings: list[Booking] = []
        self._starts: list[dt.datetime] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._bookings)

    def list_bookings(self) -> tuple[Booking, ...]:
        with self._lock:
            return tuple(self._bookings)

    def bookings_on(self, day: dt.date, tz: dt.tzinfo | None = None) -> tuple[Booking, ...]:
        tz = tz or self._tz
        return tuple(b for b in self.list_bookings() if b.start.astimezone(tz).date() == day)

    def get(self, booking_id: str) -> Booking | None:
        with self._lock:
            return next((b for b in self._bookings if b.id == booking_id), None)

    def try_admit(
        self,
        *,
        client_name: Any,
        client_contact: Any,
        service: Any,
        start: Any,
    ) -> AdmissionResult:
        """Validate and insert a booking.

        Raises ValidationError for bad input. A taken slot is returned as
        `AdmissionResult(error=ConflictError(...))`.
        """
        request = BookingRequest.parse(
            client_name=client_name,
            client_contact=client_contact,
            service=service,
            start=start,
            tz=self._tz,
        )
        candidate = request.interval

        with self._lock:
            clash = next((b for b in self._bookings if overlaps(candidate, b.interval)), None)
            if clash is not None:
                logger.info(
                    "Rejected %s at %s: overlaps booking %s (%s..%s)",
                    request.client_name,
                    request.start.isoformat(),
                    clash.id,
                    clash.start.isoformat(),
                    clash.end.isoformat(),
                )
                return AdmissionResult(error=ConflictError("slot already reserved"))

            booking = Booking(
                id=generate_booking_id(),
                client_name=request.client_name,
                client_contact=request.client_contact,
                service=request.service,
                start=request.start,
            )
            self._insert(booking)

        logger.info("Booked %s for %s at %s", booking.id, booking.client_name, booking.start.isoformat())
        return AdmissionResult(booking=booking)

    def restore(self, bookings: Iterable[Booking]) -> int:
        """Load bookings from a store. Returns how many were accepted."""
        accepted = 0
        with self._lock:
            for booking in bookings:
                if any(b.id == booking.id or overlaps(booking.interval, b.interval) for b in self._bookings):
                    logger.warning("Skipping stored booking %s: duplicate id or overlapping slot", booking.id)
                    continue
                self._insert(booking)
                accepted += 1
        return accepted

    def _insert(self, booking: Booking) -> None:
        idx = bisect.bisect_right(self._starts, booking.start)
        self._starts.insert(idx, booking.start)
        self._bookings.insert(idx, booking)
