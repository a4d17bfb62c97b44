from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass
from typing import Any, Mapping

import pytz


@dataclass(frozen=True)
class Service:
    name: str
    duration_minutes: int


@dataclass(frozen=True)
class TimeInterval:
    """Half-open range [start, end)."""

    start: dt.datetime
    end: dt.datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(f"Interval end must be after start: {self.start} .. {self.end}")


class BusySource(str, enum.Enum):
    LOCAL_BOOKING = "local-booking"
    EXTERNAL_CALENDAR = "external-calendar"


@dataclass(frozen=True)
class BusyInterval:
    start: dt.datetime
    end: dt.datetime
    source: BusySource

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start, self.end)


@dataclass(frozen=True)
class Booking:
    id: str
    client_name: str
    client_contact: str
    service: Service
    start: dt.datetime

    @property
    def end(self) -> dt.datetime:
        return self.start + dt.timedelta(minutes=self.service.duration_minutes)

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start, self.end)


class ReminderLabel(str, enum.Enum):
    T_24H = "T-24h"
    T_1H = "T-1h"


REMINDER_OFFSETS: dict[ReminderLabel, dt.timedelta] = {
    ReminderLabel.T_24H: dt.timedelta(hours=24),
    ReminderLabel.T_1H: dt.timedelta(hours=1),
}


@dataclass(frozen=True)
class PendingReminder:
    booking_id: str
    fire_at: dt.datetime
    label: ReminderLabel


@dataclass(frozen=True)
class BusinessHours:
    open_hour: int
    close_hour: int
    step_minutes: int
    timezone: str = "UTC"

    @property
    def tz(self) -> dt.tzinfo:
        return pytz.timezone(self.timezone)


class BookingError(Exception):
    """Base class for booking core errors."""


class ValidationError(BookingError, ValueError):
    """Missing or malformed booking fields. The caller must fix the input."""

    def __init__(self, message: str, fields: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.fields = fields


class ConflictError(BookingError):
    """The requested slot is already reserved.

    Expected outcome, not a fault: returned inside AdmissionResult, never raised
    by the ledger.
    """


class ExternalSourceUnavailable(BookingError):
    """External busy lookup failed or timed out; availability uses local data only."""


class DeliveryFailure(BookingError):
    """A reminder could not be delivered. Logged, not retried."""


@dataclass(frozen=True)
class AdmissionResult:
    booking: Booking | None = None
    error: ConflictError | None = None

    @property
    def ok(self) -> bool:
        return self.booking is not None


def localize(value: dt.datetime, tz: dt.tzinfo) -> dt.datetime:
    """Attach `tz` to a naive datetime; aware values are returned unchanged."""
    if value.tzinfo is not None:
        return value
    if hasattr(tz, "localize"):
        return tz.localize(value)
    return value.replace(tzinfo=tz)


def parse_instant(raw: str | dt.datetime, tz: dt.tzinfo) -> dt.datetime:
    if isinstance(raw, dt.datetime):
        return localize(raw, tz)
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return localize(dt.datetime.fromisoformat(text), tz)


def _parse_service(raw: Any) -> Service | None:
    if isinstance(raw, Service):
        service = raw
    elif isinstance(raw, Mapping):
        name = raw.get("name")
        minutes = raw.get("durationMinutes", raw.get("duration_minutes", raw.get("minutes")))
        try:
            # bool is an int subclass; reject it explicitly
            if isinstance(minutes, bool):
                return None
            minutes = int(minutes)
        except (TypeError, ValueError):
            return None
        service = Service(name=str(name).strip() if name is not None else "", duration_minutes=minutes)
    else:
        return None

    if not service.name or service.duration_minutes <= 0:
        return None
    return service


@dataclass(frozen=True)
class BookingRequest:
    """Booking input that passed validation. Build it with `parse`."""

    client_name: str
    client_contact: str
    service: Service
    start: dt.datetime

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start, self.start + dt.timedelta(minutes=self.service.duration_minutes))

    @classmethod
    def parse(
        cls,
        *,
        client_name: Any,
        client_contact: Any,
        service: Any,
        start: Any,
        tz: dt.tzinfo = pytz.UTC,
    ) -> BookingRequest:
        bad: list[str] = []

        name = client_name.strip() if isinstance(client_name, str) else ""
        if not name:
            bad.append("client_name")

        contact = client_contact.strip() if isinstance(client_contact, str) else ""
        if not contact:
            bad.append("client_contact")

        parsed_service = _parse_service(service)
        if parsed_service is None:
            bad.append("service")

        parsed_start: dt.datetime | None = None
        if isinstance(start, (str, dt.datetime)) and start:
            try:
                parsed_start = parse_instant(start, tz)
            except ValueError:
                parsed_start = None
        if parsed_start is None:
            bad.append("start")

        if parsed_service is not None and parsed_start is not None:
            try:
                parsed_start + dt.timedelta(minutes=parsed_service.duration_minutes)
            except OverflowError:
                # Duration runs past the largest representable datetime.
                bad.append("service")

        if bad or parsed_service is None or parsed_start is None:
            raise ValidationError(f"Missing or invalid booking fields: {', '.join(bad)}", fields=tuple(bad))

        return cls(
            client_name=name,
            client_contact=contact,
            service=parsed_service,
            start=parsed_start,
        )
