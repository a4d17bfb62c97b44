import argparse
import datetime as dt
import logging
import time

from salonbook.config import load_settings
from salonbook.domain import Service, ValidationError
from salonbook.service import BookingService

logger = logging.getLogger("salonbook")

REMIND_POLL_SECONDS = 30


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="SalonBook: appointment slots, bookings and reminders")
    sub = parser.add_subparsers(dest="command", required=True)

    slots = sub.add_parser("slots", help="List bookable start times for a day")
    slots.add_argument("--date", required=True, type=dt.date.fromisoformat, help="YYYY-MM-DD in salon time")
    slots.add_argument("--minutes", type=int, default=None, help="Service duration (default from settings)")

    book = sub.add_parser("book", help="Reserve a slot")
    book.add_argument("--client", required=True)
    book.add_argument("--contact", required=True, help="Reminder recipient (Telegram chat id)")
    book.add_argument("--service", required=True, help="Service name")
    book.add_argument("--minutes", type=int, required=True, help="Service duration")
    book.add_argument("--start", required=True, help="ISO-8601 start time")

    sub.add_parser("list", help="Show all bookings")
    sub.add_parser("remind", help="Stay alive and deliver reminders for stored bookings")
    return parser


def _run_remind(service: BookingService) -> None:
    scheduled = service.resume_reminders()
    logger.info("Reminder loop started: %d reminder(s) pending", scheduled)
    while service.scheduler.pending():
        time.sleep(REMIND_POLL_SECONDS)
    logger.info("No reminders left, exiting")


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    _setup_logging()
    settings = load_settings()
    service = BookingService.from_settings(settings)

    try:
        if args.command == "slots":
            try:
                isos = service.available_slot_isos(args.date, args.minutes)
            except ValidationError as e:
                print(f"Invalid request: {e}")
                return 1
            for iso in isos:
                print(iso)
            return 0

        if args.command == "book":
            outcome = service.book(
                client_name=args.client,
                client_contact=args.contact,
                service=Service(name=args.service, duration_minutes=args.minutes),
                start=args.start,
            )
            if not outcome.ok:
                print(f"Booking failed [{outcome.error}]: {outcome.message}")
                return 1
            print(f"Booked {outcome.booking.id} at {outcome.booking.start.isoformat()}")
            if not settings.state_file:
                logger.warning("STATE_FILE not set: the booking and its reminders end with this process")
            return 0

        if args.command == "list":
            for b in service.list_bookings():
                print(f"{b.start.isoformat()}  {b.client_name}  {b.service.name} ({b.service.duration_minutes} min)  {b.id}")
            return 0

        if args.command == "remind":
            _run_remind(service)
            return 0

        return 2

    finally:
        service.close()


if __name__ == "__main__":
    raise SystemExit(main())
