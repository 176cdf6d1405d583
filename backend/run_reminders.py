from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, timedelta

from database import Base, SessionLocal, engine
from models import Event, EventStatus, Registration, RegistrationStatus
from providers import build_providers
from registration_service import send_event_reminders

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Email reminders to confirmed attendees of upcoming events.")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Event date to remind for (YYYY-MM-DD). Defaults to tomorrow.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the events and recipient counts without sending anything.",
    )
    return parser.parse_args(argv)


def events_on(db, day: date):
    return (
        db.query(Event)
        .filter(Event.date == day, Event.status == EventStatus.SCHEDULED)
        .order_by(Event.id.asc())
        .all()
    )


def main(argv=None) -> int:
    args = parse_args(argv)
    day = args.date or (date.today() + timedelta(days=1))
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        events = events_on(db, day)
        if not events:
            logger.info("No scheduled events on %s. Nothing to do.", day.isoformat())
            return 0

        providers = None if args.dry_run else build_providers()
        total_failed = 0
        for event in events:
            if args.dry_run:
                recipients = db.query(Registration).filter(
                    Registration.event_id == event.id,
                    Registration.status == RegistrationStatus.CONFIRMED,
                ).count()
                logger.info("[dry-run] Event %s `%s`: %s reminder(s) would be sent.", event.id, event.title, recipients)
                continue
            sent, failed = send_event_reminders(db, providers, event.id)
            total_failed += failed
            logger.info("Event %s `%s`: %s sent, %s failed.", event.id, event.title, sent, failed)
        return 1 if total_failed else 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
