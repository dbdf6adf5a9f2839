"""Create the booking tables and seed default hours and services.

Usage:
    python -m clinic_api.seed_database
"""
import logging
import sys
from datetime import time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_api.database import Base, SessionLocal, engine, ensure_booking_schema
from clinic_api.models import appointment, blocked_date, business_hours, service  # noqa: F401
from clinic_api.models.business_hours import BusinessHours
from clinic_api.models.service import Service

logger = logging.getLogger(__name__)

DEFAULT_BUSINESS_HOURS = [
    ('Monday', True, time(9, 0), time(17, 0)),
    ('Tuesday', True, time(9, 0), time(17, 0)),
    ('Wednesday', True, time(9, 0), time(17, 0)),
    ('Thursday', True, time(9, 0), time(17, 0)),
    ('Friday', True, time(9, 0), time(17, 0)),
    ('Saturday', True, time(9, 0), time(13, 0)),
    ('Sunday', False, None, None),
]

# (service_id, category, name, description, duration in minutes)
DEFAULT_SERVICES = [
    ('checkup', 'General Dentistry', 'Check-up and Exam', 'Routine examination with x-rays as needed.', 30),
    ('cleaning', 'General Dentistry', 'Scale and Clean', 'Professional scale, clean and polish.', 45),
    ('filling', 'Restorative', 'Tooth Filling', 'Composite filling for a single tooth.', 60),
    ('root_canal', 'Restorative', 'Root Canal Treatment', 'Single-visit root canal therapy.', 90),
    ('whitening', 'Cosmetic', 'Teeth Whitening', 'In-chair whitening session.', 60),
    ('emergency', 'Emergency', 'Emergency Consultation', 'Same-day assessment of dental pain or injury.', 30),
]


def create_tables() -> None:
    Base.metadata.create_all(bind=engine)
    ensure_booking_schema()


def seed_defaults(db: Session) -> tuple[int, int]:
    """Insert default hours and services into empty tables.

    Returns the number of business-hours rows and services added.
    """
    added_hours = 0
    added_services = 0

    if db.query(BusinessHours).count() == 0:
        db.add_all([
            BusinessHours(day_of_week=day, is_open=is_open, open_time=open_time, close_time=close_time)
            for day, is_open, open_time, close_time in DEFAULT_BUSINESS_HOURS
        ])
        added_hours = len(DEFAULT_BUSINESS_HOURS)

    if db.query(Service).count() == 0:
        db.add_all([
            Service(
                service_id=service_id,
                category=category,
                name=name,
                description=description,
                duration_minutes=duration,
                is_active=True,
            )
            for service_id, category, name, description, duration in DEFAULT_SERVICES
        ])
        added_services = len(DEFAULT_SERVICES)

    db.commit()
    return added_hours, added_services


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    db = SessionLocal()
    try:
        create_tables()
        added_hours, added_services = seed_defaults(db)
    except SQLAlchemyError:
        logger.exception('Seeding failed. Check DATABASE_URL and database credentials.')
        sys.exit(1)
    finally:
        db.close()

    print(f'Added {added_hours} business-hours rows and {added_services} services.')


if __name__ == '__main__':
    main()
