"""The appointment ledger: reads of booked intervals and the atomic reserve."""

import logging
from collections import defaultdict
from datetime import date
from threading import Lock
from weakref import WeakValueDictionary

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_api.booking.dates import minutes_to_time, to_minutes
from clinic_api.core.errors import BookingError, DateBlocked, SlotAlreadyBooked, StorageUnavailable
from clinic_api.database import storage_guard
from clinic_api.models.appointment import STATUS_CANCELLED, STATUS_CONFIRMED, Appointment
from clinic_api.models.blocked_date import BlockedDate

logger = logging.getLogger(__name__)


def booked_intervals(db: Session, day: date) -> list[tuple[int, int]]:
    with storage_guard('loading appointments', db):
        rows = db.query(Appointment.start_time, Appointment.end_time).filter(
            Appointment.appointment_date == day,
            Appointment.status != STATUS_CANCELLED,
        ).order_by(Appointment.start_time.asc()).all()
    return [(to_minutes(start), to_minutes(end)) for start, end in rows]


def booked_intervals_between(db: Session, first_day: date, last_day: date) -> dict[date, list[tuple[int, int]]]:
    with storage_guard('loading appointments', db):
        rows = db.query(Appointment.appointment_date, Appointment.start_time, Appointment.end_time).filter(
            Appointment.appointment_date >= first_day,
            Appointment.appointment_date <= last_day,
            Appointment.status != STATUS_CANCELLED,
        ).all()

    by_date: dict[date, list[tuple[int, int]]] = defaultdict(list)
    for appointment_date, start, end in rows:
        by_date[appointment_date].append((to_minutes(start), to_minutes(end)))
    return dict(by_date)


class AppointmentLedger:
    """Serializes check-then-insert for each appointment date.

    Within one process a lock per date guards the sequence. On PostgreSQL a
    transaction-scoped advisory lock keyed by the date extends the exclusion
    across worker processes.
    """

    def __init__(self) -> None:
        self._guard = Lock()
        self._date_locks: WeakValueDictionary[date, Lock] = WeakValueDictionary()

    def _lock_for(self, day: date) -> Lock:
        with self._guard:
            lock = self._date_locks.get(day)
            if lock is None:
                lock = Lock()
                self._date_locks[day] = lock
            return lock

    @staticmethod
    def _acquire_storage_lock(db: Session, day: date) -> None:
        if db.get_bind().dialect.name == 'postgresql':
            db.execute(text('SELECT pg_advisory_xact_lock(:key)'), {'key': day.toordinal()})

    def reserve(
        self,
        db: Session,
        *,
        full_name: str,
        email: str,
        phone: str,
        service_id: str,
        day: date,
        start_minutes: int,
        end_minutes: int,
        notes: str | None = None,
    ) -> Appointment:
        start_time = minutes_to_time(start_minutes)
        end_time = minutes_to_time(end_minutes)

        with self._lock_for(day):
            try:
                self._acquire_storage_lock(db, day)

                overlapping = db.query(Appointment.id).filter(
                    Appointment.appointment_date == day,
                    Appointment.status != STATUS_CANCELLED,
                    Appointment.start_time < end_time,
                    Appointment.end_time > start_time,
                ).first()
                if overlapping:
                    raise SlotAlreadyBooked(f'{day} {start_time} overlaps appointment {overlapping.id}.')

                blocked = db.query(BlockedDate.id).filter(BlockedDate.blocked_date == day).first()
                if blocked:
                    raise DateBlocked(f'{day} is blocked.')

                appointment = Appointment(
                    full_name=full_name,
                    email=email,
                    phone=phone,
                    service_id=service_id,
                    appointment_date=day,
                    start_time=start_time,
                    end_time=end_time,
                    status=STATUS_CONFIRMED,
                    additional_notes=notes,
                )
                db.add(appointment)
                db.commit()
                db.refresh(appointment)
            except BookingError:
                db.rollback()
                raise
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception('Storage failure while reserving %s %s.', day, start_time)
                raise StorageUnavailable('Storage failure while reserving an appointment.') from exc

        return appointment
