"""Read-only lookups: the service catalog and the calendar rules store."""

from dataclasses import dataclass
from datetime import date, time

from sqlalchemy.orm import Session

from clinic_api.core.errors import ServiceNotFound
from clinic_api.database import storage_guard
from clinic_api.models.blocked_date import BlockedDate
from clinic_api.models.business_hours import BusinessHours
from clinic_api.models.service import Service


@dataclass(frozen=True)
class DayHours:
    is_open: bool
    open_time: time | None
    close_time: time | None


def get_active_service(db: Session, service_id: str) -> Service | None:
    with storage_guard('looking up a service', db):
        return db.query(Service).filter(
            Service.service_id == service_id,
            Service.is_active.is_(True),
        ).first()


def require_active_service(db: Session, service_id: str) -> Service:
    service = get_active_service(db, service_id)
    if service is None:
        raise ServiceNotFound(f'Service {service_id!r} not found or inactive.')
    return service


def list_active_services(db: Session) -> list[Service]:
    with storage_guard('listing services', db):
        return db.query(Service).filter(
            Service.is_active.is_(True),
        ).order_by(Service.category.asc(), Service.name.asc()).all()


def _to_day_hours(row: BusinessHours) -> DayHours:
    return DayHours(is_open=bool(row.is_open), open_time=row.open_time, close_time=row.close_time)


def get_business_hours(db: Session) -> dict[str, DayHours]:
    with storage_guard('loading business hours', db):
        rows = db.query(BusinessHours).all()
    return {row.day_of_week: _to_day_hours(row) for row in rows}


def get_business_hours_for(db: Session, weekday: str) -> DayHours | None:
    with storage_guard('loading business hours', db):
        row = db.query(BusinessHours).filter(BusinessHours.day_of_week == weekday).first()
    return _to_day_hours(row) if row else None


def is_date_blocked(db: Session, day: date) -> bool:
    with storage_guard('checking blocked dates', db):
        return db.query(BlockedDate.id).filter(BlockedDate.blocked_date == day).first() is not None


def get_blocked_dates_between(db: Session, first_day: date, last_day: date) -> set[date]:
    with storage_guard('loading blocked dates', db):
        rows = db.query(BlockedDate.blocked_date).filter(
            BlockedDate.blocked_date >= first_day,
            BlockedDate.blocked_date <= last_day,
        ).all()
    return {blocked_date for (blocked_date,) in rows}
