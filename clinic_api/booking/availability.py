"""Availability engine.

The pure functions at the top turn business hours, a service duration,
blocked dates and booked intervals into offerable start times. The
``compute_*`` functions below them load those inputs from the database and
feed them through.
"""

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.orm import Session

from clinic_api.booking import ledger, rules
from clinic_api.booking.dates import (
    MINUTES_PER_DAY,
    SLOT_GRID_MINUTES,
    days_in_month,
    format_minutes,
    overlaps,
    to_minutes,
    weekday_name_for,
)
from clinic_api.booking.rules import DayHours
from clinic_api.core.errors import InvalidBusinessHours

logger = logging.getLogger(__name__)

STATUS_AVAILABLE = 'available'
STATUS_BLOCKED = 'blocked'
STATUS_CLOSED = 'closed'

STATUS_MESSAGES = {
    STATUS_BLOCKED: 'This date is not available for booking',
    STATUS_CLOSED: 'The office is closed on this day',
}


@dataclass(frozen=True)
class SlotResult:
    day: date
    status: str
    slots: list[str] = field(default_factory=list)
    duration_minutes: int | None = None

    @property
    def message(self) -> str | None:
        return STATUS_MESSAGES.get(self.status)


def opening_window(weekday: str, hours: DayHours | None) -> tuple[int, int] | None:
    """Return (open, close) in minutes, or None when the office is closed.

    Hours that are open but malformed are a configuration fault and raise
    rather than yielding slots.
    """
    if hours is None or not hours.is_open:
        return None

    if hours.open_time is None or hours.close_time is None:
        logger.error('Business hours for %s are marked open without open/close times.', weekday)
        raise InvalidBusinessHours(f'Business hours for {weekday} are missing open or close time.')

    open_minutes = to_minutes(hours.open_time)
    close_minutes = to_minutes(hours.close_time)
    if not 0 <= open_minutes < close_minutes <= MINUTES_PER_DAY:
        logger.error(
            'Business hours for %s are invalid: open=%s close=%s.',
            weekday,
            hours.open_time,
            hours.close_time,
        )
        raise InvalidBusinessHours(f'Business hours for {weekday} must open before they close.')

    return open_minutes, close_minutes


def iterate_candidates(open_minutes: int, close_minutes: int, duration_minutes: int) -> Iterator[tuple[int, int]]:
    start = open_minutes
    while start + duration_minutes <= close_minutes:
        yield start, start + duration_minutes
        start += SLOT_GRID_MINUTES


def is_free(start: int, end: int, booked: Iterable[tuple[int, int]]) -> bool:
    return not any(overlaps(start, end, booked_start, booked_end) for booked_start, booked_end in booked)


def available_slots_for_day(
    day: date,
    duration_minutes: int,
    hours_by_weekday: Mapping[str, DayHours],
    blocked_dates: set[date],
    booked: Iterable[tuple[int, int]],
) -> SlotResult:
    if day in blocked_dates:
        return SlotResult(day=day, status=STATUS_BLOCKED, duration_minutes=duration_minutes)

    weekday = weekday_name_for(day)
    window = opening_window(weekday, hours_by_weekday.get(weekday))
    if window is None:
        return SlotResult(day=day, status=STATUS_CLOSED, duration_minutes=duration_minutes)

    booked = list(booked)
    slots = [
        format_minutes(start)
        for start, end in iterate_candidates(*window, duration_minutes)
        if is_free(start, end, booked)
    ]
    return SlotResult(day=day, status=STATUS_AVAILABLE, slots=slots, duration_minutes=duration_minutes)


def available_days_in_month(
    year: int,
    month: int,
    duration_minutes: int,
    hours_by_weekday: Mapping[str, DayHours],
    blocked_dates: set[date],
    booked_by_date: Mapping[date, list[tuple[int, int]]],
    today: date,
) -> list[int]:
    available_days: list[int] = []
    for day_number in range(1, days_in_month(year, month) + 1):
        day = date(year, month, day_number)
        if day < today:
            continue

        result = available_slots_for_day(
            day,
            duration_minutes,
            hours_by_weekday,
            blocked_dates,
            booked_by_date.get(day, []),
        )
        if result.slots:
            available_days.append(day_number)

    return available_days


def compute_available_slots(db: Session, day: date, service_id: str) -> SlotResult:
    service = rules.require_active_service(db, service_id)
    duration_minutes = service.duration_minutes

    if rules.is_date_blocked(db, day):
        return SlotResult(day=day, status=STATUS_BLOCKED, duration_minutes=duration_minutes)

    weekday = weekday_name_for(day)
    hours = rules.get_business_hours_for(db, weekday)
    if opening_window(weekday, hours) is None:
        return SlotResult(day=day, status=STATUS_CLOSED, duration_minutes=duration_minutes)

    return available_slots_for_day(
        day,
        duration_minutes,
        {weekday: hours},
        set(),
        ledger.booked_intervals(db, day),
    )


def compute_available_dates_in_month(
    db: Session,
    year: int,
    month: int,
    service_id: str,
    today: date | None = None,
) -> list[int]:
    service = rules.require_active_service(db, service_id)
    first_day = date(year, month, 1)
    last_day = date(year, month, days_in_month(year, month))

    return available_days_in_month(
        year,
        month,
        service.duration_minutes,
        rules.get_business_hours(db),
        rules.get_blocked_dates_between(db, first_day, last_day),
        ledger.booked_intervals_between(db, first_day, last_day),
        today or date.today(),
    )
