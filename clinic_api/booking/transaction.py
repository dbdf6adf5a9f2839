"""Booking creation: rule checks, atomic reserve, then the confirmation email."""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from clinic_api.booking import rules
from clinic_api.booking.availability import opening_window
from clinic_api.booking.dates import (
    MINUTES_PER_DAY,
    SLOT_GRID_MINUTES,
    format_minutes,
    to_minutes,
    weekday_name_for,
)
from clinic_api.booking.ledger import AppointmentLedger
from clinic_api.booking.rules import DayHours
from clinic_api.booking.validation import CreateAppointmentRequest
from clinic_api.core.errors import DateBlocked, OutsideBusinessHours, ValidationFailed
from clinic_api.notifications.confirmation import ConfirmationDetails, ConfirmationNotifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingResult:
    appointment_id: int
    booked_date: str
    start_time: str
    end_time: str
    service_name: str
    confirmation_sent: bool


def compute_end_minutes(start_time: str, duration_minutes: int) -> int:
    if not start_time.endswith(':00'):
        raise OutsideBusinessHours(f'{start_time} does not start on a whole minute.')

    end_minutes = to_minutes(start_time) + duration_minutes
    if end_minutes >= MINUTES_PER_DAY:
        raise ValidationFailed(
            f'{start_time} plus {duration_minutes} minutes runs past midnight.',
            public_message='The appointment must finish on the same day.',
        )
    return end_minutes


def check_within_hours(weekday: str, hours: DayHours | None, start_minutes: int, end_minutes: int) -> None:
    window = opening_window(weekday, hours)
    if window is None:
        raise OutsideBusinessHours(
            f'The office is closed on {weekday}.',
            public_message='The office is closed on this day.',
        )

    open_minutes, close_minutes = window
    if start_minutes < open_minutes or end_minutes > close_minutes:
        raise OutsideBusinessHours(
            f'{format_minutes(start_minutes)}-{format_minutes(end_minutes)} falls outside '
            f'{format_minutes(open_minutes)}-{format_minutes(close_minutes)} on {weekday}.'
        )

    if (start_minutes - open_minutes) % SLOT_GRID_MINUTES != 0:
        raise OutsideBusinessHours(
            f'{format_minutes(start_minutes)} is not on the {SLOT_GRID_MINUTES}-minute grid.',
            public_message=f'Appointments must start on {SLOT_GRID_MINUTES}-minute boundaries.',
        )


def create_appointment(
    db: Session,
    request: CreateAppointmentRequest,
    ledger: AppointmentLedger,
    notifier: ConfirmationNotifier | None = None,
) -> BookingResult:
    service = rules.require_active_service(db, request.service)
    day = request.day
    weekday = weekday_name_for(day)

    if rules.is_date_blocked(db, day):
        raise DateBlocked(f'{day} is blocked.')

    start_minutes = to_minutes(request.time)
    end_minutes = compute_end_minutes(request.time, service.duration_minutes)
    check_within_hours(weekday, rules.get_business_hours_for(db, weekday), start_minutes, end_minutes)

    appointment = ledger.reserve(
        db,
        full_name=request.name,
        email=request.email,
        phone=request.phone,
        service_id=service.service_id,
        day=day,
        start_minutes=start_minutes,
        end_minutes=end_minutes,
        notes=request.notes,
    )
    logger.info(
        'Booked appointment %s for %s %s-%s (%s).',
        appointment.id,
        day.isoformat(),
        format_minutes(start_minutes),
        format_minutes(end_minutes),
        service.service_id,
    )

    confirmation_sent = False
    if notifier is not None:
        confirmation_sent = notifier.notify(
            ConfirmationDetails(
                full_name=request.name,
                email=request.email,
                appointment_date=day.isoformat(),
                start_time=request.time,
                service_name=service.name,
            )
        )

    return BookingResult(
        appointment_id=appointment.id,
        booked_date=day.isoformat(),
        start_time=format_minutes(start_minutes),
        end_time=format_minutes(end_minutes),
        service_name=service.name,
        confirmation_sent=confirmation_sent,
    )
