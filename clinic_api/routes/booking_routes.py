from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from clinic_api.auth import csrf
from clinic_api.auth.dependencies import rate_limited, require_csrf_token
from clinic_api.booking import availability, transaction
from clinic_api.booking.ledger import AppointmentLedger
from clinic_api.booking.validation import CreateAppointmentRequest, MonthQuery, SlotQuery
from clinic_api.database import ensure_database_ready, get_db
from clinic_api.notifications.confirmation import ConfirmationNotifier

router = APIRouter(tags=['booking'])

SLOT_LIMITER = 'slots'
BOOKING_LIMITER = 'booking'


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AvailableSlotsResponse(CamelModel):
    available_slots: list[str]
    requested_date: str
    service_duration: int | None = None
    message: str | None = None


class AvailableDatesResponse(CamelModel):
    available_dates: list[int]


class CreateAppointmentResponse(CamelModel):
    success: bool
    message: str
    appointment_id: int
    booked_date: str
    appointment_time: str
    end_time: str
    service_name: str
    confirmation_sent: bool


class CsrfTokenResponse(CamelModel):
    csrf_token: str


def get_ledger(request: Request) -> AppointmentLedger:
    return request.app.state.ledger


def get_notifier(request: Request) -> ConfirmationNotifier | None:
    return getattr(request.app.state, 'notifier', None)


def parse_query(model: type[BaseModel], **values):
    try:
        return model(**values)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


@router.get(
    '/available-slots',
    response_model=AvailableSlotsResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(rate_limited(SLOT_LIMITER))],
)
def list_available_slots(
    date: str = Query(...),
    service_id: str = Query(..., alias='serviceId'),
    db: Session = Depends(get_db),
):
    query = parse_query(SlotQuery, date=date, service_id=service_id)

    ensure_database_ready()

    result = availability.compute_available_slots(db, query.day, query.service_id)
    if result.message:
        return AvailableSlotsResponse(
            available_slots=[],
            requested_date=query.date,
            message=result.message,
        )

    return AvailableSlotsResponse(
        available_slots=result.slots,
        requested_date=query.date,
        service_duration=result.duration_minutes,
    )


@router.get(
    '/available-dates',
    response_model=AvailableDatesResponse,
    dependencies=[Depends(rate_limited(SLOT_LIMITER))],
)
def list_available_dates(
    year: int = Query(...),
    month: int = Query(...),
    service_id: str = Query(..., alias='serviceId'),
    db: Session = Depends(get_db),
):
    query = parse_query(MonthQuery, year=year, month=month, service_id=service_id)

    ensure_database_ready()

    return AvailableDatesResponse(
        available_dates=availability.compute_available_dates_in_month(db, query.year, query.month, query.service_id),
    )


@router.post(
    '/create',
    response_model=CreateAppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limited(BOOKING_LIMITER)), Depends(require_csrf_token)],
)
def create_booking(
    data: CreateAppointmentRequest,
    db: Session = Depends(get_db),
    ledger: AppointmentLedger = Depends(get_ledger),
    notifier: ConfirmationNotifier | None = Depends(get_notifier),
):
    ensure_database_ready()

    result = transaction.create_appointment(db, data, ledger, notifier)

    return CreateAppointmentResponse(
        success=True,
        message='Appointment booked successfully',
        appointment_id=result.appointment_id,
        booked_date=result.booked_date,
        appointment_time=result.start_time,
        end_time=result.end_time,
        service_name=result.service_name,
        confirmation_sent=result.confirmation_sent,
    )


@router.get('/csrf-token', response_model=CsrfTokenResponse)
def issue_csrf_token():
    return CsrfTokenResponse(csrf_token=csrf.create_csrf_token())
