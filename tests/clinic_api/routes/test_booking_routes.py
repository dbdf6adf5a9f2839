from datetime import time

import pytest
from fastapi.testclient import TestClient

from clinic_api.booking.ledger import AppointmentLedger
from clinic_api.booking.validation import CreateAppointmentRequest
from clinic_api.core import config
from clinic_api.core.rate_limit import RateLimiter
from clinic_api.database import get_db
from clinic_api.main import app, build_rate_limiters
from clinic_api.models.appointment import Appointment
from clinic_api.models.blocked_date import BlockedDate
from clinic_api.models.business_hours import BusinessHours
from clinic_api.routes.booking_routes import BOOKING_LIMITER, SLOT_LIMITER, create_booking, list_available_slots
from tests.clinic_api.helpers import MONDAY, SUNDAY, upcoming


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, details) -> bool:
        self.sent.append(details)
        return True


@pytest.fixture
def notifier(monkeypatch) -> RecordingNotifier:
    recording = RecordingNotifier()
    monkeypatch.setattr('clinic_api.routes.booking_routes.ensure_database_ready', lambda: None)
    monkeypatch.setattr(app.state, 'notifier', recording)
    monkeypatch.setattr(app.state, 'ledger', AppointmentLedger())
    monkeypatch.setattr(app.state, 'rate_limiters', build_rate_limiters())
    return recording


@pytest.fixture
def client(session_factory, notifier):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def booking_payload(**overrides) -> dict:
    payload = {
        'service': 'checkup',
        'date': upcoming(MONDAY).isoformat(),
        'time': '14:00',
        'name': 'Jane Citizen',
        'email': 'jane@clinicmail.com',
        'phone': '0412 345 678',
        'notes': 'First visit',
    }
    payload.update(overrides)
    return payload


def test_list_available_slots_returns_service_duration(booking_db, notifier) -> None:
    monday = upcoming(MONDAY)

    response = list_available_slots(date=monday.isoformat(), service_id='cleaning', db=booking_db)

    assert response.requested_date == monday.isoformat()
    assert response.service_duration == 45
    assert response.available_slots[0] == '09:00:00'
    assert response.available_slots[-1] == '16:00:00'
    assert response.message is None


def test_create_booking_returns_confirmation_details(booking_db, notifier) -> None:
    request = CreateAppointmentRequest(**booking_payload())

    response = create_booking(data=request, db=booking_db, ledger=AppointmentLedger(), notifier=notifier)

    assert response.success is True
    assert response.appointment_time == '14:00:00'
    assert response.end_time == '14:30:00'
    assert response.confirmation_sent is True
    assert notifier.sent[0].email == 'jane@clinicmail.com'


def test_available_slots_endpoint_uses_camel_case(client) -> None:
    monday = upcoming(MONDAY)

    response = client.get('/booking/available-slots', params={'date': monday.isoformat(), 'serviceId': 'checkup'})

    assert response.status_code == 200
    body = response.json()
    assert body['requestedDate'] == monday.isoformat()
    assert body['serviceDuration'] == 30
    assert len(body['availableSlots']) == 16
    assert 'message' not in body
    assert response.headers['X-Frame-Options'] == 'DENY'
    assert response.headers['X-Content-Type-Options'] == 'nosniff'


def test_available_slots_endpoint_reports_closed_day(client) -> None:
    sunday = upcoming(SUNDAY)

    response = client.get('/booking/available-slots', params={'date': sunday.isoformat(), 'serviceId': 'checkup'})

    assert response.status_code == 200
    assert response.json() == {
        'availableSlots': [],
        'requestedDate': sunday.isoformat(),
        'message': 'The office is closed on this day',
    }


def test_available_slots_endpoint_reports_blocked_day(client, session_factory) -> None:
    monday = upcoming(MONDAY)
    db = session_factory()
    try:
        db.add(BlockedDate(blocked_date=monday, reason='Public holiday'))
        db.commit()
    finally:
        db.close()

    response = client.get('/booking/available-slots', params={'date': monday.isoformat(), 'serviceId': 'checkup'})

    assert response.status_code == 200
    assert response.json()['availableSlots'] == []
    assert response.json()['message'] == 'This date is not available for booking'


def test_available_slots_endpoint_rejects_unknown_service(client) -> None:
    response = client.get(
        '/booking/available-slots',
        params={'date': upcoming(MONDAY).isoformat(), 'serviceId': 'retired_service'},
    )

    assert response.status_code == 404
    assert response.json() == {'success': False, 'message': 'Service not found or inactive.'}


@pytest.mark.parametrize(
    ('params', 'field'),
    [
        ({'date': '05-01-2026', 'serviceId': 'checkup'}, 'date'),
        ({'date': '2026-01-05', 'serviceId': '<b>'}, 'service_id'),
        ({'date': '2026-01-05'}, 'serviceId'),
    ],
)
def test_available_slots_endpoint_rejects_invalid_query(client, params: dict, field: str) -> None:
    response = client.get('/booking/available-slots', params=params)

    assert response.status_code == 400
    body = response.json()
    assert body['success'] is False
    assert body['message'] == 'Validation failed'
    assert field in {error['field'] for error in body['errors']}


def test_available_slots_endpoint_hides_invalid_business_hours(client, session_factory) -> None:
    db = session_factory()
    try:
        monday_hours = db.query(BusinessHours).filter(BusinessHours.day_of_week == 'Monday').one()
        monday_hours.open_time = time(17, 0)
        monday_hours.close_time = time(9, 0)
        db.commit()
    finally:
        db.close()

    response = client.get(
        '/booking/available-slots',
        params={'date': upcoming(MONDAY).isoformat(), 'serviceId': 'checkup'},
    )

    assert response.status_code == 500
    assert response.json() == {'success': False, 'message': 'Booking is temporarily unavailable.'}


def test_available_dates_endpoint_lists_open_days(client) -> None:
    monday = upcoming(MONDAY)

    response = client.get(
        '/booking/available-dates',
        params={'year': monday.year, 'month': monday.month, 'serviceId': 'checkup'},
    )

    assert response.status_code == 200
    days = response.json()['availableDates']
    assert monday.day in days
    assert days == sorted(days)


def test_available_dates_endpoint_rejects_invalid_month(client) -> None:
    monday = upcoming(MONDAY)

    response = client.get(
        '/booking/available-dates',
        params={'year': monday.year, 'month': 13, 'serviceId': 'checkup'},
    )

    assert response.status_code == 400


def test_create_endpoint_books_and_rejects_duplicates(client, notifier, session_factory) -> None:
    response = client.post('/booking/create', json=booking_payload())

    assert response.status_code == 201
    body = response.json()
    assert body['success'] is True
    assert body['message'] == 'Appointment booked successfully'
    assert body['bookedDate'] == upcoming(MONDAY).isoformat()
    assert body['appointmentTime'] == '14:00:00'
    assert body['serviceName'] == 'Check-up and Exam'
    assert body['confirmationSent'] is True
    assert len(notifier.sent) == 1

    duplicate = client.post('/booking/create', json=booking_payload(name='John Citizen'))

    assert duplicate.status_code == 409
    assert duplicate.json() == {'success': False, 'message': 'This time slot is no longer available.'}

    db = session_factory()
    try:
        assert db.query(Appointment).count() == 1
    finally:
        db.close()


def test_booked_slot_disappears_from_availability(client) -> None:
    monday = upcoming(MONDAY)
    client.post('/booking/create', json=booking_payload(time='10:00'))

    response = client.get('/booking/available-slots', params={'date': monday.isoformat(), 'serviceId': 'checkup'})

    assert '10:00:00' not in response.json()['availableSlots']
    assert len(response.json()['availableSlots']) == 15


@pytest.mark.parametrize(
    ('overrides', 'status_code'),
    [
        ({'time': '18:00'}, 400),
        ({'date': upcoming(SUNDAY).isoformat()}, 400),
        ({'notes': '<script>alert(1)</script>'}, 400),
        ({'email': 'jane@mailinator.com'}, 400),
        ({'service': 'unknown_service'}, 404),
    ],
)
def test_create_endpoint_maps_failures_to_status_codes(client, overrides: dict, status_code: int) -> None:
    response = client.post('/booking/create', json=booking_payload(**overrides))

    assert response.status_code == status_code
    assert response.json()['success'] is False


def test_create_endpoint_is_rate_limited(client) -> None:
    app.state.rate_limiters[BOOKING_LIMITER] = RateLimiter(BOOKING_LIMITER, limit=1, window_seconds=900)

    first = client.post('/booking/create', json=booking_payload(time='09:00'))
    second = client.post('/booking/create', json=booking_payload(time='09:30'))

    assert first.status_code == 201
    assert second.status_code == 429
    assert second.json() == {
        'success': False,
        'message': 'Too many requests. Please wait a moment and try again.',
    }


def test_forwarded_for_header_cannot_rotate_the_rate_limit_key(client) -> None:
    app.state.rate_limiters[SLOT_LIMITER] = RateLimiter(SLOT_LIMITER, limit=2, window_seconds=60)
    params = {'date': upcoming(MONDAY).isoformat(), 'serviceId': 'checkup'}

    statuses = [
        client.get('/booking/available-slots', params=params, headers={'X-Forwarded-For': f'10.0.0.{i}'}).status_code
        for i in range(5)
    ]

    assert statuses == [200, 200, 429, 429, 429]


def test_forwarded_for_header_is_honoured_from_trusted_proxy(client, monkeypatch) -> None:
    monkeypatch.setattr(config, 'TRUSTED_PROXIES', ['testclient'])
    app.state.rate_limiters[SLOT_LIMITER] = RateLimiter(SLOT_LIMITER, limit=1, window_seconds=60)
    params = {'date': upcoming(MONDAY).isoformat(), 'serviceId': 'checkup'}

    first = client.get('/booking/available-slots', params=params, headers={'X-Forwarded-For': '10.0.0.1'})
    second = client.get('/booking/available-slots', params=params, headers={'X-Forwarded-For': '10.0.0.2, 172.16.0.1'})
    repeat = client.get('/booking/available-slots', params=params, headers={'X-Forwarded-For': '10.0.0.1'})

    assert [first.status_code, second.status_code, repeat.status_code] == [200, 200, 429]


def test_create_endpoint_enforces_csrf_when_enabled(client, monkeypatch) -> None:
    monkeypatch.setattr(config, 'CSRF_ENFORCE', True)

    missing = client.post('/booking/create', json=booking_payload())
    invalid = client.post('/booking/create', json=booking_payload(), headers={'X-CSRF-Token': 'not-a-token'})

    token = client.get('/booking/csrf-token').json()['csrfToken']
    accepted = client.post('/booking/create', json=booking_payload(), headers={'X-CSRF-Token': token})

    assert missing.status_code == 403
    assert invalid.status_code == 403
    assert invalid.json() == {'success': False, 'message': 'Invalid or missing CSRF token.'}
    assert accepted.status_code == 201


def test_root_reports_running(client) -> None:
    assert client.get('/').json() == {'status': 'Clinic Booking API Running'}
