"""Shared input validation for slot queries, month queries and bookings.

Every public entry point builds one of the request models below, so the
field rules live in one place.
"""

import logging
import re
from datetime import date, timedelta

from pydantic import BaseModel, EmailStr, field_validator, model_validator

from clinic_api.booking.dates import normalize_time, parse_date
from clinic_api.core import config

logger = logging.getLogger(__name__)

SERVICE_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]{3,50}$')
NAME_PATTERN = re.compile(r"^[^\W\d_]+(?:[\s'-]+[^\W\d_]+)*$")
CONTROL_CHARACTERS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')
UNSAFE_PATTERNS = [
    re.compile(r'<\s*script', re.IGNORECASE),
    re.compile(r'<\s*/?\s*[a-z][^>]*>', re.IGNORECASE),
    re.compile(r'javascript\s*:', re.IGNORECASE),
    re.compile(r'vbscript\s*:', re.IGNORECASE),
    re.compile(r'\bon[a-z]+\s*=', re.IGNORECASE),
    re.compile(r'eval\s*\(', re.IGNORECASE),
    re.compile(r'expression\s*\(', re.IGNORECASE),
]
MOBILE_PATTERN = re.compile(r'^04\d{8}$')
LANDLINE_PATTERN = re.compile(r'^0[2378]\d{8}$')
REPEATED_DIGITS_PATTERN = re.compile(r'^(\d)\1{9}$')
DISPOSABLE_EMAIL_DOMAINS = {
    '10minutemail.com',
    'tempmail.org',
    'guerrillamail.com',
    'mailinator.com',
    'yopmail.com',
    'temp-mail.org',
}

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 100
MAX_EMAIL_LENGTH = 254
MAX_NOTES_LENGTH = 500
MIN_SERVICE_DURATION_MINUTES = 15
MAX_SERVICE_DURATION_MINUTES = 480


def ensure_safe_text(value: str, field_name: str) -> str:
    if CONTROL_CHARACTERS.search(value):
        logger.warning('Rejected %s containing control characters.', field_name)
        raise ValueError(f'{field_name} contains invalid characters.')
    if any(pattern.search(value) for pattern in UNSAFE_PATTERNS):
        logger.warning('Rejected %s containing markup or script content.', field_name)
        raise ValueError(f'{field_name} contains potentially harmful content.')
    return value


def validate_service_id(value: str) -> str:
    normalized = ensure_safe_text(value.strip(), 'Service ID')
    if not SERVICE_ID_PATTERN.match(normalized):
        raise ValueError('Invalid service ID format.')
    return normalized


def validate_date_string(value: str, earliest: date, latest: date) -> date:
    parsed = parse_date(ensure_safe_text(value.strip(), 'Date'))
    if parsed < earliest:
        raise ValueError(f'Date must be on or after {earliest.isoformat()}.')
    if parsed > latest:
        raise ValueError(f'Date must be on or before {latest.isoformat()}.')
    return parsed


def normalize_phone(value: str) -> str:
    digits = re.sub(r'\D', '', value)
    if digits.startswith('61') and len(digits) == 11:
        digits = f'0{digits[2:]}'

    if not (MOBILE_PATTERN.match(digits) or LANDLINE_PATTERN.match(digits)):
        raise ValueError('Must be a valid Australian phone number.')
    if REPEATED_DIGITS_PATTERN.match(digits):
        raise ValueError('Invalid phone number pattern.')
    return digits


def slot_query_window(today: date | None = None) -> tuple[date, date]:
    today = today or date.today()
    return (
        today - timedelta(days=config.SLOT_QUERY_PAST_DAYS),
        today + timedelta(days=config.SLOT_QUERY_FUTURE_DAYS),
    )


def booking_window(today: date | None = None) -> tuple[date, date]:
    today = today or date.today()
    return today, today + timedelta(days=config.BOOKING_WINDOW_DAYS)


class SlotQuery(BaseModel):
    date: str
    service_id: str

    @field_validator('service_id')
    @classmethod
    def validate_service(cls, value: str) -> str:
        return validate_service_id(value)

    @field_validator('date')
    @classmethod
    def validate_date(cls, value: str) -> str:
        earliest, latest = slot_query_window()
        return validate_date_string(value, earliest, latest).isoformat()

    @property
    def day(self) -> date:
        return parse_date(self.date)


class MonthQuery(BaseModel):
    year: int
    month: int
    service_id: str

    @field_validator('service_id')
    @classmethod
    def validate_service(cls, value: str) -> str:
        return validate_service_id(value)

    @field_validator('month')
    @classmethod
    def validate_month(cls, value: int) -> int:
        if not 1 <= value <= 12:
            raise ValueError('Month must be between 1 and 12.')
        return value

    @field_validator('year')
    @classmethod
    def validate_year(cls, value: int) -> int:
        current_year = date.today().year
        if not current_year - 1 <= value <= current_year + 2:
            raise ValueError(f'Year must be between {current_year - 1} and {current_year + 2}.')
        return value


class CreateAppointmentRequest(BaseModel):
    service: str
    date: str
    time: str
    name: str
    email: EmailStr
    phone: str
    notes: str | None = None

    @model_validator(mode='before')
    @classmethod
    def reject_unsafe_fields(cls, data):
        if isinstance(data, dict):
            for field_name, value in data.items():
                if isinstance(value, str):
                    ensure_safe_text(value, str(field_name))
        return data

    @field_validator('service')
    @classmethod
    def validate_service(cls, value: str) -> str:
        return validate_service_id(value)

    @field_validator('date')
    @classmethod
    def validate_date(cls, value: str) -> str:
        earliest, latest = booking_window()
        return validate_date_string(value, earliest, latest).isoformat()

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        return normalize_time(value)

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = ' '.join(value.split())
        if not MIN_NAME_LENGTH <= len(normalized) <= MAX_NAME_LENGTH:
            raise ValueError(f'Name must be between {MIN_NAME_LENGTH} and {MAX_NAME_LENGTH} characters.')
        if not NAME_PATTERN.match(normalized):
            raise ValueError('Name must contain only letters, spaces, hyphens, and apostrophes.')
        return normalized

    @field_validator('email', mode='before')
    @classmethod
    def validate_email_shape(cls, value):
        if not isinstance(value, str):
            return value
        normalized = value.strip().lower()
        if len(normalized) > MAX_EMAIL_LENGTH:
            raise ValueError(f'Email must be {MAX_EMAIL_LENGTH} characters or fewer.')
        domain = normalized.rsplit('@', 1)[-1]
        if domain in DISPOSABLE_EMAIL_DOMAINS:
            raise ValueError('Disposable email addresses are not allowed.')
        return normalized

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, value: str) -> str:
        return normalize_phone(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_NOTES_LENGTH} characters or fewer.')

        return normalized

    @property
    def day(self) -> date:
        return parse_date(self.date)
