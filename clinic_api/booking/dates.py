"""Calendar and clock arithmetic shared by slot generation and booking.

Times are handled as integer minutes since midnight. Weekdays are derived
from the (year, month, day) triple alone, so nothing here depends on the
process timezone.
"""

import calendar
import re
from datetime import date, time

MINUTES_PER_DAY = 24 * 60
SLOT_GRID_MINUTES = 30

# Indexed by date.weekday(): Monday == 0.
WEEKDAY_NAMES = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')

DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$')


def weekday_name(year: int, month: int, day: int) -> str:
    return WEEKDAY_NAMES[date(year, month, day).weekday()]


def weekday_name_for(value: date) -> str:
    return weekday_name(value.year, value.month, value.day)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def parse_date(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` string into a date.

    Raises ValueError for anything else, including impossible dates such as
    2025-02-30.
    """
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise ValueError('Date must use the YYYY-MM-DD format.')
    year, month, day = (int(part) for part in value.split('-'))
    return date(year, month, day)


def normalize_time(value: str) -> str:
    """Return ``HH:MM:SS`` for an ``HH:MM`` or ``HH:MM:SS`` string."""
    match = TIME_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError('Time must use the HH:MM or HH:MM:SS format.')
    hours, minutes, seconds = match.group(1), match.group(2), match.group(3) or '00'
    return f'{hours}:{minutes}:{seconds}'


def to_minutes(value: time | str) -> int:
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    parts = value.split(':')
    if len(parts) < 2:
        raise ValueError(f'Invalid time value: {value!r}')
    hours, minutes = int(parts[0]), int(parts[1])
    if hours == 24 and minutes == 0:
        return MINUTES_PER_DAY
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f'Invalid time value: {value!r}')
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    return f'{hours:02d}:{mins:02d}:00'


def minutes_to_time(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f'{minutes} minutes does not fall within a single day.')
    hours, mins = divmod(minutes, 60)
    return time(hours, mins)


def overlaps(start: int, end: int, other_start: int, other_end: int) -> bool:
    return start < other_end and end > other_start
