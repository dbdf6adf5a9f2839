from datetime import date, timedelta

MONDAY = 0
SUNDAY = 6


def upcoming(weekday: int, weeks_ahead: int = 1) -> date:
    """Return a strictly future date falling on ``weekday`` (Monday == 0)."""
    today = date.today()
    days_ahead = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=days_ahead + 7 * (weeks_ahead - 1))
