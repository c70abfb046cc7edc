# habitflow/analytics/dates.py
import calendar
from datetime import date, datetime, timedelta
from typing import List, Union

from ..errors import ValidationError

DATE_FORMAT = "%Y-%m-%d"

WEEKDAY_INDEX = {"monday": 0, "sunday": 6}


def parse_date(value: Union[str, date]) -> date:
    """Accept a ``date`` or a ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise ValidationError(f"Date must be in ISO 8601 format (YYYY-MM-DD), got '{value}'")


def format_date(value: date) -> str:
    return value.isoformat()


def today() -> date:
    return date.today()


def days_back(end: date, days: int) -> List[date]:
    """The ``days`` calendar days ending at ``end`` inclusive, oldest first."""
    return [end - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def week_start(day: date, week_starts_on: str = "sunday") -> date:
    delta = (day.weekday() - WEEKDAY_INDEX[week_starts_on]) % 7
    return day - timedelta(days=delta)


def week_dates(day: date, week_starts_on: str = "sunday") -> List[date]:
    start = week_start(day, week_starts_on)
    return [start + timedelta(days=offset) for offset in range(7)]


def month_days(year: int, month: int) -> List[date]:
    _, last = calendar.monthrange(year, month)
    return [date(year, month, day) for day in range(1, last + 1)]
