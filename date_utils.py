"""
Date helpers shared by validation, repositories and statistics.
All values are timezone-naive local datetimes.
"""

from datetime import datetime, timedelta
from typing import Optional, Tuple

from dateutil import parser
from dateutil.relativedelta import relativedelta

# Date range presets used by installation calendars
DATE_RANGE_PRESETS = ('all', 'today', 'this_week', 'this_month', 'next_week', 'next_month')


def now() -> datetime:
    """Current local time (naive)."""
    return datetime.now()


def start_of_day(value: datetime) -> datetime:
    """Midnight at the start of value's calendar day."""
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def one_year_from(value: datetime) -> datetime:
    """Same instant one calendar year later (Feb 29 falls back to Feb 28)."""
    return value + relativedelta(years=1)


def parse_datetime(value) -> Optional[datetime]:
    """
    Parse a datetime value

    Accepts datetime objects, ISO strings and anything dateutil understands.
    Timezone-aware values are converted to local time and made naive.

    Raises:
        ValueError: if a string cannot be parsed
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = parser.parse(value)
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Invalid date: {value}") from e
    else:
        raise ValueError(f"Invalid date: {value!r}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _week_bounds(value: datetime) -> Tuple[datetime, datetime]:
    start = start_of_day(value) - timedelta(days=value.weekday())
    return start, start + timedelta(days=7)


def _month_bounds(value: datetime) -> Tuple[datetime, datetime]:
    start = start_of_day(value).replace(day=1)
    return start, start + relativedelta(months=1)


def date_range_for(preset: str, reference: Optional[datetime] = None) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Resolve a named date range preset to (start, end)

    Weeks start on Monday. 'all' returns (None, None).

    Raises:
        ValueError: for an unknown preset
    """
    if preset not in DATE_RANGE_PRESETS:
        raise ValueError(f"Unknown date range: {preset}")

    reference = reference or now()
    if preset == 'all':
        return None, None
    if preset == 'today':
        start = start_of_day(reference)
        return start, start + timedelta(days=1)
    if preset == 'this_week':
        return _week_bounds(reference)
    if preset == 'this_month':
        return _month_bounds(reference)
    if preset == 'next_week':
        return _week_bounds(reference + timedelta(weeks=1))
    return _month_bounds(reference + relativedelta(months=1))
