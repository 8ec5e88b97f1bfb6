import datetime
import calendar
from typing import Iterator, Optional, Tuple, Union

DateLike = Union[datetime.date, datetime.datetime, str]


def month_name(m: int) -> str:
    """
    Returns the full name of a month.
    Example: 1 -> 'January', 2 -> 'February'.
    """
    # 1900 is an arbitrary valid year used just to format the month name
    return datetime.date(1900, m, 1).strftime("%B")


def add_months(start_date: datetime.date, months: int) -> datetime.date:
    """
    Calculates the date N months from the start_date.
    Handles year rollovers and end-of-month adjustments (e.g., Jan 31 + 1 month -> Feb 28).
    """
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1

    # monthrange returns (weekday_of_first_day, number_of_days)
    days_in_new_month = calendar.monthrange(year, month)[1]

    # Clamp the day (e.g., if start was 31st but new month only has 30 days)
    day = min(start_date.day, days_in_new_month)

    return datetime.date(year, month, day)


# --- PARSING ---

def parse_date(value: Optional[DateLike]) -> Optional[datetime.date]:
    """
    Normalizes a date, datetime or ISO string ('2025-11-05' or a full timestamp)
    to a calendar date. Returns None for empty or malformed input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        text = str(value).strip()
        if len(text) > 10:
            return datetime.datetime.fromisoformat(text).date()
        return datetime.date.fromisoformat(text)
    except ValueError:
        return None


def parse_datetime(value: Optional[DateLike]) -> Optional[datetime.datetime]:
    """
    Normalizes a timestamp to a naive local datetime.
    Plain dates become midnight of that day. Returns None for malformed input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time.min)
    try:
        return datetime.datetime.fromisoformat(str(value).strip())
    except ValueError:
        return None


# --- DURATIONS ---

def minutes_between(start: datetime.datetime, end: datetime.datetime) -> int:
    """Whole minutes from start to end, floored."""
    return int((end - start).total_seconds() // 60)


def round_half_up(value: float) -> int:
    """Rounds .5 away from zero for positives (Python's round() is banker's rounding)."""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def format_duration(minutes: Optional[int]) -> str:
    """
    Formats minutes for display.
    Example: 150 -> '2h 30m', 45 -> '45m', 120 -> '2h'.
    """
    if not minutes or minutes < 1:
        return "0m"
    hours, rest = divmod(minutes, 60)
    if hours == 0:
        return f"{rest}m"
    if rest == 0:
        return f"{hours}h"
    return f"{hours}h {rest}m"


def hour_label(hour: int) -> str:
    return f"{hour:02d}:00"


# --- PERIOD BOUNDARIES ---

def week_bounds(day: datetime.date) -> Tuple[datetime.date, datetime.date]:
    """Monday-to-Sunday week containing the given day."""
    start = day - datetime.timedelta(days=day.weekday())
    return start, start + datetime.timedelta(days=6)


def month_bounds(day: datetime.date) -> Tuple[datetime.date, datetime.date]:
    """First and last calendar day of the month containing the given day."""
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def date_range(start: datetime.date, end: datetime.date) -> Iterator[datetime.date]:
    """Yields every date from start to end, inclusive."""
    current = start
    while current <= end:
        yield current
        current += datetime.timedelta(days=1)
