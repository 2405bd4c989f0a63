"""
Day-granularity date arithmetic.

All engine dates are calendar days. Inputs may be ``date`` objects,
``datetime`` objects or ISO strings; datetimes are normalized to their
UTC calendar day before any comparison so local-clock offsets never move
a value onto a neighbouring day.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Iterator, List, Optional, Tuple, Union

from .errors import ValidationError

DayLike = Union[date, datetime, str]


def parse_day(value: Optional[DayLike]) -> Optional[date]:
    """
    Normalize a date-like value to a UTC calendar day.

    Returns None for None or an empty string. Raises ValidationError for
    anything that is not a recognizable date.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return parse_day(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            raise ValidationError(f"Invalid date: {value!r}", {"value": value})
    raise ValidationError(f"Invalid date: {value!r}", {"value": repr(value)})


def require_day(value: Optional[DayLike], field: str) -> date:
    day = parse_day(value)
    if day is None:
        raise ValidationError(f"{field} is required", {"field": field})
    return day


def parse_timestamp(value: Optional[Union[datetime, str]]) -> Optional[datetime]:
    """Parse an ISO timestamp into an aware UTC datetime (naive values are taken as UTC)."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"Invalid timestamp: {value!r}", {"value": value})
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_str(day: date) -> str:
    return day.isoformat()


def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def enumerate_dates(from_date: DayLike, to_date: DayLike) -> List[str]:
    """Inclusive list of ISO day strings; empty when to_date < from_date."""
    start = require_day(from_date, "from_date")
    end = require_day(to_date, "to_date")
    return [day_str(d) for d in iter_days(start, end)]


def is_weekday(day: date) -> bool:
    return day.weekday() < 5


def weekdays_between(start: date, end: date) -> List[date]:
    return [d for d in iter_days(start, end) if is_weekday(d)]


def count_workdays(start: DayLike, end: DayLike) -> int:
    """Inclusive count of Monday-Friday days; 0 when end < start."""
    start_day = require_day(start, "start")
    end_day = require_day(end, "end")
    if end_day < start_day:
        return 0

    total_days = (end_day - start_day).days + 1
    full_weeks, extra = divmod(total_days, 7)
    count = full_weeks * 5
    weekday = start_day.weekday()
    for offset in range(extra):
        if (weekday + offset) % 7 < 5:
            count += 1
    return count


def date_overlap(
    a_start: date, a_end: date, b_start: date, b_end: date
) -> Optional[Tuple[date, date]]:
    """Intersection of two inclusive intervals, or None when they do not overlap."""
    start = max(a_start, b_start)
    end = min(a_end, b_end)
    if start > end:
        return None
    return start, end


def week_start(day: date) -> date:
    """Monday of the ISO week containing ``day`` (Sunday belongs to the previous week)."""
    return day - timedelta(days=day.weekday())
