"""
UTC time helpers.

All timestamps are stored as naive UTC datetimes. The fixture "day" and the
provider quota day are both the UTC calendar date: a request at 23:59 and
one at 00:01 fall in different buckets regardless of elapsed time.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def utc_day(value: Optional[datetime] = None) -> date:
    """UTC calendar date of ``value`` (defaults to now)."""
    return to_naive_utc(value or utcnow()).date()


def utc_day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Half-open ``[start, end)`` range covering one UTC calendar day."""
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)


def isoformat_utc(value: Optional[datetime]) -> Optional[str]:
    """Serialize a naive UTC datetime with an explicit ``Z`` suffix."""
    if value is None:
        return None
    return to_naive_utc(value).isoformat() + "Z"
