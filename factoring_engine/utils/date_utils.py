"""Date manipulation utilities"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

SECONDS_PER_DAY = 24 * 60 * 60


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_due_date(value: Union[date, datetime, str, None]) -> Optional[datetime]:
    """Parse an invoice due date into an aware datetime, or None if unparseable"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    text = str(value).strip()
    if not text:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        return None


def days_between(start: datetime, end: datetime) -> int:
    """Whole days from start to end; exact halves round up"""
    delta = (ensure_utc(end) - ensure_utc(start)).total_seconds() / SECONDS_PER_DAY
    return int((delta + 0.5) // 1)


def add_days(from_dt: datetime, days: int) -> datetime:
    return from_dt + timedelta(days=days)
