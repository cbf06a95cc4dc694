from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple, Union


def utcnow() -> datetime:
    """Server-side 'now' in UTC (tz-aware)."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utcnow().date()


def as_date(value: Union[date, datetime, None]) -> date:
    """Normalize a date/datetime (or None for today) to a UTC calendar date."""
    if value is None:
        return utc_today()
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse "YYYY-MM-DD" (or a full ISO-8601 datetime) into a date.

    - None / "" -> None
    - raises ValueError on garbage
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    if len(s) == 10:
        return date.fromisoformat(s)
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return as_date(datetime.fromisoformat(s))


def week_window(as_of: date) -> Tuple[date, date]:
    """Monday-aligned 7-day window containing as_of: (week_start, week_end) inclusive."""
    start = as_of - timedelta(days=as_of.weekday())
    return start, start + timedelta(days=6)
