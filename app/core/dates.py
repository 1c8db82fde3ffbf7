"""
Calendar-day helpers shared by the services.

The engine works on plain `date` values; timezones only matter when
resolving "today" for a caller that did not send one.
"""
from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Iterator, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import settings
from app.core.errors import InvalidInputError

DayLike = Union[date, str]


def local_today(tz: Optional[str] = None) -> date:
    """Current calendar day in `tz` (defaults to settings.DEFAULT_TIMEZONE)."""
    name = tz or settings.DEFAULT_TIMEZONE
    try:
        zone = ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidInputError(f"Unknown timezone '{name}'.", field="tz", value=name) from exc
    return datetime.now(tz=zone).date()


def parse_day(value: DayLike, field: str = "date") -> date:
    """Accept a `date` or an ISO `YYYY-MM-DD` string; anything else is invalid input."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as exc:
            raise InvalidInputError(
                f"'{value}' is not a valid calendar day (expected YYYY-MM-DD).",
                field=field,
                value=value,
            ) from exc
    raise InvalidInputError(f"{field} must be a calendar day.", field=field, value=value)


def add_months(d: date, months: int) -> date:
    """Same day-of-month `months` later, clamped to the target month's last day."""
    if months == 0:
        return d
    m0 = (d.month - 1) + months
    year = d.year + (m0 // 12)
    month = (m0 % 12) + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every day from start to end, both inclusive."""
    cursor = start
    while cursor <= end:
        yield cursor
        cursor += timedelta(days=1)


def week_bounds(today: date) -> tuple[date, date]:
    """Sunday-to-Saturday week containing `today`."""
    start = today - timedelta(days=(today.weekday() + 1) % 7)
    return start, start + timedelta(days=6)
