"""
Core Time - Business Dates
============================
The business date is the operational calendar day being worked,
distinct from the wall-clock date. A property in UTC+4 is still on
"yesterday" for a few hours after UTC midnight.

All helpers are pure; the providers take their time from a Clock.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterator, Optional, Protocol, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.time.clock import Clock

DateLike = Union[date, str]


# ══════════════════════════════════════════════════════════════
# PURE HELPERS
# ══════════════════════════════════════════════════════════════

def parse_business_date(value: DateLike) -> date:
    """
    Coerce an ISO-8601 string or date into a date.

    datetimes are rejected: a business date never carries a time part.
    """
    if isinstance(value, datetime):
        raise ValueError("Business date must be a date, not a datetime.")
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Business date must be a non-empty ISO date string.")
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError as exc:
        raise ValueError(f"Invalid business date '{value}'.") from exc


def next_business_date(value: date) -> date:
    return value + timedelta(days=1)


def previous_business_date(value: date) -> date:
    return value - timedelta(days=1)


def nights_between(check_in: date, check_out: date) -> int:
    """Whole calendar days between arrival and departure (may be <= 0)."""
    return (check_out - check_in).days


def iter_business_dates(start: date, end: date) -> Iterator[date]:
    """Yield start..end inclusive. Empty when start > end."""
    current = start
    while current <= end:
        yield current
        current = next_business_date(current)


# ══════════════════════════════════════════════════════════════
# PROVIDER PROTOCOL
# ══════════════════════════════════════════════════════════════

class BusinessDateProvider(Protocol):
    """Source of the property's current business date."""

    def current(self) -> date:
        ...  # pragma: no cover


class ClockBusinessDate:
    """Business date derived from a Clock in the property's time zone."""

    def __init__(self, clock: Clock, tz_name: str = "UTC") -> None:
        try:
            self._tz = ZoneInfo(tz_name)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"Unknown time zone '{tz_name}'.") from exc
        self._clock = clock

    def current(self) -> date:
        return self._clock.now_utc().astimezone(self._tz).date()


class FixedBusinessDate:
    """Pinned business date for tests and back-office tooling."""

    def __init__(self, value: DateLike) -> None:
        self._value = parse_business_date(value)

    def current(self) -> date:
        return self._value

    def set(self, value: DateLike) -> None:
        self._value = parse_business_date(value)


def date_or_none(value: Optional[DateLike]) -> Optional[date]:
    if value is None or value == "":
        return None
    return parse_business_date(value)
