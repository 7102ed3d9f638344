"""
Core Time - Public API
========================
Explicit clock protocol and business-date helpers.
Doctrine: NO datetime.now() in engine logic.
"""

from core.time.business_date import (
    BusinessDateProvider,
    ClockBusinessDate,
    FixedBusinessDate,
    date_or_none,
    iter_business_dates,
    next_business_date,
    nights_between,
    parse_business_date,
    previous_business_date,
)
from core.time.clock import Clock, FixedClock, SystemClock

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "BusinessDateProvider",
    "ClockBusinessDate",
    "FixedBusinessDate",
    "parse_business_date",
    "date_or_none",
    "next_business_date",
    "previous_business_date",
    "nights_between",
    "iter_business_dates",
]
