"""
Hotel Night Audit Engine - Day Statistics
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from core.config.rules import CENT
from engines.hotel_night_audit.models import (
    IN_HOUSE_STATUSES,
    ZERO,
    DayStatistics,
    Reservation,
    ReservationStatus,
)

_NOT_ARRIVING = frozenset({ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW})


def occupancy_percent(occupied: int, total_rooms: int) -> int:
    """Whole percent, half rounded up. 0 when the property has no rooms."""
    if total_rooms <= 0:
        return 0
    ratio = Decimal(occupied) * 100 / Decimal(total_rooms)
    return min(100, int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP)))


def compute_day_statistics(
    reservations: Iterable[Reservation], business_date: date, total_rooms: int
) -> DayStatistics:
    """Pure: same snapshot and date give the same numbers."""
    check_ins = check_outs = occupied = no_shows = cancellations = 0
    revenue = ZERO

    for r in reservations:
        if r.check_in == business_date and r.status not in _NOT_ARRIVING:
            check_ins += 1
            if r.is_settled:
                revenue += r.total_amount
        if r.check_out == business_date and r.status == ReservationStatus.CHECKED_OUT:
            check_outs += 1
        if r.status in IN_HOUSE_STATUSES and r.occupies(business_date):
            occupied += 1
        if r.status == ReservationStatus.NO_SHOW and r.check_in == business_date:
            no_shows += 1
        if r.status == ReservationStatus.CANCELLED and r.cancelled_on == business_date:
            cancellations += 1

    average = (revenue / check_ins).quantize(CENT, rounding=ROUND_HALF_UP) if check_ins else ZERO

    return DayStatistics(
        business_date=business_date,
        check_ins=check_ins,
        check_outs=check_outs,
        occupied_rooms=occupied,
        total_rooms=max(total_rooms, 0),
        occupancy_rate=occupancy_percent(occupied, total_rooms),
        revenue=revenue,
        average_rate=average,
        no_shows=no_shows,
        cancellations=cancellations,
    )
