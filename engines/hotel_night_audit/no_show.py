"""
Hotel Night Audit Engine - No-Show Detector
=============================================
Finds confirmed guests who never arrived on the audit date, prices
their penalty, and (after operator confirmation) marks them NO_SHOW.

Penalty = one night: contracted / nights, or the full amount when the
stay has no nights. Always 0 < penalty <= contracted. A reservation
with no contracted amount is marked NO_SHOW without a penalty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, List, Optional, Sequence, Tuple

from core.config.rules import CENT, to_money
from engines.hotel_night_audit.models import (
    ROOM_VACANT,
    ZERO,
    Reservation,
    ReservationStatus,
)
from engines.hotel_night_audit.stores import ReservationStore, RoomStatusService

logger = logging.getLogger("night_audit.no_show")


def calculate_no_show_penalty(total_amount: Decimal, nights: int) -> Optional[Decimal]:
    """None when there is nothing to charge."""
    total = to_money(total_amount)
    if total <= ZERO:
        return None
    if nights <= 0:
        return total
    return min(total, (total / nights).quantize(CENT, rounding=ROUND_HALF_UP))


def is_no_show_candidate(reservation: Reservation, business_date: date) -> bool:
    return (
        reservation.status == ReservationStatus.CONFIRMED
        and reservation.check_in == business_date
        and reservation.actual_check_in is None
    )


@dataclass(frozen=True)
class NoShowCandidate:
    reservation_id: str
    guest_name: str
    room_id: str
    room_number: str
    penalty: Optional[Decimal]

    def to_dict(self) -> dict:
        return {
            "reservation_id": self.reservation_id,
            "guest_name": self.guest_name,
            "room_number": self.room_number,
            "penalty": str(self.penalty) if self.penalty is not None else None,
        }


@dataclass(frozen=True)
class NoShowSummary:
    """What the operator is asked to confirm."""

    business_date: date
    candidates: Tuple[NoShowCandidate, ...] = ()

    @property
    def guest_count(self) -> int:
        return len(self.candidates)

    @property
    def total_penalty(self) -> Decimal:
        return sum((c.penalty for c in self.candidates if c.penalty is not None), ZERO)

    def describe(self) -> str:
        if not self.candidates:
            return f"No no-shows for {self.business_date.isoformat()}."
        lines = [
            f"{self.guest_count} guest(s) did not arrive on "
            f"{self.business_date.isoformat()}:"
        ]
        for c in self.candidates:
            charge = c.penalty if c.penalty is not None else "no charge"
            lines.append(f"- {c.guest_name} (room {c.room_number}): {charge}")
        lines.append(f"Total no-show charge: {self.total_penalty}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "date": self.business_date.isoformat(),
            "guest_count": self.guest_count,
            "total_penalty": str(self.total_penalty),
            "candidates": [c.to_dict() for c in self.candidates],
        }


NoShowDecision = Callable[[NoShowSummary], bool]


def confirm_all(summary: NoShowSummary) -> bool:
    """Decision used by the unattended closure path."""
    return True


def decline_all(summary: NoShowSummary) -> bool:
    return False


@dataclass(frozen=True)
class NoShowResult:
    processed: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()


class NoShowDetector:
    def __init__(
        self,
        reservations: ReservationStore,
        rooms: RoomStatusService,
        on_marked: Optional[Callable[[Reservation], None]] = None,
    ):
        self._reservations = reservations
        self._rooms = rooms
        self._on_marked = on_marked

    def detect(
        self, business_date: date, snapshot: Optional[Sequence[Reservation]] = None
    ) -> NoShowSummary:
        pool = snapshot if snapshot is not None else self._reservations.list_reservations()
        candidates = tuple(
            NoShowCandidate(
                reservation_id=r.reservation_id,
                guest_name=r.guest_name,
                room_id=r.room_id,
                room_number=r.room_number,
                penalty=calculate_no_show_penalty(r.total_amount, r.nights),
            )
            for r in sorted(pool, key=lambda r: (r.room_number, r.reservation_id))
            if is_no_show_candidate(r, business_date)
        )
        return NoShowSummary(business_date=business_date, candidates=candidates)

    def apply(self, summary: NoShowSummary, at: datetime) -> NoShowResult:
        """
        Mark every candidate NO_SHOW and free its room.

        Reservation writes propagate errors. Room status updates are
        best-effort and come back as warnings.
        """
        processed: List[str] = []
        warnings: List[str] = []

        for candidate in summary.candidates:
            reservation = self._reservations.get(candidate.reservation_id)
            if reservation is None or not is_no_show_candidate(reservation, summary.business_date):
                warnings.append(
                    f"Reservation {candidate.reservation_id} changed before no-show "
                    f"processing; skipped."
                )
                continue

            reservation.mark_no_show(summary.business_date, candidate.penalty, at)
            self._reservations.save(reservation)
            processed.append(reservation.reservation_id)
            logger.info(
                f"No-show: {reservation.reservation_id} ({reservation.guest_name}) "
                f"penalty {candidate.penalty}"
            )

            try:
                self._rooms.set_room_status(reservation.room_id, ROOM_VACANT)
            except Exception as exc:
                logger.error(
                    f"Room {reservation.room_number} could not be set VACANT: {exc}",
                    exc_info=True,
                )
                warnings.append(
                    f"Room {reservation.room_number} status not updated: {exc}"
                )

            if self._on_marked is not None:
                self._on_marked(reservation)

        return NoShowResult(processed=tuple(processed), warnings=tuple(warnings))
