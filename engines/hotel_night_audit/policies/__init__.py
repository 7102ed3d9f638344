"""
Hotel Night Audit Engine - Validation Gates
=============================================
Eight ordered preconditions for sealing a business date.

Each gate is a pure function GateContext -> list[GateIssue]. The chain
runs every gate and collects everything; operators fix all problems
in one pass instead of discovering them one closure attempt at a time.

Blocking issues stop the closure. Informational issues (continuing
guests, same-day no-show candidates) are reported and never block.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from core.time.business_date import next_business_date
from engines.hotel_night_audit.models import (
    ZERO,
    ChecklistItem,
    Reservation,
    ReservationStatus,
)

# ── Issue categories ─────────────────────────────────────────
DATE_NOT_CLOSABLE = "DATE_NOT_CLOSABLE"
ALREADY_CLOSED = "ALREADY_CLOSED"
SEQUENCE_VIOLATION = "SEQUENCE_VIOLATION"
PENDING_CHECKOUT = "PENDING_CHECKOUT"
UNSETTLED_CHECKOUT = "UNSETTLED_CHECKOUT"
PENDING_CHECKIN = "PENDING_CHECKIN"
NO_SHOW_CANDIDATE = "NO_SHOW_CANDIDATE"
NO_SHOW_DECLINED = "NO_SHOW_DECLINED"
NO_SHOW_CONFIRMATION_REQUIRED = "NO_SHOW_CONFIRMATION_REQUIRED"
CONTINUING_GUEST = "CONTINUING_GUEST"
CASHIER_SHIFT_OPEN = "CASHIER_SHIFT_OPEN"
CHECKLIST_INCOMPLETE = "CHECKLIST_INCOMPLETE"

SEVERITY_BLOCKING = "BLOCKING"
SEVERITY_INFO = "INFO"


@dataclass(frozen=True)
class GateIssue:
    gate: str
    category: str
    message: str
    severity: str = SEVERITY_BLOCKING
    reservation_id: Optional[str] = None
    guest_name: Optional[str] = None
    room_number: Optional[str] = None
    amount: Optional[Decimal] = None
    expected_date: Optional[date] = None

    def __post_init__(self):
        if self.severity not in (SEVERITY_BLOCKING, SEVERITY_INFO):
            raise ValueError(f"Unknown severity '{self.severity}'.")
        if not self.message:
            raise ValueError("message must be non-empty.")

    @property
    def blocking(self) -> bool:
        return self.severity == SEVERITY_BLOCKING

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "gate": self.gate,
            "category": self.category,
            "severity": self.severity,
            "message": self.message,
        }
        if self.reservation_id is not None:
            data["reservation_id"] = self.reservation_id
            data["guest_name"] = self.guest_name
            data["room_number"] = self.room_number
        if self.amount is not None:
            data["amount"] = str(self.amount)
        if self.expected_date is not None:
            data["expected_date"] = self.expected_date.isoformat()
        return data


@dataclass(frozen=True)
class GateContext:
    """Read-only snapshot every gate sees."""

    business_date: date
    today: date
    last_closed_date: Optional[date]
    already_closed: bool
    reservations: Tuple[Reservation, ...]
    open_folio_balances: Mapping[str, Decimal] = field(default_factory=dict)
    open_cashier_shifts: Tuple[str, ...] = ()
    checklist: Tuple[ChecklistItem, ...] = ()
    audit_start_date: Optional[date] = None
    current_business_date: Optional[date] = None
    process_no_shows: bool = True

    def expected_date(self) -> Optional[date]:
        """Next date the store may close, or None when any date is allowed."""
        if self.last_closed_date is not None:
            return next_business_date(self.last_closed_date)
        if self.current_business_date is not None:
            return self.current_business_date
        return self.audit_start_date

    def balance_due(self, reservation: Reservation) -> Decimal:
        if reservation.reservation_id in self.open_folio_balances:
            return self.open_folio_balances[reservation.reservation_id]
        return reservation.outstanding_balance


def _stay_issue(gate, category, message, r: Reservation, *, amount=None,
                severity=SEVERITY_BLOCKING) -> GateIssue:
    return GateIssue(
        gate=gate, category=category, message=message, severity=severity,
        reservation_id=r.reservation_id, guest_name=r.guest_name,
        room_number=r.room_number, amount=amount,
    )


def _by_room(reservations: Sequence[Reservation]) -> List[Reservation]:
    return sorted(reservations, key=lambda r: (r.room_number, r.reservation_id))


# ══════════════════════════════════════════════════════════════
# GATES (evaluated in this order)
# ══════════════════════════════════════════════════════════════

def date_in_past_gate(ctx: GateContext) -> List[GateIssue]:
    if ctx.business_date < ctx.today:
        return []
    return [GateIssue(
        gate="date_in_past", category=DATE_NOT_CLOSABLE,
        message=(f"{ctx.business_date.isoformat()} cannot be closed before it ends "
                 f"(today is {ctx.today.isoformat()})."),
    )]


def not_already_closed_gate(ctx: GateContext) -> List[GateIssue]:
    if not ctx.already_closed:
        return []
    return [GateIssue(
        gate="not_already_closed", category=ALREADY_CLOSED,
        message=f"{ctx.business_date.isoformat()} is already closed.",
    )]


def sequential_closing_gate(ctx: GateContext) -> List[GateIssue]:
    if ctx.already_closed:
        return []
    expected = ctx.expected_date()
    if expected is None or ctx.business_date == expected:
        return []
    if ctx.last_closed_date is not None:
        previous = f"Last closed day is {ctx.last_closed_date.isoformat()}. "
    else:
        previous = "No day has been closed yet. "
    return [GateIssue(
        gate="sequential_closing", category=SEQUENCE_VIOLATION,
        message=(f"{previous}Days close in order: next day to close is "
                 f"{expected.isoformat()}."),
        expected_date=expected,
    )]


def pending_checkouts_gate(ctx: GateContext) -> List[GateIssue]:
    issues = []
    for r in _by_room(ctx.reservations):
        if r.status != ReservationStatus.CHECKED_IN:
            continue
        if r.check_out < ctx.business_date:
            issues.append(_stay_issue(
                "pending_checkouts", PENDING_CHECKOUT,
                f"{r.guest_name} (room {r.room_number}) was due to check out on "
                f"{r.check_out.isoformat()} and is still checked in.", r,
            ))
        elif r.check_out > ctx.business_date:
            issues.append(_stay_issue(
                "pending_checkouts", CONTINUING_GUEST,
                f"{r.guest_name} (room {r.room_number}) continues until "
                f"{r.check_out.isoformat()}.", r, severity=SEVERITY_INFO,
            ))
    return issues


def unsettled_checkouts_gate(ctx: GateContext) -> List[GateIssue]:
    issues = []
    for r in _by_room(ctx.reservations):
        if r.status != ReservationStatus.CHECKED_IN or r.check_out != ctx.business_date:
            continue
        due = ctx.balance_due(r)
        if due > ZERO:
            issues.append(_stay_issue(
                "unsettled_checkouts", UNSETTLED_CHECKOUT,
                f"{r.guest_name} (room {r.room_number}) checks out "
                f"{r.check_out.isoformat()} with unpaid balance {due}.",
                r, amount=due,
            ))
    return issues


def pending_checkins_gate(ctx: GateContext) -> List[GateIssue]:
    issues = []
    for r in _by_room(ctx.reservations):
        if r.status != ReservationStatus.CONFIRMED or r.actual_check_in is not None:
            continue
        if r.check_in < ctx.business_date:
            issues.append(_stay_issue(
                "pending_checkins", PENDING_CHECKIN,
                f"{r.guest_name} (room {r.room_number}) was due to arrive on "
                f"{r.check_in.isoformat()} and is neither checked in nor resolved.", r,
            ))
        elif r.check_in == ctx.business_date:
            if ctx.process_no_shows:
                issues.append(_stay_issue(
                    "pending_checkins", NO_SHOW_CANDIDATE,
                    f"{r.guest_name} (room {r.room_number}) has not arrived and will "
                    f"be processed as a no-show.", r, severity=SEVERITY_INFO,
                ))
            else:
                issues.append(_stay_issue(
                    "pending_checkins", PENDING_CHECKIN,
                    f"{r.guest_name} (room {r.room_number}) is expected today and "
                    f"has not checked in.", r,
                ))
    return issues


def cashier_shift_gate(ctx: GateContext) -> List[GateIssue]:
    if not ctx.open_cashier_shifts:
        return []
    holders = ", ".join(ctx.open_cashier_shifts)
    return [GateIssue(
        gate="cashier_shift_closed", category=CASHIER_SHIFT_OPEN,
        message=f"Cashier shift still open ({holders}). Close the drawer first.",
    )]


def checklist_gate(ctx: GateContext) -> List[GateIssue]:
    missing = [item for item in ctx.checklist if not item.completed]
    if not missing:
        return []
    return [GateIssue(
        gate="checklist_complete", category=CHECKLIST_INCOMPLETE,
        message=f"Checklist item not completed: {item.task}.",
    ) for item in missing]


Gate = Callable[[GateContext], List[GateIssue]]

DEFAULT_GATES: Tuple[Gate, ...] = (
    date_in_past_gate,
    not_already_closed_gate,
    sequential_closing_gate,
    pending_checkouts_gate,
    unsettled_checkouts_gate,
    pending_checkins_gate,
    cashier_shift_gate,
    checklist_gate,
)

# Re-checked under the system lock just before processing.
SEQUENCE_GATES: Tuple[Gate, ...] = DEFAULT_GATES[:3]


# ══════════════════════════════════════════════════════════════
# CHAIN RESULT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class GateChainResult:
    """
    Pass, or Blocked with the full issue list.

    Invariants:
    - passed <=> no blocking issues
    - notes hold only informational issues
    """

    business_date: date
    issues: Tuple[GateIssue, ...] = ()
    notes: Tuple[GateIssue, ...] = ()

    def __post_init__(self):
        if any(not i.blocking for i in self.issues):
            raise ValueError("issues must all be blocking.")
        if any(n.blocking for n in self.notes):
            raise ValueError("notes must all be informational.")

    @property
    def passed(self) -> bool:
        return not self.issues

    @property
    def blocked(self) -> bool:
        return bool(self.issues)

    def has_category(self, category: str) -> bool:
        return any(i.category == category for i in self.issues)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.business_date.isoformat(),
            "passed": self.passed,
            "issues": [i.to_dict() for i in self.issues],
            "notes": [n.to_dict() for n in self.notes],
        }


class ValidationGateChain:
    def __init__(self, gates: Sequence[Gate] = DEFAULT_GATES):
        self._gates = tuple(gates)

    def evaluate(self, ctx: GateContext) -> GateChainResult:
        issues: List[GateIssue] = []
        notes: List[GateIssue] = []
        for gate in self._gates:
            for issue in gate(ctx):
                (issues if issue.blocking else notes).append(issue)
        return GateChainResult(
            business_date=ctx.business_date,
            issues=tuple(issues),
            notes=tuple(notes),
        )
