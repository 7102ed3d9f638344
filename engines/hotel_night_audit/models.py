"""
Hotel Night Audit Engine - Domain Model
=========================================
Reservations, folios and the audit trail the closure produces.

Reservation and Folio are mutable aggregates guarded by their own
methods. Everything written to the audit trail (transactions, records,
override entries) is frozen.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from core.config.rules import to_money
from core.time.business_date import nights_between, parse_business_date
from engines.hotel_night_audit.errors import (
    FolioClosedError,
    OutstandingBalance,
    ReservationStateError,
)

ZERO = Decimal("0.00")

ROOM_VACANT = "VACANT"
ROOM_OCCUPIED = "OCCUPIED"


# ══════════════════════════════════════════════════════════════
# RESERVATION
# ══════════════════════════════════════════════════════════════

class ReservationStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    NO_SHOW = "NO_SHOW"
    CANCELLED = "CANCELLED"


_ALLOWED_TRANSITIONS = {
    ReservationStatus.CONFIRMED: frozenset({
        ReservationStatus.CHECKED_IN,
        ReservationStatus.NO_SHOW,
        ReservationStatus.CANCELLED,
    }),
    ReservationStatus.CHECKED_IN: frozenset({ReservationStatus.CHECKED_OUT}),
}

IN_HOUSE_STATUSES = frozenset({
    ReservationStatus.CHECKED_IN,
    ReservationStatus.CHECKED_OUT,
})


@dataclass(frozen=True)
class Payment:
    amount: Decimal
    paid_on: date
    method: str = "CASH"
    reference: str = ""

    def __post_init__(self) -> None:
        amount = to_money(self.amount)
        if amount <= ZERO:
            raise ValueError("Payment amount must be positive.")
        object.__setattr__(self, "amount", amount)


@dataclass
class Reservation:
    """
    One guest stay.

    Settled means the paid flag is set or recorded payments cover the
    contracted amount. Status changes only through the transition
    methods; CHECKED_OUT, CANCELLED and NO_SHOW are final.
    """

    reservation_id: str
    guest_name: str
    room_id: str
    room_number: str
    check_in: date
    check_out: date
    total_amount: Decimal
    status: ReservationStatus = ReservationStatus.CONFIRMED
    is_paid: bool = False
    payments: List[Payment] = field(default_factory=list)
    actual_check_in: Optional[datetime] = None
    checked_out_at: Optional[datetime] = None
    cancelled_on: Optional[date] = None
    no_show_date: Optional[date] = None
    no_show_penalty: Optional[Decimal] = None
    no_show_marked_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.reservation_id:
            raise ValueError("reservation_id must be non-empty.")
        if not self.room_id:
            raise ValueError("room_id must be non-empty.")
        self.check_in = parse_business_date(self.check_in)
        self.check_out = parse_business_date(self.check_out)
        if self.check_out < self.check_in:
            raise ValueError("check_out must not precede check_in.")
        self.total_amount = to_money(self.total_amount)
        if self.total_amount < ZERO:
            raise ValueError("total_amount must be >= 0.")
        self.status = ReservationStatus(self.status)
        self.payments = list(self.payments)

    # ── derived values ────────────────────────────────────────

    @property
    def nights(self) -> int:
        return nights_between(self.check_in, self.check_out)

    @property
    def paid_amount(self) -> Decimal:
        return sum((p.amount for p in self.payments), ZERO)

    @property
    def is_settled(self) -> bool:
        return self.is_paid or self.paid_amount >= self.total_amount

    @property
    def outstanding_balance(self) -> Decimal:
        if self.is_settled:
            return ZERO
        return self.total_amount - self.paid_amount

    def occupies(self, day: date) -> bool:
        """True when the room is slept in on the night of `day`."""
        return self.check_in <= day < self.check_out

    # ── transitions ───────────────────────────────────────────

    def _transition(self, target: ReservationStatus) -> None:
        allowed = _ALLOWED_TRANSITIONS.get(self.status, frozenset())
        if target not in allowed:
            raise ReservationStateError(
                self.reservation_id, self.status.value, target.value
            )
        self.status = target

    def check_in_guest(self, at: datetime) -> None:
        self._transition(ReservationStatus.CHECKED_IN)
        self.actual_check_in = at

    def check_out_guest(self, at: datetime) -> None:
        self._transition(ReservationStatus.CHECKED_OUT)
        self.checked_out_at = at

    def mark_no_show(self, on: date, penalty: Optional[Decimal], at: datetime) -> None:
        self._transition(ReservationStatus.NO_SHOW)
        self.no_show_date = on
        self.no_show_penalty = to_money(penalty) if penalty is not None else None
        self.no_show_marked_at = at

    def cancel(self, on: date) -> None:
        self._transition(ReservationStatus.CANCELLED)
        self.cancelled_on = on

    def record_payment(self, payment: Payment) -> None:
        if self.status in (ReservationStatus.CANCELLED, ReservationStatus.CHECKED_OUT):
            raise ReservationStateError(
                self.reservation_id, self.status.value, "PAYMENT"
            )
        self.payments.append(payment)

    def copy(self) -> "Reservation":
        return replace(self, payments=list(self.payments))


# ══════════════════════════════════════════════════════════════
# FOLIO
# ══════════════════════════════════════════════════════════════

class TransactionType(str, Enum):
    CHARGE = "charge"
    PAYMENT = "payment"


class TransactionCategory(str, Enum):
    ROOM = "room"
    TAX = "tax"
    PAYMENT = "payment"
    OTHER = "other"


class FolioStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class FolioTransaction:
    posted_on: date
    transaction_type: TransactionType
    category: TransactionCategory
    description: str
    amount: Decimal
    running_balance: Decimal
    posted_by: str
    reference: str = ""

    def __post_init__(self) -> None:
        amount = to_money(self.amount)
        if amount <= ZERO:
            raise ValueError("Transaction amount must be positive.")
        if not self.description:
            raise ValueError("Transaction description must be non-empty.")
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "running_balance", to_money(self.running_balance))
        object.__setattr__(self, "transaction_type", TransactionType(self.transaction_type))
        object.__setattr__(self, "category", TransactionCategory(self.category))

    @property
    def signed_amount(self) -> Decimal:
        if self.transaction_type == TransactionType.PAYMENT:
            return -self.amount
        return self.amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.posted_on.isoformat(),
            "type": self.transaction_type.value,
            "category": self.category.value,
            "description": self.description,
            "amount": str(self.amount),
            "running_balance": str(self.running_balance),
            "posted_by": self.posted_by,
            "reference": self.reference,
        }


@dataclass
class Folio:
    """
    Per-stay billing ledger. Append-only.

    Invariant after every post(): balance == charges - payments.
    """

    folio_number: str
    reservation_id: str
    guest_name: str
    room_number: str
    opened_on: date
    transactions: List[FolioTransaction] = field(default_factory=list)
    status: FolioStatus = FolioStatus.OPEN
    closed_on: Optional[date] = None

    @property
    def balance(self) -> Decimal:
        if not self.transactions:
            return ZERO
        return self.transactions[-1].running_balance

    @property
    def total_charges(self) -> Decimal:
        return sum(
            (t.amount for t in self.transactions
             if t.transaction_type == TransactionType.CHARGE),
            ZERO,
        )

    @property
    def total_payments(self) -> Decimal:
        return sum(
            (t.amount for t in self.transactions
             if t.transaction_type == TransactionType.PAYMENT),
            ZERO,
        )

    @property
    def is_open(self) -> bool:
        return self.status == FolioStatus.OPEN

    def post(
        self,
        *,
        posted_on: date,
        transaction_type: TransactionType,
        category: TransactionCategory,
        description: str,
        amount: Decimal,
        posted_by: str,
        reference: str = "",
    ) -> FolioTransaction:
        if not self.is_open:
            raise FolioClosedError(self.folio_number)
        amount = to_money(amount)
        signed = -amount if TransactionType(transaction_type) == TransactionType.PAYMENT else amount
        txn = FolioTransaction(
            posted_on=posted_on,
            transaction_type=transaction_type,
            category=category,
            description=description,
            amount=amount,
            running_balance=self.balance + signed,
            posted_by=posted_by,
            reference=reference,
        )
        self.transactions.append(txn)
        return txn

    def close(self, on: date) -> None:
        if not self.is_open:
            raise FolioClosedError(self.folio_number)
        if self.balance > ZERO:
            raise OutstandingBalance(self.folio_number, self.balance)
        self.status = FolioStatus.CLOSED
        self.closed_on = on

    def copy(self) -> "Folio":
        return replace(self, transactions=list(self.transactions))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "folio_number": self.folio_number,
            "reservation_id": self.reservation_id,
            "guest_name": self.guest_name,
            "room_number": self.room_number,
            "opened_on": self.opened_on.isoformat(),
            "transactions": [t.to_dict() for t in self.transactions],
            "balance": str(self.balance),
            "status": self.status.value,
            "closed_on": self.closed_on.isoformat() if self.closed_on else None,
        }


# ══════════════════════════════════════════════════════════════
# AUDIT TRAIL
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ChecklistItem:
    item_id: str
    task: str
    completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.item_id, "task": self.task, "completed": self.completed}


@dataclass(frozen=True)
class DayStatistics:
    business_date: date
    check_ins: int
    check_outs: int
    occupied_rooms: int
    total_rooms: int
    occupancy_rate: int
    revenue: Decimal
    average_rate: Decimal
    no_shows: int
    cancellations: int

    def __post_init__(self) -> None:
        for name in ("check_ins", "check_outs", "occupied_rooms", "total_rooms",
                     "no_shows", "cancellations"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0.")
        if not 0 <= self.occupancy_rate <= 100:
            raise ValueError("occupancy_rate must be between 0 and 100.")
        object.__setattr__(self, "revenue", to_money(self.revenue))
        object.__setattr__(self, "average_rate", to_money(self.average_rate))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.business_date.isoformat(),
            "check_ins": self.check_ins,
            "check_outs": self.check_outs,
            "occupied_rooms": self.occupied_rooms,
            "total_rooms": self.total_rooms,
            "occupancy_rate": self.occupancy_rate,
            "revenue": str(self.revenue),
            "average_rate": str(self.average_rate),
            "no_shows": self.no_shows,
            "cancellations": self.cancellations,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DayStatistics":
        return cls(
            business_date=parse_business_date(data["date"]),
            check_ins=int(data["check_ins"]),
            check_outs=int(data["check_outs"]),
            occupied_rooms=int(data["occupied_rooms"]),
            total_rooms=int(data["total_rooms"]),
            occupancy_rate=int(data["occupancy_rate"]),
            revenue=Decimal(data["revenue"]),
            average_rate=Decimal(data["average_rate"]),
            no_shows=int(data["no_shows"]),
            cancellations=int(data["cancellations"]),
        )


@dataclass(frozen=True)
class NightAuditRecord:
    """
    The seal of one business date. Written once, never mutated.
    Removed only by a logged reopen.
    """

    store_id: str
    business_date: date
    closed_at: datetime
    closed_by: str
    statistics: DayStatistics
    folios_generated: Tuple[str, ...] = ()
    no_shows_processed: Tuple[str, ...] = ()
    checkouts_processed: Tuple[str, ...] = ()
    checklist: Tuple[ChecklistItem, ...] = ()

    def __post_init__(self) -> None:
        if not self.store_id:
            raise ValueError("store_id must be non-empty.")
        if not self.closed_by:
            raise ValueError("closed_by must be non-empty.")
        if self.closed_at.tzinfo is None:
            raise ValueError("closed_at must be timezone-aware.")
        if self.statistics.business_date != self.business_date:
            raise ValueError("statistics must describe the sealed business date.")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "store_id": self.store_id,
            "date": self.business_date.isoformat(),
            "closed_at": self.closed_at.isoformat(),
            "closed_by": self.closed_by,
            "stats": self.statistics.to_dict(),
            "folios_generated": list(self.folios_generated),
            "no_shows_processed": list(self.no_shows_processed),
            "checkouts_processed": list(self.checkouts_processed),
            "checklist": [item.to_dict() for item in self.checklist],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NightAuditRecord":
        return cls(
            store_id=data["store_id"],
            business_date=parse_business_date(data["date"]),
            closed_at=datetime.fromisoformat(data["closed_at"]),
            closed_by=data["closed_by"],
            statistics=DayStatistics.from_dict(data["stats"]),
            folios_generated=tuple(data.get("folios_generated", ())),
            no_shows_processed=tuple(data.get("no_shows_processed", ())),
            checkouts_processed=tuple(data.get("checkouts_processed", ())),
            checklist=tuple(
                ChecklistItem(item_id=i["id"], task=i["task"], completed=i["completed"])
                for i in data.get("checklist", ())
            ),
        )


REOPEN_DAY = "REOPEN_DAY"


@dataclass(frozen=True)
class OverrideLogEntry:
    """Permanent trace of a reopen. Never deleted."""

    store_id: str
    business_date: date
    reason: str
    user: str
    timestamp: datetime
    action: str = REOPEN_DAY

    def __post_init__(self) -> None:
        if self.action != REOPEN_DAY:
            raise ValueError(f"Unsupported override action '{self.action}'.")
        if not self.reason.strip():
            raise ValueError("reason must be non-empty.")
        if not self.user:
            raise ValueError("user must be non-empty.")
        if self.timestamp.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware.")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "store_id": self.store_id,
            "date": self.business_date.isoformat(),
            "reason": self.reason,
            "user": self.user,
            "timestamp": self.timestamp.isoformat(),
        }
