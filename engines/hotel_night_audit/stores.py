"""
Hotel Night Audit Engine - Repository Interfaces
==================================================
Everything the closure reads or writes goes through these protocols.
Each repository instance serves one store (property).

In-memory implementations back tests and the dev HTTP wiring.
They hand out copies so callers never alias stored state.
"""

from __future__ import annotations

import threading
from datetime import date
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from core.time.business_date import next_business_date
from engines.hotel_night_audit.errors import (
    AlreadyClosed,
    DayNotClosed,
    ReopenOutOfOrder,
    SequenceViolation,
)
from engines.hotel_night_audit.models import (
    ChecklistItem,
    Folio,
    NightAuditRecord,
    OverrideLogEntry,
    Reservation,
)


# ══════════════════════════════════════════════════════════════
# PROTOCOLS
# ══════════════════════════════════════════════════════════════

class ReservationStore(Protocol):
    def list_reservations(self) -> List[Reservation]:
        ...  # pragma: no cover

    def get(self, reservation_id: str) -> Optional[Reservation]:
        ...  # pragma: no cover

    def save(self, reservation: Reservation) -> None:
        ...  # pragma: no cover


class FolioStore(Protocol):
    def get(self, folio_number: str) -> Optional[Folio]:
        ...  # pragma: no cover

    def get_for_reservation(self, reservation_id: str) -> Optional[Folio]:
        ...  # pragma: no cover

    def list_folios(self) -> List[Folio]:
        ...  # pragma: no cover

    def save(self, folio: Folio) -> None:
        ...  # pragma: no cover


class AuditStore(Protocol):
    """
    Night Audit Records and the override log.

    The store also keeps the current business date: the day after the
    last seal, or the day most recently reopened. None before the first
    closure.

    seal() raises AlreadyClosed for a duplicate date and SequenceViolation
    unless the record is for the current business date; on success the
    business date moves to the next day in the same write.
    reopen() appends the log entry, removes the record and moves the
    business date back as one unit. DayNotClosed when there is nothing to
    remove, ReopenOutOfOrder when a later date is sealed.
    """

    def get_record(self, business_date: date) -> Optional[NightAuditRecord]:
        ...  # pragma: no cover

    def last_closed_date(self) -> Optional[date]:
        ...  # pragma: no cover

    def current_business_date(self) -> Optional[date]:
        ...  # pragma: no cover

    def list_records(self) -> List[NightAuditRecord]:
        ...  # pragma: no cover

    def seal(self, record: NightAuditRecord) -> None:
        ...  # pragma: no cover

    def reopen(self, business_date: date, entry: OverrideLogEntry) -> None:
        ...  # pragma: no cover

    def list_overrides(self) -> List[OverrideLogEntry]:
        ...  # pragma: no cover


class RoomStatusService(Protocol):
    def total_rooms(self) -> int:
        ...  # pragma: no cover

    def set_room_status(self, room_id: str, status: str) -> None:
        ...  # pragma: no cover


class CashierShiftService(Protocol):
    def open_shift_holders(self) -> Sequence[str]:
        """Cashiers with an open drawer shift. Empty when all closed."""
        ...  # pragma: no cover


class ChecklistStore(Protocol):
    def items_for(self, business_date: date) -> Tuple[ChecklistItem, ...]:
        ...  # pragma: no cover

    def complete(self, business_date: date, item_id: str) -> None:
        ...  # pragma: no cover


# ══════════════════════════════════════════════════════════════
# IN-MEMORY IMPLEMENTATIONS
# ══════════════════════════════════════════════════════════════

class InMemoryReservationStore:
    def __init__(self, reservations: Sequence[Reservation] = ()):
        self._lock = threading.Lock()
        self._rows: Dict[str, Reservation] = {
            r.reservation_id: r.copy() for r in reservations
        }

    def list_reservations(self) -> List[Reservation]:
        with self._lock:
            return [r.copy() for r in self._rows.values()]

    def get(self, reservation_id: str) -> Optional[Reservation]:
        with self._lock:
            row = self._rows.get(reservation_id)
            return row.copy() if row else None

    def save(self, reservation: Reservation) -> None:
        with self._lock:
            self._rows[reservation.reservation_id] = reservation.copy()


class InMemoryFolioStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._rows: Dict[str, Folio] = {}

    def get(self, folio_number: str) -> Optional[Folio]:
        with self._lock:
            row = self._rows.get(folio_number)
            return row.copy() if row else None

    def get_for_reservation(self, reservation_id: str) -> Optional[Folio]:
        with self._lock:
            for row in self._rows.values():
                if row.reservation_id == reservation_id:
                    return row.copy()
        return None

    def list_folios(self) -> List[Folio]:
        with self._lock:
            return [f.copy() for f in self._rows.values()]

    def save(self, folio: Folio) -> None:
        with self._lock:
            self._rows[folio.folio_number] = folio.copy()


class InMemoryAuditStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[date, NightAuditRecord] = {}
        self._overrides: List[OverrideLogEntry] = []
        self._business_date: Optional[date] = None

    def get_record(self, business_date: date) -> Optional[NightAuditRecord]:
        with self._lock:
            return self._records.get(business_date)

    def last_closed_date(self) -> Optional[date]:
        with self._lock:
            return max(self._records) if self._records else None

    def current_business_date(self) -> Optional[date]:
        with self._lock:
            return self._business_date

    def list_records(self) -> List[NightAuditRecord]:
        with self._lock:
            return [self._records[d] for d in sorted(self._records)]

    def seal(self, record: NightAuditRecord) -> None:
        target = record.business_date
        with self._lock:
            if target in self._records:
                raise AlreadyClosed(target)
            expected = self._business_date
            if expected is not None and target != expected:
                latest = max(self._records) if self._records else None
                raise SequenceViolation(target, expected, latest)
            self._records[target] = record
            self._business_date = next_business_date(target)

    def reopen(self, business_date: date, entry: OverrideLogEntry) -> None:
        with self._lock:
            if business_date not in self._records:
                raise DayNotClosed(business_date)
            latest = max(self._records)
            if business_date != latest:
                raise ReopenOutOfOrder(business_date, latest)
            self._overrides.append(entry)
            del self._records[business_date]
            self._business_date = business_date

    def list_overrides(self) -> List[OverrideLogEntry]:
        with self._lock:
            return list(self._overrides)


class InMemoryRoomStatusService:
    def __init__(self, room_ids: Sequence[str] = (), statuses: Optional[Dict[str, str]] = None):
        self._lock = threading.Lock()
        self._statuses: Dict[str, str] = {room_id: "VACANT" for room_id in room_ids}
        if statuses:
            self._statuses.update(statuses)

    def total_rooms(self) -> int:
        with self._lock:
            return len(self._statuses)

    def set_room_status(self, room_id: str, status: str) -> None:
        with self._lock:
            if room_id not in self._statuses:
                raise KeyError(f"Unknown room '{room_id}'.")
            self._statuses[room_id] = status

    def status_of(self, room_id: str) -> Optional[str]:
        with self._lock:
            return self._statuses.get(room_id)


class InMemoryCashierShiftService:
    def __init__(self):
        self._lock = threading.Lock()
        self._open: List[str] = []

    def open_shift(self, cashier: str) -> None:
        with self._lock:
            if cashier not in self._open:
                self._open.append(cashier)

    def close_shift(self, cashier: str) -> None:
        with self._lock:
            if cashier in self._open:
                self._open.remove(cashier)

    def open_shift_holders(self) -> Sequence[str]:
        with self._lock:
            return tuple(self._open)


class InMemoryChecklistStore:
    """Checklist per business date, seeded from (item_id, task) templates."""

    def __init__(self, template: Sequence[Tuple[str, str]]):
        self._lock = threading.Lock()
        self._template = tuple(template)
        self._completed: Dict[date, set] = {}

    def items_for(self, business_date: date) -> Tuple[ChecklistItem, ...]:
        with self._lock:
            done = self._completed.get(business_date, set())
            return tuple(
                ChecklistItem(item_id=item_id, task=task, completed=item_id in done)
                for item_id, task in self._template
            )

    def complete(self, business_date: date, item_id: str) -> None:
        known = {item_id for item_id, _ in self._template}
        if item_id not in known:
            raise KeyError(f"Unknown checklist item '{item_id}'.")
        with self._lock:
            self._completed.setdefault(business_date, set()).add(item_id)

    def complete_all(self, business_date: date) -> None:
        for item_id, _ in self._template:
            self.complete(business_date, item_id)
