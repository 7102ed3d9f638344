"""
Hotel Night Audit Engine - Errors
===================================
Every failure the closure workflow can surface, rooted at
NightAuditError so adapters can catch the family in one place.

Closure attempts normally report through ClosureOutcome; these
classes carry the same facts for callers that prefer exceptions
(see ClosureOutcome.raise_for_state).
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence


class NightAuditError(Exception):
    """Base error for the night audit engine."""

    code = "NIGHT_AUDIT_ERROR"


# ══════════════════════════════════════════════════════════════
# CLOSURE ERRORS
# ══════════════════════════════════════════════════════════════

class ValidationBlocked(NightAuditError):
    """One or more gates blocked the closure. No state was changed."""

    code = "VALIDATION_BLOCKED"

    def __init__(self, business_date: date, issues: Sequence):
        self.business_date = business_date
        self.issues = tuple(issues)
        lines = "; ".join(issue.message for issue in self.issues)
        super().__init__(
            f"Closure of {business_date.isoformat()} blocked by "
            f"{len(self.issues)} issue(s): {lines}"
        )


class LockHeld(NightAuditError):
    """Another closure (or operator) holds the store's system lock."""

    code = "LOCK_HELD"

    def __init__(
        self,
        store_id: str,
        holder: str,
        reason: str,
        acquired_at: datetime,
        operation: Optional[str] = None,
    ):
        self.store_id = store_id
        self.holder = holder
        self.reason = reason
        self.acquired_at = acquired_at
        self.operation = operation
        prefix = f"Cannot {operation}: " if operation else ""
        super().__init__(
            f"{prefix}store '{store_id}' is locked by '{holder}' "
            f"since {acquired_at.isoformat()} ({reason})."
        )


class SequenceViolation(NightAuditError):
    """Days must be closed one after another without gaps."""

    code = "SEQUENCE_VIOLATION"

    def __init__(self, target: date, expected: date, last_closed: Optional[date] = None):
        self.target = target
        self.expected = expected
        self.last_closed = last_closed
        previous = (
            f"Last closed day: {last_closed.isoformat()}. "
            if last_closed else "No day has been closed yet. "
        )
        super().__init__(
            f"{previous}Next day to close is {expected.isoformat()}, "
            f"not {target.isoformat()}."
        )


class AlreadyClosed(NightAuditError):
    """A Night Audit Record already exists for the date."""

    code = "ALREADY_CLOSED"

    def __init__(self, business_date: date):
        self.business_date = business_date
        super().__init__(f"Business date {business_date.isoformat()} is already closed.")


class PersistenceFailure(NightAuditError):
    """The audit store could not write or read a record."""

    code = "PERSISTENCE_FAILURE"


class CollaboratorFailure(NightAuditError):
    """A best-effort collaborator (room status, PDF, mail) failed."""

    code = "COLLABORATOR_FAILURE"

    def __init__(self, collaborator: str, detail: str):
        self.collaborator = collaborator
        self.detail = detail
        super().__init__(f"{collaborator} failed: {detail}")


class ClosureFailed(NightAuditError):
    """An unexpected error aborted processing or sealing. No record was written."""

    code = "CLOSURE_FAILED"


class ClosureStateError(NightAuditError):
    """Illegal state machine transition."""

    code = "ILLEGAL_TRANSITION"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Illegal closure transition {current} -> {target}.")


# ══════════════════════════════════════════════════════════════
# REOPEN ERRORS
# ══════════════════════════════════════════════════════════════

class ReopenRejected(NightAuditError):
    """Base for refused reopen requests."""

    code = "REOPEN_REJECTED"


class PermissionDenied(ReopenRejected):
    code = "PERMISSION_DENIED"

    def __init__(self, actor_id: str, role: str):
        self.actor_id = actor_id
        self.role = role
        super().__init__(
            f"Actor '{actor_id}' with role '{role}' may not reopen a closed day."
        )


class ReasonTooShort(ReopenRejected):
    code = "REASON_TOO_SHORT"

    def __init__(self, length: int, minimum: int):
        self.length = length
        self.minimum = minimum
        super().__init__(
            f"Reopen reason must be at least {minimum} characters, got {length}."
        )


class DayNotClosed(ReopenRejected):
    code = "DAY_NOT_CLOSED"

    def __init__(self, business_date: date):
        self.business_date = business_date
        super().__init__(f"Business date {business_date.isoformat()} is not closed.")


class ReopenOutOfOrder(ReopenRejected):
    """Only the most recently closed date may be reopened."""

    code = "REOPEN_OUT_OF_ORDER"

    def __init__(self, business_date: date, latest: date):
        self.business_date = business_date
        self.latest = latest
        super().__init__(
            f"Only the most recent closed day ({latest.isoformat()}) can be "
            f"reopened, not {business_date.isoformat()}."
        )


# ══════════════════════════════════════════════════════════════
# DOMAIN ERRORS
# ══════════════════════════════════════════════════════════════

class ReservationStateError(NightAuditError):
    """Reservation status transition not allowed."""

    code = "RESERVATION_STATE"

    def __init__(self, reservation_id: str, current: str, target: str):
        self.reservation_id = reservation_id
        self.current = current
        self.target = target
        super().__init__(
            f"Reservation '{reservation_id}' cannot move from {current} to {target}."
        )


class FolioClosedError(NightAuditError):
    """Posting to a closed folio."""

    code = "FOLIO_CLOSED"

    def __init__(self, folio_number: str):
        self.folio_number = folio_number
        super().__init__(f"Folio '{folio_number}' is closed; postings are not allowed.")


class OutstandingBalance(NightAuditError):
    """A folio cannot be closed while money is owed."""

    code = "OUTSTANDING_BALANCE"

    def __init__(self, folio_number: str, balance: Decimal):
        self.folio_number = folio_number
        self.balance = balance
        super().__init__(f"Folio '{folio_number}' has outstanding balance {balance}.")
