"""
Hotel Night Audit Engine - Day-Closure Coordinator
====================================================
Drives one closure attempt through the state machine:

    IDLE -> VALIDATING -> PROCESSING -> SEALING -> COMPLETE
                |              |           |
                +-> BLOCKED    +-----------+-> FAILED
                +-> ALREADY_CLOSED

VALIDATING   gate chain, then the no-show decision. Once the lock is
             held, the date and sequence gates run again. Nothing is
             written; a refusal ends as BLOCKED.
PROCESSING   under the system lock: no-shows, folios, check-outs.
SEALING      statistics + Night Audit Record (the commit point); the
             store business date moves to the next day.
COMPLETE     lock released, day_sealed published, report exported.

The lock is never left held: every exit after acquire releases it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from core.config.night_audit import NightAuditConfig
from core.events import NotificationPublisher
from core.time.business_date import (
    BusinessDateProvider,
    iter_business_dates,
    next_business_date,
    previous_business_date,
)
from core.time.clock import Clock
from engines.hotel_night_audit import events
from engines.hotel_night_audit.commands import CloseDayRequest
from engines.hotel_night_audit.errors import (
    AlreadyClosed,
    ClosureFailed,
    ClosureStateError,
    PersistenceFailure,
    SequenceViolation,
    ValidationBlocked,
)
from engines.hotel_night_audit.folio import FolioLedger
from engines.hotel_night_audit.models import (
    ROOM_VACANT,
    ZERO,
    NightAuditRecord,
    Reservation,
    ReservationStatus,
)
from engines.hotel_night_audit.no_show import (
    NoShowCandidate,
    NoShowDecision,
    NoShowDetector,
    NoShowSummary,
    confirm_all,
)
from engines.hotel_night_audit.lock import SystemLockRegistry
from engines.hotel_night_audit.policies import (
    ALREADY_CLOSED,
    NO_SHOW_CONFIRMATION_REQUIRED,
    NO_SHOW_DECLINED,
    SEQUENCE_GATES,
    SEQUENCE_VIOLATION,
    GateChainResult,
    GateContext,
    GateIssue,
    ValidationGateChain,
)
from engines.hotel_night_audit.reporting import ClosureReportService, ExportResult
from engines.hotel_night_audit.statistics import compute_day_statistics
from engines.hotel_night_audit.stores import (
    AuditStore,
    CashierShiftService,
    ChecklistStore,
    FolioStore,
    ReservationStore,
    RoomStatusService,
)

logger = logging.getLogger("night_audit.closure")


# ══════════════════════════════════════════════════════════════
# STATE MACHINE
# ══════════════════════════════════════════════════════════════

class ClosureState(str, Enum):
    IDLE = "IDLE"
    VALIDATING = "VALIDATING"
    PROCESSING = "PROCESSING"
    SEALING = "SEALING"
    COMPLETE = "COMPLETE"
    BLOCKED = "BLOCKED"
    ALREADY_CLOSED = "ALREADY_CLOSED"
    FAILED = "FAILED"


_TRANSITIONS = {
    ClosureState.IDLE: frozenset({ClosureState.VALIDATING}),
    ClosureState.VALIDATING: frozenset({
        ClosureState.PROCESSING,
        ClosureState.BLOCKED,
        ClosureState.ALREADY_CLOSED,
    }),
    ClosureState.PROCESSING: frozenset({ClosureState.SEALING, ClosureState.FAILED}),
    ClosureState.SEALING: frozenset({ClosureState.COMPLETE, ClosureState.FAILED}),
}

TERMINAL_STATES = frozenset({
    ClosureState.COMPLETE,
    ClosureState.BLOCKED,
    ClosureState.ALREADY_CLOSED,
    ClosureState.FAILED,
})


class ClosureStateMachine:
    def __init__(self):
        self.state = ClosureState.IDLE
        self.history: List[ClosureState] = [ClosureState.IDLE]

    def to(self, target: ClosureState) -> None:
        if target not in _TRANSITIONS.get(self.state, frozenset()):
            raise ClosureStateError(self.state.value, target.value)
        self.state = target
        self.history.append(target)


# ══════════════════════════════════════════════════════════════
# RESULTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ClosureSummary:
    record: NightAuditRecord
    folios_generated: Tuple[str, ...] = ()
    folios_left_open: Tuple[str, ...] = ()
    checkouts_processed: Tuple[str, ...] = ()
    no_shows: Optional[NoShowSummary] = None
    export: ExportResult = field(default_factory=ExportResult)

    def to_dict(self) -> Dict[str, Any]:
        stats = self.record.statistics
        return {
            "date": self.record.business_date.isoformat(),
            "closed_by": self.record.closed_by,
            "closed_at": self.record.closed_at.isoformat(),
            "check_ins": stats.check_ins,
            "check_outs": stats.check_outs,
            "revenue": str(stats.revenue),
            "occupancy_rate": stats.occupancy_rate,
            "no_shows": stats.no_shows,
            "no_show_penalty_total": (
                str(self.no_shows.total_penalty) if self.no_shows else str(ZERO)
            ),
            "folios_generated": list(self.folios_generated),
            "folios_left_open": list(self.folios_left_open),
            "checkouts_processed": list(self.checkouts_processed),
            "document_ref": self.export.document_ref,
        }


@dataclass(frozen=True)
class ClosureOutcome:
    """
    What happened to one closure attempt.

    Invariants:
    - COMPLETE  <=> summary is set
    - BLOCKED / ALREADY_CLOSED => at least one issue
    - FAILED    => error is set
    """

    business_date: date
    state: ClosureState
    issues: Tuple[GateIssue, ...] = ()
    notes: Tuple[GateIssue, ...] = ()
    summary: Optional[ClosureSummary] = None
    warnings: Tuple[str, ...] = ()
    error: Optional[str] = None
    error_code: Optional[str] = None
    last_closed_date: Optional[date] = None
    transitions: Tuple[ClosureState, ...] = ()

    def __post_init__(self):
        if self.state not in TERMINAL_STATES:
            raise ValueError(f"Outcome state must be terminal, got {self.state}.")
        if (self.state == ClosureState.COMPLETE) != (self.summary is not None):
            raise ValueError("summary is required exactly for COMPLETE outcomes.")
        if self.state in (ClosureState.BLOCKED, ClosureState.ALREADY_CLOSED) and not self.issues:
            raise ValueError(f"{self.state.value} outcome requires issues.")
        if self.state == ClosureState.FAILED and not self.error:
            raise ValueError("FAILED outcome requires an error.")

    @property
    def completed(self) -> bool:
        return self.state == ClosureState.COMPLETE

    @property
    def next_business_date(self) -> Optional[date]:
        if self.state in (ClosureState.COMPLETE, ClosureState.ALREADY_CLOSED):
            return next_business_date(self.business_date)
        return None

    def raise_for_state(self) -> None:
        """Re-express a non-complete outcome as the matching exception."""
        if self.state == ClosureState.COMPLETE:
            return
        if self.state == ClosureState.ALREADY_CLOSED:
            raise AlreadyClosed(self.business_date)
        if self.state == ClosureState.BLOCKED:
            for issue in self.issues:
                if issue.category == SEQUENCE_VIOLATION and issue.expected_date:
                    raise SequenceViolation(
                        self.business_date, issue.expected_date, self.last_closed_date,
                    )
            raise ValidationBlocked(self.business_date, self.issues)
        if self.error_code == PersistenceFailure.code:
            raise PersistenceFailure(self.error)
        raise ClosureFailed(self.error)

    def to_dict(self) -> Dict[str, Any]:
        nxt = self.next_business_date
        return {
            "date": self.business_date.isoformat(),
            "state": self.state.value,
            "issues": [i.to_dict() for i in self.issues],
            "notes": [n.to_dict() for n in self.notes],
            "summary": self.summary.to_dict() if self.summary else None,
            "warnings": list(self.warnings),
            "error": self.error,
            "error_code": self.error_code,
            "next_business_date": nxt.isoformat() if nxt else None,
            "transitions": [s.value for s in self.transitions],
        }


@dataclass(frozen=True)
class AuditStatus:
    """
    Where the store stands.

    current_business_date is the persisted operating date: the day after
    the last seal, or the day last reopened. today is the calendar date
    in the store timezone. pending_days counts closable dates not yet
    sealed (next_closable_date up to the day before today). More than
    one means the audit is behind.
    """

    store_id: str
    today: date
    current_business_date: date
    last_closed_date: Optional[date]
    next_closable_date: date
    pending_days: int
    locked_by: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "store_id": self.store_id,
            "today": self.today.isoformat(),
            "current_business_date": self.current_business_date.isoformat(),
            "last_closed_date": (
                self.last_closed_date.isoformat() if self.last_closed_date else None
            ),
            "next_closable_date": self.next_closable_date.isoformat(),
            "pending_days": self.pending_days,
            "locked_by": self.locked_by,
        }


# ══════════════════════════════════════════════════════════════
# COORDINATOR
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ClosureDependencies:
    reservations: ReservationStore
    folios: FolioStore
    audits: AuditStore
    rooms: RoomStatusService
    cashier_shifts: CashierShiftService
    checklist: ChecklistStore


class DayClosureCoordinator:
    def __init__(
        self,
        *,
        store_id: str,
        deps: ClosureDependencies,
        locks: SystemLockRegistry,
        ledger: FolioLedger,
        business_dates: BusinessDateProvider,
        clock: Clock,
        config: NightAuditConfig,
        reports: Optional[ClosureReportService] = None,
        publisher: Optional[NotificationPublisher] = None,
        gates: Optional[ValidationGateChain] = None,
    ):
        if not store_id:
            raise ValueError("store_id must be non-empty.")
        self._store_id = store_id
        self._deps = deps
        self._locks = locks
        self._ledger = ledger
        self._business_dates = business_dates
        self._clock = clock
        self._config = config
        self._reports = reports
        self._publisher = publisher
        self._gates = gates or ValidationGateChain()
        self._no_shows = NoShowDetector(
            deps.reservations, deps.rooms, on_marked=self._publish_no_show,
        )

    @property
    def store_id(self) -> str:
        return self._store_id

    # ── read-only ─────────────────────────────────────────────

    def preview(self, business_date: date, *, process_no_shows: bool = True) -> GateChainResult:
        """Run the gate chain without side effects."""
        return self._gates.evaluate(self._gate_context(business_date, process_no_shows))

    def detect_no_shows(self, business_date: date) -> NoShowSummary:
        return self._no_shows.detect(business_date)

    def status(self) -> AuditStatus:
        today = self._business_dates.current()
        audits = self._deps.audits
        last_closed = audits.last_closed_date()
        current = audits.current_business_date()
        if last_closed is not None:
            upcoming = next_business_date(last_closed)
        elif current is not None:
            upcoming = current
        elif self._config.audit_start_date is not None:
            upcoming = self._config.audit_start_date
        else:
            upcoming = previous_business_date(today)
        pending = len(list(iter_business_dates(upcoming, previous_business_date(today))))
        lock = self._locks.current(self._store_id)
        return AuditStatus(
            store_id=self._store_id,
            today=today,
            current_business_date=current or upcoming,
            last_closed_date=last_closed,
            next_closable_date=upcoming,
            pending_days=pending,
            locked_by=lock.holder if lock else None,
        )

    # ── closure ───────────────────────────────────────────────

    def close_day(
        self,
        request: CloseDayRequest,
        confirm_no_shows: Optional[NoShowDecision] = None,
    ) -> ClosureOutcome:
        """
        Attempt to seal request.business_date.

        No-shows need a decision: confirm_no_shows, or request.unattended
        for automatic confirmation. Without either, a day with no-show
        candidates ends BLOCKED with the summary to confirm.

        Returns a ClosureOutcome for every result except a held lock,
        which raises LockHeld before anything is changed.
        """
        target = request.business_date
        machine = ClosureStateMachine()
        machine.to(ClosureState.VALIDATING)
        logger.info(f"Closure of {target.isoformat()} started by {request.actor_id} "
                    f"(store {self._store_id})")

        ctx = self._gate_context(target, request.process_no_shows)
        result = self._gates.evaluate(ctx)
        if result.blocked:
            return self._stop(machine, target, result, ctx)

        decide = confirm_no_shows
        if decide is None and request.unattended:
            decide = confirm_all

        confirmed = NoShowSummary(business_date=target)
        if request.process_no_shows:
            confirmed = self._no_shows.detect(target, ctx.reservations)
            if confirmed.candidates and decide is None:
                machine.to(ClosureState.BLOCKED)
                logger.info(f"No-show confirmation for {target.isoformat()} required")
                return self._finish(
                    machine, target,
                    issues=(GateIssue(
                        gate="no_show_confirmation",
                        category=NO_SHOW_CONFIRMATION_REQUIRED,
                        message=confirmed.describe(),
                        amount=confirmed.total_penalty,
                    ),),
                    notes=result.notes,
                    last_closed_date=ctx.last_closed_date,
                )
            if confirmed.candidates and not decide(confirmed):
                machine.to(ClosureState.BLOCKED)
                logger.info(f"No-show processing for {target.isoformat()} declined")
                return self._finish(
                    machine, target,
                    issues=tuple(_declined_issue(c) for c in confirmed.candidates),
                    notes=result.notes,
                    last_closed_date=ctx.last_closed_date,
                )

        self._locks.acquire(
            self._store_id, request.actor_id, f"Night audit {target.isoformat()}",
        )
        warnings: List[str] = []
        try:
            # Another closure or a reopen may have landed since validation.
            locked_ctx = self._gate_context(target, request.process_no_shows)
            recheck = ValidationGateChain(SEQUENCE_GATES).evaluate(locked_ctx)
            if recheck.blocked:
                logger.warning(f"Closed days changed while {target.isoformat()} "
                               f"was being validated")
                return self._stop(machine, target, recheck, locked_ctx)

            try:
                machine.to(ClosureState.PROCESSING)
                processed = self._process(target, confirmed, warnings)

                machine.to(ClosureState.SEALING)
                record = self._seal(target, request.actor_id, ctx, processed)
            except Exception as exc:
                machine.to(ClosureState.FAILED)
                code = getattr(exc, "code", type(exc).__name__)
                logger.error(f"Closure of {target.isoformat()} failed: {exc}", exc_info=True)
                return self._finish(
                    machine, target,
                    warnings=tuple(warnings),
                    error=str(exc) or type(exc).__name__,
                    error_code=code,
                    notes=result.notes,
                    last_closed_date=locked_ctx.last_closed_date,
                )
        finally:
            self._locks.release(self._store_id, request.actor_id)

        machine.to(ClosureState.COMPLETE)
        next_date = self._deps.audits.current_business_date() or next_business_date(target)
        logger.info(f"{target.isoformat()} sealed by {request.actor_id}; "
                    f"business date advanced to {next_date.isoformat()}")
        self._publish(events.day_sealed(
            self._store_id, target, request.actor_id, record.closed_at, next_date,
        ))

        export = self._export(record, processed, request)
        warnings.extend(export.warnings)

        summary = ClosureSummary(
            record=record,
            folios_generated=processed.folios_generated,
            folios_left_open=processed.folios_left_open,
            checkouts_processed=processed.checkouts,
            no_shows=processed.no_shows,
            export=export,
        )
        return self._finish(
            machine, target, summary=summary, notes=result.notes,
            warnings=tuple(warnings), last_closed_date=target,
        )

    def run_unattended(self, actor_id: str = "night-audit-auto") -> ClosureOutcome:
        """Close the next closable date with automatic no-show confirmation."""
        target = self.status().next_closable_date
        request = CloseDayRequest(
            business_date=target,
            actor_id=actor_id,
            report_recipients=self._config.report_recipients,
            unattended=True,
        )
        return self.close_day(request)

    # ── internals ─────────────────────────────────────────────

    def _stop(self, machine: ClosureStateMachine, target: date,
              result: GateChainResult, ctx: GateContext) -> ClosureOutcome:
        if result.has_category(ALREADY_CLOSED):
            machine.to(ClosureState.ALREADY_CLOSED)
            logger.info(f"{target.isoformat()} already closed; nothing to do")
            return self._finish(
                machine, target,
                issues=tuple(i for i in result.issues if i.category == ALREADY_CLOSED),
                last_closed_date=ctx.last_closed_date,
            )
        machine.to(ClosureState.BLOCKED)
        logger.info(f"Closure of {target.isoformat()} blocked by "
                    f"{len(result.issues)} issue(s)")
        return self._finish(
            machine, target, issues=result.issues, notes=result.notes,
            last_closed_date=ctx.last_closed_date,
        )

    def _gate_context(self, target: date, process_no_shows: bool) -> GateContext:
        audits = self._deps.audits
        reservations = tuple(self._deps.reservations.list_reservations())
        balances = {}
        for r in reservations:
            if r.status == ReservationStatus.CHECKED_IN and r.check_out == target:
                balance = self._ledger.open_balance(r.reservation_id)
                if balance is not None:
                    balances[r.reservation_id] = balance
        return GateContext(
            business_date=target,
            today=self._business_dates.current(),
            last_closed_date=audits.last_closed_date(),
            already_closed=audits.get_record(target) is not None,
            reservations=reservations,
            open_folio_balances=balances,
            open_cashier_shifts=tuple(self._deps.cashier_shifts.open_shift_holders()),
            checklist=tuple(self._deps.checklist.items_for(target)),
            audit_start_date=self._config.audit_start_date,
            current_business_date=audits.current_business_date(),
            process_no_shows=process_no_shows,
        )

    def _process(self, target: date, confirmed: NoShowSummary, warnings: List[str]) -> "_Processed":
        now = self._clock.now_utc()

        applied: Tuple[str, ...] = ()
        applied_summary: Optional[NoShowSummary] = None
        if confirmed.candidates:
            confirmed_ids = {c.reservation_id for c in confirmed.candidates}
            fresh = self._no_shows.detect(target)
            for c in fresh.candidates:
                if c.reservation_id not in confirmed_ids:
                    warnings.append(
                        f"{c.guest_name} (room {c.room_number}) appeared after "
                        f"confirmation and was not marked as a no-show."
                    )
            applied_summary = NoShowSummary(
                business_date=target,
                candidates=tuple(c for c in fresh.candidates if c.reservation_id in confirmed_ids),
            )
            result = self._no_shows.apply(applied_summary, now)
            applied = result.processed
            warnings.extend(result.warnings)

        folios_generated: List[str] = []
        folios_left_open: List[str] = []
        checkouts: List[str] = []
        for reservation in self._departures(target):
            folio, created = self._ledger.ensure_folio(reservation)
            if created:
                folios_generated.append(folio.folio_number)
            if folio.is_open and not self._ledger.close_if_settled(folio, target):
                folios_left_open.append(folio.folio_number)
                warnings.append(
                    f"Folio {folio.folio_number} ({reservation.guest_name}) left open "
                    f"with balance {folio.balance}."
                )
            reservation.check_out_guest(now)
            self._deps.reservations.save(reservation)
            checkouts.append(reservation.reservation_id)
            logger.info(f"Checked out {reservation.reservation_id} "
                        f"({reservation.guest_name}), folio {folio.folio_number}")

            try:
                self._deps.rooms.set_room_status(reservation.room_id, ROOM_VACANT)
            except Exception as exc:
                logger.error(
                    f"Room {reservation.room_number} could not be set VACANT: {exc}",
                    exc_info=True,
                )
                warnings.append(
                    f"Room {reservation.room_number} status not updated: {exc}"
                )

        return _Processed(
            no_shows_processed=applied,
            no_shows=applied_summary,
            folios_generated=tuple(folios_generated),
            folios_left_open=tuple(folios_left_open),
            checkouts=tuple(checkouts),
        )

    def _departures(self, target: date) -> List[Reservation]:
        return sorted(
            (r for r in self._deps.reservations.list_reservations()
             if r.status == ReservationStatus.CHECKED_IN and r.check_out == target),
            key=lambda r: (r.room_number, r.reservation_id),
        )

    def _seal(self, target: date, actor_id: str, ctx: GateContext,
              processed: "_Processed") -> NightAuditRecord:
        stats = compute_day_statistics(
            self._deps.reservations.list_reservations(), target,
            self._deps.rooms.total_rooms(),
        )
        record = NightAuditRecord(
            store_id=self._store_id,
            business_date=target,
            closed_at=self._clock.now_utc(),
            closed_by=actor_id,
            statistics=stats,
            folios_generated=processed.folios_generated,
            no_shows_processed=processed.no_shows_processed,
            checkouts_processed=processed.checkouts,
            checklist=ctx.checklist,
        )
        try:
            self._deps.audits.seal(record)
        except (AlreadyClosed, SequenceViolation, PersistenceFailure):
            raise
        except Exception as exc:
            raise PersistenceFailure(f"Audit record for {target.isoformat()} not saved: {exc}") from exc
        return record

    def _export(self, record: NightAuditRecord, processed: "_Processed",
                request: CloseDayRequest) -> ExportResult:
        if self._reports is None:
            return ExportResult()
        snapshot = record.to_dict()
        snapshot["folios"] = [
            folio.to_dict() for folio in
            (self._deps.folios.get_for_reservation(rid) for rid in processed.checkouts)
            if folio is not None
        ]
        snapshot["no_shows"] = (
            [c.to_dict() for c in processed.no_shows.candidates] if processed.no_shows else []
        )
        recipients = request.report_recipients or self._config.report_recipients
        return self._reports.export(snapshot, recipients)

    def _finish(self, machine: ClosureStateMachine, target: date, **kwargs) -> ClosureOutcome:
        return ClosureOutcome(
            business_date=target,
            state=machine.state,
            transitions=tuple(machine.history),
            **kwargs,
        )

    def _publish(self, notification) -> None:
        if self._publisher is not None:
            self._publisher.publish(notification)

    def _publish_no_show(self, reservation: Reservation) -> None:
        self._publish(events.no_show_marked(
            self._store_id, reservation.reservation_id, reservation.guest_name,
            (str(reservation.no_show_penalty)
             if reservation.no_show_penalty is not None else None),
            self._clock.now_utc(),
        ))


@dataclass(frozen=True)
class _Processed:
    no_shows_processed: Tuple[str, ...] = ()
    no_shows: Optional[NoShowSummary] = None
    folios_generated: Tuple[str, ...] = ()
    folios_left_open: Tuple[str, ...] = ()
    checkouts: Tuple[str, ...] = ()


def _declined_issue(candidate: NoShowCandidate) -> GateIssue:
    if candidate.penalty is not None:
        resolution = f"accept the no-show charge of {candidate.penalty}"
    else:
        resolution = "accept the no-show"
    return GateIssue(
        gate="no_show_confirmation", category=NO_SHOW_DECLINED,
        message=(f"{candidate.guest_name} (room {candidate.room_number}) has not "
                 f"arrived; resolve the reservation or {resolution}."),
        reservation_id=candidate.reservation_id, guest_name=candidate.guest_name,
        room_number=candidate.room_number, amount=candidate.penalty,
    )
