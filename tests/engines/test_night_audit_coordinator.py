"""
Tests — Day-Closure Coordinator
=================================
State machine, closure scenarios, locking, idempotence, failure paths.
"""

from __future__ import annotations

import threading
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from core.config.night_audit import NightAuditConfig
from core.events import NotificationPublisher
from core.time.business_date import FixedBusinessDate
from core.time.clock import FixedClock
from engines.hotel_night_audit.commands import ROLE_ADMIN, CloseDayRequest, ReopenDayRequest
from engines.hotel_night_audit.errors import (
    AlreadyClosed,
    ClosureStateError,
    LockHeld,
    PersistenceFailure,
    SequenceViolation,
    ValidationBlocked,
)
from engines.hotel_night_audit.events import (
    NIGHT_AUDIT_DAY_SEALED,
    NIGHT_AUDIT_LOCK_ACQUIRED,
    NIGHT_AUDIT_LOCK_RELEASED,
    NIGHT_AUDIT_MESSAGE_TYPES,
    NIGHT_AUDIT_NO_SHOW_MARKED,
)
from engines.hotel_night_audit.folio import FolioLedger, FolioNumberSequence
from engines.hotel_night_audit.lock import SystemLockRegistry
from engines.hotel_night_audit.models import (
    Payment,
    Reservation,
    ReservationStatus,
    TransactionCategory,
)
from engines.hotel_night_audit.no_show import confirm_all, decline_all
from engines.hotel_night_audit.override import ReopenDayManager
from engines.hotel_night_audit.policies import (
    ALREADY_CLOSED,
    CONTINUING_GUEST,
    NO_SHOW_CANDIDATE,
    NO_SHOW_CONFIRMATION_REQUIRED,
    NO_SHOW_DECLINED,
    SEQUENCE_VIOLATION,
    UNSETTLED_CHECKOUT,
    ValidationGateChain,
)
from engines.hotel_night_audit.reporting import ClosureReportService, ReportOutbox
from engines.hotel_night_audit.services import (
    ClosureDependencies,
    ClosureOutcome,
    ClosureState,
    ClosureStateMachine,
    DayClosureCoordinator,
)
from engines.hotel_night_audit.stores import (
    InMemoryAuditStore,
    InMemoryCashierShiftService,
    InMemoryChecklistStore,
    InMemoryFolioStore,
    InMemoryReservationStore,
    InMemoryRoomStatusService,
)

STORE_ID = "hotel-test"
ACTOR = "auditor-1"
NOW = datetime(2024, 6, 10, 2, 0, tzinfo=timezone.utc)
CURRENT_DATE = "2024-06-10"
ROOMS = {
    "room-101": "OCCUPIED",
    "room-102": "RESERVED",
    "room-103": "VACANT",
    "room-104": "VACANT",
}


class RecordingExporter:
    def __init__(self, fail_dispatch: bool = False):
        self.fail_dispatch = fail_dispatch
        self.rendered = []
        self.sent = []

    def render(self, snapshot):
        self.rendered.append(snapshot)
        return b"%PDF-1.4 test"

    def dispatch(self, document, recipients, *, subject, filename):
        if self.fail_dispatch:
            raise ConnectionError("smtp unreachable")
        self.sent.append((tuple(recipients), subject, filename))
        return True


class InterleavingGates(ValidationGateChain):
    """Runs `action` once, right after the first evaluation."""

    def __init__(self):
        super().__init__()
        self.action = None

    def evaluate(self, ctx):
        result = super().evaluate(ctx)
        action, self.action = self.action, None
        if action is not None:
            action()
        return result


class Harness:
    def __init__(
        self,
        reservations=(),
        *,
        audit_start_date=None,
        audits=None,
        exporter=None,
        gates=None,
    ):
        self.clock = FixedClock(NOW)
        self.business_dates = FixedBusinessDate(CURRENT_DATE)
        self.config = NightAuditConfig(audit_start_date=audit_start_date)
        self.publisher = NotificationPublisher()
        self.received = []
        for message_type in sorted(NIGHT_AUDIT_MESSAGE_TYPES):
            self.publisher.registry.subscribe(message_type, self.received.append, "test")

        self.rooms = InMemoryRoomStatusService(statuses=dict(ROOMS))
        self.shifts = InMemoryCashierShiftService()
        self.checklist = InMemoryChecklistStore(self.config.checklist)
        self.deps = ClosureDependencies(
            reservations=InMemoryReservationStore(reservations),
            folios=InMemoryFolioStore(),
            audits=audits if audits is not None else InMemoryAuditStore(),
            rooms=self.rooms,
            cashier_shifts=self.shifts,
            checklist=self.checklist,
        )
        self.locks = SystemLockRegistry(self.clock, self.publisher)
        self.ledger = FolioLedger(self.deps.folios, FolioNumberSequence(self.clock))
        self.exporter = exporter or RecordingExporter()
        self.outbox = ReportOutbox(self.clock)
        self.coordinator = DayClosureCoordinator(
            store_id=STORE_ID,
            deps=self.deps,
            locks=self.locks,
            ledger=self.ledger,
            business_dates=self.business_dates,
            clock=self.clock,
            config=self.config,
            reports=ClosureReportService(self.exporter, self.outbox),
            publisher=self.publisher,
            gates=gates,
        )

    def close(self, business_date, *, complete_checklist=True, confirm=None, **kwargs):
        if complete_checklist:
            self.checklist.complete_all(date.fromisoformat(business_date))
        request = CloseDayRequest(business_date=business_date, actor_id=ACTOR, **kwargs)
        if confirm is None:
            return self.coordinator.close_day(request)
        return self.coordinator.close_day(request, confirm_no_shows=confirm)

    def reservation(self, reservation_id):
        return self.deps.reservations.get(reservation_id)

    def message_types(self):
        return [n.message_type for n in self.received]


def _in_house(reservation_id="R-A", *, check_in="2024-06-01", check_out="2024-06-03",
              total="300", room="101", paid=True):
    payments = [Payment(amount=Decimal(total), paid_on=date.fromisoformat(check_in))] if paid else []
    return Reservation(
        reservation_id=reservation_id,
        guest_name="Alice Moyo",
        room_id=f"room-{room}",
        room_number=room,
        check_in=check_in,
        check_out=check_out,
        total_amount=Decimal(total),
        status=ReservationStatus.CHECKED_IN,
        payments=payments,
        actual_check_in=datetime(2024, 6, 1, 14, 0, tzinfo=timezone.utc),
    )


def _arriving(reservation_id="R-C", *, check_in="2024-06-01", check_out="2024-06-03",
              total="300", room="102"):
    return Reservation(
        reservation_id=reservation_id,
        guest_name="Brian Otieno",
        room_id=f"room-{room}",
        room_number=room,
        check_in=check_in,
        check_out=check_out,
        total_amount=Decimal(total),
    )


# ══════════════════════════════════════════════════════════════
# STATE MACHINE
# ══════════════════════════════════════════════════════════════


class TestClosureStateMachine:
    def test_happy_path_transitions(self):
        machine = ClosureStateMachine()
        for state in (ClosureState.VALIDATING, ClosureState.PROCESSING,
                      ClosureState.SEALING, ClosureState.COMPLETE):
            machine.to(state)
        assert machine.history[0] == ClosureState.IDLE
        assert machine.state == ClosureState.COMPLETE

    def test_cannot_skip_validation(self):
        machine = ClosureStateMachine()
        with pytest.raises(ClosureStateError):
            machine.to(ClosureState.PROCESSING)

    def test_blocked_only_reachable_from_validating(self):
        machine = ClosureStateMachine()
        machine.to(ClosureState.VALIDATING)
        machine.to(ClosureState.PROCESSING)
        with pytest.raises(ClosureStateError):
            machine.to(ClosureState.BLOCKED)

    def test_terminal_states_have_no_exit(self):
        machine = ClosureStateMachine()
        machine.to(ClosureState.VALIDATING)
        machine.to(ClosureState.ALREADY_CLOSED)
        with pytest.raises(ClosureStateError):
            machine.to(ClosureState.PROCESSING)


class TestClosureOutcomeInvariants:
    def test_complete_requires_summary(self):
        with pytest.raises(ValueError, match="summary"):
            ClosureOutcome(business_date=date(2024, 6, 1), state=ClosureState.COMPLETE)

    def test_blocked_requires_issues(self):
        with pytest.raises(ValueError, match="issues"):
            ClosureOutcome(business_date=date(2024, 6, 1), state=ClosureState.BLOCKED)

    def test_failed_requires_error(self):
        with pytest.raises(ValueError, match="error"):
            ClosureOutcome(business_date=date(2024, 6, 1), state=ClosureState.FAILED)

    def test_non_terminal_state_rejected(self):
        with pytest.raises(ValueError, match="terminal"):
            ClosureOutcome(business_date=date(2024, 6, 1), state=ClosureState.PROCESSING)


# ══════════════════════════════════════════════════════════════
# SCENARIOS
# ══════════════════════════════════════════════════════════════


class TestContinuingGuestAndCheckout:
    def test_continuing_guest_does_not_block(self):
        h = Harness([_in_house()])
        outcome = h.close("2024-06-02")

        assert outcome.state == ClosureState.COMPLETE
        assert any(n.category == CONTINUING_GUEST for n in outcome.notes)
        assert h.reservation("R-A").status == ReservationStatus.CHECKED_IN
        assert outcome.summary.record.statistics.occupied_rooms == 1

    def test_checkout_day_generates_folio_and_checks_out(self):
        h = Harness([_in_house()])
        assert h.close("2024-06-02").completed
        outcome = h.close("2024-06-03")

        assert outcome.state == ClosureState.COMPLETE
        assert h.reservation("R-A").status == ReservationStatus.CHECKED_OUT

        folio = h.deps.folios.get_for_reservation("R-A")
        rooms = [t for t in folio.transactions if t.category == TransactionCategory.ROOM]
        taxes = [t for t in folio.transactions if t.category == TransactionCategory.TAX]
        assert [t.amount for t in rooms] == [Decimal("150.00"), Decimal("150.00")]
        assert [t.posted_on for t in rooms] == [date(2024, 6, 1), date(2024, 6, 2)]
        assert [(t.description, t.amount) for t in taxes] == [
            ("VAT 18%", Decimal("54.00")),
            ("City tax 1%", Decimal("3.00")),
        ]
        assert folio.total_charges == Decimal("357.00")
        assert folio.balance == Decimal("57.00")

        summary = outcome.summary
        assert summary.checkouts_processed == ("R-A",)
        assert summary.folios_generated == (folio.folio_number,)
        assert summary.record.folios_generated == (folio.folio_number,)
        assert summary.record.statistics.check_outs == 1

    def test_tax_balance_leaves_folio_open_with_warning(self):
        h = Harness([_in_house(check_in="2024-06-02", check_out="2024-06-03")])
        outcome = h.close("2024-06-03")

        folio = h.deps.folios.get_for_reservation("R-A")
        assert folio.is_open
        assert outcome.summary.folios_left_open == (folio.folio_number,)
        assert any("left open" in w for w in outcome.warnings)

    def test_folio_fully_paid_is_closed(self):
        h = Harness([_in_house(check_in="2024-06-02", check_out="2024-06-03", total="100")])
        folio, _ = h.ledger.ensure_folio(h.reservation("R-A"))
        h.ledger.post_payment(folio.folio_number, amount="19.00",
                              posted_on=date(2024, 6, 3), posted_by="desk")

        outcome = h.close("2024-06-03")

        assert outcome.completed
        assert outcome.summary.folios_generated == ()
        assert outcome.summary.folios_left_open == ()
        stored = h.deps.folios.get(folio.folio_number)
        assert not stored.is_open
        assert stored.closed_on == date(2024, 6, 3)


    def test_checkout_frees_the_room(self):
        h = Harness([_in_house()])
        h.close("2024-06-02")
        assert h.rooms.status_of("room-101") == "OCCUPIED"

        h.close("2024-06-03")
        assert h.rooms.status_of("room-101") == "VACANT"

    def test_checkout_room_status_failure_is_a_warning(self):
        h = Harness([_in_house(check_in="2024-06-02", check_out="2024-06-03", room="999")])
        outcome = h.close("2024-06-03")

        assert outcome.completed
        assert h.reservation("R-A").status == ReservationStatus.CHECKED_OUT
        assert any("Room 999 status not updated" in w for w in outcome.warnings)


class TestSequentialClosing:
    def test_skipping_days_is_rejected(self):
        h = Harness(audit_start_date=date(2024, 6, 1))
        outcome = h.close("2024-06-05")

        assert outcome.state == ClosureState.BLOCKED
        issue = next(i for i in outcome.issues if i.category == SEQUENCE_VIOLATION)
        assert issue.expected_date == date(2024, 6, 1)
        assert "2024-06-01" in issue.message
        assert h.deps.audits.list_records() == []

        with pytest.raises(SequenceViolation) as exc_info:
            outcome.raise_for_state()
        assert exc_info.value.expected == date(2024, 6, 1)

    def test_closing_in_order_succeeds(self):
        h = Harness(audit_start_date=date(2024, 6, 1))
        assert h.close("2024-06-01").completed
        assert h.close("2024-06-02").completed
        assert h.deps.audits.last_closed_date() == date(2024, 6, 2)

    def test_gap_after_last_closed_is_rejected(self):
        h = Harness(audit_start_date=date(2024, 6, 1))
        h.close("2024-06-01")
        outcome = h.close("2024-06-03")
        assert outcome.state == ClosureState.BLOCKED
        assert outcome.last_closed_date == date(2024, 6, 1)
        assert outcome.issues[0].expected_date == date(2024, 6, 2)

    def test_seal_advances_business_date(self):
        h = Harness(audit_start_date=date(2024, 6, 1))
        assert h.deps.audits.current_business_date() is None

        h.close("2024-06-01")

        assert h.deps.audits.current_business_date() == date(2024, 6, 2)
        assert h.coordinator.status().current_business_date == date(2024, 6, 2)
        sealed = next(n for n in h.received if n.message_type == NIGHT_AUDIT_DAY_SEALED)
        assert sealed.payload["next_business_date"] == "2024-06-02"

    def test_today_cannot_be_closed(self):
        h = Harness()
        outcome = h.close(CURRENT_DATE)
        assert outcome.state == ClosureState.BLOCKED
        with pytest.raises(ValidationBlocked):
            outcome.raise_for_state()


class TestNoShowProcessing:
    def test_unarrived_guest_marked_no_show(self):
        h = Harness([_arriving()])
        outcome = h.close("2024-06-01", confirm=confirm_all)

        assert outcome.state == ClosureState.COMPLETE
        assert any(n.category == NO_SHOW_CANDIDATE for n in outcome.notes)

        reservation = h.reservation("R-C")
        assert reservation.status == ReservationStatus.NO_SHOW
        assert reservation.no_show_penalty == Decimal("150.00")
        assert reservation.no_show_date == date(2024, 6, 1)
        assert h.rooms.status_of("room-102") == "VACANT"

        record = outcome.summary.record
        assert record.no_shows_processed == ("R-C",)
        assert record.statistics.no_shows == 1
        assert outcome.summary.no_shows.total_penalty == Decimal("150.00")
        assert NIGHT_AUDIT_NO_SHOW_MARKED in h.message_types()

    def test_no_show_decision_required(self):
        h = Harness([_arriving()])
        outcome = h.close("2024-06-01")

        assert outcome.state == ClosureState.BLOCKED
        [issue] = outcome.issues
        assert issue.category == NO_SHOW_CONFIRMATION_REQUIRED
        assert "Brian Otieno (room 102): 150.00" in issue.message
        assert issue.amount == Decimal("150.00")
        assert h.reservation("R-C").status == ReservationStatus.CONFIRMED
        assert not h.locks.is_locked(STORE_ID)
        assert NIGHT_AUDIT_LOCK_ACQUIRED not in h.message_types()

    def test_day_without_candidates_needs_no_decision(self):
        h = Harness([_in_house()])
        assert h.close("2024-06-02").completed

    def test_zero_amount_reservation_marked_without_penalty(self):
        h = Harness([_arriving(total="0")])
        outcome = h.close("2024-06-01", confirm=confirm_all)

        assert outcome.completed
        reservation = h.reservation("R-C")
        assert reservation.status == ReservationStatus.NO_SHOW
        assert reservation.no_show_penalty is None
        assert outcome.summary.no_shows.total_penalty == Decimal("0")
        assert outcome.summary.to_dict()["no_show_penalty_total"] == "0.00"

    def test_declined_no_shows_block_without_changes(self):
        h = Harness([_arriving()])
        outcome = h.close("2024-06-01", confirm=decline_all)

        assert outcome.state == ClosureState.BLOCKED
        assert [i.category for i in outcome.issues] == [NO_SHOW_DECLINED]
        assert outcome.issues[0].amount == Decimal("150.00")
        assert h.reservation("R-C").status == ReservationStatus.CONFIRMED
        assert h.deps.audits.get_record(date(2024, 6, 1)) is None
        assert not h.locks.is_locked(STORE_ID)
        assert NIGHT_AUDIT_LOCK_ACQUIRED not in h.message_types()

    def test_no_show_processing_disabled_blocks(self):
        h = Harness([_arriving()])
        outcome = h.close("2024-06-01", process_no_shows=False)
        assert outcome.state == ClosureState.BLOCKED
        assert h.reservation("R-C").status == ReservationStatus.CONFIRMED

    def test_room_status_failure_is_a_warning(self):
        h = Harness([_arriving(room="999")])
        outcome = h.close("2024-06-01", confirm=confirm_all)
        assert outcome.completed
        assert h.reservation("R-C").status == ReservationStatus.NO_SHOW
        assert any("999" in w for w in outcome.warnings)


class TestUnsettledCheckout:
    def test_unpaid_balance_blocks_with_itemized_message(self):
        h = Harness([_in_house(check_in="2024-05-30", check_out="2024-06-01",
                               total="120", paid=False)])
        outcome = h.close("2024-06-01")

        assert outcome.state == ClosureState.BLOCKED
        issue = next(i for i in outcome.issues if i.category == UNSETTLED_CHECKOUT)
        assert "Alice Moyo" in issue.message
        assert "120.00" in issue.message
        assert issue.amount == Decimal("120.00")
        assert h.reservation("R-A").status == ReservationStatus.CHECKED_IN


# ══════════════════════════════════════════════════════════════
# IDEMPOTENCE, LOCKING, FAILURE
# ══════════════════════════════════════════════════════════════


class TestIdempotentClosure:
    def test_second_close_reports_already_closed(self):
        h = Harness()
        first = h.close("2024-06-01")
        second = h.close("2024-06-01")

        assert first.completed
        assert second.state == ClosureState.ALREADY_CLOSED
        assert second.next_business_date == date(2024, 6, 2)
        assert len(h.deps.audits.list_records()) == 1
        assert h.message_types().count(NIGHT_AUDIT_DAY_SEALED) == 1

        with pytest.raises(AlreadyClosed):
            second.raise_for_state()


class TestSystemLockDuringClosure:
    def test_lock_acquired_and_released_around_processing(self):
        h = Harness()
        outcome = h.close("2024-06-01")
        assert outcome.completed
        assert not h.locks.is_locked(STORE_ID)
        types = h.message_types()
        assert types.index(NIGHT_AUDIT_LOCK_ACQUIRED) < types.index(NIGHT_AUDIT_LOCK_RELEASED)
        assert types.index(NIGHT_AUDIT_LOCK_RELEASED) < types.index(NIGHT_AUDIT_DAY_SEALED)

    def test_held_lock_raises_before_changes(self):
        h = Harness([_arriving()])
        h.locks.acquire(STORE_ID, "other-auditor", "Night audit 2024-06-01")

        with pytest.raises(LockHeld) as exc_info:
            h.close("2024-06-01", confirm=confirm_all)

        assert exc_info.value.holder == "other-auditor"
        assert h.reservation("R-C").status == ReservationStatus.CONFIRMED
        assert h.deps.audits.list_records() == []

    def test_concurrent_closures_are_exclusive(self):
        entered = threading.Event()
        proceed = threading.Event()

        class SlowAuditStore(InMemoryAuditStore):
            def seal(self, record):
                entered.set()
                proceed.wait(5)
                super().seal(record)

        h = Harness(audits=SlowAuditStore())
        results = []
        worker = threading.Thread(target=lambda: results.append(h.close("2024-06-01")))
        worker.start()
        try:
            assert entered.wait(5)
            with pytest.raises(LockHeld):
                h.close("2024-06-01")
            with pytest.raises(LockHeld):
                h.locks.guard_mutation(STORE_ID, "check in a guest")
        finally:
            proceed.set()
            worker.join(5)

        assert results[0].completed
        assert not h.locks.is_locked(STORE_ID)
        assert len(h.deps.audits.list_records()) == 1


class TestClosedDaysChangeDuringValidation:
    def test_reopen_after_validation_blocks_closure(self):
        gates = InterleavingGates()
        h = Harness(audit_start_date=date(2024, 6, 1), gates=gates)
        h.close("2024-06-01")
        h.close("2024-06-02")
        reopen = ReopenDayManager(STORE_ID, h.deps.audits, h.clock, locks=h.locks)
        gates.action = lambda: reopen.reopen_day(ReopenDayRequest(
            business_date="2024-06-02", reason="room rate posted twice",
            actor_id="admin-1", actor_role=ROLE_ADMIN,
        ))

        outcome = h.close("2024-06-03")

        assert outcome.state == ClosureState.BLOCKED
        assert [i.category for i in outcome.issues] == [SEQUENCE_VIOLATION]
        assert outcome.issues[0].expected_date == date(2024, 6, 2)
        assert ClosureState.PROCESSING not in outcome.transitions
        assert [r.business_date for r in h.deps.audits.list_records()] == [date(2024, 6, 1)]
        assert not h.locks.is_locked(STORE_ID)

    def test_same_date_closed_meanwhile_is_already_closed(self):
        gates = InterleavingGates()
        h = Harness(gates=gates)
        inner = []
        gates.action = lambda: inner.append(h.close("2024-06-01"))

        outcome = h.close("2024-06-01")

        assert inner[0].completed
        assert outcome.state == ClosureState.ALREADY_CLOSED
        assert [i.category for i in outcome.issues] == [ALREADY_CLOSED]
        assert ClosureState.SEALING not in outcome.transitions
        assert len(h.deps.audits.list_records()) == 1
        assert h.message_types().count(NIGHT_AUDIT_DAY_SEALED) == 1
        assert not h.locks.is_locked(STORE_ID)


class TestClosureFailure:
    def test_persistence_error_fails_without_record(self):
        class BrokenAuditStore(InMemoryAuditStore):
            def seal(self, record):
                raise RuntimeError("disk full")

        h = Harness(audits=BrokenAuditStore())
        outcome = h.close("2024-06-01")

        assert outcome.state == ClosureState.FAILED
        assert outcome.error_code == PersistenceFailure.code
        assert "disk full" in outcome.error
        assert outcome.transitions[-2:] == (ClosureState.SEALING, ClosureState.FAILED)
        assert h.deps.audits.list_records() == []
        assert not h.locks.is_locked(STORE_ID)
        assert NIGHT_AUDIT_DAY_SEALED not in h.message_types()

        with pytest.raises(PersistenceFailure):
            outcome.raise_for_state()


# ══════════════════════════════════════════════════════════════
# REPORT, STATUS, UNATTENDED
# ══════════════════════════════════════════════════════════════


class TestClosureReport:
    def test_report_sent_to_recipients(self):
        h = Harness()
        outcome = h.close("2024-06-01", report_recipients=("gm@hotel.test",))

        assert outcome.summary.export.dispatched
        assert outcome.summary.export.document_ref.startswith("night-audit-2024-06-01-")
        assert h.exporter.sent[0][0] == ("gm@hotel.test",)
        assert h.exporter.rendered[0]["date"] == "2024-06-01"

    def test_mail_failure_does_not_undo_seal(self):
        h = Harness(exporter=RecordingExporter(fail_dispatch=True))
        outcome = h.close("2024-06-01", report_recipients=("gm@hotel.test",))

        assert outcome.completed
        assert h.deps.audits.get_record(date(2024, 6, 1)) is not None
        assert any("smtp unreachable" in w for w in outcome.warnings)
        assert len(h.outbox.pending()) == 1


class TestAuditStatus:
    def test_status_before_any_closure(self):
        h = Harness(audit_start_date=date(2024, 6, 1))
        status = h.coordinator.status()
        assert status.last_closed_date is None
        assert status.next_closable_date == date(2024, 6, 1)
        assert status.pending_days == 9
        assert status.current_business_date == date(2024, 6, 1)
        assert status.today == date(2024, 6, 10)
        assert status.locked_by is None

    def test_status_after_closure(self):
        h = Harness(audit_start_date=date(2024, 6, 1))
        h.close("2024-06-01")
        status = h.coordinator.status()
        assert status.last_closed_date == date(2024, 6, 1)
        assert status.next_closable_date == date(2024, 6, 2)
        assert status.pending_days == 8
        assert status.current_business_date == date(2024, 6, 2)

    def test_status_without_anchor_points_at_yesterday(self):
        h = Harness()
        status = h.coordinator.status()
        assert status.next_closable_date == date(2024, 6, 9)
        assert status.pending_days == 1


class TestUnattendedClosure:
    def test_closes_next_date_and_confirms_no_shows(self):
        h = Harness([_arriving()], audit_start_date=date(2024, 6, 1))
        h.checklist.complete_all(date(2024, 6, 1))

        outcome = h.coordinator.run_unattended()

        assert outcome.completed
        assert outcome.business_date == date(2024, 6, 1)
        assert outcome.summary.record.closed_by == "night-audit-auto"
        assert h.reservation("R-C").status == ReservationStatus.NO_SHOW

    def test_unattended_run_reports_blocking_issues(self):
        h = Harness(audit_start_date=date(2024, 6, 1))
        outcome = h.coordinator.run_unattended()
        assert outcome.state == ClosureState.BLOCKED
        assert all(i.gate == "checklist_complete" for i in outcome.issues)
