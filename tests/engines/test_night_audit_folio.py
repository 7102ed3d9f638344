"""
Tests — Folio Ledger and domain model
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from core.config.rules import TAX_TYPE_VAT, TaxRule
from core.time.clock import FixedClock
from engines.hotel_night_audit.errors import (
    FolioClosedError,
    OutstandingBalance,
    ReservationStateError,
)
from engines.hotel_night_audit.folio import (
    FolioLedger,
    FolioNumberSequence,
    nightly_rates,
)
from engines.hotel_night_audit.models import (
    Folio,
    Payment,
    Reservation,
    ReservationStatus,
    TransactionCategory,
    TransactionType,
)
from engines.hotel_night_audit.stores import InMemoryFolioStore

NOW = datetime(2024, 6, 3, 1, 30, tzinfo=timezone.utc)


def _reservation(**overrides) -> Reservation:
    data = dict(
        reservation_id="R-1",
        guest_name="Grace Njeri",
        room_id="room-201",
        room_number="201",
        check_in="2024-06-01",
        check_out="2024-06-03",
        total_amount=Decimal("300"),
    )
    data.update(overrides)
    return Reservation(**data)


def _ledger(tax_rules=None):
    store = InMemoryFolioStore()
    numbers = FolioNumberSequence(FixedClock(NOW))
    if tax_rules is None:
        return FolioLedger(store, numbers), store
    return FolioLedger(store, numbers, tax_rules), store


# ══════════════════════════════════════════════════════════════
# RESERVATION
# ══════════════════════════════════════════════════════════════


class TestReservation:
    def test_nights_and_settlement(self):
        r = _reservation()
        assert r.nights == 2
        assert not r.is_settled
        assert r.outstanding_balance == Decimal("300.00")

        r.record_payment(Payment(amount="100", paid_on=date(2024, 6, 1)))
        assert r.outstanding_balance == Decimal("200.00")
        r.record_payment(Payment(amount="200", paid_on=date(2024, 6, 2)))
        assert r.is_settled
        assert r.outstanding_balance == Decimal("0.00")

    def test_paid_flag_settles(self):
        assert _reservation(is_paid=True).is_settled

    def test_checkout_before_checkin_rejected(self):
        with pytest.raises(ValueError, match="check_out"):
            _reservation(check_in="2024-06-03", check_out="2024-06-01")

    def test_illegal_transition_rejected(self):
        r = _reservation()
        with pytest.raises(ReservationStateError):
            r.check_out_guest(NOW)

    def test_final_states_are_final(self):
        r = _reservation()
        r.mark_no_show(date(2024, 6, 1), Decimal("150"), NOW)
        assert r.status == ReservationStatus.NO_SHOW
        with pytest.raises(ReservationStateError):
            r.check_in_guest(NOW)

    def test_occupies_excludes_departure_night(self):
        r = _reservation()
        assert r.occupies(date(2024, 6, 1))
        assert r.occupies(date(2024, 6, 2))
        assert not r.occupies(date(2024, 6, 3))

    def test_payment_must_be_positive(self):
        with pytest.raises(ValueError, match="positive"):
            Payment(amount="0", paid_on=date(2024, 6, 1))


# ══════════════════════════════════════════════════════════════
# FOLIO
# ══════════════════════════════════════════════════════════════


class TestFolio:
    def _folio(self) -> Folio:
        return Folio(
            folio_number="F00000001",
            reservation_id="R-1",
            guest_name="Grace Njeri",
            room_number="201",
            opened_on=date(2024, 6, 1),
        )

    def test_running_balance(self):
        folio = self._folio()
        folio.post(posted_on=date(2024, 6, 1), transaction_type=TransactionType.CHARGE,
                   category=TransactionCategory.ROOM, description="Room", amount="100",
                   posted_by="desk")
        folio.post(posted_on=date(2024, 6, 1), transaction_type=TransactionType.PAYMENT,
                   category=TransactionCategory.PAYMENT, description="Cash", amount="40",
                   posted_by="desk")
        assert folio.balance == Decimal("60.00")
        assert folio.balance == folio.total_charges - folio.total_payments
        assert folio.transactions[-1].signed_amount == Decimal("-40.00")

    def test_cannot_close_with_balance(self):
        folio = self._folio()
        folio.post(posted_on=date(2024, 6, 1), transaction_type="charge",
                   category="room", description="Room", amount="10", posted_by="desk")
        with pytest.raises(OutstandingBalance):
            folio.close(date(2024, 6, 2))

    def test_closed_folio_rejects_postings(self):
        folio = self._folio()
        folio.close(date(2024, 6, 2))
        with pytest.raises(FolioClosedError):
            folio.post(posted_on=date(2024, 6, 2), transaction_type="charge",
                       category="other", description="Minibar", amount="5",
                       posted_by="desk")


# ══════════════════════════════════════════════════════════════
# LEDGER
# ══════════════════════════════════════════════════════════════


class TestNightlyRates:
    def test_even_split(self):
        assert nightly_rates(Decimal("300"), 2) == [Decimal("150.00"), Decimal("150.00")]

    def test_last_night_absorbs_remainder(self):
        rates = nightly_rates(Decimal("100"), 3)
        assert rates == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]
        assert sum(rates) == Decimal("100.00")

    def test_zero_nights_charges_once(self):
        assert nightly_rates(Decimal("80"), 0) == [Decimal("80.00")]


class TestFolioLedgerGenerate:
    def test_two_night_stay_layout(self):
        ledger, _ = _ledger()
        r = _reservation(payments=[Payment(amount="300", paid_on=date(2024, 6, 1))])
        folio = ledger.generate(r)

        kinds = [(t.category, t.amount, t.posted_on) for t in folio.transactions]
        assert kinds == [
            (TransactionCategory.ROOM, Decimal("150.00"), date(2024, 6, 1)),
            (TransactionCategory.ROOM, Decimal("150.00"), date(2024, 6, 2)),
            (TransactionCategory.TAX, Decimal("54.00"), date(2024, 6, 3)),
            (TransactionCategory.TAX, Decimal("3.00"), date(2024, 6, 3)),
            (TransactionCategory.PAYMENT, Decimal("300.00"), date(2024, 6, 1)),
        ]
        assert folio.balance == Decimal("57.00")
        assert folio.folio_number.startswith("F")
        assert len(folio.folio_number) == 9

    def test_generate_does_not_store(self):
        ledger, store = _ledger()
        ledger.generate(_reservation())
        assert store.list_folios() == []

    def test_configured_tax_rules_used(self):
        ledger, _ = _ledger(tax_rules=(TaxRule(tax_type=TAX_TYPE_VAT, rate=Decimal("0.10")),))
        folio = ledger.generate(_reservation())
        taxes = [t for t in folio.transactions if t.category == TransactionCategory.TAX]
        assert [(t.description, t.amount) for t in taxes] == [("VAT 10%", Decimal("30.00"))]

    def test_zero_amount_stay_has_no_charges(self):
        ledger, _ = _ledger()
        folio = ledger.generate(_reservation(total_amount=Decimal("0")))
        assert folio.transactions == []
        assert folio.balance == Decimal("0.00")

    def test_folio_numbers_are_unique(self):
        ledger, _ = _ledger()
        numbers = {ledger.generate(_reservation()).folio_number for _ in range(5)}
        assert len(numbers) == 5


class TestFolioLedgerOperations:
    def test_ensure_folio_is_stable(self):
        ledger, store = _ledger()
        r = _reservation()
        first, created = ledger.ensure_folio(r)
        second, created_again = ledger.ensure_folio(r)
        assert created and not created_again
        assert first.folio_number == second.folio_number
        assert len(store.list_folios()) == 1

    def test_post_payment_and_close(self):
        ledger, store = _ledger()
        folio, _ = ledger.ensure_folio(_reservation())
        ledger.post_payment(folio.folio_number, amount=folio.balance,
                            posted_on=date(2024, 6, 3), posted_by="desk", method="CARD")
        stored = store.get(folio.folio_number)
        assert stored.balance == Decimal("0.00")
        assert ledger.close_if_settled(stored, date(2024, 6, 3))
        assert ledger.open_balance("R-1") is None

    def test_close_if_settled_leaves_debt_open(self):
        ledger, _ = _ledger()
        folio, _ = ledger.ensure_folio(_reservation())
        assert not ledger.close_if_settled(folio, date(2024, 6, 3))
        assert ledger.open_balance("R-1") == Decimal("357.00")

    def test_post_charge_unknown_folio(self):
        ledger, _ = _ledger()
        with pytest.raises(KeyError):
            ledger.post_charge("F404", amount="5", description="Minibar",
                               posted_on=date(2024, 6, 2), posted_by="desk")
