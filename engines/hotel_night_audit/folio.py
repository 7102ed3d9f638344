"""
Hotel Night Audit Engine - Folio Ledger
=========================================
One folio shape for every path. The live check-in flow and the
closure both call FolioLedger.generate(); neither builds folios by hand.

Generated folio layout:
    1. one room charge per night, dated from check-in
    2. one tax charge per configured tax rule, on the room subtotal
    3. one payment per recorded reservation payment
"""

from __future__ import annotations

import logging
import threading
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from core.config.rules import CENT, DEFAULT_TAX_RULES, TaxRule, to_money
from core.time.clock import Clock
from engines.hotel_night_audit.models import (
    ZERO,
    Folio,
    Reservation,
    TransactionCategory,
    TransactionType,
)
from engines.hotel_night_audit.stores import FolioStore

logger = logging.getLogger("night_audit.folio")

SYSTEM_POSTER = "night-audit"


class FolioNumberSequence:
    """
    Folio numbers: "F" + last eight digits of a millisecond stamp.

    The stamp never goes backwards and never repeats within one
    sequence, even when several folios are issued in the same ms.
    """

    def __init__(self, clock: Clock):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next(self) -> str:
        with self._lock:
            stamp = int(self._clock.now_utc().timestamp() * 1000)
            if stamp <= self._last:
                stamp = self._last + 1
            self._last = stamp
        return f"F{str(stamp)[-8:]}"


def nightly_rates(total: Decimal, nights: int) -> list[Decimal]:
    """
    Split a contracted total across nights.

    Each night gets total/nights rounded to cents; the last night
    absorbs the remainder so the sum equals the total exactly.
    """
    nights = max(1, nights)
    total = to_money(total)
    rate = (total / nights).quantize(CENT, rounding=ROUND_HALF_UP)
    rates = [rate] * nights
    rates[-1] = total - rate * (nights - 1)
    return rates


class FolioLedger:
    def __init__(
        self,
        folios: FolioStore,
        numbers: FolioNumberSequence,
        tax_rules: Sequence[TaxRule] = DEFAULT_TAX_RULES,
    ):
        self._folios = folios
        self._numbers = numbers
        self._tax_rules = tuple(tax_rules)

    def generate(self, reservation: Reservation, *, posted_by: str = SYSTEM_POSTER) -> Folio:
        """Build (not store) the folio for a reservation."""
        folio = Folio(
            folio_number=self._numbers.next(),
            reservation_id=reservation.reservation_id,
            guest_name=reservation.guest_name,
            room_number=reservation.room_number,
            opened_on=reservation.check_in,
        )

        rates = nightly_rates(reservation.total_amount, reservation.nights)
        for index, rate in enumerate(rates):
            if rate <= ZERO:
                continue
            night = reservation.check_in + timedelta(days=index)
            folio.post(
                posted_on=night,
                transaction_type=TransactionType.CHARGE,
                category=TransactionCategory.ROOM,
                description=f"Room {reservation.room_number} - night {index + 1}",
                amount=rate,
                posted_by=posted_by,
            )

        subtotal = sum(rates, ZERO)
        tax_date = reservation.check_out if reservation.nights > 0 else reservation.check_in
        for rule in self._tax_rules:
            tax = rule.compute_tax(subtotal)
            if tax <= ZERO:
                continue
            folio.post(
                posted_on=tax_date,
                transaction_type=TransactionType.CHARGE,
                category=TransactionCategory.TAX,
                description=rule.label,
                amount=tax,
                posted_by=posted_by,
            )

        for payment in reservation.payments:
            folio.post(
                posted_on=payment.paid_on,
                transaction_type=TransactionType.PAYMENT,
                category=TransactionCategory.PAYMENT,
                description=f"Payment ({payment.method})",
                amount=payment.amount,
                posted_by=posted_by,
                reference=payment.reference,
            )

        logger.debug(
            f"Folio {folio.folio_number} generated for {reservation.reservation_id}: "
            f"{len(folio.transactions)} postings, balance {folio.balance}"
        )
        return folio

    def ensure_folio(self, reservation: Reservation, *, posted_by: str = SYSTEM_POSTER) -> tuple[Folio, bool]:
        """
        Return the reservation's stored folio, generating and saving one
        when none exists. The flag is True when a folio was created.
        """
        existing = self._folios.get_for_reservation(reservation.reservation_id)
        if existing is not None:
            return existing, False
        folio = self.generate(reservation, posted_by=posted_by)
        self._folios.save(folio)
        logger.info(f"Folio {folio.folio_number} opened for reservation "
                    f"{reservation.reservation_id} ({reservation.guest_name})")
        return folio, True

    def post_charge(
        self, folio_number: str, *, amount, description: str, posted_on: date,
        posted_by: str, category: TransactionCategory = TransactionCategory.OTHER,
    ) -> Folio:
        return self._post(folio_number, TransactionType.CHARGE, category,
                          amount, description, posted_on, posted_by)

    def post_payment(
        self, folio_number: str, *, amount, posted_on: date, posted_by: str,
        method: str = "CASH", reference: str = "",
    ) -> Folio:
        return self._post(folio_number, TransactionType.PAYMENT, TransactionCategory.PAYMENT,
                          amount, f"Payment ({method})", posted_on, posted_by, reference)

    def _post(self, folio_number, transaction_type, category, amount,
              description, posted_on, posted_by, reference="") -> Folio:
        folio = self._folios.get(folio_number)
        if folio is None:
            raise KeyError(f"Unknown folio '{folio_number}'.")
        folio.post(
            posted_on=posted_on,
            transaction_type=transaction_type,
            category=category,
            description=description,
            amount=to_money(amount),
            posted_by=posted_by,
            reference=reference,
        )
        self._folios.save(folio)
        return folio

    def close_if_settled(self, folio: Folio, on: date) -> bool:
        """Close a folio whose balance is <= 0. Returns True when closed."""
        if not folio.is_open:
            return False
        if folio.balance > ZERO:
            logger.info(f"Folio {folio.folio_number} left open: balance {folio.balance}")
            return False
        folio.close(on)
        self._folios.save(folio)
        return True

    def open_balance(self, reservation_id: str) -> Optional[Decimal]:
        """Balance of the reservation's open folio, or None without one."""
        folio = self._folios.get_for_reservation(reservation_id)
        if folio is None or not folio.is_open:
            return None
        return folio.balance
