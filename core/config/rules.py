"""
Core Config - Tax Rules
=========================
Doctrine: No hardcoded tax rates in engine logic.
VAT and city tax come from operator configuration, not source code.
Money is Decimal, rounded half-up to cents.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Tuple

CENT = Decimal("0.01")

TAX_TYPE_VAT = "VAT"
TAX_TYPE_CITY = "CITY_TAX"


def to_money(value: Any) -> Decimal:
    """Coerce int/str/Decimal to a cent-quantized Decimal."""
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(str(value))
    except Exception as exc:
        raise ValueError(f"Invalid money amount '{value}'.") from exc
    if not amount.is_finite():
        raise ValueError(f"Invalid money amount '{value}'.")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


# ══════════════════════════════════════════════════════════════
# TAX RULE
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TaxRule:
    """
    A percentage tax levied on the pre-tax room subtotal.

    rate 0.18 means 18%.
    """

    tax_type: str  # VAT | CITY_TAX
    rate: Decimal
    label: str = ""

    def __post_init__(self) -> None:
        if not self.tax_type:
            raise ValueError("tax_type must be non-empty.")
        rate = Decimal(str(self.rate))
        if not Decimal("0") <= rate <= Decimal("1"):
            raise ValueError(f"Tax rate must be between 0 and 1, got {self.rate}.")
        object.__setattr__(self, "rate", rate)
        if not self.label:
            object.__setattr__(self, "label", self.default_label())

    def default_label(self) -> str:
        percent = (self.rate * 100).normalize()
        name = "City tax" if self.tax_type == TAX_TYPE_CITY else self.tax_type
        return f"{name} {percent:f}%"

    def compute_tax(self, amount: Decimal) -> Decimal:
        """Tax due on a base amount, rounded to cents."""
        return (to_money(amount) * self.rate).quantize(CENT, rounding=ROUND_HALF_UP)


DEFAULT_TAX_RULES: Tuple[TaxRule, ...] = (
    TaxRule(tax_type=TAX_TYPE_VAT, rate=Decimal("0.18")),
    TaxRule(tax_type=TAX_TYPE_CITY, rate=Decimal("0.01")),
)

