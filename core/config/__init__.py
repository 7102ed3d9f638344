"""
Core Config - Public API
==========================
Operator-configurable rules (tax rates, closure settings).
Doctrine: No hardcoded rates in engine logic.
"""

from core.config.night_audit import (
    DEFAULT_CHECKLIST,
    MIN_REOPEN_REASON_LENGTH,
    NightAuditConfig,
    load_night_audit_config,
)
from core.config.rules import (
    CENT,
    DEFAULT_TAX_RULES,
    TAX_TYPE_CITY,
    TAX_TYPE_VAT,
    TaxRule,
    to_money,
)

__all__ = [
    "CENT",
    "TAX_TYPE_VAT",
    "TAX_TYPE_CITY",
    "TaxRule",
    "DEFAULT_TAX_RULES",
    "to_money",
    "NightAuditConfig",
    "DEFAULT_CHECKLIST",
    "MIN_REOPEN_REASON_LENGTH",
    "load_night_audit_config",
]
