"""
Core Config - Night Audit Settings
====================================
Frozen view of the NIGHT_AUDIT settings block.

Engine code receives a NightAuditConfig; it never reads
django.conf.settings itself. Tests build configs directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional, Tuple

from core.config.rules import (
    DEFAULT_TAX_RULES,
    TAX_TYPE_CITY,
    TAX_TYPE_VAT,
    TaxRule,
)
from core.time.business_date import date_or_none

logger = logging.getLogger("night_audit.config")

MIN_REOPEN_REASON_LENGTH = 10

DEFAULT_CHECKLIST: Tuple[Tuple[str, str], ...] = (
    ("arrivals", "All arrivals processed"),
    ("departures", "All departures processed"),
    ("payments", "Payments verified"),
    ("cash", "Cash drawer counted"),
    ("housekeeping", "Housekeeping status checked"),
    ("no_shows", "No-shows reviewed"),
    ("next_day", "Next day reservations reviewed"),
    ("backup", "Backup created"),
)


@dataclass(frozen=True)
class NightAuditConfig:
    time_zone: str = "UTC"
    audit_start_date: Optional[date] = None
    tax_rules: Tuple[TaxRule, ...] = DEFAULT_TAX_RULES
    reopen_min_reason_length: int = MIN_REOPEN_REASON_LENGTH
    force_logout_seconds: int = 30
    report_recipients: Tuple[str, ...] = ()
    checklist: Tuple[Tuple[str, str], ...] = field(default=DEFAULT_CHECKLIST)

    def __post_init__(self) -> None:
        if self.reopen_min_reason_length < MIN_REOPEN_REASON_LENGTH:
            raise ValueError(
                f"reopen_min_reason_length must be >= {MIN_REOPEN_REASON_LENGTH}."
            )
        if self.force_logout_seconds < 0:
            raise ValueError("force_logout_seconds must be >= 0.")
        ids = [item_id for item_id, _ in self.checklist]
        if len(ids) != len(set(ids)):
            raise ValueError("checklist item ids must be unique.")


def load_night_audit_config(
    overrides: Optional[Mapping[str, Any]] = None,
) -> NightAuditConfig:
    """
    Build a NightAuditConfig from settings.NIGHT_AUDIT.

    overrides (same keys as the settings block) win over settings.
    """
    from django.conf import settings

    raw: dict[str, Any] = dict(getattr(settings, "NIGHT_AUDIT", {}) or {})
    if overrides:
        raw.update(overrides)

    tax_rules = (
        TaxRule(tax_type=TAX_TYPE_VAT, rate=Decimal(str(raw.get("VAT_RATE", "0.18")))),
        TaxRule(
            tax_type=TAX_TYPE_CITY,
            rate=Decimal(str(raw.get("CITY_TAX_RATE", "0.01"))),
        ),
    )
    checklist = tuple(
        (str(item_id), str(task)) for item_id, task in raw.get("CHECKLIST", DEFAULT_CHECKLIST)
    )

    config = NightAuditConfig(
        time_zone=str(raw.get("TIME_ZONE", "UTC")),
        audit_start_date=date_or_none(raw.get("AUDIT_START_DATE")),
        tax_rules=tax_rules,
        reopen_min_reason_length=int(raw.get("REOPEN_MIN_REASON_LENGTH", MIN_REOPEN_REASON_LENGTH)),
        force_logout_seconds=int(raw.get("FORCE_LOGOUT_SECONDS", 30)),
        report_recipients=tuple(raw.get("REPORT_RECIPIENTS", ())),
        checklist=checklist,
    )
    logger.debug(f"Night audit config loaded (tz={config.time_zone}, "
                 f"start={config.audit_start_date})")
    return config
