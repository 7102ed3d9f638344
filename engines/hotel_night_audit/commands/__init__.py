"""
Hotel Night Audit Engine - Request Commands
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Tuple

from core.time.business_date import parse_business_date

NIGHT_AUDIT_CLOSE_DAY_REQUEST = "night_audit.day.close.request"
NIGHT_AUDIT_REOPEN_DAY_REQUEST = "night_audit.day.reopen.request"

ROLE_ADMIN = "ADMIN"
ROLE_MANAGER = "MANAGER"
ROLE_RECEPTION = "RECEPTION"
ROLE_SYSTEM = "SYSTEM"

VALID_ROLES = frozenset({ROLE_ADMIN, ROLE_MANAGER, ROLE_RECEPTION, ROLE_SYSTEM})


@dataclass(frozen=True)
class CloseDayRequest:
    """
    Close one business date.

    process_no_shows=False makes same-day unarrived reservations block
    instead of being charged as no-shows. unattended=True confirms
    no-shows without asking.
    """

    business_date: date
    actor_id: str
    process_no_shows: bool = True
    report_recipients: Tuple[str, ...] = ()
    unattended: bool = False

    command_type = NIGHT_AUDIT_CLOSE_DAY_REQUEST

    def __post_init__(self):
        object.__setattr__(self, "business_date", parse_business_date(self.business_date))
        if not self.actor_id or not self.actor_id.strip():
            raise ValueError("actor_id must be non-empty.")
        object.__setattr__(self, "report_recipients", tuple(self.report_recipients))
        for address in self.report_recipients:
            if "@" not in address:
                raise ValueError(f"Invalid report recipient '{address}'.")


@dataclass(frozen=True)
class ReopenDayRequest:
    business_date: date
    reason: str
    actor_id: str
    actor_role: str

    command_type = NIGHT_AUDIT_REOPEN_DAY_REQUEST

    def __post_init__(self):
        object.__setattr__(self, "business_date", parse_business_date(self.business_date))
        if not self.actor_id or not self.actor_id.strip():
            raise ValueError("actor_id must be non-empty.")
        if self.actor_role not in VALID_ROLES:
            raise ValueError(f"actor_role must be one of {sorted(VALID_ROLES)}.")
        if not isinstance(self.reason, str):
            raise ValueError("reason must be a string.")

    @property
    def trimmed_reason(self) -> str:
        return self.reason.strip()
