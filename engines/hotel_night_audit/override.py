"""
Hotel Night Audit Engine - Reopen (Override) Manager
======================================================
The only way to undo a seal. Administrator only, with a written
reason, and only for the most recently closed date so sealed dates
stay contiguous.

Reopening removes the Night Audit Record and appends an Override Log
Entry in one store operation, under the system lock so no closure
runs at the same time. Folios, no-shows and check-outs made by
the closure are NOT reversed; operators correct those by hand.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from core.events import NotificationPublisher
from core.time.clock import Clock
from engines.hotel_night_audit import events
from core.config.night_audit import MIN_REOPEN_REASON_LENGTH
from engines.hotel_night_audit.commands import ROLE_ADMIN, ReopenDayRequest
from engines.hotel_night_audit.errors import (
    DayNotClosed,
    PermissionDenied,
    ReasonTooShort,
    ReopenOutOfOrder,
)
from engines.hotel_night_audit.lock import SystemLockRegistry
from engines.hotel_night_audit.models import OverrideLogEntry
from engines.hotel_night_audit.stores import AuditStore

logger = logging.getLogger("night_audit.override")

REOPEN_NOTICE = (
    "Folios, no-show markings and check-outs made by the reopened closure "
    "were not reversed. Correct them manually before closing the day again."
)


@dataclass(frozen=True)
class ReopenOutcome:
    business_date: date
    entry: OverrideLogEntry
    last_closed_date: Optional[date]
    notice: str = REOPEN_NOTICE

    def to_dict(self) -> dict:
        return {
            "date": self.business_date.isoformat(),
            "override": self.entry.to_dict(),
            "last_closed_date": (
                self.last_closed_date.isoformat() if self.last_closed_date else None
            ),
            "notice": self.notice,
        }


class ReopenDayManager:
    def __init__(
        self,
        store_id: str,
        audits: AuditStore,
        clock: Clock,
        publisher: Optional[NotificationPublisher] = None,
        min_reason_length: int = MIN_REOPEN_REASON_LENGTH,
        locks: Optional[SystemLockRegistry] = None,
    ):
        self._store_id = store_id
        self._audits = audits
        self._clock = clock
        self._publisher = publisher
        self._min_reason_length = max(min_reason_length, MIN_REOPEN_REASON_LENGTH)
        self._locks = locks

    def reopen_day(self, request: ReopenDayRequest) -> ReopenOutcome:
        """
        Raises:
            PermissionDenied: actor is not an administrator
            ReasonTooShort:   trimmed reason below the minimum length
            DayNotClosed:     no record for the date
            ReopenOutOfOrder: a later date is still sealed
            LockHeld:         a closure or another reopen holds the store
        """
        if request.actor_role != ROLE_ADMIN:
            raise PermissionDenied(request.actor_id, request.actor_role)

        reason = request.trimmed_reason
        if len(reason) < self._min_reason_length:
            raise ReasonTooShort(len(reason), self._min_reason_length)

        target = request.business_date
        if self._locks is None:
            return self._reopen(target, reason, request.actor_id)
        with self._locks.hold(self._store_id, request.actor_id,
                              f"Reopen {target.isoformat()}"):
            return self._reopen(target, reason, request.actor_id)

    def history(self) -> list[OverrideLogEntry]:
        return self._audits.list_overrides()

    def _reopen(self, target: date, reason: str, actor_id: str) -> ReopenOutcome:
        if self._audits.get_record(target) is None:
            raise DayNotClosed(target)

        latest = self._audits.last_closed_date()
        if latest is not None and latest != target:
            raise ReopenOutOfOrder(target, latest)

        entry = OverrideLogEntry(
            store_id=self._store_id,
            business_date=target,
            reason=reason,
            user=actor_id,
            timestamp=self._clock.now_utc(),
        )
        self._audits.reopen(target, entry)
        last_closed = self._audits.last_closed_date()

        logger.warning(
            f"Day {target.isoformat()} reopened on store {self._store_id} by "
            f"{actor_id}: {reason}"
        )
        if self._publisher is not None:
            self._publisher.publish(events.day_reopened(
                self._store_id, target, actor_id, reason,
                entry.timestamp, last_closed,
            ))
        return ReopenOutcome(business_date=target, entry=entry, last_closed_date=last_closed)
