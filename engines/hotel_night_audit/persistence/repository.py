"""
Night Audit Persistence - Repository
======================================
DjangoAuditStore implements the engine's AuditStore protocol for
one store.

seal()   locks the business-date row, checks the date is the next one
         in sequence, inserts the record and advances the business
         date, all inside transaction.atomic(). A duplicate date
         surfaces as AlreadyClosed via the unique constraint.
reopen() locks the record row, appends the override entry, deletes
         the record and moves the business date back in one
         transaction. Only the latest sealed date can be reopened.

Database errors other than the duplicate become PersistenceFailure.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Max

from core.time.business_date import next_business_date
from engines.hotel_night_audit.errors import (
    AlreadyClosed,
    DayNotClosed,
    PersistenceFailure,
    ReopenOutOfOrder,
    SequenceViolation,
)
from engines.hotel_night_audit.models import NightAuditRecord, OverrideLogEntry
from engines.hotel_night_audit.persistence.models import (
    BusinessDateRow,
    NightAuditRecordRow,
    OverrideLogRow,
)

logger = logging.getLogger("night_audit.persistence")


def _to_entry(row: OverrideLogRow) -> OverrideLogEntry:
    return OverrideLogEntry(
        store_id=row.store_id,
        business_date=row.business_date,
        reason=row.reason,
        user=row.user,
        timestamp=row.timestamp,
        action=row.action,
    )


class DjangoAuditStore:
    def __init__(self, store_id: str):
        if not store_id:
            raise ValueError("store_id must be non-empty.")
        self._store_id = store_id

    def _records(self):
        return NightAuditRecordRow.objects.filter(store_id=self._store_id)

    def _business_date_row(self):
        return BusinessDateRow.objects.filter(store_id=self._store_id)

    def _move_business_date(self, value: date) -> None:
        BusinessDateRow.objects.update_or_create(
            store_id=self._store_id, defaults={"business_date": value},
        )

    def get_record(self, business_date: date) -> Optional[NightAuditRecord]:
        row = self._records().filter(business_date=business_date).first()
        return NightAuditRecord.from_dict(row.payload) if row else None

    def last_closed_date(self) -> Optional[date]:
        return self._records().aggregate(latest=Max("business_date"))["latest"]

    def current_business_date(self) -> Optional[date]:
        row = self._business_date_row().first()
        if row is not None:
            return row.business_date
        latest = self.last_closed_date()
        return next_business_date(latest) if latest else None

    def list_records(self) -> List[NightAuditRecord]:
        rows = self._records().order_by("business_date")
        return [NightAuditRecord.from_dict(row.payload) for row in rows]

    def seal(self, record: NightAuditRecord) -> None:
        if record.store_id != self._store_id:
            raise ValueError(
                f"Record for store '{record.store_id}' cannot be sealed "
                f"in store '{self._store_id}'."
            )
        target = record.business_date
        try:
            with transaction.atomic():
                pointer = self._business_date_row().select_for_update().first()
                if pointer is not None:
                    expected = pointer.business_date
                else:
                    latest = self.last_closed_date()
                    expected = next_business_date(latest) if latest else None
                if expected is not None and target != expected:
                    if self._records().filter(business_date=target).exists():
                        raise AlreadyClosed(target)
                    raise SequenceViolation(target, expected, self.last_closed_date())
                NightAuditRecordRow.objects.create(
                    store_id=record.store_id,
                    business_date=target,
                    closed_at=record.closed_at,
                    closed_by=record.closed_by,
                    payload=record.to_dict(),
                )
                self._move_business_date(next_business_date(target))
        except IntegrityError as exc:
            logger.warning(f"Duplicate seal rejected for {self._store_id} "
                           f"{target.isoformat()}: {exc}")
            raise AlreadyClosed(target) from exc
        except DatabaseError as exc:
            raise PersistenceFailure(
                f"Record for {target.isoformat()} not saved: {exc}"
            ) from exc

    def reopen(self, business_date: date, entry: OverrideLogEntry) -> None:
        try:
            with transaction.atomic():
                row = (
                    self._records()
                    .select_for_update()
                    .filter(business_date=business_date)
                    .first()
                )
                if row is None:
                    raise DayNotClosed(business_date)
                latest = self.last_closed_date()
                if latest != business_date:
                    raise ReopenOutOfOrder(business_date, latest)
                OverrideLogRow.objects.create(
                    store_id=self._store_id,
                    business_date=entry.business_date,
                    action=entry.action,
                    reason=entry.reason,
                    user=entry.user,
                    timestamp=entry.timestamp,
                )
                row.delete()
                self._move_business_date(business_date)
        except DatabaseError as exc:
            raise PersistenceFailure(
                f"Reopen of {business_date.isoformat()} not saved: {exc}"
            ) from exc

    def list_overrides(self) -> List[OverrideLogEntry]:
        rows = OverrideLogRow.objects.filter(store_id=self._store_id).order_by("timestamp", "id")
        return [_to_entry(row) for row in rows]
