from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from engines.hotel_night_audit.errors import (
    AlreadyClosed,
    DayNotClosed,
    ReopenOutOfOrder,
    SequenceViolation,
)
from engines.hotel_night_audit.models import (
    ChecklistItem,
    DayStatistics,
    NightAuditRecord,
    OverrideLogEntry,
)
from engines.hotel_night_audit.persistence.models import (
    BusinessDateRow,
    NightAuditRecordRow,
    OverrideLogRow,
)
from engines.hotel_night_audit.persistence.repository import DjangoAuditStore

pytestmark = pytest.mark.django_db(transaction=True)


STORE_ID = "hotel-db"
OTHER_STORE_ID = "hotel-db-other"
CLOSED_AT = datetime(2024, 6, 2, 1, 15, tzinfo=timezone.utc)


def _record(day: date, store_id: str = STORE_ID) -> NightAuditRecord:
    return NightAuditRecord(
        store_id=store_id,
        business_date=day,
        closed_at=CLOSED_AT,
        closed_by="auditor-1",
        statistics=DayStatistics(
            business_date=day, check_ins=3, check_outs=2, occupied_rooms=5,
            total_rooms=10, occupancy_rate=50, revenue=Decimal("450.00"),
            average_rate=Decimal("150.00"), no_shows=1, cancellations=0,
        ),
        folios_generated=("F00000001",),
        no_shows_processed=("R-9",),
        checkouts_processed=("R-1", "R-2"),
        checklist=(ChecklistItem("backup", "Backup created", completed=True),),
    )


def _entry(day: date) -> OverrideLogEntry:
    return OverrideLogEntry(
        store_id=STORE_ID,
        business_date=day,
        reason="adjusting tax rate error 2024",
        user="admin-1",
        timestamp=datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc),
    )


class TestDjangoAuditStoreSeal:
    def test_seal_and_read_back(self):
        store = DjangoAuditStore(STORE_ID)
        record = _record(date(2024, 6, 1))
        store.seal(record)

        assert store.get_record(date(2024, 6, 1)) == record
        assert store.last_closed_date() == date(2024, 6, 1)
        assert NightAuditRecordRow.objects.count() == 1

    def test_duplicate_seal_is_already_closed(self):
        store = DjangoAuditStore(STORE_ID)
        store.seal(_record(date(2024, 6, 1)))
        with pytest.raises(AlreadyClosed):
            store.seal(_record(date(2024, 6, 1)))
        assert NightAuditRecordRow.objects.count() == 1

    def test_stores_are_isolated(self):
        DjangoAuditStore(STORE_ID).seal(_record(date(2024, 6, 1)))
        other = DjangoAuditStore(OTHER_STORE_ID)
        other.seal(_record(date(2024, 6, 1), OTHER_STORE_ID))

        assert other.last_closed_date() == date(2024, 6, 1)
        assert len(DjangoAuditStore(STORE_ID).list_records()) == 1

    def test_foreign_record_rejected(self):
        with pytest.raises(ValueError, match="cannot be sealed"):
            DjangoAuditStore(STORE_ID).seal(_record(date(2024, 6, 1), OTHER_STORE_ID))

    def test_list_records_ordered(self):
        store = DjangoAuditStore(STORE_ID)
        store.seal(_record(date(2024, 6, 1)))
        store.seal(_record(date(2024, 6, 2)))
        assert [r.business_date for r in store.list_records()] == [
            date(2024, 6, 1), date(2024, 6, 2),
        ]

    def test_empty_store(self):
        store = DjangoAuditStore(STORE_ID)
        assert store.last_closed_date() is None
        assert store.current_business_date() is None
        assert store.get_record(date(2024, 6, 1)) is None


class TestDjangoAuditStoreBusinessDate:
    def test_seal_advances_business_date(self):
        store = DjangoAuditStore(STORE_ID)
        store.seal(_record(date(2024, 6, 1)))
        assert store.current_business_date() == date(2024, 6, 2)
        store.seal(_record(date(2024, 6, 2)))
        assert store.current_business_date() == date(2024, 6, 3)
        assert BusinessDateRow.objects.get(store_id=STORE_ID).business_date == date(2024, 6, 3)

    def test_gap_rejected_without_writing(self):
        store = DjangoAuditStore(STORE_ID)
        store.seal(_record(date(2024, 6, 1)))
        with pytest.raises(SequenceViolation) as exc_info:
            store.seal(_record(date(2024, 6, 3)))
        assert exc_info.value.expected == date(2024, 6, 2)
        assert store.last_closed_date() == date(2024, 6, 1)
        assert store.current_business_date() == date(2024, 6, 2)

    def test_earlier_unsealed_date_rejected(self):
        store = DjangoAuditStore(STORE_ID)
        store.seal(_record(date(2024, 6, 2)))
        with pytest.raises(SequenceViolation):
            store.seal(_record(date(2024, 6, 1)))
        assert NightAuditRecordRow.objects.count() == 1

    def test_reopen_moves_business_date_back(self):
        store = DjangoAuditStore(STORE_ID)
        store.seal(_record(date(2024, 6, 1)))
        store.seal(_record(date(2024, 6, 2)))
        store.reopen(date(2024, 6, 2), _entry(date(2024, 6, 2)))
        assert store.current_business_date() == date(2024, 6, 2)

    def test_business_dates_are_per_store(self):
        DjangoAuditStore(STORE_ID).seal(_record(date(2024, 6, 1)))
        assert DjangoAuditStore(OTHER_STORE_ID).current_business_date() is None


class TestDjangoAuditStoreReopen:
    def test_reopen_removes_record_and_logs(self):
        store = DjangoAuditStore(STORE_ID)
        store.seal(_record(date(2024, 6, 1)))
        store.seal(_record(date(2024, 6, 2)))

        store.reopen(date(2024, 6, 2), _entry(date(2024, 6, 2)))

        assert store.get_record(date(2024, 6, 2)) is None
        assert store.last_closed_date() == date(2024, 6, 1)
        [entry] = store.list_overrides()
        assert entry == _entry(date(2024, 6, 2))
        assert OverrideLogRow.objects.count() == 1

    def test_only_latest_day_reopens(self):
        store = DjangoAuditStore(STORE_ID)
        store.seal(_record(date(2024, 6, 1)))
        store.seal(_record(date(2024, 6, 2)))
        with pytest.raises(ReopenOutOfOrder):
            store.reopen(date(2024, 6, 1), _entry(date(2024, 6, 1)))
        assert len(store.list_records()) == 2
        assert OverrideLogRow.objects.count() == 0

    def test_reopen_missing_day_writes_nothing(self):
        store = DjangoAuditStore(STORE_ID)
        with pytest.raises(DayNotClosed):
            store.reopen(date(2024, 6, 2), _entry(date(2024, 6, 2)))
        assert OverrideLogRow.objects.count() == 0

    def test_day_can_be_sealed_again_after_reopen(self):
        store = DjangoAuditStore(STORE_ID)
        store.seal(_record(date(2024, 6, 1)))
        store.reopen(date(2024, 6, 1), _entry(date(2024, 6, 1)))
        store.seal(_record(date(2024, 6, 1)))
        assert store.last_closed_date() == date(2024, 6, 1)
        assert len(store.list_overrides()) == 1
