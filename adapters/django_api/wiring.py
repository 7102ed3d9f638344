"""
Night Audit Django Adapter Wiring
===================================
Constructs the night audit runtime for local/staging runs.

This module is adapter-only glue:
- audit records go through the Django ORM store
- reservations, folios, rooms, shifts and checklist are in-memory
  until the property-management side plugs its own stores in
- one store per process (DEV_STORE_ID)
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from core.config.night_audit import NightAuditConfig, load_night_audit_config
from core.events import NotificationPublisher
from core.time.business_date import BusinessDateProvider, ClockBusinessDate
from core.time.clock import Clock, SystemClock
from engines.hotel_night_audit.folio import FolioLedger, FolioNumberSequence
from engines.hotel_night_audit.lock import SystemLockRegistry
from engines.hotel_night_audit.override import ReopenDayManager
from engines.hotel_night_audit.persistence.repository import DjangoAuditStore
from engines.hotel_night_audit.reporting import (
    ClosureReportService,
    PdfMailReportExporter,
    ReportOutbox,
)
from engines.hotel_night_audit.services import ClosureDependencies, DayClosureCoordinator
from engines.hotel_night_audit.stores import (
    AuditStore,
    InMemoryCashierShiftService,
    InMemoryChecklistStore,
    InMemoryFolioStore,
    InMemoryReservationStore,
    InMemoryRoomStatusService,
)

DEV_STORE_ID = "dev-hotel"

_RUNTIME_LOCK = threading.Lock()
_RUNTIME: Optional["NightAuditRuntime"] = None


@dataclass(frozen=True)
class NightAuditRuntime:
    store_id: str
    deps: ClosureDependencies
    coordinator: DayClosureCoordinator
    reopen: ReopenDayManager
    locks: SystemLockRegistry
    ledger: FolioLedger
    publisher: NotificationPublisher
    outbox: ReportOutbox
    config: NightAuditConfig


def build_runtime(
    *,
    store_id: str = DEV_STORE_ID,
    config: Optional[NightAuditConfig] = None,
    clock: Optional[Clock] = None,
    business_dates: Optional[BusinessDateProvider] = None,
    audits: Optional[AuditStore] = None,
    deps: Optional[ClosureDependencies] = None,
    locks: Optional[SystemLockRegistry] = None,
) -> NightAuditRuntime:
    config = config or load_night_audit_config()
    clock = clock or SystemClock()
    business_dates = business_dates or ClockBusinessDate(clock, config.time_zone)
    publisher = NotificationPublisher()

    if deps is None:
        deps = ClosureDependencies(
            reservations=InMemoryReservationStore(),
            folios=InMemoryFolioStore(),
            audits=audits or DjangoAuditStore(store_id),
            rooms=InMemoryRoomStatusService(),
            cashier_shifts=InMemoryCashierShiftService(),
            checklist=InMemoryChecklistStore(config.checklist),
        )

    locks = locks or SystemLockRegistry(
        clock, publisher, force_logout_seconds=config.force_logout_seconds,
    )
    ledger = FolioLedger(deps.folios, FolioNumberSequence(clock), config.tax_rules)
    outbox = ReportOutbox(clock)
    reports = ClosureReportService(PdfMailReportExporter(), outbox)

    coordinator = DayClosureCoordinator(
        store_id=store_id,
        deps=deps,
        locks=locks,
        ledger=ledger,
        business_dates=business_dates,
        clock=clock,
        config=config,
        reports=reports,
        publisher=publisher,
    )
    reopen = ReopenDayManager(
        store_id,
        deps.audits,
        clock,
        publisher=publisher,
        min_reason_length=config.reopen_min_reason_length,
        locks=locks,
    )
    return NightAuditRuntime(
        store_id=store_id,
        deps=deps,
        coordinator=coordinator,
        reopen=reopen,
        locks=locks,
        ledger=ledger,
        publisher=publisher,
        outbox=outbox,
        config=config,
    )


def get_runtime() -> NightAuditRuntime:
    """
    Lazy singleton wiring for adapter runtime.
    """
    global _RUNTIME
    with _RUNTIME_LOCK:
        if _RUNTIME is None:
            _RUNTIME = build_runtime()
        return _RUNTIME


def set_runtime(runtime: Optional[NightAuditRuntime]) -> None:
    """Swap the process runtime (tests, management commands). None resets."""
    global _RUNTIME
    with _RUNTIME_LOCK:
        _RUNTIME = runtime
