"""
Hotel Night Audit Engine - System Lock
========================================
Process-wide mutual exclusion for day closure, keyed by store.

acquire() never waits: a held lock raises LockHeld naming the holder.
Check-in, check-out and payment components call guard_mutation()
before writing so nothing changes under a running closure.

Acquire and release publish session notifications. The acquire
notification carries the force-logout countdown other sessions use to
wind down; the lock itself does not wait for them.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterator, Optional

from core.events import NotificationPublisher
from core.time.clock import Clock
from engines.hotel_night_audit import events
from engines.hotel_night_audit.errors import LockHeld

logger = logging.getLogger("night_audit.lock")


@dataclass(frozen=True)
class SystemLock:
    store_id: str
    holder: str
    reason: str
    acquired_at: datetime

    def to_dict(self) -> dict:
        return {
            "store_id": self.store_id,
            "holder": self.holder,
            "reason": self.reason,
            "acquired_at": self.acquired_at.isoformat(),
        }


class SystemLockRegistry:
    def __init__(
        self,
        clock: Clock,
        publisher: Optional[NotificationPublisher] = None,
        force_logout_seconds: int = 30,
    ):
        self._clock = clock
        self._publisher = publisher
        self._force_logout_seconds = force_logout_seconds
        self._locks: Dict[str, SystemLock] = {}
        self._mutex = threading.Lock()

    def acquire(self, store_id: str, holder: str, reason: str) -> SystemLock:
        if not holder:
            raise ValueError("holder must be non-empty.")
        with self._mutex:
            current = self._locks.get(store_id)
            if current is not None:
                raise LockHeld(store_id, current.holder, current.reason, current.acquired_at)
            lock = SystemLock(
                store_id=store_id,
                holder=holder,
                reason=reason,
                acquired_at=self._clock.now_utc(),
            )
            self._locks[store_id] = lock

        logger.info(f"System lock acquired: store={store_id} holder={holder} ({reason})")
        self._publish(events.lock_acquired(
            store_id, holder, reason, lock.acquired_at, self._force_logout_seconds,
        ))
        return lock

    def release(self, store_id: str, holder: str) -> bool:
        """Release if `holder` owns the lock. Returns False otherwise."""
        with self._mutex:
            current = self._locks.get(store_id)
            if current is None or current.holder != holder:
                return False
            del self._locks[store_id]

        logger.info(f"System lock released: store={store_id} holder={holder}")
        self._publish(events.lock_released(store_id, holder, self._clock.now_utc()))
        return True

    def current(self, store_id: str) -> Optional[SystemLock]:
        with self._mutex:
            return self._locks.get(store_id)

    def is_locked(self, store_id: str) -> bool:
        return self.current(store_id) is not None

    def guard_mutation(self, store_id: str, operation: str) -> None:
        """Raise LockHeld when a closure holds the store."""
        current = self.current(store_id)
        if current is not None:
            logger.warning(
                f"Blocked '{operation}' on store {store_id}: locked by {current.holder}"
            )
            raise LockHeld(
                store_id, current.holder, current.reason, current.acquired_at,
                operation=operation,
            )

    @contextmanager
    def hold(self, store_id: str, holder: str, reason: str) -> Iterator[SystemLock]:
        lock = self.acquire(store_id, holder, reason)
        try:
            yield lock
        finally:
            self.release(store_id, holder)

    def _publish(self, notification) -> None:
        if self._publisher is not None:
            self._publisher.publish(notification)
