"""
Hotel Night Audit Engine - Session Notifications
==================================================
Message types published on the notification bus, plus payload
builders. Sessions listen for LOCK_ACQUIRED to run the force-logout
countdown; nothing in the engine waits for them.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from core.events import Notification

NIGHT_AUDIT_LOCK_ACQUIRED = "night_audit.lock.acquired"
NIGHT_AUDIT_LOCK_RELEASED = "night_audit.lock.released"
NIGHT_AUDIT_DAY_SEALED = "night_audit.day.sealed"
NIGHT_AUDIT_DAY_REOPENED = "night_audit.day.reopened"
NIGHT_AUDIT_NO_SHOW_MARKED = "night_audit.no_show.marked"

NIGHT_AUDIT_MESSAGE_TYPES = frozenset({
    NIGHT_AUDIT_LOCK_ACQUIRED,
    NIGHT_AUDIT_LOCK_RELEASED,
    NIGHT_AUDIT_DAY_SEALED,
    NIGHT_AUDIT_DAY_REOPENED,
    NIGHT_AUDIT_NO_SHOW_MARKED,
})


def lock_acquired(
    store_id: str, holder: str, reason: str, at: datetime, countdown_seconds: int
) -> Notification:
    return Notification(
        message_type=NIGHT_AUDIT_LOCK_ACQUIRED,
        store_id=store_id,
        occurred_at=at,
        payload={
            "holder": holder,
            "reason": reason,
            "force_logout_in_seconds": countdown_seconds,
        },
    )


def lock_released(store_id: str, holder: str, at: datetime) -> Notification:
    return Notification(
        message_type=NIGHT_AUDIT_LOCK_RELEASED,
        store_id=store_id,
        occurred_at=at,
        payload={"holder": holder},
    )


def day_sealed(
    store_id: str, business_date: date, closed_by: str, at: datetime,
    next_business_date: date,
) -> Notification:
    return Notification(
        message_type=NIGHT_AUDIT_DAY_SEALED,
        store_id=store_id,
        occurred_at=at,
        payload={
            "date": business_date.isoformat(),
            "closed_by": closed_by,
            "next_business_date": next_business_date.isoformat(),
        },
    )


def day_reopened(
    store_id: str, business_date: date, user: str, reason: str, at: datetime,
    last_closed_date: Optional[date],
) -> Notification:
    return Notification(
        message_type=NIGHT_AUDIT_DAY_REOPENED,
        store_id=store_id,
        occurred_at=at,
        payload={
            "date": business_date.isoformat(),
            "user": user,
            "reason": reason,
            "last_closed_date": last_closed_date.isoformat() if last_closed_date else None,
        },
    )


def no_show_marked(
    store_id: str, reservation_id: str, guest_name: str, penalty: Optional[str], at: datetime
) -> Notification:
    return Notification(
        message_type=NIGHT_AUDIT_NO_SHOW_MARKED,
        store_id=store_id,
        occurred_at=at,
        payload={
            "reservation_id": reservation_id,
            "guest_name": guest_name,
            "penalty": penalty,
        },
    )
