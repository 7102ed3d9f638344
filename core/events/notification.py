"""
Notification Bus - Message Envelope
=====================================
A Notification is fire-and-forget: it tells connected sessions that
something happened (lock taken, day sealed). It is never the record
of truth and losing one never corrupts state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class Notification:
    message_type: str
    store_id: str
    occurred_at: datetime
    payload: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.message_type:
            raise ValueError("message_type must be non-empty.")
        if not self.store_id:
            raise ValueError("store_id must be non-empty.")
        if self.occurred_at.tzinfo is None:
            raise ValueError("occurred_at must be timezone-aware.")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message_type": self.message_type,
            "store_id": self.store_id,
            "occurred_at": self.occurred_at.isoformat(),
            "payload": dict(self.payload),
        }
