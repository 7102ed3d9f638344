"""
Notification Bus - Public API
===============================
Fire-and-forget session notifications (lock warnings, seals).
Publishing never raises; subscribers fail alone.
"""

from core.events.dispatcher import NotificationPublisher, publish
from core.events.errors import (
    DuplicateSubscriberError,
    InvalidMessageTypeFormat,
    NotificationBusError,
)
from core.events.notification import Notification
from core.events.registry import SubscriberRegistry

__all__ = [
    "Notification",
    "NotificationPublisher",
    "publish",
    "SubscriberRegistry",
    "NotificationBusError",
    "InvalidMessageTypeFormat",
    "DuplicateSubscriberError",
]
