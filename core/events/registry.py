"""
Notification Bus - Subscriber Registry
========================================
Controls which handlers receive which session notifications.

Rules:
- Message types must follow component.domain.action format
- Multiple subscribers per message type allowed
- Duplicate handler for same message type forbidden
- In-memory only, thread-safe
"""

import logging
from threading import Lock
from typing import Callable

from core.events.errors import (
    DuplicateSubscriberError,
    InvalidMessageTypeFormat,
    NotificationBusError,
)

logger = logging.getLogger("night_audit.notifications")


class SubscriberRegistry:
    """
    In-memory registry of notification subscribers.

    Each entry maps a message_type to a list of
    (handler, subscriber_name) tuples.
    """

    def __init__(self):
        self._subscribers: dict[str, list[tuple[Callable, str]]] = {}
        self._lock = Lock()

    @staticmethod
    def _validate_message_type_format(message_type: str) -> None:
        if not message_type or not isinstance(message_type, str):
            raise InvalidMessageTypeFormat(message_type or "")

        parts = message_type.strip().split(".")
        if len(parts) < 3 or not all(parts):
            raise InvalidMessageTypeFormat(message_type)

    def subscribe(
        self,
        message_type: str,
        handler: Callable,
        subscriber: str,
    ) -> None:
        """
        Register a handler for a message type.

        Raises:
            InvalidMessageTypeFormat:  Bad message type format
            DuplicateSubscriberError:  Handler already registered
        """
        self._validate_message_type_format(message_type)

        if not callable(handler):
            raise NotificationBusError(
                f"Handler must be callable, got {type(handler)}."
            )

        handler_name = getattr(handler, "__qualname__", str(handler))

        with self._lock:
            entries = self._subscribers.setdefault(message_type, [])
            for existing_handler, _ in entries:
                if existing_handler is handler:
                    raise DuplicateSubscriberError(message_type, handler_name)
            entries.append((handler, subscriber))

        logger.info(
            f"Subscriber registered: {handler_name} -> {message_type} "
            f"(subscriber: {subscriber})"
        )

    def unsubscribe(self, message_type: str, handler: Callable) -> bool:
        with self._lock:
            entries = self._subscribers.get(message_type, [])
            for index, (existing_handler, _) in enumerate(entries):
                if existing_handler is handler:
                    del entries[index]
                    return True
        return False

    def get_subscribers(self, message_type: str) -> list[tuple[Callable, str]]:
        """Empty list when nobody listens (not an error)."""
        with self._lock:
            return list(self._subscribers.get(message_type, []))

    def subscriber_count(self, message_type: str) -> int:
        with self._lock:
            return len(self._subscribers.get(message_type, []))
