"""
Notification Bus - Dispatcher
===============================
Routes notifications to registered subscribers.

Dispatch behavior:
1. Look up subscribers by message_type
2. Execute handlers sequentially
3. Catch subscriber exceptions per handler, log, continue

A failing subscriber never reaches the publisher. The closure
workflow publishes and moves on.
"""

import logging

from core.events.notification import Notification
from core.events.registry import SubscriberRegistry

logger = logging.getLogger("night_audit.notifications")


def publish(notification: Notification, registry: SubscriberRegistry) -> dict:
    """
    Deliver a notification to all subscribers of its message type.

    Returns:
        {
            'message_type': str,
            'subscribers_notified': int,
            'subscribers_failed': int,
            'failures': list[dict]
        }

    This function NEVER raises exceptions.
    """
    message_type = notification.message_type
    subscribers = registry.get_subscribers(message_type)

    result = {
        "message_type": message_type,
        "subscribers_notified": 0,
        "subscribers_failed": 0,
        "failures": [],
    }

    if not subscribers:
        logger.debug(f"No subscribers for '{message_type}' "
                     f"(store: {notification.store_id})")
        return result

    for handler, subscriber in subscribers:
        handler_name = getattr(handler, "__qualname__", str(handler))

        try:
            handler(notification)
            result["subscribers_notified"] += 1
        except Exception as exc:
            result["subscribers_failed"] += 1
            result["failures"].append({
                "handler": handler_name,
                "subscriber": subscriber,
                "error": str(exc),
                "error_type": type(exc).__name__,
            })
            logger.error(
                f"Subscriber failed: {handler_name} for {message_type} "
                f"(store: {notification.store_id}): {exc}",
                exc_info=True,
            )

    logger.info(
        f"Published {message_type} (store: {notification.store_id}): "
        f"{result['subscribers_notified']} notified, "
        f"{result['subscribers_failed']} failed"
    )
    return result


class NotificationPublisher:
    """Binds a registry so collaborators can publish without holding it."""

    def __init__(self, registry: SubscriberRegistry | None = None):
        self.registry = registry or SubscriberRegistry()

    def publish(self, notification: Notification) -> dict:
        return publish(notification, self.registry)
