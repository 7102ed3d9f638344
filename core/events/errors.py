"""
Notification Bus - Errors
===========================
Error types for the session notification layer.
Publishing never raises these; only registration does.
"""


class NotificationBusError(Exception):
    """Base error for notification bus operations."""
    pass


class InvalidMessageTypeFormat(NotificationBusError):
    """Message type does not follow component.domain.action format."""

    def __init__(self, message_type: str):
        self.message_type = message_type
        super().__init__(
            f"Message type '{message_type}' does not follow "
            f"component.domain.action format."
        )


class DuplicateSubscriberError(NotificationBusError):
    """Same handler already registered for this message type."""

    def __init__(self, message_type: str, handler_name: str):
        self.message_type = message_type
        self.handler_name = handler_name
        super().__init__(
            f"Handler '{handler_name}' already registered "
            f"for message type '{message_type}'."
        )
