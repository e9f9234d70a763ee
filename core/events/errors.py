"""
Memoflow Event Bus - Errors
===========================
Registration-time errors of the subscriber registry.
Dispatch itself never raises; failures are reported.
"""


class EventBusError(Exception):
    """Base error for event bus registration."""
    pass


class InvalidEventTypeFormat(EventBusError):
    """Event type is not in engine.domain.action form."""

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(
            f"Event type '{event_type}' must look like engine.domain.action."
        )


class DuplicateSubscriberError(EventBusError):
    """The handler is already subscribed to this event type."""

    def __init__(self, event_type: str, handler_name: str):
        self.event_type = event_type
        self.handler_name = handler_name
        super().__init__(
            f"Handler '{handler_name}' is already subscribed to "
            f"'{event_type}'."
        )
