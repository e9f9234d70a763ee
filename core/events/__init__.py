"""
Memoflow Event Bus - Public API
===============================
In-process fan-out of committed workflow notifications.
A notification is only dispatched after its change is durable.
"""

from core.events.dispatcher import DispatchReport, dispatch
from core.events.errors import (
    DuplicateSubscriberError,
    EventBusError,
    InvalidEventTypeFormat,
)
from core.events.registry import SubscriberRegistry

__all__ = [
    "dispatch",
    "DispatchReport",
    "SubscriberRegistry",
    "EventBusError",
    "InvalidEventTypeFormat",
    "DuplicateSubscriberError",
]
