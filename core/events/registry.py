"""
Memoflow Event Bus - Subscriber Registry
========================================
Maps an event type to the handlers that want to hear about it.

Rules:
- Event types follow engine.domain.action format
- Several subscribers per event type are allowed, kept in order
- The same handler cannot subscribe twice to one event type
- In-memory only, thread-safe
"""

import logging
from threading import Lock
from typing import Callable

from core.events.errors import (
    DuplicateSubscriberError,
    EventBusError,
    InvalidEventTypeFormat,
)

logger = logging.getLogger("memoflow.events")


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__qualname__", str(handler))


class SubscriberRegistry:
    """
    In-memory registry of notification subscribers.

    Each entry maps an event_type to a list of
    (handler, subscriber_name) tuples.
    """

    def __init__(self):
        self._subscribers: dict[str, list[tuple[Callable, str]]] = {}
        self._lock = Lock()

    @staticmethod
    def _validate_event_type_format(event_type: str) -> None:
        if not event_type or not isinstance(event_type, str):
            raise InvalidEventTypeFormat(event_type or "")
        parts = event_type.strip().split(".")
        if len(parts) < 3 or not all(parts):
            raise InvalidEventTypeFormat(event_type)

    def subscribe(
        self,
        event_type: str,
        handler: Callable,
        subscriber_name: str,
    ) -> None:
        """
        Register `handler` for `event_type`.

        Raises:
            InvalidEventTypeFormat:   Bad event type format
            DuplicateSubscriberError: Handler already registered
            EventBusError:            Handler not callable
        """
        self._validate_event_type_format(event_type)
        if not callable(handler):
            raise EventBusError(
                f"Handler must be callable, got {type(handler)}."
            )

        name = _handler_name(handler)
        with self._lock:
            entries = self._subscribers.setdefault(event_type, [])
            if any(existing is handler for existing, _ in entries):
                raise DuplicateSubscriberError(event_type, name)
            entries.append((handler, subscriber_name))

        logger.info(
            f"Subscriber registered: {name} → {event_type} "
            f"(subscriber: {subscriber_name})"
        )

    def unsubscribe(self, event_type: str, handler: Callable) -> bool:
        """Remove `handler`; returns False if it was not subscribed."""
        with self._lock:
            entries = self._subscribers.get(event_type, [])
            for index, (existing, _) in enumerate(entries):
                if existing is handler:
                    del entries[index]
                    return True
        return False

    def get_subscribers(self, event_type: str) -> list[tuple[Callable, str]]:
        """Snapshot of subscribers; empty list when none."""
        with self._lock:
            return list(self._subscribers.get(event_type, []))

    def has_subscribers(self, event_type: str) -> bool:
        with self._lock:
            return bool(self._subscribers.get(event_type))

    def subscriber_count(self, event_type: str) -> int:
        with self._lock:
            return len(self._subscribers.get(event_type, []))
