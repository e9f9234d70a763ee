"""
Memoflow Event Bus - Dispatcher
===============================
Delivers one committed notification to its subscribers.

Dispatch behavior:
1. Look up subscribers by event_type
2. Call handlers in registration order
3. A failing handler is logged and recorded, the next one still runs
4. The report is returned to the caller

This module does NOT write to any store and cannot undo the change
that produced the notification.
"""

import logging
from dataclasses import dataclass
from typing import Any

from core.events.registry import SubscriberRegistry

logger = logging.getLogger("memoflow.events")


@dataclass(frozen=True)
class DispatchReport:
    """What happened when one notification was dispatched."""
    event_type: str
    subject_id: str
    subscribers_notified: int = 0
    subscribers_failed: int = 0
    failures: tuple = ()

    @property
    def ok(self) -> bool:
        return self.subscribers_failed == 0


def dispatch(notification: Any, registry: SubscriberRegistry) -> DispatchReport:
    """
    Dispatch `notification` to every subscriber of its event type.

    `notification` must expose `event_type` and `subject_id`.

    This function NEVER raises for handler failures.
    """
    event_type = notification.event_type
    subject_id = str(notification.subject_id)

    subscribers = registry.get_subscribers(event_type)
    if not subscribers:
        logger.debug(
            f"No subscribers for '{event_type}' (subject: {subject_id})"
        )
        return DispatchReport(event_type=event_type, subject_id=subject_id)

    notified = 0
    failures = []
    for handler, subscriber_name in subscribers:
        handler_name = getattr(handler, "__qualname__", str(handler))
        try:
            handler(notification)
            notified += 1
        except Exception as exc:
            failures.append({
                "handler": handler_name,
                "subscriber": subscriber_name,
                "error": str(exc),
                "error_type": type(exc).__name__,
            })
            logger.error(
                f"Subscriber failed: {handler_name} for {event_type} "
                f"(subject: {subject_id}): {exc}",
                exc_info=True,
            )

    logger.info(
        f"Dispatch complete: {event_type} (subject: {subject_id}), "
        f"{notified} notified, {len(failures)} failed"
    )
    return DispatchReport(
        event_type=event_type,
        subject_id=subject_id,
        subscribers_notified=notified,
        subscribers_failed=len(failures),
        failures=tuple(failures),
    )
