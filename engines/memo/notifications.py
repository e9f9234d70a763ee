"""
Memoflow Memo Engine - Notification Emitter
===========================================
Tells interested parties that a memo changed status.

The engine calls notify() only after the store confirmed the commit.
From the engine's point of view delivery is fire-and-forget: an
exception here is reported separately and never undoes the transition.
"""

from __future__ import annotations

import uuid
from typing import Optional, Protocol

from core.events import SubscriberRegistry, dispatch
from core.time import Clock, get_default_clock
from engines.memo.errors import NotificationDeliveryError
from engines.memo.events import StatusChangeNotification
from engines.memo.models import MemoStatus


class NotificationEmitter(Protocol):
    def notify(
        self,
        memo_id: uuid.UUID,
        new_status: MemoStatus,
        actor_id: str,
    ) -> None:
        ...


class NullNotificationEmitter:
    """Used when notifications are disabled."""

    def notify(
        self,
        memo_id: uuid.UUID,
        new_status: MemoStatus,
        actor_id: str,
    ) -> None:
        return None


class SubscriberNotificationEmitter:
    """
    Dispatches StatusChangeNotification through the in-process event bus.

    Raises NotificationDeliveryError when any subscriber failed, after
    every subscriber has had its turn.
    """

    def __init__(
        self,
        registry: SubscriberRegistry,
        clock: Optional[Clock] = None,
    ):
        self._registry = registry
        self._clock = clock or get_default_clock()

    @property
    def registry(self) -> SubscriberRegistry:
        return self._registry

    def notify(
        self,
        memo_id: uuid.UUID,
        new_status: MemoStatus,
        actor_id: str,
    ) -> None:
        notification = StatusChangeNotification(
            memo_id=memo_id,
            new_status=new_status,
            actor_id=actor_id,
            occurred_at=self._clock.now_utc(),
        )
        report = dispatch(notification, self._registry)
        if not report.ok:
            raise NotificationDeliveryError(memo_id, report)
