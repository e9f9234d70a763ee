"""
Memoflow Memo Engine - Wiring
=============================
Assembles a WorkflowEngine from WorkflowSettings.

- STORE_BACKEND=django → core.memo_store DjangoDocumentStore
- STORE_BACKEND=memory → InMemoryDocumentStore
- NOTIFICATIONS_ENABLED=False → NullNotificationEmitter
"""

from __future__ import annotations

import threading
from typing import Optional

from core.config import STORE_BACKEND_MEMORY, WorkflowSettings, load_workflow_settings
from core.events import SubscriberRegistry
from core.time import Clock
from engines.memo.notifications import (
    NotificationEmitter,
    NullNotificationEmitter,
    SubscriberNotificationEmitter,
)
from engines.memo.service import WorkflowEngine
from engines.memo.store import DocumentStore, InMemoryDocumentStore


_ENGINE_LOCK = threading.Lock()
_ENGINE: WorkflowEngine | None = None


def _build_store(settings: WorkflowSettings) -> DocumentStore:
    if settings.store_backend == STORE_BACKEND_MEMORY:
        return InMemoryDocumentStore()

    # Needs the Django app registry; imported on demand.
    from core.memo_store.repository import DjangoDocumentStore

    return DjangoDocumentStore()


def _build_notifier(
    settings: WorkflowSettings,
    registry: Optional[SubscriberRegistry],
    clock: Optional[Clock],
) -> NotificationEmitter:
    if not settings.notifications_enabled:
        return NullNotificationEmitter()
    return SubscriberNotificationEmitter(
        registry if registry is not None else SubscriberRegistry(),
        clock=clock,
    )


def build_workflow_engine(
    settings: Optional[WorkflowSettings] = None,
    *,
    registry: Optional[SubscriberRegistry] = None,
    clock: Optional[Clock] = None,
) -> WorkflowEngine:
    """Build a fresh engine. `settings` defaults to load_workflow_settings()."""
    settings = settings or load_workflow_settings()
    return WorkflowEngine(
        _build_store(settings),
        notifier=_build_notifier(settings, registry, clock),
        clock=clock,
        pending_queue_limit=settings.pending_queue_limit,
    )


def get_workflow_engine() -> WorkflowEngine:
    """
    Lazy process-wide engine built from Django settings.
    """
    global _ENGINE
    with _ENGINE_LOCK:
        if _ENGINE is None:
            _ENGINE = build_workflow_engine()
        return _ENGINE


def reset_workflow_engine() -> None:
    global _ENGINE
    with _ENGINE_LOCK:
        _ENGINE = None
