"""
Tests for engines.memo.wiring - engine assembly from settings.
"""

import pytest

from core.config import WorkflowSettings
from core.events import SubscriberRegistry
from core.memo_store.repository import DjangoDocumentStore
from engines.memo.models import MemoContent
from engines.memo.notifications import (
    NullNotificationEmitter,
    SubscriberNotificationEmitter,
)
from engines.memo.store import InMemoryDocumentStore
from engines.memo.wiring import (
    build_workflow_engine,
    get_workflow_engine,
    reset_workflow_engine,
)


@pytest.fixture(autouse=True)
def _fresh_engine():
    reset_workflow_engine()
    yield
    reset_workflow_engine()


class TestBuildWorkflowEngine:
    def test_memory_backend(self):
        engine = build_workflow_engine(WorkflowSettings(store_backend="memory"))
        assert isinstance(engine.store, InMemoryDocumentStore)
        assert isinstance(engine.notifier, SubscriberNotificationEmitter)

    def test_django_backend(self):
        engine = build_workflow_engine(WorkflowSettings())
        assert isinstance(engine.store, DjangoDocumentStore)

    def test_notifications_disabled(self):
        engine = build_workflow_engine(
            WorkflowSettings(store_backend="memory", notifications_enabled=False)
        )
        assert isinstance(engine.notifier, NullNotificationEmitter)

    def test_shared_registry(self):
        registry = SubscriberRegistry()
        engine = build_workflow_engine(
            WorkflowSettings(store_backend="memory"), registry=registry,
        )
        assert engine.notifier.registry is registry

    def test_queue_limit_from_settings(self):
        engine = build_workflow_engine(
            WorkflowSettings(store_backend="memory", pending_queue_limit=1)
        )
        engine.create_draft(MemoContent(title="a", body="", author_id="author-1"))
        engine.create_draft(MemoContent(title="b", body="", author_id="author-1"))
        assert len(engine.list_pending("CREATOR")) == 1


class TestSingleton:
    def test_reads_django_settings_once(self, settings):
        settings.MEMO_WORKFLOW = {"STORE_BACKEND": "memory"}
        first = get_workflow_engine()
        assert get_workflow_engine() is first
        assert isinstance(first.store, InMemoryDocumentStore)

    def test_reset(self, settings):
        settings.MEMO_WORKFLOW = {"STORE_BACKEND": "memory"}
        first = get_workflow_engine()
        reset_workflow_engine()
        assert get_workflow_engine() is not first
