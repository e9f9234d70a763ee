from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from unittest import mock

import pytest
from django.db import DatabaseError

from core.memo_store.models import MemoRecord, WorkflowHistoryRecord
from core.memo_store.repository import DjangoDocumentStore
from core.time import FixedClock
from engines.memo.errors import (
    MemoNotFoundError,
    MemoWorkflowError,
    StorePersistenceError,
    VersionConflictError,
    WorkflowErrorCode,
)
from engines.memo.history import build_created_entry, build_transition_entry, verify_history
from engines.memo.models import (
    Memo,
    MemoAction,
    MemoContent,
    MemoRole,
    MemoStatus,
    MemoType,
    PriorityLevel,
)
from engines.memo.service import WorkflowEngine

pytestmark = pytest.mark.django_db(transaction=True)


NOW = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)
MEMO_ID = uuid.uuid5(uuid.NAMESPACE_URL, "memoflow-store-db-memo")
UNKNOWN_ID = uuid.uuid5(uuid.NAMESPACE_URL, "memoflow-store-db-unknown")


def _content() -> MemoContent:
    return MemoContent(
        title="Overtime policy",
        body="Effective next month.",
        author_id="author-1",
        department="HR",
        memo_type=MemoType.INFORMATIONAL,
        recipients=("desk-1", "leo-1"),
        attachments=("policy.pdf",),
        tags=("hr", "policy"),
        date_of_issue=date(2026, 3, 1),
    )


def _draft(memo_id: uuid.UUID = MEMO_ID, at: datetime = NOW) -> Memo:
    return Memo(
        memo_id=memo_id,
        status=MemoStatus.DRAFT,
        version=1,
        priority=PriorityLevel.CONFIDENTIAL,
        content=_content(),
        created_at=at,
        updated_at=at,
    )


def _create(store: DjangoDocumentStore, memo_id: uuid.UUID = MEMO_ID, at: datetime = NOW) -> Memo:
    memo = _draft(memo_id, at)
    store.create(memo, build_created_entry(memo_id, "author-1", at))
    return memo


def _submit(store: DjangoDocumentStore, memo: Memo, at: datetime):
    history = store.load_history(memo.memo_id)
    moved = memo.with_transition(MemoStatus.PENDING_DESK_HEAD, at)
    entry = build_transition_entry(
        history,
        memo_id=memo.memo_id,
        actor_id="author-1",
        actor_role=MemoRole.CREATOR,
        action=MemoAction.SUBMIT_TO_DESK_HEAD,
        comment="ready",
        occurred_at=at,
        resulting_status=moved.status,
    )
    return moved, entry


def test_create_and_load_round_trip() -> None:
    store = DjangoDocumentStore()
    memo = _create(store)

    assert store.load(MEMO_ID) == memo
    history = store.load_history(MEMO_ID)
    assert len(history) == 1
    assert history[0].is_creation
    assert history[0].actor_role is None


def test_create_duplicate_id_rejected() -> None:
    store = DjangoDocumentStore()
    _create(store)
    with pytest.raises(MemoWorkflowError, match="already exists"):
        _create(store)
    assert WorkflowHistoryRecord.objects.filter(memo_id=MEMO_ID).count() == 1


def test_unknown_memo_raises_not_found() -> None:
    store = DjangoDocumentStore()
    with pytest.raises(MemoNotFoundError):
        store.load(UNKNOWN_ID)
    with pytest.raises(MemoNotFoundError):
        store.load_history(UNKNOWN_ID)


def test_save_commits_memo_and_entry_together() -> None:
    store = DjangoDocumentStore()
    memo = _create(store)
    moved, entry = _submit(store, memo, NOW + timedelta(minutes=5))

    store.save(moved, entry)

    assert store.load(MEMO_ID) == moved
    history = store.load_history(MEMO_ID)
    assert [e.sequence_number for e in history] == [1, 2]
    assert history[-1] == entry


def test_stale_save_writes_nothing() -> None:
    store = DjangoDocumentStore()
    memo = _create(store)
    moved, entry = _submit(store, memo, NOW + timedelta(minutes=5))
    store.save(moved, entry)

    with pytest.raises(VersionConflictError) as exc_info:
        store.save(moved, entry)

    assert exc_info.value.actual_version == 2
    assert MemoRecord.objects.get(memo_id=MEMO_ID).version == 2
    assert WorkflowHistoryRecord.objects.filter(memo_id=MEMO_ID).count() == 2


def test_database_error_becomes_store_persistence_error() -> None:
    store = DjangoDocumentStore()
    memo = _create(store)
    moved, entry = _submit(store, memo, NOW + timedelta(minutes=5))

    with mock.patch(
        "core.memo_store.repository._insert_entry",
        side_effect=DatabaseError("database is locked"),
    ):
        with pytest.raises(StorePersistenceError, match="database is locked"):
            store.save(moved, entry)

    # The memo row update was rolled back with the failed insert.
    record = MemoRecord.objects.get(memo_id=MEMO_ID)
    assert record.version == 1
    assert record.status == MemoStatus.DRAFT.value


def test_history_rows_are_append_only() -> None:
    store = DjangoDocumentStore()
    _create(store)
    row = WorkflowHistoryRecord.objects.get(memo_id=MEMO_ID, sequence_number=1)

    row.comment = "rewritten"
    with pytest.raises(PermissionError, match="append-only"):
        row.save()
    with pytest.raises(PermissionError, match="append-only"):
        row.delete()


def test_list_by_status_orders_by_update_time() -> None:
    store = DjangoDocumentStore()
    ids = [uuid.uuid5(uuid.NAMESPACE_URL, f"memoflow-store-db-{n}") for n in range(3)]
    for offset, memo_id in enumerate(ids):
        _create(store, memo_id, NOW + timedelta(minutes=offset))

    drafts = store.list_by_status([MemoStatus.DRAFT])
    assert [m.memo_id for m in drafts] == ids
    assert len(store.list_by_status([MemoStatus.DRAFT], limit=2)) == 2
    assert store.list_by_status([MemoStatus.PENDING_LEO]) == ()


def test_engine_over_django_store_full_path() -> None:
    clock = FixedClock(NOW)
    engine = WorkflowEngine(DjangoDocumentStore(), clock=clock)
    memo = engine.create_draft(_content())

    steps = [
        (MemoAction.SUBMIT_TO_DESK_HEAD, "author-1", MemoRole.CREATOR, "ready"),
        (MemoAction.RETURN_TO_CREATOR, "desk-1", MemoRole.DESK_HEAD, "fix title"),
        (MemoAction.SUBMIT_TO_DESK_HEAD, "author-1", MemoRole.CREATOR, "fixed"),
        (MemoAction.SUBMIT_TO_LEO, "desk-1", MemoRole.DESK_HEAD, "looks good"),
        (MemoAction.APPROVE, "leo-1", MemoRole.LEO, "approved"),
    ]
    for step in steps:
        clock.advance(60)
        result = engine.apply(memo.memo_id, *step)
        assert result.accepted, result.error

    final = engine.get_document(memo.memo_id)
    assert final.status == MemoStatus.APPROVED
    assert final.version == 6
    verify_history(engine.get_history(memo.memo_id), final.status)

    stale = engine.apply(
        memo.memo_id, MemoAction.REJECT, "leo-1", MemoRole.LEO, "late", expected_version=5,
    )
    assert stale.error.code == WorkflowErrorCode.VERSION_CONFLICT


def test_engine_maps_store_failure_to_persistence_error() -> None:
    engine = WorkflowEngine(DjangoDocumentStore(), clock=FixedClock(NOW))
    memo = engine.create_draft(_content())

    with mock.patch(
        "core.memo_store.repository._insert_entry",
        side_effect=DatabaseError("disk I/O error"),
    ):
        result = engine.apply(
            memo.memo_id, MemoAction.SUBMIT_TO_DESK_HEAD, "author-1", MemoRole.CREATOR, "ready",
        )

    assert result.error.code == WorkflowErrorCode.PERSISTENCE_ERROR
    stored = engine.get_document(memo.memo_id)
    assert (stored.status, stored.version) == (MemoStatus.DRAFT, 1)
    assert len(engine.get_history(memo.memo_id)) == 1


def test_engine_reads_normalise_ids_over_django_store() -> None:
    engine = WorkflowEngine(DjangoDocumentStore(), clock=FixedClock(NOW))
    memo = engine.create_draft(_content())

    assert engine.get_document(str(memo.memo_id)).memo_id == memo.memo_id
    assert len(engine.get_history(str(memo.memo_id))) == 1

    with pytest.raises(MemoNotFoundError):
        engine.get_document("not-a-uuid")
    with pytest.raises(MemoNotFoundError):
        engine.get_history("not-a-uuid")
