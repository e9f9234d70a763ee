"""
Memoflow Memo Store - Django Document Store
===========================================
Durable DocumentStore backed by the Django ORM.

save() flow (compare-and-save):
1. transaction.atomic()
2. SELECT ... FOR UPDATE on the memo row
3. Compare stored version and max sequence_number with the new snapshot
4. UPDATE the memo row (guarded by the old version)
5. INSERT the history row
6. Commit. Any failure rolls back steps 4 and 5 together

Error mapping:
- stale version / lost sequence race (IntegrityError on
  uq_memo_history_memo_sequence) → VersionConflictError
- any other DatabaseError → StorePersistenceError
"""

from __future__ import annotations

import logging
import uuid
from typing import Iterable, Optional, Tuple

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Max

from core.memo_store.models import (
    SEQUENCE_CONSTRAINT_NAME,
    MemoRecord,
    WorkflowHistoryRecord,
)
from engines.memo.errors import (
    MemoNotFoundError,
    MemoWorkflowError,
    StorePersistenceError,
    VersionConflictError,
)
from engines.memo.models import (
    Memo,
    MemoAction,
    MemoContent,
    MemoRole,
    MemoStatus,
    MemoType,
    PriorityLevel,
    WorkflowHistoryEntry,
)
from engines.memo.store import check_write_pair

logger = logging.getLogger("memoflow.store")


# ══════════════════════════════════════════════════════════════
# ROW ↔ SNAPSHOT
# ══════════════════════════════════════════════════════════════

def _memo_from_record(record: MemoRecord) -> Memo:
    return Memo(
        memo_id=record.memo_id,
        status=MemoStatus(record.status),
        version=record.version,
        priority=PriorityLevel(record.priority),
        content=MemoContent(
            title=record.title,
            body=record.body,
            author_id=record.author_id,
            department=record.department,
            memo_type=MemoType(record.memo_type),
            recipients=tuple(record.recipients or ()),
            attachments=tuple(record.attachments or ()),
            tags=tuple(record.tags or ()),
            date_of_issue=record.date_of_issue,
        ),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _entry_from_record(record: WorkflowHistoryRecord) -> WorkflowHistoryEntry:
    return WorkflowHistoryEntry(
        memo_id=record.memo_id,
        sequence_number=record.sequence_number,
        actor_id=record.actor_id,
        actor_role=MemoRole(record.actor_role) if record.actor_role else None,
        action=MemoAction(record.action) if record.action else None,
        comment=record.comment,
        occurred_at=record.occurred_at,
        resulting_status=MemoStatus(record.resulting_status),
    )


def _insert_entry(history, entry: WorkflowHistoryEntry) -> None:
    history.create(
        memo_id=entry.memo_id,
        sequence_number=entry.sequence_number,
        actor_id=entry.actor_id,
        actor_role=entry.actor_role.value if entry.actor_role else None,
        action=entry.action.value if entry.action else None,
        comment=entry.comment,
        occurred_at=entry.occurred_at,
        resulting_status=entry.resulting_status.value,
    )


def _is_sequence_conflict(exc: IntegrityError) -> bool:
    cause = getattr(exc, "__cause__", None)
    diag = getattr(cause, "diag", None)
    if getattr(diag, "constraint_name", None) == SEQUENCE_CONSTRAINT_NAME:
        return True
    # sqlite reports columns instead of the constraint name
    text = str(exc)
    return SEQUENCE_CONSTRAINT_NAME in text or "sequence_number" in text


# ══════════════════════════════════════════════════════════════
# STORE
# ══════════════════════════════════════════════════════════════

class DjangoDocumentStore:
    """DocumentStore over core.memo_store models."""

    def __init__(self, using: Optional[str] = None):
        self._using = using

    def _memos(self):
        return MemoRecord.objects.using(self._using)

    def _history(self):
        return WorkflowHistoryRecord.objects.using(self._using)

    def load(self, memo_id: uuid.UUID) -> Memo:
        try:
            record = self._memos().filter(memo_id=memo_id).first()
        except DatabaseError as exc:
            raise StorePersistenceError(f"Memo '{memo_id}' load failed: {exc}") from exc
        if record is None:
            raise MemoNotFoundError(memo_id)
        return _memo_from_record(record)

    def load_history(
        self, memo_id: uuid.UUID,
    ) -> Tuple[WorkflowHistoryEntry, ...]:
        try:
            if not self._memos().filter(memo_id=memo_id).exists():
                raise MemoNotFoundError(memo_id)
            records = list(
                self._history()
                .filter(memo_id=memo_id)
                .order_by("sequence_number")
            )
        except DatabaseError as exc:
            raise StorePersistenceError(
                f"History of memo '{memo_id}' load failed: {exc}"
            ) from exc
        return tuple(_entry_from_record(record) for record in records)

    def create(self, memo: Memo, entry: WorkflowHistoryEntry) -> None:
        check_write_pair(memo, entry)
        if memo.version != 1 or not entry.is_creation:
            raise ValueError("create() takes a version 1 memo and its creation entry.")

        content = memo.content
        try:
            with transaction.atomic(using=self._using):
                if self._memos().filter(memo_id=memo.memo_id).exists():
                    raise MemoWorkflowError(f"Memo '{memo.memo_id}' already exists.")
                self._memos().create(
                    memo_id=memo.memo_id,
                    status=memo.status.value,
                    version=memo.version,
                    priority=memo.priority.value,
                    title=content.title,
                    body=content.body,
                    author_id=content.author_id,
                    department=content.department,
                    memo_type=content.memo_type.value,
                    recipients=list(content.recipients),
                    attachments=list(content.attachments),
                    tags=list(content.tags),
                    date_of_issue=content.date_of_issue,
                    created_at=memo.created_at,
                    updated_at=memo.updated_at,
                )
                _insert_entry(self._history(), entry)
        except DatabaseError as exc:
            logger.error(
                f"Memo create failed: {memo.memo_id}: {exc}", exc_info=True,
            )
            raise StorePersistenceError(
                f"Memo '{memo.memo_id}' could not be created: {exc}"
            ) from exc

    def save(self, memo: Memo, entry: WorkflowHistoryEntry) -> None:
        check_write_pair(memo, entry)
        previous_version = memo.version - 1

        try:
            with transaction.atomic(using=self._using):
                stored = (
                    self._memos()
                    .select_for_update()
                    .filter(memo_id=memo.memo_id)
                    .values_list("version", flat=True)
                    .first()
                )
                if stored is None:
                    raise MemoNotFoundError(memo.memo_id)

                max_sequence = (
                    self._history()
                    .filter(memo_id=memo.memo_id)
                    .aggregate(max_seq=Max("sequence_number"))["max_seq"]
                    or 0
                )
                if (
                    stored != previous_version
                    or entry.sequence_number != max_sequence + 1
                ):
                    raise VersionConflictError(
                        memo.memo_id,
                        expected_version=previous_version,
                        actual_version=stored,
                    )

                updated = (
                    self._memos()
                    .filter(memo_id=memo.memo_id, version=previous_version)
                    .update(
                        status=memo.status.value,
                        version=memo.version,
                        updated_at=memo.updated_at,
                    )
                )
                if updated != 1:
                    raise VersionConflictError(
                        memo.memo_id,
                        expected_version=previous_version,
                        actual_version=None,
                    )

                _insert_entry(self._history(), entry)

        except IntegrityError as exc:
            if _is_sequence_conflict(exc):
                logger.warning(
                    f"Sequence race lost for memo {memo.memo_id} "
                    f"(sequence {entry.sequence_number})"
                )
                raise VersionConflictError(
                    memo.memo_id,
                    expected_version=previous_version,
                    actual_version=None,
                ) from exc
            logger.error(
                f"Memo save failed: {memo.memo_id}: {exc}", exc_info=True,
            )
            raise StorePersistenceError(
                f"Memo '{memo.memo_id}' could not be saved: {exc}"
            ) from exc

        except DatabaseError as exc:
            logger.error(
                f"Memo save failed: {memo.memo_id}: {exc}", exc_info=True,
            )
            raise StorePersistenceError(
                f"Memo '{memo.memo_id}' could not be saved: {exc}"
            ) from exc

    def list_by_status(
        self,
        statuses: Iterable[MemoStatus],
        limit: Optional[int] = None,
    ) -> Tuple[Memo, ...]:
        values = [MemoStatus(status).value for status in statuses]
        try:
            query = (
                self._memos()
                .filter(status__in=values)
                .order_by("updated_at", "memo_id")
            )
            if limit is not None:
                query = query[:limit]
            records = list(query)
        except DatabaseError as exc:
            raise StorePersistenceError(f"Pending memo query failed: {exc}") from exc
        return tuple(_memo_from_record(record) for record in records)
