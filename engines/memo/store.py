"""
Memoflow Memo Engine - Document Store
=====================================
Where memos and their history live between calls.

RULES (NON-NEGOTIABLE):
- save() is compare-and-save: memo row and history entry are written
  together or not at all
- A stale write raises VersionConflictError and writes nothing
- History is append-only; no operation edits or removes entries
- Every read returns immutable snapshots, never live references

Two implementations:
- InMemoryDocumentStore (this file): tests, scripts, STORE_BACKEND=memory
- DjangoDocumentStore (core.memo_store.repository): durable, default
"""

from __future__ import annotations

import uuid
from threading import Lock
from typing import Iterable, Optional, Protocol, Tuple

from engines.memo.errors import (
    MemoNotFoundError,
    MemoWorkflowError,
    VersionConflictError,
)
from engines.memo.models import Memo, MemoStatus, WorkflowHistoryEntry


class DocumentStore(Protocol):
    def load(self, memo_id: uuid.UUID) -> Memo:
        ...

    def load_history(
        self, memo_id: uuid.UUID,
    ) -> Tuple[WorkflowHistoryEntry, ...]:
        ...

    def create(self, memo: Memo, entry: WorkflowHistoryEntry) -> None:
        ...

    def save(self, memo: Memo, entry: WorkflowHistoryEntry) -> None:
        ...

    def list_by_status(
        self,
        statuses: Iterable[MemoStatus],
        limit: Optional[int] = None,
    ) -> Tuple[Memo, ...]:
        ...


def check_write_pair(memo: Memo, entry: WorkflowHistoryEntry) -> None:
    """A memo row and its history entry must describe the same change."""
    if entry.memo_id != memo.memo_id:
        raise ValueError(
            f"History entry belongs to memo '{entry.memo_id}', "
            f"not '{memo.memo_id}'."
        )
    if entry.resulting_status != memo.status:
        raise ValueError(
            f"History entry resulting_status {entry.resulting_status.value} "
            f"does not match memo status {memo.status.value}."
        )


def pending_order_key(memo: Memo):
    return (memo.updated_at, str(memo.memo_id))


class InMemoryDocumentStore:
    """
    Dict-backed store guarded by one lock.

    Snapshots are frozen dataclasses, so handing them out needs no copy.
    """

    def __init__(self):
        self._memos: dict[uuid.UUID, Memo] = {}
        self._history: dict[uuid.UUID, Tuple[WorkflowHistoryEntry, ...]] = {}
        self._lock = Lock()

    def load(self, memo_id: uuid.UUID) -> Memo:
        with self._lock:
            memo = self._memos.get(memo_id)
        if memo is None:
            raise MemoNotFoundError(memo_id)
        return memo

    def load_history(
        self, memo_id: uuid.UUID,
    ) -> Tuple[WorkflowHistoryEntry, ...]:
        with self._lock:
            history = self._history.get(memo_id)
        if history is None:
            raise MemoNotFoundError(memo_id)
        return history

    def create(self, memo: Memo, entry: WorkflowHistoryEntry) -> None:
        check_write_pair(memo, entry)
        if memo.version != 1 or not entry.is_creation:
            raise ValueError("create() takes a version 1 memo and its creation entry.")

        with self._lock:
            if memo.memo_id in self._memos:
                raise MemoWorkflowError(f"Memo '{memo.memo_id}' already exists.")
            self._memos[memo.memo_id] = memo
            self._history[memo.memo_id] = (entry,)

    def save(self, memo: Memo, entry: WorkflowHistoryEntry) -> None:
        check_write_pair(memo, entry)

        with self._lock:
            stored = self._memos.get(memo.memo_id)
            if stored is None:
                raise MemoNotFoundError(memo.memo_id)

            history = self._history[memo.memo_id]
            if (
                stored.version != memo.version - 1
                or entry.sequence_number != history[-1].sequence_number + 1
            ):
                raise VersionConflictError(
                    memo.memo_id,
                    expected_version=memo.version - 1,
                    actual_version=stored.version,
                )

            self._memos[memo.memo_id] = memo
            self._history[memo.memo_id] = history + (entry,)

    def list_by_status(
        self,
        statuses: Iterable[MemoStatus],
        limit: Optional[int] = None,
    ) -> Tuple[Memo, ...]:
        wanted = frozenset(statuses)
        with self._lock:
            matches = [m for m in self._memos.values() if m.status in wanted]
        matches.sort(key=pending_order_key)
        if limit is not None:
            matches = matches[:limit]
        return tuple(matches)
