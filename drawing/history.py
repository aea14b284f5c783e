"""
drawing/history.py

Boundary between drawing tools and the application's undo history.

Tools open a transaction, hand it one mutation, and either commit or roll
back. How the history stores entries (a QUndoStack, a scene snapshot list)
is the coordinator's business.
"""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Hashable, List, Optional

from models import CommitError, Line, TransactionError
from debug_trace import trace

PrimitiveId = Hashable

_handle_ids = itertools.count(1)


class SceneMutator:
    """Scene operations the line tool relies on.

    Kept as a plain mixin: sip-wrapped Qt classes cannot also use ABCMeta.
    """

    def add_primitive(self, line: Line) -> PrimitiveId:
        """Insert *line* and return its id."""
        raise NotImplementedError

    def remove_primitive(self, primitive_id: PrimitiveId) -> None:
        """Remove a previously inserted primitive."""
        raise NotImplementedError


class Mutation(ABC):
    """A reversible change to the scene."""

    label = "Edit"

    @abstractmethod
    def apply(self) -> Any:
        """Perform the change. May raise to reject it."""

    @abstractmethod
    def revert(self) -> None:
        """Undo a successful ``apply()``."""


class AddLineMutation(Mutation):
    """Insert one line primitive."""

    def __init__(self, scene: SceneMutator, line: Line):
        self.scene = scene
        self.line = line
        self.primitive_id: Optional[PrimitiveId] = None
        self.label = "Add line"

    @property
    def applied(self) -> bool:
        return self.primitive_id is not None

    def apply(self) -> PrimitiveId:
        self.primitive_id = self.scene.add_primitive(self.line)
        return self.primitive_id

    def revert(self) -> None:
        if self.primitive_id is None:
            return
        self.scene.remove_primitive(self.primitive_id)
        self.primitive_id = None


@dataclass
class TransactionHandle:
    """Opaque token for one open transaction."""
    label: str
    id: int = field(default_factory=lambda: next(_handle_ids))
    open: bool = True
    applied: bool = False
    mutation: Optional[Mutation] = None


class HistoryCoordinator(ABC):
    """Contract for wrapping scene mutations in undoable transactions."""

    def begin_transaction(self, label: str = "Edit") -> TransactionHandle:
        """Record the state before a mutation and return a handle."""
        handle = TransactionHandle(label)
        trace(f"begin transaction #{handle.id} {label!r}", "HISTORY")
        return handle

    def commit(self, handle: TransactionHandle, mutation: Mutation) -> Any:
        """Apply *mutation* and record it as one undoable entry.

        Raises:
            TransactionError: if *handle* is already closed.
            CommitError: if the mutation or the history rejects the change.
                The transaction is rolled back before this is raised.
        """
        self._check_open(handle)
        handle.mutation = mutation
        try:
            result = mutation.apply()
            handle.applied = True
            self._record(handle, mutation)
        except Exception as e:
            self.rollback(handle)
            if isinstance(e, CommitError):
                raise
            raise CommitError(f"{handle.label} failed: {e}") from e
        handle.open = False
        trace(f"commit transaction #{handle.id}", "HISTORY")
        return result

    def rollback(self, handle: TransactionHandle) -> None:
        """Discard an open transaction, reverting any applied mutation."""
        if not handle.open:
            return
        handle.open = False
        mutation = handle.mutation
        if mutation is not None and handle.applied:
            mutation.revert()
        trace(f"rollback transaction #{handle.id}", "HISTORY")

    @staticmethod
    def _check_open(handle: TransactionHandle) -> None:
        if not handle.open:
            raise TransactionError(f"transaction #{handle.id} is already closed")

    @abstractmethod
    def _record(self, handle: TransactionHandle, mutation: Mutation) -> None:
        """Store the applied mutation as a history entry."""


class CommandStackHistory(HistoryCoordinator):
    """In-memory command stack used where no Qt undo stack is available.

    Args:
        limit: Maximum number of undo entries kept (0 = unlimited).
    """

    def __init__(self, limit: int = 50):
        self.limit = limit
        self._undo: List[Mutation] = []
        self._redo: List[Mutation] = []

    def _record(self, handle: TransactionHandle, mutation: Mutation) -> None:
        self._undo.append(mutation)
        self._redo.clear()
        if self.limit and len(self._undo) > self.limit:
            del self._undo[0]

    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    def count(self) -> int:
        return len(self._undo)

    def undo(self) -> None:
        if not self._undo:
            return
        mutation = self._undo.pop()
        mutation.revert()
        self._redo.append(mutation)

    def redo(self) -> None:
        if not self._redo:
            return
        mutation = self._redo.pop()
        mutation.apply()
        self._undo.append(mutation)
