"""
undo_commands.py

QUndoCommand implementations and the QUndoStack-backed history coordinator.
"""

from __future__ import annotations

from typing import Optional

from PyQt6.QtGui import QUndoCommand, QUndoStack

from drawing.history import AddLineMutation, HistoryCoordinator, Mutation, TransactionHandle
from settings import get_settings


class MutationCommand(QUndoCommand):
    """Undo command wrapping a scene mutation that has already been applied."""

    def __init__(self, mutation: Mutation, parent=None):
        super().__init__(parent)
        self.mutation = mutation
        self.setText(getattr(mutation, "label", "Edit"))
        self._first_redo = True

    def undo(self):
        self.mutation.revert()

    def redo(self):
        if self._first_redo:
            # Mutation was already applied inside the transaction
            self._first_redo = False
            return
        self.mutation.apply()


class AddLineCommand(MutationCommand):
    """Command for adding a line primitive to the scene."""

    def __init__(self, mutation: AddLineMutation, parent=None):
        super().__init__(mutation, parent)
        self.line = mutation.line
        self.setText(f"Add line {mutation.primitive_id}")


class UndoStackHistory(HistoryCoordinator):
    """History coordinator recording each commit as one QUndoStack entry.

    Args:
        undo_stack: Existing stack to push onto; a new one is created if omitted.
        undo_limit: Stack limit applied to a newly created stack. Default
            comes from settings (history.undo_limit, default 50).
    """

    def __init__(self, undo_stack: Optional[QUndoStack] = None, undo_limit: Optional[int] = None):
        if undo_stack is None:
            undo_stack = QUndoStack()
            if undo_limit is None:
                undo_limit = get_settings().settings.history.undo_limit
            undo_stack.setUndoLimit(undo_limit)  # Limit undo history
        self.undo_stack = undo_stack

    def _record(self, handle: TransactionHandle, mutation: Mutation) -> None:
        if isinstance(mutation, AddLineMutation):
            cmd = AddLineCommand(mutation)
        else:
            cmd = MutationCommand(mutation)
        self.undo_stack.push(cmd)
