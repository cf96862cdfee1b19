"""
Undo history for the annotation editor.

Every commit pushes a SnapshotCommand onto a QUndoStack. The command holds
the shape collection before and after the edit, so undoing reinstalls the
earlier snapshot instead of reversing the edit piece by piece. Pushing
after an undo discards the abandoned commands; redo is never exposed.
"""

from typing import Iterable, Optional, Tuple

from PySide6.QtCore import QObject, Signal
from PySide6.QtGui import QUndoCommand, QUndoStack

from imagemarkup.editor.shapes import Shape
from imagemarkup.services.logging_service import get_logger

Snapshot = Tuple[Shape, ...]


class SnapshotCommand(QUndoCommand):
    """Command that swaps the committed collection between two snapshots."""

    def __init__(self, history: "History", before: Snapshot, after: Snapshot, text: str) -> None:
        super().__init__(text)
        self._history = history
        self._before = before
        self._after = after

    def redo(self) -> None:
        self._history._install(self._after)

    def undo(self) -> None:
        self._history._install(self._before)


class History(QObject):
    """
    Linear undo history over a QUndoStack.

    ``cursor`` is the stack index: 0 means the empty collection the image
    started with. ``current`` always equals the committed shapes.

    Signals:
        undo_available_changed: Undo became possible or impossible.
    """

    undo_available_changed = Signal(bool)

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._current: Snapshot = ()
        self._can_undo = False

        self._undo_stack = QUndoStack(self)
        self._undo_stack.canUndoChanged.connect(self._on_can_undo_changed)

    @property
    def undo_stack(self) -> QUndoStack:
        return self._undo_stack

    @property
    def cursor(self) -> int:
        return self._undo_stack.index()

    @property
    def current(self) -> Snapshot:
        return self._current

    @property
    def can_undo(self) -> bool:
        return self._undo_stack.canUndo()

    def __len__(self) -> int:
        """Number of snapshots, counting the initial empty one."""
        return self._undo_stack.count() + 1

    def push(self, shapes: Iterable[Shape], text: str = "Edit Annotations") -> Snapshot:
        """
        Record a new committed collection.

        Returns:
            The stored snapshot.
        """
        snapshot = tuple(shapes)
        self._undo_stack.push(SnapshotCommand(self, self._current, snapshot, text))
        return self._current

    def undo(self) -> Optional[Snapshot]:
        """
        Step back one snapshot.

        Returns:
            The snapshot now current, or None if already at the first one.
        """
        if not self._undo_stack.canUndo():
            self._logger.debug("Undo requested at bottom of history; ignoring")
            return None
        self._undo_stack.undo()
        return self._current

    def reset(self) -> None:
        """Drop every command and return to the empty collection."""
        self._current = ()
        self._undo_stack.clear()

    def _install(self, snapshot: Snapshot) -> None:
        self._current = snapshot

    def _on_can_undo_changed(self, can_undo: bool) -> None:
        # QUndoStack reports on every index change; relay only real flips
        if can_undo != self._can_undo:
            self._can_undo = can_undo
            self.undo_available_changed.emit(can_undo)
