"""Tests for the snapshot history."""
from __future__ import annotations

import pytest

from imagemarkup.editor.history import History
from imagemarkup.editor.shapes import make_label


def _label(text):
    return make_label(0, 0, text, 12, "#000000")


@pytest.fixture()
def history(qapp):
    return History()


class TestHistory:
    def test_starts_with_one_empty_entry(self, history):
        assert len(history) == 1
        assert history.cursor == 0
        assert history.current == ()
        assert not history.can_undo

    def test_push_moves_cursor_to_end(self, history):
        a = _label("a")
        history.push([a])
        assert history.cursor == 1
        assert history.current == (a,)
        assert history.can_undo

    def test_snapshot_is_a_copy(self, history):
        shapes = [_label("a")]
        history.push(shapes)
        shapes.append(_label("b"))
        assert len(history.current) == 1

    def test_undo_steps_back(self, history):
        a, b = _label("a"), _label("b")
        history.push([a])
        history.push([a, b])
        assert history.undo() == (a,)
        assert history.undo() == ()
        assert history.cursor == 0

    def test_undo_at_bottom_is_noop(self, history):
        assert history.undo() is None
        assert history.cursor == 0

    def test_push_after_undo_truncates(self, history):
        a, b, c = _label("a"), _label("b"), _label("c")
        history.push([a])
        history.push([a, b])
        history.undo()
        history.push([a, c])
        assert len(history) == 3
        assert history.cursor == 2
        assert history.current == (a, c)
        assert history.undo_stack.count() == 2
        assert history.undo() == (a,)

    def test_reset(self, history):
        history.push([_label("a")])
        history.reset()
        assert len(history) == 1
        assert history.cursor == 0
        assert history.current == ()
        assert not history.can_undo


# ─────────────────────────────────────────────────────────────────────
# Undo stack integration
# ─────────────────────────────────────────────────────────────────────


class TestUndoStack:
    def test_commands_carry_text(self, history):
        history.push([_label("a")], "Add Label")
        history.push([], "Clear All")
        assert history.undo_stack.text(0) == "Add Label"
        assert history.undo_stack.undoText() == "Clear All"

    def test_undo_available_emits_on_flip_only(self, history):
        seen = []
        history.undo_available_changed.connect(seen.append)
        a = _label("a")
        history.push([a])
        history.push([a, _label("b")])
        assert seen == [True]
        history.undo()
        assert seen == [True]
        history.undo()
        assert seen == [True, False]

    def test_stack_undo_updates_current(self, history):
        a = _label("a")
        history.push([a])
        history.undo_stack.undo()
        assert history.current == ()
        history.undo_stack.redo()
        assert history.current == (a,)
