"""Tests for AnnotationSession: gestures, history, selection, keys and resets."""
from __future__ import annotations

import pytest

from imagemarkup.editor.session import AnnotationSession, KeyAction
from imagemarkup.editor.shapes import Box, ShapeKind
from imagemarkup.editor.tools import GestureStart, GestureState, ToolMode


def draw_stroke(session, points):
    session.set_tool(ToolMode.FREEHAND)
    session.pointer_down(*points[0])
    for point in points[1:]:
        session.pointer_move(*point)
    return session.pointer_up()


def draw_rectangle(session, start, end):
    session.set_tool(ToolMode.RECTANGLE)
    session.pointer_down(*start)
    session.pointer_move(*end)
    return session.pointer_up()


def add_label(session, x, y, text):
    session.set_tool(ToolMode.TEXT)
    session.pointer_down(x, y)
    session.pointer_up()
    session.overlay.set_text(text)
    session.overlay.commit()
    return session.shapes[-1]


def record(signal):
    received = []
    signal.connect(lambda *args: received.append(args))
    return received


# ─────────────────────────────────────────────────────────
# Walkthrough
# ─────────────────────────────────────────────────────────


class TestWalkthrough:
    def test_stroke_rectangle_label_then_undo(self, session):
        stroke = draw_stroke(session, [(10, 10), (10, 12)])
        assert stroke.kind is ShapeKind.STROKE
        assert stroke.points == ((10, 10), (10, 12))
        assert session.shapes == (stroke,)

        assert draw_rectangle(session, (0, 0), (2, 2)) is None
        assert session.shapes == (stroke,)

        label = add_label(session, 50, 50, "Hello")
        assert label.kind is ShapeKind.LABEL
        assert (label.x, label.y, label.text) == (50, 50, "Hello")
        assert label.font_size == 24
        assert session.shapes == (stroke, label)
        assert len(session.history) == 3

        assert session.undo()
        assert session.shapes == (stroke,)
        assert session.undo()
        assert session.shapes == ()
        assert session.history.cursor == 0
        assert not session.undo()


# ─────────────────────────────────────────────────────────
# Gestures
# ─────────────────────────────────────────────────────────


class TestGestures:
    def test_draft_visible_during_gesture(self, session):
        drafts = record(session.draft_changed)
        session.set_tool(ToolMode.RECTANGLE)
        session.pointer_down(10, 10)
        session.pointer_move(40, 30)
        assert session.draft.width == 30
        assert session.gesture_state is GestureState.ACTIVE
        session.pointer_up()
        assert session.draft is None
        assert drafts[-1] == (None,)

    def test_style_applies_to_new_shapes(self, session):
        session.set_stroke_color("#00FF00")
        session.set_stroke_width(8)
        rect = draw_rectangle(session, (0, 0), (50, 50))
        assert rect.color == "#00FF00"
        assert rect.stroke_width == 8

    def test_rectangle_dragged_left_is_signed(self, session):
        rect = draw_rectangle(session, (100, 100), (40, 130))
        assert (rect.x, rect.y, rect.width, rect.height) == (100, 100, -60, 30)

    def test_select_tool_press_starts_nothing(self, session):
        assert session.pointer_down(5, 5) is GestureStart.NONE
        assert session.pointer_up() is None
        assert len(session.history) == 1

    def test_tool_switch_cancels_draft(self, session):
        session.set_tool(ToolMode.FREEHAND)
        session.pointer_down(0, 0)
        session.pointer_move(10, 10)
        session.set_tool(ToolMode.RECTANGLE)
        assert session.draft is None
        assert session.pointer_up() is None
        assert session.shapes == ()

    def test_disabled_blocks_gestures(self, session):
        session.set_disabled(True)
        session.set_tool(ToolMode.FREEHAND)
        assert session.pointer_down(0, 0) is GestureStart.NONE
        session.pointer_move(5, 5)
        assert session.pointer_up() is None
        assert session.shapes == ()

    def test_no_image_is_inert(self, qapp):
        session = AnnotationSession()
        session.set_tool(ToolMode.FREEHAND)
        assert session.pointer_down(0, 0) is GestureStart.NONE
        assert session.draft is None

    def test_press_outside_open_overlay_commits_it(self, session):
        session.set_tool(ToolMode.TEXT)
        session.pointer_down(10, 10)
        session.pointer_up()
        session.overlay.set_text("first")
        session.pointer_down(200, 200)
        assert [s.text for s in session.shapes] == ["first"]
        assert session.overlay.is_open
        assert session.overlay.position == (200, 200)

    def test_blank_text_adds_nothing(self, session):
        session.set_tool(ToolMode.TEXT)
        session.pointer_down(10, 10)
        session.pointer_up()
        session.overlay.set_text("   ")
        session.overlay.commit()
        assert session.shapes == ()
        assert len(session.history) == 1

    def test_text_uses_current_font_and_color(self, session):
        session.set_font_size(48)
        session.set_stroke_color("#2196F3")
        label = add_label(session, 1, 2, "styled")
        assert label.font_size == 48
        assert label.color == "#2196F3"


# ─────────────────────────────────────────────────────────
# History
# ─────────────────────────────────────────────────────────


class TestHistory:
    def test_undo_restores_previous_collection(self, session):
        first = draw_rectangle(session, (0, 0), (50, 50))
        before = session.shapes
        draw_rectangle(session, (60, 60), (90, 90))
        session.undo()
        assert session.shapes == before == (first,)

    def test_clear_all_on_empty(self, session):
        session.clear_all()
        assert len(session.history) == 2
        assert session.shapes == ()

    def test_clear_all_is_undoable(self, session):
        rect = draw_rectangle(session, (0, 0), (50, 50))
        session.clear_all()
        assert session.shapes == ()
        session.undo()
        assert session.shapes == (rect,)

    def test_clear_all_drops_selection(self, session):
        rect = draw_rectangle(session, (0, 0), (50, 50))
        session.set_tool(ToolMode.SELECT)
        session.click_shape(rect.id)
        changes = record(session.selection_changed)
        session.clear_all()
        assert session.selected_id is None
        assert changes == [(None,)]

    def test_commits_are_named_undo_commands(self, session):
        draw_rectangle(session, (0, 0), (50, 50))
        session.clear_all()
        stack = session.history.undo_stack
        assert stack.text(0) == "Add Rectangle"
        assert stack.undoText() == "Clear All"
        session.undo()
        assert stack.undoText() == "Add Rectangle"

    def test_new_image_clears_undo_stack(self, session):
        draw_rectangle(session, (0, 0), (50, 50))
        available = record(session.undo_available_changed)
        session.set_image("other.png", (400, 300))
        assert session.history.undo_stack.count() == 0
        assert not session.undo()
        assert available == [(False,)]

    def test_undo_available_signal(self, session):
        available = record(session.undo_available_changed)
        draw_rectangle(session, (0, 0), (50, 50))
        draw_rectangle(session, (0, 0), (60, 60))
        session.undo()
        session.undo()
        assert available == [(True,), (False,)]

    def test_annotations_present_only_on_zero_crossing(self, session):
        present = record(session.annotations_present_changed)
        draw_rectangle(session, (0, 0), (50, 50))
        draw_rectangle(session, (0, 0), (60, 60))
        session.undo()
        session.undo()
        assert present == [(True,), (False,)]


# ─────────────────────────────────────────────────────────
# Selection and transforms
# ─────────────────────────────────────────────────────────


class TestSelection:
    def test_click_selects_only_with_select_tool(self, session):
        rect = draw_rectangle(session, (0, 0), (50, 50))
        session.click_shape(rect.id)
        assert session.selected_id is None
        session.set_tool(ToolMode.SELECT)
        session.click_shape(rect.id)
        assert session.selected_id == rect.id
        assert session.selected_shape == rect

    def test_click_unknown_id_ignored(self, session):
        session.click_shape("rectangle-missing")
        assert session.selected_id is None

    def test_background_press_clears_selection(self, session):
        rect = draw_rectangle(session, (0, 0), (50, 50))
        session.set_tool(ToolMode.SELECT)
        session.click_shape(rect.id)
        session.pointer_down(300, 300, on_background=True)
        assert session.selected_id is None

    def test_press_on_shape_keeps_selection(self, session):
        rect = draw_rectangle(session, (0, 0), (50, 50))
        session.set_tool(ToolMode.SELECT)
        session.click_shape(rect.id)
        session.pointer_down(0, 0, on_background=False)
        assert session.selected_id == rect.id

    def test_undo_clears_selection(self, session):
        rect = draw_rectangle(session, (0, 0), (50, 50))
        session.set_tool(ToolMode.SELECT)
        session.click_shape(rect.id)
        session.undo()
        assert session.selected_id is None

    def test_delete_selected(self, session):
        keep = draw_rectangle(session, (0, 0), (50, 50))
        gone = draw_stroke(session, [(0, 0), (30, 30)])
        session.set_tool(ToolMode.SELECT)
        session.click_shape(gone.id)
        assert session.delete_selected()
        assert session.shapes == (keep,)
        assert session.selected_id is None
        assert len(session.history) == 4

    def test_delete_without_selection_is_noop(self, session):
        draw_rectangle(session, (0, 0), (50, 50))
        assert not session.delete_selected()
        assert len(session.history) == 2

    def test_move_shape(self, session):
        rect = draw_rectangle(session, (10, 10), (50, 50))
        moved = session.move_shape(rect.id, 5, -5)
        assert (moved.x, moved.y) == (15, 5)
        assert moved.id == rect.id
        assert session.shapes == (moved,)
        assert len(session.history) == 3

    def test_zero_move_commits_nothing(self, session):
        rect = draw_rectangle(session, (10, 10), (50, 50))
        assert session.move_shape(rect.id, 0, 0) is None
        assert len(session.history) == 2

    def test_strokes_cannot_be_moved(self, session):
        stroke = draw_stroke(session, [(0, 0), (30, 30)])
        assert session.move_shape(stroke.id, 5, 5) is None

    def test_transform_rectangle(self, session):
        rect = draw_rectangle(session, (10, 10), (50, 50))
        result = session.transform_shape(rect.id, Box(10, 10, 100, 80))
        assert (result.width, result.height) == (100, 80)
        assert session.shapes == (result,)

    def test_transform_preserves_order(self, session):
        first = draw_rectangle(session, (0, 0), (50, 50))
        second = draw_rectangle(session, (100, 100), (150, 150))
        session.transform_shape(first.id, Box(0, 0, 20, 20))
        assert [s.id for s in session.shapes] == [first.id, second.id]


# ─────────────────────────────────────────────────────────
# Keyboard
# ─────────────────────────────────────────────────────────


class TestKeys:
    def _select_new_rect(self, session):
        rect = draw_rectangle(session, (0, 0), (50, 50))
        session.set_tool(ToolMode.SELECT)
        session.click_shape(rect.id)
        return rect

    def test_delete_key(self, session):
        self._select_new_rect(session)
        assert session.handle_key(KeyAction.DELETE)
        assert session.shapes == ()

    def test_delete_ignored_while_typing(self, session):
        rect = self._select_new_rect(session)
        session.set_tool(ToolMode.TEXT)
        session.pointer_down(300, 300, on_background=False)
        assert session.overlay.is_open
        assert not session.handle_key(KeyAction.DELETE)
        assert session.shapes == (rect,)

    def test_escape_clears_selection_and_text(self, session):
        self._select_new_rect(session)
        session.set_tool(ToolMode.TEXT)
        session.pointer_down(300, 300, on_background=False)
        session.overlay.set_text("draft")
        assert session.handle_key(KeyAction.ESCAPE)
        assert session.selected_id is None
        assert not session.overlay.is_open
        assert len(session.shapes) == 1

    def test_undo_key(self, session):
        draw_rectangle(session, (0, 0), (50, 50))
        assert session.handle_key(KeyAction.UNDO)
        assert session.shapes == ()

    def test_disabled_blocks_keys(self, session):
        self._select_new_rect(session)
        session.set_disabled(True)
        assert not session.handle_key(KeyAction.DELETE)
        assert not session.handle_key(KeyAction.UNDO)
        assert len(session.shapes) == 1

    def test_key_gate_vetoes(self, session):
        self._select_new_rect(session)
        seen = []
        session.key_gate = lambda action: seen.append(action) or False
        assert not session.handle_key(KeyAction.DELETE)
        assert seen == [KeyAction.DELETE]
        assert len(session.shapes) == 1


# ─────────────────────────────────────────────────────────
# Image and viewport
# ─────────────────────────────────────────────────────────


class TestImageAndViewport:
    def test_fit_inside_default_viewport(self, session):
        assert session.display_scale == pytest.approx(0.75)
        assert session.display_size == pytest.approx((600, 450))

    def test_viewport_before_image(self, qapp):
        session = AnnotationSession()
        session.set_viewport(320, 240)
        assert session.display_size == (320, 240)
        assert session.fit is None

    def test_resize_keeps_shapes_and_draft(self, session):
        rect = draw_rectangle(session, (0, 0), (50, 50))
        session.set_tool(ToolMode.FREEHAND)
        session.pointer_down(5, 5)
        session.pointer_move(6, 6)
        sizes = record(session.display_changed)
        session.set_viewport(300, 300)
        assert sizes == [(300.0, 225.0)]
        assert session.shapes == (rect,)
        assert session.draft is not None
        assert len(session.history) == 2

    def test_empty_viewport_ignored(self, session):
        session.set_viewport(0, 100)
        assert session.display_size == pytest.approx((600, 450))

    def test_image_switch_resets_everything(self, session):
        rect = draw_rectangle(session, (0, 0), (50, 50))
        session.set_tool(ToolMode.SELECT)
        session.click_shape(rect.id)
        session.set_tool(ToolMode.TEXT)
        session.pointer_down(10, 10)
        session.overlay.set_text("pending")

        session.set_image("other.png", (400, 300))

        assert session.shapes == ()
        assert session.draft is None
        assert session.selected_id is None
        assert not session.overlay.is_open
        assert len(session.history) == 1
        assert session.history.cursor == 0
        assert session.display_size == pytest.approx((400, 300))

    def test_image_switch_discards_active_draft(self, session):
        session.set_tool(ToolMode.FREEHAND)
        session.pointer_down(0, 0)
        session.pointer_move(20, 20)
        session.set_image("other.png", (400, 300))
        assert session.pointer_up() is None
        assert session.shapes == ()

    def test_same_image_key_keeps_annotations(self, session):
        draw_rectangle(session, (0, 0), (50, 50))
        session.set_image("background.png", (800, 600))
        assert len(session.shapes) == 1

    def test_failed_load_enters_no_image_state(self, session):
        draw_rectangle(session, (0, 0), (50, 50))
        session.set_image("broken.png", None)
        assert not session.has_image
        assert session.shapes == ()
        session.set_tool(ToolMode.FREEHAND)
        assert session.pointer_down(0, 0) is GestureStart.NONE

    def test_config_defaults(self, config):
        config.set("stroke_color", "#123456")
        config.set("viewport", {"max_width": 300, "max_height": 200, "fill_container": False})
        session = AnnotationSession(config)
        assert session.style.stroke_color == "#123456"
        session.set_image("img.png", (600, 600))
        assert session.display_size == pytest.approx((200, 200))
