"""Tests for the editor toolbar state and the main window actions."""
from __future__ import annotations

import pytest
from PySide6.QtCore import QEvent, Qt
from PySide6.QtGui import QKeyEvent

from imagemarkup.editor.editor_widget import EditorWidget
from imagemarkup.editor.tools import ToolMode
from imagemarkup.ui.main_window import MainWindow


@pytest.fixture()
def editor(qapp, config):
    widget = EditorWidget(config)
    yield widget
    widget.deleteLater()


def draw_rectangle(session):
    session.set_tool(ToolMode.RECTANGLE)
    session.pointer_down(10, 10)
    session.pointer_move(60, 60)
    return session.pointer_up()


class TestEditorWidget:
    def test_controls_disabled_without_image(self, editor):
        assert not editor.session.has_image
        assert not editor._width_combo.isEnabled()
        assert not editor._undo_btn.isEnabled()
        assert not editor._export_btn.isEnabled()

    def test_controls_follow_session(self, editor, background):
        editor.set_image(background, "background")
        assert editor._width_combo.isEnabled()
        assert not editor._undo_btn.isEnabled()
        assert not editor._clear_btn.isEnabled()

        draw_rectangle(editor.session)
        assert editor._undo_btn.isEnabled()
        assert editor._clear_btn.isEnabled()
        assert editor._export_btn.isEnabled()

        editor.set_disabled(True)
        assert not editor._undo_btn.isEnabled()
        assert editor._export_btn.isEnabled()

    def test_style_from_config(self, editor):
        style = editor.session.style
        assert style.stroke_color == "#FF0000"
        assert editor._width_combo.currentData() == style.stroke_width
        assert editor._font_combo.currentData() == style.font_size

    def test_width_combo_updates_style(self, editor, background):
        editor.set_image(background, "background")
        editor._width_combo.setCurrentIndex(editor._width_combo.findData(8))
        assert editor.session.style.stroke_width == 8

    def test_tool_shortcut(self, editor, background):
        editor.set_image(background, "background")
        editor.keyPressEvent(QKeyEvent(QEvent.Type.KeyPress, Qt.Key.Key_R, Qt.KeyboardModifier.NoModifier))
        assert editor.session.tool_mode is ToolMode.RECTANGLE

    def test_key_gate_installed(self, editor):
        assert editor.session.key_gate == editor.canvas.accepts_key_action


class TestMainWindow:
    def test_export_action_tracks_annotations(self, qapp, config, background):
        window = MainWindow(config)
        assert not window._export_action.isEnabled()

        window.editor.set_image(background, "background")
        assert not window._export_action.isEnabled()

        draw_rectangle(window.editor.session)
        assert window._export_action.isEnabled()
        assert window._undo_action.isEnabled()

        window._on_undo()
        assert window.editor.session.shapes == ()
        assert not window._export_action.isEnabled()
        window.deleteLater()

    def test_default_export_path(self, qapp, config, tmp_path):
        config.set("default_export_folder", str(tmp_path))
        window = MainWindow(config)
        path = window.default_export_path()
        assert path.parent == tmp_path
        assert path.name.startswith("annotated_")
        assert path.suffix == ".png"
        window.deleteLater()
