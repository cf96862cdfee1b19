"""
Editor canvas widget for ImageMarkup.

The EditorCanvas is the render layer over an AnnotationSession. It displays:
- The background image, scaled to fit and centered
- All committed shapes, then the live draft on top
- The selection outline and resize handles
- The text entry field while the Text tool is typing

Supports:
- Pointer input forwarded to the session in image coordinates
- Hit-testing shapes top-most first
- Move/resize drags of rectangles and labels, committed on release
- Delete/Backspace/Escape forwarded as session key actions
- Export rendering via render_to_image()
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple, Union

from PySide6.QtCore import QPointF, QRectF, Qt, Signal
from PySide6.QtGui import (
    QColor,
    QFocusEvent,
    QImage,
    QKeyEvent,
    QMouseEvent,
    QPainter,
)
from PySide6.QtWidgets import QApplication, QLineEdit, QToolButton, QWidget

from imagemarkup.editor.rendering import (
    HANDLE_SIZE,
    hit_test_handle,
    label_font,
    paint_selection,
    paint_shape,
    render_scene,
    resize_box,
    shape_at,
    shape_bounds,
)
from imagemarkup.editor.selection import SelectionController
from imagemarkup.editor.session import AnnotationSession, KeyAction
from imagemarkup.editor.shapes import (
    Box,
    Shape,
    is_transformable,
    reshape_shape,
    translate_shape,
)
from imagemarkup.editor.tools import ToolMode, create_tool
from imagemarkup.services.logging_service import get_logger


# Handle order: TL(0), TC(1), TR(2), ML(3), MR(4), BL(5), BC(6), BR(7)
RESIZE_CURSORS = {
    0: Qt.CursorShape.SizeFDiagCursor,
    1: Qt.CursorShape.SizeVerCursor,
    2: Qt.CursorShape.SizeBDiagCursor,
    3: Qt.CursorShape.SizeHorCursor,
    4: Qt.CursorShape.SizeHorCursor,
    5: Qt.CursorShape.SizeBDiagCursor,
    6: Qt.CursorShape.SizeVerCursor,
    7: Qt.CursorShape.SizeFDiagCursor,
}

MOVE_HANDLE = -1


@dataclass
class HandleDrag:
    """
    A move (handle == MOVE_HANDLE) or resize drag in progress.

    Until the pointer travels the platform drag distance from ``press_pos``
    the gesture is still a click, and ``offset``/``box`` stay untouched.
    """
    shape_id: str
    handle: int
    start: Tuple[float, float]
    origin: Box
    box: Box
    press_pos: QPointF = field(default_factory=QPointF)
    offset: Tuple[float, float] = (0.0, 0.0)
    dragging: bool = False

    @property
    def moved(self) -> bool:
        if not self.dragging:
            return False
        if self.handle == MOVE_HANDLE:
            return self.offset != (0.0, 0.0)
        return self.box != self.origin


class TextEntryField(QLineEdit):
    """Single-line input shown by the Text tool."""

    escape_pressed = Signal()
    focus_lost = Signal()

    def keyPressEvent(self, event: QKeyEvent) -> None:
        if event.key() == Qt.Key.Key_Escape:
            self.escape_pressed.emit()
            event.accept()
            return
        super().keyPressEvent(event)

    def focusOutEvent(self, event: QFocusEvent) -> None:
        super().focusOutEvent(event)
        self.focus_lost.emit()


class EditorCanvas(QWidget):
    """Canvas widget for displaying and annotating an image."""

    def __init__(self, session: AnnotationSession, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._session = session

        self._image: Optional[QImage] = None
        self._drag: Optional[HandleDrag] = None

        self._text_field = TextEntryField(self)
        self._text_field.setPlaceholderText("Type, then press Enter")
        self._text_field.hide()

        # Touch layouts have no Enter key; these sit to the right of the field
        self._confirm_btn = self._make_text_button("Add Text")
        self._cancel_btn = self._make_text_button("Cancel")

        self._setup_widget()
        self._connect_session()

    def _setup_widget(self) -> None:
        """Configure widget properties."""
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMinimumSize(200, 200)
        self.setCursor(create_tool(self._session.tool_mode).cursor)

        # Dark background
        self.setStyleSheet("background-color: #1a1a1a;")

    def _connect_session(self) -> None:
        session = self._session
        session.shapes_changed.connect(self.update)
        session.draft_changed.connect(self.update)
        session.selection_changed.connect(self.update)
        session.display_changed.connect(self._on_display_changed)
        session.tool_changed.connect(self._on_tool_changed)
        session.image_changed.connect(self._on_image_changed)

        overlay = session.overlay
        overlay.opened.connect(self._show_text_field)
        overlay.closed.connect(self._hide_text_field)
        overlay.focus_requested.connect(self._focus_text_field)

        self._text_field.textChanged.connect(overlay.set_text)
        self._text_field.returnPressed.connect(overlay.commit)
        self._text_field.escape_pressed.connect(overlay.cancel)
        self._text_field.focus_lost.connect(overlay.blur)
        self._confirm_btn.clicked.connect(overlay.confirm)
        self._cancel_btn.clicked.connect(overlay.cancel)

    # ─── Image Management ─────────────────────────────────────────────────

    def load_image(self, path: Union[str, Path]) -> bool:
        """
        Load an image file as the background.

        On failure the session enters the no-image state.
        """
        key = str(path)
        image = QImage(key)
        if image.isNull():
            self._logger.warning(f"Failed to load image: {key}")
            self._image = None
            self._session.set_image(key, None)
            self.update()
            return False

        self.set_image(image, key)
        return True

    def set_image(self, image: QImage, key: Optional[str] = None) -> None:
        """
        Mount a background image.

        Args:
            image: The image to annotate.
            key: Identity of the image; a different key discards all annotations.
        """
        if key is None:
            key = f"image-{image.cacheKey()}"
        self._image = image
        self._drag = None
        self._session.set_image(key, (image.width(), image.height()))
        self.update()

    @property
    def image(self) -> Optional[QImage]:
        return self._image

    @property
    def text_field(self) -> TextEntryField:
        return self._text_field

    def accepts_key_action(self, action: KeyAction) -> bool:
        """Key gate: shortcuts are ignored while the user is typing a label."""
        return not self._text_field.hasFocus()

    # ─── Coordinate Conversion ────────────────────────────────────────────

    @property
    def zoom(self) -> float:
        return self._session.display_scale

    @property
    def image_offset(self) -> QPointF:
        """Top-left of the displayed image, centering it in the widget."""
        width, height = self._session.display_size
        return QPointF((self.width() - width) / 2, (self.height() - height) / 2)

    def widget_to_image(self, pos: QPointF) -> QPointF:
        """Convert widget coordinates to image coordinates."""
        offset = self.image_offset
        return QPointF(
            (pos.x() - offset.x()) / self.zoom,
            (pos.y() - offset.y()) / self.zoom
        )

    def image_to_widget(self, pos: QPointF) -> QPointF:
        """Convert image coordinates to widget coordinates."""
        offset = self.image_offset
        return QPointF(
            pos.x() * self.zoom + offset.x(),
            pos.y() * self.zoom + offset.y()
        )

    # ─── Rendering ────────────────────────────────────────────────────────

    def render_to_image(self, pixel_ratio: float = 2.0) -> Optional[QImage]:
        """
        Render the background and committed shapes for export.

        The output is ``pixel_ratio`` times the displayed size. Returns None
        when no image is mounted.
        """
        if self._image is None or not self._session.has_image:
            return None

        width, height = self._session.display_size
        return render_scene(
            self._image,
            self._session.shapes,
            max(1, round(width * pixel_ratio)),
            max(1, round(height * pixel_ratio)),
        )

    def _preview_shape(self, shape: Shape) -> Shape:
        """The dragged shape as it would look if released now."""
        drag = self._drag
        if drag.handle == MOVE_HANDLE:
            return translate_shape(shape, *drag.offset)
        return reshape_shape(shape, drag.box, drag.origin)

    def paintEvent(self, event) -> None:
        """Paint the canvas."""
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)

        # Fill background
        painter.fillRect(self.rect(), QColor(26, 26, 26))

        if self._image is None or not self._session.has_image:
            painter.setPen(QColor(100, 100, 100))
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, "No image loaded")
            painter.end()
            return

        zoom = self.zoom
        painter.translate(self.image_offset)
        painter.scale(zoom, zoom)

        painter.drawImage(QRectF(0, 0, self._image.width(), self._image.height()), self._image)

        selected = self._session.selected_shape
        for shape in self._session.shapes:
            if self._drag and shape.id == self._drag.shape_id:
                shape = self._preview_shape(shape)
                if selected and selected.id == shape.id:
                    selected = shape
            paint_shape(painter, shape)

        draft = self._session.draft
        if draft is not None:
            paint_shape(painter, draft)

        if selected is not None:
            paint_selection(painter, shape_bounds(selected), zoom, is_transformable(selected))

        painter.end()

    # ─── Text Field ───────────────────────────────────────────────────────

    def _show_text_field(self, x: float, y: float) -> None:
        style = self._session.style
        font = label_font(max(1, round(style.font_size * self.zoom)))
        self._text_field.setFont(font)
        self._text_field.setStyleSheet(
            f"QLineEdit {{ color: {style.stroke_color}; background: rgba(255, 255, 255, 220);"
            f" border: 1px solid #5090d0; padding: 2px; }}"
        )
        self._text_field.clear()

        self._text_field.adjustSize()
        self._text_field.resize(max(200, self._text_field.width()), self._text_field.height())
        self._place_text_entry(x, y)
        for widget in (self._text_field, self._confirm_btn, self._cancel_btn):
            widget.show()
            widget.raise_()

    def _make_text_button(self, text: str) -> QToolButton:
        button = QToolButton(self)
        button.setText(text)
        # Clicking must not take focus from the field, or the blur would commit first
        button.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        button.setStyleSheet(
            "QToolButton { background: #3a3a3a; color: #ddd; border: 1px solid #5090d0;"
            " padding: 2px 6px; }"
        )
        button.hide()
        return button

    def _place_text_entry(self, x: float, y: float) -> None:
        """Anchor the field at image point (x, y) with the buttons to its right."""
        pos = self.image_to_widget(QPointF(x, y))
        left, top = round(pos.x()), round(pos.y())
        self._text_field.move(left, top)

        left += self._text_field.width() + 4
        for button in (self._confirm_btn, self._cancel_btn):
            button.adjustSize()
            button.move(left, top)
            left += button.width() + 4

    def _focus_text_field(self) -> None:
        if not self._text_field.isVisible():
            self._logger.debug("Text field hidden before focus was due")
            return
        self._text_field.setFocus(Qt.FocusReason.OtherFocusReason)

    def _hide_text_field(self) -> None:
        had_focus = self._text_field.hasFocus()
        self._text_field.hide()
        self._confirm_btn.hide()
        self._cancel_btn.hide()
        self._text_field.clear()
        if had_focus:
            self.setFocus(Qt.FocusReason.OtherFocusReason)

    # ─── Session Signals ──────────────────────────────────────────────────

    def _on_display_changed(self, width: float, height: float) -> None:
        self.update()

    def _on_tool_changed(self, mode: ToolMode) -> None:
        self._drag = None
        self.setCursor(create_tool(mode).cursor)
        self.update()

    def _on_image_changed(self) -> None:
        self._drag = None
        self.update()

    # ─── Event Handlers ───────────────────────────────────────────────────

    def mousePressEvent(self, event: QMouseEvent) -> None:
        """Handle mouse press."""
        if event.button() != Qt.MouseButton.LeftButton or self._image is None:
            return

        pos = self.widget_to_image(event.position())
        x, y = pos.x(), pos.y()
        session = self._session

        if session.tool_mode is ToolMode.SELECT and session.interactive:
            if self._begin_handle_drag(x, y, event.position()):
                return
            hit = shape_at(session.shapes, x, y)
            if hit is not None:
                self._drag = HandleDrag(
                    shape_id=hit.id,
                    handle=MOVE_HANDLE,
                    start=(x, y),
                    origin=shape_bounds(hit),
                    box=shape_bounds(hit),
                    press_pos=event.position(),
                )
                return
            session.pointer_down(x, y, on_background=True)
            return

        hit = shape_at(session.shapes, x, y)
        session.pointer_down(x, y, on_background=hit is None)

    def _begin_handle_drag(self, x: float, y: float, press_pos: QPointF) -> bool:
        selected = self._session.selected_shape
        if selected is None or not is_transformable(selected):
            return False

        box = shape_bounds(selected)
        handle = hit_test_handle(box, x, y, HANDLE_SIZE / self.zoom)
        if handle < 0:
            return False

        self._drag = HandleDrag(
            shape_id=selected.id,
            handle=handle,
            start=(x, y),
            origin=box,
            box=box,
            press_pos=press_pos,
        )
        return True

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        """Handle mouse move."""
        pos = self.widget_to_image(event.position())
        x, y = pos.x(), pos.y()

        if self._drag is not None:
            self._update_drag(x, y, event.position())
            return

        self._session.pointer_move(x, y)
        self._update_cursor_for_position(x, y)

    def _update_drag(self, x: float, y: float, widget_pos: QPointF) -> None:
        drag = self._drag
        if not drag.dragging:
            travelled = (widget_pos - drag.press_pos).manhattanLength()
            if travelled < QApplication.startDragDistance():
                return
            drag.dragging = True

        if drag.handle == MOVE_HANDLE:
            shape = self._session.find_shape(drag.shape_id)
            if shape is None:
                self._drag = None
                return
            if not is_transformable(shape):
                # Strokes are click-only
                return
            drag.offset = (x - drag.start[0], y - drag.start[1])
        else:
            proposed = resize_box(drag.origin, drag.handle, x, y)
            drag.box = SelectionController.constrain_box(drag.box, proposed)
        self.update()

    def _update_cursor_for_position(self, x: float, y: float) -> None:
        """Update cursor based on what's under the mouse position."""
        session = self._session
        default_cursor = create_tool(session.tool_mode).cursor

        if session.tool_mode is not ToolMode.SELECT or not session.interactive:
            self.setCursor(default_cursor)
            return

        selected = session.selected_shape
        if selected is not None and is_transformable(selected):
            handle = hit_test_handle(shape_bounds(selected), x, y, HANDLE_SIZE / self.zoom)
            if handle >= 0:
                self.setCursor(RESIZE_CURSORS[handle])
                return

        hit = shape_at(session.shapes, x, y)
        if hit is not None:
            self.setCursor(
                Qt.CursorShape.SizeAllCursor if is_transformable(hit)
                else Qt.CursorShape.PointingHandCursor
            )
            return

        self.setCursor(default_cursor)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        """Handle mouse release."""
        if event.button() != Qt.MouseButton.LeftButton:
            return

        drag = self._drag
        self._drag = None

        if drag is not None:
            if not drag.moved:
                # A press and release in place is a click
                self._session.click_shape(drag.shape_id)
            elif drag.handle == MOVE_HANDLE:
                self._session.move_shape(drag.shape_id, *drag.offset)
            else:
                self._session.transform_shape(drag.shape_id, drag.box, drag.origin)
            self.update()

        self._session.pointer_up()

    def keyPressEvent(self, event: QKeyEvent) -> None:
        """Handle key press."""
        key = event.key()

        action = None
        if key in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            action = KeyAction.DELETE
        elif key == Qt.Key.Key_Escape:
            action = KeyAction.ESCAPE

        if action is not None and self._session.handle_key(action):
            if action is KeyAction.ESCAPE:
                self._drag = None
            self.update()
            event.accept()
            return

        super().keyPressEvent(event)

    def resizeEvent(self, event) -> None:
        """Keep the text field anchored to its image position."""
        super().resizeEvent(event)
        overlay = self._session.overlay
        if overlay.is_open:
            self._place_text_entry(*overlay.position)
