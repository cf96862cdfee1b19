"""
Editor widget for ImageMarkup - the main editor UI component.

This widget composes the complete editor interface:
- Top toolbar with tools, color swatches, stroke width, font size, undo and clear
- Center canvas for image display and annotation
- Bottom status bar with image dimensions and display scale
"""

from pathlib import Path
from typing import Optional, Union

from PySide6.QtCore import QPoint, Qt, Signal, Slot
from PySide6.QtGui import QColor, QIcon, QImage, QPainter, QPainterPath, QPen, QPixmap, QPolygon
from PySide6.QtWidgets import (
    QButtonGroup,
    QColorDialog,
    QComboBox,
    QFrame,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QSizePolicy,
    QToolBar,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from imagemarkup.editor.editor_canvas import EditorCanvas
from imagemarkup.editor.fit import available_viewport
from imagemarkup.editor.session import AnnotationSession
from imagemarkup.editor.tools import ToolMode, ToolStyle
from imagemarkup.services.config_service import DEFAULT_CONFIG, ConfigService
from imagemarkup.services.logging_service import get_logger


class ColorButton(QPushButton):
    """Swatch button for one color preset."""

    color_chosen = Signal(str)

    def __init__(self, color: str, parent=None):
        super().__init__(parent)
        self._color = color
        self._checked_style = False
        self.setFixedSize(24, 24)
        self.setCheckable(True)
        self.setToolTip(color)
        self.clicked.connect(lambda: self.color_chosen.emit(self._color))
        self.toggled.connect(lambda _: self._update_style())
        self._update_style()

    @property
    def color(self) -> str:
        return self._color

    def _update_style(self) -> None:
        border = "#4a90e2" if self.isChecked() else "#555"
        self.setStyleSheet(f"""
            QPushButton {{
                background-color: {self._color};
                border: 2px solid {border};
                border-radius: 4px;
            }}
            QPushButton:hover {{
                border-color: #888;
            }}
        """)


class StatusBar(QFrame):
    """
    Bottom status bar showing image dimensions and display scale.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self._setup_ui()

    def _setup_ui(self) -> None:
        self.setFrameStyle(QFrame.Shape.StyledPanel)
        self.setFixedHeight(32)
        self.setStyleSheet("""
            QFrame {
                background-color: #2a2a2a;
                border-top: 1px solid #3a3a3a;
            }
            QLabel {
                color: #aaa;
                font-size: 11px;
            }
        """)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(12, 0, 12, 0)
        layout.setSpacing(20)

        self._dimensions = QLabel("No image")
        layout.addWidget(self._dimensions)

        self._scale = QLabel("")
        layout.addWidget(self._scale)

        self._count = QLabel("")
        layout.addWidget(self._count)

        layout.addStretch()

    def set_dimensions(self, width: int, height: int) -> None:
        """Update image dimensions display."""
        self._dimensions.setText(f"{width} × {height}")

    def clear_dimensions(self) -> None:
        self._dimensions.setText("No image")
        self._scale.setText("")

    def set_scale(self, scale: float) -> None:
        self._scale.setText(f"{int(round(scale * 100))}%")

    def set_shape_count(self, count: int) -> None:
        self._count.setText(f"{count} annotation{'s' if count != 1 else ''}" if count else "")


def _create_tool_icon(shape: str, color: QColor = QColor(220, 220, 220)) -> QIcon:
    """Draw a toolbar icon."""
    size = 24
    pixmap = QPixmap(size, size)
    pixmap.fill(Qt.GlobalColor.transparent)

    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setPen(color)

    margin = 4

    if shape == "select":
        # Arrow cursor shape
        painter.setBrush(color)
        points = [
            QPoint(6, 4),
            QPoint(6, 18),
            QPoint(10, 14),
            QPoint(14, 20),
            QPoint(16, 18),
            QPoint(12, 12),
            QPoint(18, 12),
        ]
        painter.drawPolygon(QPolygon(points))

    elif shape == "pencil":
        # Squiggly line
        painter.setBrush(Qt.BrushStyle.NoBrush)
        path = QPainterPath()
        path.moveTo(4, 12)
        path.cubicTo(8, 4, 12, 20, 16, 10)
        path.lineTo(20, 8)
        painter.drawPath(path)

    elif shape == "rectangle":
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(margin, margin, size - margin * 2, size - margin * 2)

    elif shape == "text":
        font = painter.font()
        font.setPixelSize(16)
        font.setBold(True)
        painter.setFont(font)
        painter.drawText(pixmap.rect(), Qt.AlignmentFlag.AlignCenter, "T")

    elif shape == "undo":
        painter.setBrush(Qt.BrushStyle.NoBrush)
        path = QPainterPath()
        path.moveTo(8, 9)
        path.cubicTo(16, 5, 22, 12, 16, 19)
        painter.drawPath(path)
        painter.setBrush(color)
        painter.drawPolygon(QPolygon([QPoint(4, 9), QPoint(10, 5), QPoint(10, 13)]))

    elif shape == "clear":
        pen = QPen(color, 2)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        painter.setPen(pen)
        painter.drawLine(6, 6, 18, 18)
        painter.drawLine(18, 6, 6, 18)

    elif shape == "save":
        # Floppy disk / save icon
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(4, 4, 16, 16)
        painter.drawRect(7, 4, 10, 6)
        painter.drawRect(7, 12, 10, 6)

    painter.end()
    return QIcon(pixmap)


class EditorWidget(QWidget):
    """
    Main editor widget composing toolbar, canvas, and status bar.

    Signals:
        export_requested: The toolbar's export button was pressed.
    """

    export_requested = Signal()

    TOOL_SHORTCUTS = {
        Qt.Key.Key_V: ToolMode.SELECT,
        Qt.Key.Key_P: ToolMode.FREEHAND,
        Qt.Key.Key_R: ToolMode.RECTANGLE,
        Qt.Key.Key_T: ToolMode.TEXT,
    }

    def __init__(self, config_service: Optional[ConfigService] = None, parent=None):
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config_service

        self._session = AnnotationSession(config_service, self)

        self._setup_ui()
        self._connect_signals()

        self._session.key_gate = self._canvas.accepts_key_action
        self._on_style_changed(self._session.style)
        self._update_controls()

    def _setup_ui(self) -> None:
        """Build the UI layout."""
        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        # ─── Top Toolbar ──────────────────────────────────────────────
        self._toolbar = QToolBar()
        self._toolbar.setMovable(False)
        self._toolbar.setStyleSheet("""
            QToolBar {
                background-color: #2a2a2a;
                border-bottom: 1px solid #3a3a3a;
                padding: 6px 8px;
                spacing: 4px;
            }
            QToolBar::separator {
                background-color: #444;
                width: 1px;
                margin: 4px 6px;
            }
            QToolButton {
                background-color: transparent;
                border: none;
                border-radius: 8px;
                padding: 6px 8px;
                margin: 2px;
                min-width: 32px;
                min-height: 32px;
            }
            QToolButton:hover {
                background-color: rgba(255, 255, 255, 0.1);
            }
            QToolButton:pressed {
                background-color: rgba(255, 255, 255, 0.15);
            }
            QToolButton:checked {
                background-color: rgba(74, 144, 226, 0.3);
            }
            QToolButton:disabled {
                color: #666;
            }
            QComboBox {
                background-color: #3a3a3a;
                color: #ddd;
                border: 1px solid #555;
                padding: 2px 8px;
            }
            QLabel {
                color: #aaa;
                font-size: 11px;
                padding: 0 4px;
            }
        """)

        # Tool buttons
        self._tool_group = QButtonGroup(self)
        self._tool_group.setExclusive(True)

        tool_configs = [
            (ToolMode.SELECT, "Select", "select", "V"),
            (ToolMode.FREEHAND, "Pencil", "pencil", "P"),
            (ToolMode.RECTANGLE, "Rectangle", "rectangle", "R"),
            (ToolMode.TEXT, "Text", "text", "T"),
        ]

        for tool_mode, tooltip, icon_shape, shortcut in tool_configs:
            btn = QToolButton()
            btn.setIcon(_create_tool_icon(icon_shape))
            btn.setToolTip(f"{tooltip} ({shortcut})")
            btn.setCheckable(True)
            btn.setProperty("tool_mode", tool_mode)
            btn.clicked.connect(lambda checked, m=tool_mode: self.select_tool(m))
            self._tool_group.addButton(btn)
            self._toolbar.addWidget(btn)

            if tool_mode == self._session.tool_mode:
                btn.setChecked(True)

        self._toolbar.addSeparator()

        # Color presets
        presets = self._config.color_presets if self._config else DEFAULT_CONFIG["color_presets"]
        self._color_group = QButtonGroup(self)
        self._color_group.setExclusive(True)
        for color in presets:
            swatch = ColorButton(color)
            swatch.color_chosen.connect(self._session.set_stroke_color)
            self._color_group.addButton(swatch)
            self._toolbar.addWidget(swatch)

        self._custom_color_btn = QToolButton()
        self._custom_color_btn.setText("…")
        self._custom_color_btn.setToolTip("Custom color")
        self._custom_color_btn.clicked.connect(self._pick_custom_color)
        self._toolbar.addWidget(self._custom_color_btn)

        self._toolbar.addSeparator()

        # Stroke width
        self._toolbar.addWidget(QLabel("Width"))
        self._width_combo = QComboBox()
        widths = (
            self._config.stroke_width_options if self._config
            else DEFAULT_CONFIG["stroke_width_options"]
        )
        for width in widths:
            self._width_combo.addItem(f"{width}px", width)
        self._width_combo.currentIndexChanged.connect(self._on_width_selected)
        self._toolbar.addWidget(self._width_combo)

        # Font size
        self._toolbar.addWidget(QLabel("Font"))
        self._font_combo = QComboBox()
        font_sizes = (
            self._config.font_size_options if self._config
            else DEFAULT_CONFIG["font_size_options"]
        )
        for size in font_sizes:
            self._font_combo.addItem(f"{size}px", size)
        self._font_combo.currentIndexChanged.connect(self._on_font_size_selected)
        self._toolbar.addWidget(self._font_combo)

        self._toolbar.addSeparator()

        # Undo / Clear
        self._undo_btn = QToolButton()
        self._undo_btn.setIcon(_create_tool_icon("undo"))
        self._undo_btn.setToolTip("Undo (Ctrl+Z)")
        self._undo_btn.clicked.connect(self._session.undo)
        self._toolbar.addWidget(self._undo_btn)

        self._clear_btn = QToolButton()
        self._clear_btn.setIcon(_create_tool_icon("clear"))
        self._clear_btn.setToolTip("Clear all")
        self._clear_btn.clicked.connect(self._session.clear_all)
        self._toolbar.addWidget(self._clear_btn)

        # Spacer
        spacer = QWidget()
        spacer.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)
        self._toolbar.addWidget(spacer)

        # Export button
        self._export_btn = QToolButton()
        self._export_btn.setIcon(_create_tool_icon("save"))
        self._export_btn.setToolTip("Export PNG (Ctrl+S)")
        self._export_btn.clicked.connect(self.export_requested.emit)
        self._toolbar.addWidget(self._export_btn)

        main_layout.addWidget(self._toolbar)

        # ─── Center Content ───────────────────────────────────────────
        self._canvas = EditorCanvas(self._session)
        main_layout.addWidget(self._canvas, 1)

        # ─── Bottom Status Bar ────────────────────────────────────────
        self._status = StatusBar()
        main_layout.addWidget(self._status)

    def _connect_signals(self) -> None:
        """Connect session signals."""
        session = self._session
        session.tool_changed.connect(self._on_tool_changed)
        session.style_changed.connect(self._on_style_changed)
        session.undo_available_changed.connect(self._on_undo_available_changed)
        session.annotations_present_changed.connect(self._on_annotations_present_changed)
        session.shapes_changed.connect(self._on_shapes_changed)
        session.display_changed.connect(self._on_display_changed)
        session.image_changed.connect(self._on_image_changed)
        session.disabled_changed.connect(lambda _: self._update_controls())

    # ─── Public API ───────────────────────────────────────────────────────

    @property
    def session(self) -> AnnotationSession:
        return self._session

    @property
    def canvas(self) -> EditorCanvas:
        return self._canvas

    def load_image(self, path: Union[str, Path]) -> bool:
        """Load an image file into the editor."""
        return self._canvas.load_image(path)

    def set_image(self, image: QImage, key: Optional[str] = None) -> None:
        """Load an image into the editor."""
        self._canvas.set_image(image, key)

    def set_disabled(self, disabled: bool) -> None:
        self._session.set_disabled(disabled)

    # ─── Tool Management ──────────────────────────────────────────────────

    def select_tool(self, tool_mode: ToolMode) -> None:
        """Select a tool by mode."""
        self._session.set_tool(tool_mode)

    def _pick_custom_color(self) -> None:
        color = QColorDialog.getColor(QColor(self._session.style.stroke_color), self, "Select Color")
        if color.isValid():
            self._session.set_stroke_color(color.name().upper())

    @Slot(int)
    def _on_width_selected(self, index: int) -> None:
        width = self._width_combo.itemData(index)
        if width is not None:
            self._session.set_stroke_width(int(width))

    @Slot(int)
    def _on_font_size_selected(self, index: int) -> None:
        size = self._font_combo.itemData(index)
        if size is not None:
            self._session.set_font_size(int(size))

    # ─── Signal Handlers ──────────────────────────────────────────────────

    @Slot(object)
    def _on_tool_changed(self, tool_mode: ToolMode) -> None:
        for btn in self._tool_group.buttons():
            if btn.property("tool_mode") == tool_mode:
                btn.setChecked(True)
                break

    @Slot(object)
    def _on_style_changed(self, style: ToolStyle) -> None:
        for btn in self._color_group.buttons():
            btn.setChecked(btn.color.upper() == style.stroke_color.upper())

        for combo, value in ((self._width_combo, style.stroke_width),
                             (self._font_combo, style.font_size)):
            index = combo.findData(value)
            combo.blockSignals(True)
            if index >= 0:
                combo.setCurrentIndex(index)
            combo.blockSignals(False)

    @Slot(bool)
    def _on_undo_available_changed(self, available: bool) -> None:
        self._update_controls()

    @Slot(bool)
    def _on_annotations_present_changed(self, present: bool) -> None:
        self._update_controls()

    @Slot(object)
    def _on_shapes_changed(self, shapes) -> None:
        self._status.set_shape_count(len(shapes))

    @Slot(float, float)
    def _on_display_changed(self, width: float, height: float) -> None:
        if self._session.has_image:
            self._status.set_scale(self._session.display_scale)

    @Slot()
    def _on_image_changed(self) -> None:
        size = self._session.image_size
        if size:
            self._status.set_dimensions(*size)
        else:
            self._status.clear_dimensions()
        self._update_controls()

    def _update_controls(self) -> None:
        """Enable toolbar controls according to the session state."""
        interactive = self._session.interactive
        for widget in (
            *self._tool_group.buttons(),
            *self._color_group.buttons(),
            self._custom_color_btn,
            self._width_combo,
            self._font_combo,
        ):
            widget.setEnabled(interactive)
        self._undo_btn.setEnabled(interactive and self._session.can_undo)
        self._clear_btn.setEnabled(interactive and self._session.has_annotations)
        self._export_btn.setEnabled(self._session.has_image and self._session.has_annotations)

    # ─── Events ───────────────────────────────────────────────────────────

    def resizeEvent(self, event) -> None:
        """Fit the image to the space left by the toolbar and status bar."""
        super().resizeEvent(event)
        fill = self._config.fill_container if self._config else True
        if not fill:
            return
        reserved = self._toolbar.sizeHint().height() + self._status.height()
        self._session.set_viewport(*available_viewport(self.width(), self.height(), reserved))

    def keyPressEvent(self, event) -> None:
        """Handle tool shortcuts."""
        key = event.key()
        modifiers = event.modifiers()

        if key in self.TOOL_SHORTCUTS and not modifiers and self._session.interactive:
            self.select_tool(self.TOOL_SHORTCUTS[key])
            return

        super().keyPressEvent(event)
