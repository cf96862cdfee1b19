"""
Annotation session: the state owner of the ImageMarkup editor.

The session ties together the shape collection, the tool state machine,
the undo history, the selection and the text overlay. It has no widgets.
The canvas feeds it pointer and key input in image coordinates and
repaints from its signals.

Flow:
    pointer events -> ToolStateMachine -> draft
    gesture end    -> commit predicate -> History snapshot -> shapes_changed
    shape clicks   -> SelectionController -> selection_changed
    Text tool      -> TextEntryOverlay -> text_committed -> Label -> History

Every mutation completes before any signal is emitted, so slots always
observe a consistent state.
"""

from enum import Enum, auto
from typing import Callable, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from imagemarkup.editor.fit import FitResult, scale_to_fit
from imagemarkup.editor.history import History, Snapshot
from imagemarkup.editor.rendering import shape_bounds
from imagemarkup.editor.selection import SelectionController
from imagemarkup.editor.shapes import (
    Box,
    Shape,
    is_transformable,
    make_label,
    translate_shape,
)
from imagemarkup.editor.text_overlay import TextEntryOverlay
from imagemarkup.editor.tools import (
    GestureStart,
    GestureState,
    ToolMode,
    ToolStateMachine,
    ToolStyle,
)
from imagemarkup.services.config_service import ConfigService
from imagemarkup.services.logging_service import get_logger


class KeyAction(Enum):
    """Keyboard commands the session understands."""
    DELETE = auto()
    ESCAPE = auto()
    UNDO = auto()


class AnnotationSession(QObject):
    """
    Annotation state for one background image at a time.

    Signals:
        shapes_changed: Committed collection changed (tuple of shapes).
        draft_changed: Draft shape changed (shape or None).
        selection_changed: Selected id changed (str or None).
        annotations_present_changed: Collection went empty <-> non-empty.
        undo_available_changed: Undo became possible or impossible.
        display_changed: Displayed image size changed (width, height).
        tool_changed: Active ToolMode changed.
        style_changed: ToolStyle for new shapes changed.
        disabled_changed: Disabled flag changed.
        image_changed: Background image identity changed.
    """

    shapes_changed = Signal(object)
    draft_changed = Signal(object)
    selection_changed = Signal(object)
    annotations_present_changed = Signal(bool)
    undo_available_changed = Signal(bool)
    display_changed = Signal(float, float)
    tool_changed = Signal(object)
    style_changed = Signal(object)
    disabled_changed = Signal(bool)
    image_changed = Signal()

    def __init__(
        self,
        config: Optional[ConfigService] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config

        if config:
            self._style = ToolStyle(
                stroke_color=config.stroke_color,
                stroke_width=config.stroke_width,
                font_size=config.font_size,
            )
            self._viewport: Tuple[float, float] = config.max_viewport_size
            overlay = TextEntryOverlay(
                config.text_focus_delay_ms, config.text_commit_guard_ms, self
            )
        else:
            self._style = ToolStyle()
            self._viewport = (600, 500)
            overlay = TextEntryOverlay(parent=self)

        self._overlay = overlay
        self._overlay.text_committed.connect(self._on_text_committed)

        self._tools = ToolStateMachine()
        self._selection = SelectionController()
        self._history = History(self)
        self._history.undo_available_changed.connect(self.undo_available_changed)

        self._image_key: Optional[str] = None
        self._image_size: Optional[Tuple[int, int]] = None
        self._fit: Optional[FitResult] = None
        self._disabled: bool = False

        # Optional veto for keyboard commands, e.g. "only while this editor owns focus"
        self.key_gate: Optional[Callable[[KeyAction], bool]] = None

    # ─── Outputs ──────────────────────────────────────────────────────────

    @property
    def shapes(self) -> Snapshot:
        return self._history.current

    @property
    def draft(self) -> Optional[Shape]:
        return self._tools.draft

    @property
    def selected_id(self) -> Optional[str]:
        return self._selection.selected_id

    @property
    def selected_shape(self) -> Optional[Shape]:
        return self.find_shape(self._selection.selected_id)

    @property
    def has_annotations(self) -> bool:
        return len(self.shapes) > 0

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def history(self) -> History:
        return self._history

    @property
    def overlay(self) -> TextEntryOverlay:
        return self._overlay

    @property
    def tool_mode(self) -> ToolMode:
        return self._tools.mode

    @property
    def gesture_state(self) -> GestureState:
        return self._tools.state

    @property
    def style(self) -> ToolStyle:
        return self._style.clone()

    @property
    def image_key(self) -> Optional[str]:
        return self._image_key

    @property
    def image_size(self) -> Optional[Tuple[int, int]]:
        return self._image_size

    @property
    def has_image(self) -> bool:
        return self._image_size is not None

    @property
    def disabled(self) -> bool:
        return self._disabled

    @property
    def interactive(self) -> bool:
        """Drawing tools only respond with an image loaded and not disabled."""
        return self.has_image and not self._disabled

    @property
    def fit(self) -> Optional[FitResult]:
        return self._fit

    @property
    def display_scale(self) -> float:
        return self._fit.scale if self._fit else 1.0

    @property
    def display_size(self) -> Tuple[float, float]:
        if self._fit:
            return (self._fit.width, self._fit.height)
        return self._viewport

    def find_shape(self, shape_id: Optional[str]) -> Optional[Shape]:
        if shape_id is None:
            return None
        for shape in self.shapes:
            if shape.id == shape_id:
                return shape
        return None

    # ─── Environment Inputs ───────────────────────────────────────────────

    def set_image(self, key: Optional[str], size: Optional[Tuple[int, int]]) -> None:
        """
        Set the background image.

        Args:
            key: Identity of the image (path or URL); None for no image.
            size: Intrinsic (width, height), or None if it failed to load.

        A new identity discards all annotations, history, draft, selection
        and any open text entry.
        """
        if size is not None and (size[0] <= 0 or size[1] <= 0):
            self._logger.warning(f"Ignoring image {key!r} with empty size {size}")
            size = None

        if key == self._image_key:
            if size != self._image_size:
                self._image_size = size
                self._recompute_fit()
            return

        had_annotations = self.has_annotations
        had_draft = self._tools.draft is not None
        selection_cleared = self._selection.clear()

        self._image_key = key
        self._image_size = size
        self._tools.cancel()
        self._overlay.reset()
        self._history.reset()

        if size is None:
            self._logger.info(f"No background image ({key!r}); tools are inert")
        else:
            self._logger.info(f"Background image set: {key} ({size[0]}x{size[1]})")

        if had_draft:
            self.draft_changed.emit(None)
        self._emit_collection_changes(had_annotations, selection_cleared)
        self.image_changed.emit()
        self._recompute_fit(force_emit=True)

    def set_viewport(self, width: float, height: float) -> None:
        """Update the available drawing area. Shapes, draft and history are untouched."""
        if width <= 0 or height <= 0:
            self._logger.debug(f"Ignoring empty viewport {width}x{height}")
            return
        if (width, height) == self._viewport:
            return
        self._viewport = (width, height)
        self._recompute_fit()

    def set_disabled(self, disabled: bool) -> None:
        if disabled == self._disabled:
            return
        self._disabled = disabled
        self.disabled_changed.emit(disabled)

    def set_tool(self, mode: ToolMode) -> None:
        if mode == self._tools.mode:
            return
        had_draft = self._tools.draft is not None
        self._tools.set_mode(mode)
        if had_draft:
            self.draft_changed.emit(None)
        self._logger.debug(f"Tool changed to {mode.name}")
        self.tool_changed.emit(mode)

    def set_stroke_color(self, color: str) -> None:
        self._style.stroke_color = color
        self.style_changed.emit(self.style)

    def set_stroke_width(self, width: int) -> None:
        self._style.stroke_width = width
        self.style_changed.emit(self.style)

    def set_font_size(self, size: int) -> None:
        self._style.font_size = size
        self.style_changed.emit(self.style)

    # ─── Pointer Input ────────────────────────────────────────────────────

    def pointer_down(self, x: float, y: float, on_background: bool = True) -> GestureStart:
        """
        Start a gesture at (x, y) in image coordinates.

        Args:
            on_background: False when the press landed on a shape.

        Returns:
            What the press started.
        """
        if not self.interactive:
            return GestureStart.NONE

        if on_background and self._selection.clear():
            self.selection_changed.emit(None)

        # A press elsewhere takes focus from an open input, committing it first
        if self._tools.mode is ToolMode.TEXT and self._overlay.is_open:
            self._overlay.blur()

        started = self._tools.begin(x, y, self._style)
        if started is GestureStart.DRAFT:
            self.draft_changed.emit(self._tools.draft)
        elif started is GestureStart.TEXT_ENTRY:
            self._overlay.open(x, y)
        return started

    def pointer_move(self, x: float, y: float) -> None:
        if self._disabled:
            return
        draft = self._tools.move(x, y)
        if draft is not None:
            self.draft_changed.emit(draft)

    def pointer_up(self) -> Optional[Shape]:
        """
        Finish the gesture.

        Returns:
            The committed shape, or None if nothing was added.
        """
        self._overlay.end_opening_gesture()

        if self._tools.state is not GestureState.ACTIVE:
            return None

        shape = self._tools.end()
        self.draft_changed.emit(None)

        if shape is None:
            return None

        self._commit(self.shapes + (shape,), f"Add {shape.kind.value.capitalize()}")
        self._logger.debug(f"Committed {shape.kind.value} {shape.id}")
        return shape

    def click_shape(self, shape_id: str) -> None:
        """Click callback from the render layer's hit-testing."""
        if not self.interactive or self.find_shape(shape_id) is None:
            return
        if self._selection.click(shape_id, self._tools.mode):
            self.selection_changed.emit(self._selection.selected_id)

    # ─── Keyboard Input ───────────────────────────────────────────────────

    def handle_key(self, action: KeyAction) -> bool:
        """
        Run a keyboard command.

        The disabled flag and ``key_gate`` are checked before anything
        changes. Returns True if the command did something.
        """
        if self._disabled:
            return False
        if self.key_gate is not None and not self.key_gate(action):
            return False

        if action is KeyAction.DELETE:
            if self._overlay.is_open:
                return False
            return self.delete_selected()

        if action is KeyAction.ESCAPE:
            handled = False
            if self._selection.clear():
                self.selection_changed.emit(None)
                handled = True
            if self._overlay.is_open:
                self._overlay.cancel()
                handled = True
            return handled

        if action is KeyAction.UNDO:
            return self.undo()

        raise ValueError(f"Unknown key action: {action}")

    # ─── Commands ─────────────────────────────────────────────────────────

    def undo(self) -> bool:
        """Restore the previous snapshot. No-op at the first entry."""
        if not self._history.can_undo:
            self._logger.debug("Nothing to undo")
            return False

        had_annotations = self.has_annotations
        selection_cleared = self._selection.clear()
        self._history.undo()
        self._emit_collection_changes(had_annotations, selection_cleared)
        self._logger.debug(f"Undo -> history entry {self._history.cursor}")
        return True

    def clear_all(self) -> None:
        """Remove every shape. Recorded in history, so it can be undone."""
        self._commit((), "Clear All")
        self._logger.info("All annotations cleared")

    def delete_selected(self) -> bool:
        """Delete the selected shape. No-op without a selection."""
        selected_id = self._selection.selected_id
        if selected_id is None:
            return False

        self._commit(tuple(s for s in self.shapes if s.id != selected_id), "Delete Annotation")
        return True

    def move_shape(self, shape_id: str, dx: float, dy: float) -> Optional[Shape]:
        """Commit a drag of a rectangle or label by (dx, dy)."""
        shape = self.find_shape(shape_id)
        if shape is None or not is_transformable(shape) or (dx == 0 and dy == 0):
            return None
        return self._replace(shape, translate_shape(shape, dx, dy), "Move Annotation")

    def transform_shape(
        self, shape_id: str, box: Box, current: Optional[Box] = None
    ) -> Optional[Shape]:
        """
        Commit a transform-handle resize.

        Args:
            shape_id: A rectangle or label.
            box: Box produced by the handle (already constrained).
            current: The shape's box before the resize; measured if omitted.
        """
        shape = self.find_shape(shape_id)
        if shape is None or not is_transformable(shape):
            return None
        if current is None:
            current = shape_bounds(shape)
        updated = self._selection.transformed(shape, box, current)
        if updated == shape:
            return None
        return self._replace(shape, updated, "Resize Annotation")

    # ─── Internals ────────────────────────────────────────────────────────

    def _replace(self, old: Shape, new: Shape, text: str) -> Shape:
        self._commit(tuple(new if s.id == old.id else s for s in self.shapes), text)
        return new

    def _commit(self, shapes: Tuple[Shape, ...], text: str) -> None:
        """Make ``shapes`` the committed collection and push it as an undo step."""
        had_annotations = self.has_annotations
        selection_cleared = self._selection.prune(shapes)
        self._history.push(shapes, text)
        self._emit_collection_changes(had_annotations, selection_cleared)

    def _emit_collection_changes(
        self, had_annotations: bool, selection_cleared: bool
    ) -> None:
        self.shapes_changed.emit(self.shapes)
        if selection_cleared:
            self.selection_changed.emit(None)
        if had_annotations != self.has_annotations:
            self.annotations_present_changed.emit(self.has_annotations)

    def _recompute_fit(self, force_emit: bool = False) -> None:
        previous = self.display_size
        if self._image_size is not None:
            self._fit = scale_to_fit(
                self._image_size[0], self._image_size[1],
                self._viewport[0], self._viewport[1],
            )
        else:
            self._fit = None
        if force_emit or self.display_size != previous:
            self.display_changed.emit(*self.display_size)

    def _on_text_committed(self, x: float, y: float, text: str) -> None:
        if not self.has_image:
            return
        label = make_label(x, y, text, self._style.font_size, self._style.stroke_color)
        self._commit(self.shapes + (label,), "Add Label")
        self._logger.debug(f"Committed label {label.id}: {text!r}")
