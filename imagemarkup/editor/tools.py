"""
Tool framework and gesture state machine for the ImageMarkup editor.

Each tool interprets a pointer gesture (press, move, release) and produces
draft shapes. The ToolStateMachine tracks one gesture at a time:

- Idle: no gesture in progress
- Active: a draft shape is being built by the current tool

Tools:
- SelectTool: no drafts; selection is driven by shape clicks
- FreehandTool: freehand strokes
- RectangleTool: outlined rectangles
- TextTool: asks for the text overlay instead of drafting
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, Optional, Tuple

from PySide6.QtCore import Qt

from imagemarkup.editor.shapes import (
    Shape,
    ShapeKind,
    extend_stroke,
    is_committable,
    start_rectangle,
    start_stroke,
    stretch_rectangle,
)
from imagemarkup.services.logging_service import get_logger


class ToolMode(Enum):
    """The globally active tool."""
    SELECT = auto()
    FREEHAND = auto()
    RECTANGLE = auto()
    TEXT = auto()


class GestureState(Enum):
    IDLE = auto()
    ACTIVE = auto()


class GestureStart(Enum):
    """What a pointer-down turned into."""
    NONE = auto()
    DRAFT = auto()
    TEXT_ENTRY = auto()


@dataclass
class ToolStyle:
    """
    Style applied to newly created shapes.

    Colors are '#RRGGBB' strings.
    """
    stroke_color: str = "#FF0000"
    stroke_width: int = 3
    font_size: int = 24

    def clone(self) -> "ToolStyle":
        """Create a copy of this style."""
        return ToolStyle(
            stroke_color=self.stroke_color,
            stroke_width=self.stroke_width,
            font_size=self.font_size,
        )


class ToolBase(ABC):
    """
    Base class for all tools.

    Tools are stateless; the in-progress draft lives in ToolStateMachine.
    """

    @property
    @abstractmethod
    def tool_mode(self) -> ToolMode:
        """Return the mode this tool implements."""
        pass

    @property
    @abstractmethod
    def cursor(self) -> Qt.CursorShape:
        """Return the cursor to use when this tool is active."""
        pass

    @abstractmethod
    def on_press(
        self, x: float, y: float, style: ToolStyle
    ) -> Tuple[GestureStart, Optional[Shape]]:
        """Handle pointer-down; returns what started and the new draft, if any."""
        pass

    def on_move(self, draft: Shape, x: float, y: float) -> Shape:
        """Update the draft for a pointer move."""
        return draft


class SelectTool(ToolBase):
    """Selection happens through shape clicks, so presses start nothing."""

    @property
    def tool_mode(self) -> ToolMode:
        return ToolMode.SELECT

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.ArrowCursor

    def on_press(self, x, y, style):
        return GestureStart.NONE, None


class FreehandTool(ToolBase):
    """
    Freehand drawing tool.

    Records every pointer position into a polyline.
    """

    @property
    def tool_mode(self) -> ToolMode:
        return ToolMode.FREEHAND

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.CrossCursor

    def on_press(self, x, y, style):
        return GestureStart.DRAFT, start_stroke(x, y, style.stroke_color, style.stroke_width)

    def on_move(self, draft, x, y):
        return extend_stroke(draft, x, y)


class RectangleTool(ToolBase):
    """
    Tool for drawing rectangles.

    The draft keeps its press point as origin; dragging left or up yields
    negative sizes, normalized only when painted.
    """

    @property
    def tool_mode(self) -> ToolMode:
        return ToolMode.RECTANGLE

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.CrossCursor

    def on_press(self, x, y, style):
        return GestureStart.DRAFT, start_rectangle(x, y, style.stroke_color, style.stroke_width)

    def on_move(self, draft, x, y):
        return stretch_rectangle(draft, x, y)


class TextTool(ToolBase):
    """Text tool: a press opens the text overlay at the press point."""

    @property
    def tool_mode(self) -> ToolMode:
        return ToolMode.TEXT

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.IBeamCursor

    def on_press(self, x, y, style):
        return GestureStart.TEXT_ENTRY, None


def create_tool(tool_mode: ToolMode) -> ToolBase:
    """
    Factory function to create tools by mode.

    Args:
        tool_mode: The mode of tool to create.

    Returns:
        A new instance of the requested tool.
    """
    tool_classes = {
        ToolMode.SELECT: SelectTool,
        ToolMode.FREEHAND: FreehandTool,
        ToolMode.RECTANGLE: RectangleTool,
        ToolMode.TEXT: TextTool,
    }

    if tool_mode not in tool_classes:
        raise ValueError(f"Unknown tool mode: {tool_mode}")

    return tool_classes[tool_mode]()


class ToolStateMachine:
    """
    Per-gesture state machine driven by pointer events.

    ``begin`` may enter ACTIVE with a draft; ``move`` updates the draft;
    ``end`` applies the commit predicate and returns the shape to keep, if
    any. A new ``begin`` while ACTIVE is ignored (single pointer).
    """

    def __init__(self, mode: ToolMode = ToolMode.SELECT) -> None:
        self._logger = get_logger(__name__)
        self._tools: Dict[ToolMode, ToolBase] = {}
        self._mode = mode
        self._state = GestureState.IDLE
        self._draft: Optional[Shape] = None

    @property
    def mode(self) -> ToolMode:
        return self._mode

    @property
    def tool(self) -> ToolBase:
        if self._mode not in self._tools:
            self._tools[self._mode] = create_tool(self._mode)
        return self._tools[self._mode]

    @property
    def state(self) -> GestureState:
        return self._state

    @property
    def draft(self) -> Optional[Shape]:
        return self._draft

    def set_mode(self, mode: ToolMode) -> None:
        """Switch tools, abandoning any gesture in progress."""
        if mode not in self._tools:
            self._tools[mode] = create_tool(mode)
        self.cancel()
        self._mode = mode

    def begin(self, x: float, y: float, style: ToolStyle) -> GestureStart:
        if self._state is GestureState.ACTIVE:
            return GestureStart.NONE

        started, draft = self.tool.on_press(x, y, style)
        if started is GestureStart.DRAFT:
            self._draft = draft
            self._state = GestureState.ACTIVE
        return started

    def move(self, x: float, y: float) -> Optional[Shape]:
        """Feed a pointer move; returns the updated draft (None when idle)."""
        if self._state is not GestureState.ACTIVE or self._draft is None:
            return None
        self._draft = self.tool.on_move(self._draft, x, y)
        return self._draft

    def end(self) -> Optional[Shape]:
        """Finish the gesture; returns the draft if it passes the commit predicate."""
        draft = self._draft
        self._draft = None
        self._state = GestureState.IDLE

        if draft is None:
            return None
        if not is_committable(draft):
            if draft.kind is ShapeKind.STROKE:
                self._logger.debug(f"Discarding stroke with {len(draft.points)} point(s)")
            else:
                self._logger.debug(f"Discarding undersized {draft.kind.value} draft")
            return None
        return draft

    def cancel(self) -> None:
        """Drop any draft and return to IDLE."""
        self._draft = None
        self._state = GestureState.IDLE
