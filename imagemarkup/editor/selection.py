"""
Selection and transform control for the ImageMarkup editor.

At most one shape is selected. The canvas owns the transform handle; this
controller decides what the handle may do with the selected shape.
"""

from typing import Iterable, Optional

from imagemarkup.editor.shapes import (
    MIN_SHAPE_SIZE,
    Box,
    Shape,
    is_transformable,
    reshape_shape,
)
from imagemarkup.editor.tools import ToolMode
from imagemarkup.services.logging_service import get_logger


class SelectionController:
    """
    Tracks the selected shape id.

    The id always refers to a committed shape; callers run ``prune`` after
    every change to the collection.
    """

    def __init__(self) -> None:
        self._logger = get_logger(__name__)
        self._selected_id: Optional[str] = None

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    def click(self, shape_id: str, mode: ToolMode) -> bool:
        """
        Handle a click on a shape.

        Only the Select tool selects. Clicking the selected shape again
        deselects it.

        Returns:
            True if the selection changed.
        """
        if mode is not ToolMode.SELECT:
            return False
        self._selected_id = None if shape_id == self._selected_id else shape_id
        return True

    def select(self, shape_id: Optional[str]) -> bool:
        if shape_id == self._selected_id:
            return False
        self._selected_id = shape_id
        return True

    def clear(self) -> bool:
        """Deselect. Returns True if something was selected."""
        return self.select(None)

    def prune(self, shapes: Iterable[Shape]) -> bool:
        """Drop the selection if its shape is no longer present."""
        if self._selected_id is None:
            return False
        if any(shape.id == self._selected_id for shape in shapes):
            return False
        self._logger.debug(f"Selected shape {self._selected_id} is gone; clearing selection")
        self._selected_id = None
        return True

    # ─── Transform Handle ─────────────────────────────────────────────────

    @staticmethod
    def constrain_box(old: Box, new: Box, min_size: float = MIN_SHAPE_SIZE) -> Box:
        """
        Bound a resize step.

        A step that would make either side smaller than ``min_size`` keeps
        the previous box; the drag itself carries on. Sizes are compared
        signed, so dragging a handle across the opposite edge is refused
        rather than flipping the box.
        """
        if new.width < min_size or new.height < min_size:
            return old
        return new

    @staticmethod
    def transformed(shape: Shape, box: Box, current: Box) -> Shape:
        """Return ``shape`` with the handle's box applied."""
        if not is_transformable(shape):
            raise ValueError(f"{shape.kind.value} shapes have no transform handle")
        return reshape_shape(shape, box, current)
