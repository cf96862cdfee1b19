"""
Painting and hit-testing for ImageMarkup shapes.

Everything here works in image coordinates; callers set up the painter
transform. Shapes hold plain color strings, and QColor/QPen/QFont objects
are only built while painting.
"""

from typing import Iterable, List, Optional

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import (
    QColor,
    QFont,
    QFontMetricsF,
    QImage,
    QPainter,
    QPainterPath,
    QPen,
)

from imagemarkup.editor.shapes import (
    Box,
    Label,
    Rectangle,
    Shape,
    ShapeKind,
    Stroke,
    normalized_box,
    stroke_bounds,
    stroke_hit,
)


SELECTION_COLOR = QColor(80, 144, 208)
HANDLE_SIZE = 8

# Handle order: TL(0), TC(1), TR(2), ML(3), MR(4), BL(5), BC(6), BR(7)
HANDLE_COUNT = 8


# ─── Geometry ─────────────────────────────────────────────────────────────────


def label_font(font_size: int) -> QFont:
    font = QFont()
    font.setPixelSize(max(1, int(font_size)))
    return font


def label_bounds(label: Label) -> Box:
    """Glyph box of a label, anchored at its top-left corner."""
    metrics = QFontMetricsF(label_font(label.font_size))
    return Box(label.x, label.y, metrics.horizontalAdvance(label.text), metrics.height())


def shape_bounds(shape: Shape) -> Box:
    """Bounding box used for selection outlines and the transform handle."""
    if shape.kind is ShapeKind.STROKE:
        return stroke_bounds(shape)
    if shape.kind is ShapeKind.RECTANGLE:
        return normalized_box(shape)
    if shape.kind is ShapeKind.LABEL:
        return label_bounds(shape)
    raise TypeError(f"Unknown shape kind: {shape.kind!r}")


def hit_test(shape: Shape, x: float, y: float) -> bool:
    """True if (x, y) lands on the shape."""
    if shape.kind is ShapeKind.STROKE:
        return stroke_hit(shape, x, y, max(shape.width, 8))

    if shape.kind is ShapeKind.RECTANGLE:
        tolerance = max(shape.stroke_width, 5)
        outer = normalized_box(shape).adjusted(-tolerance, -tolerance, tolerance, tolerance)
        # A fill, even a transparent one, makes the whole interior clickable
        if shape.fill:
            return outer.contains(x, y)
        inner = normalized_box(shape).adjusted(tolerance, tolerance, -tolerance, -tolerance)
        return outer.contains(x, y) and not (
            inner.width > 0 and inner.height > 0 and inner.contains(x, y)
        )

    if shape.kind is ShapeKind.LABEL:
        return label_bounds(shape).contains(x, y)

    raise TypeError(f"Unknown shape kind: {shape.kind!r}")


def shape_at(shapes: Iterable[Shape], x: float, y: float) -> Optional[Shape]:
    """Top-most shape under (x, y), or None."""
    for shape in reversed(tuple(shapes)):
        if hit_test(shape, x, y):
            return shape
    return None


def resize_handles(box: Box, handle_size: float = HANDLE_SIZE) -> List[Box]:
    """
    Get the resize handle boxes around ``box``.

    Returns 8 handles: 4 corners + 4 edges.
    Order: TL, TC, TR, ML, MR, BL, BC, BR
    """
    box = box.normalized()
    half = handle_size / 2
    center_x = box.x + box.width / 2
    center_y = box.y + box.height / 2

    return [
        Box(box.x - half, box.y - half, handle_size, handle_size),
        Box(center_x - half, box.y - half, handle_size, handle_size),
        Box(box.right - half, box.y - half, handle_size, handle_size),
        Box(box.x - half, center_y - half, handle_size, handle_size),
        Box(box.right - half, center_y - half, handle_size, handle_size),
        Box(box.x - half, box.bottom - half, handle_size, handle_size),
        Box(center_x - half, box.bottom - half, handle_size, handle_size),
        Box(box.right - half, box.bottom - half, handle_size, handle_size),
    ]


def hit_test_handle(box: Box, x: float, y: float, handle_size: float = HANDLE_SIZE) -> int:
    """
    Test if a point hits a resize handle.

    Returns:
        Handle index (0-7) if hit, -1 otherwise.
    """
    for i, handle in enumerate(resize_handles(box, handle_size)):
        if handle.contains(x, y):
            return i
    return -1


def resize_box(box: Box, handle_index: int, x: float, y: float) -> Box:
    """
    Move the edges grabbed by ``handle_index`` to (x, y).

    The result is not normalized; dragging past the opposite edge yields a
    negative size.
    """
    if not 0 <= handle_index < HANDLE_COUNT:
        raise ValueError(f"Unknown handle index: {handle_index}")

    box = box.normalized()
    left, top, right, bottom = box.x, box.y, box.right, box.bottom

    if handle_index in (0, 3, 5):
        left = x
    if handle_index in (2, 4, 7):
        right = x
    if handle_index in (0, 1, 2):
        top = y
    if handle_index in (5, 6, 7):
        bottom = y

    return Box(left, top, right - left, bottom - top)


# ─── Painting ─────────────────────────────────────────────────────────────────


def _shape_pen(color: str, width: float) -> QPen:
    pen = QPen(QColor(color))
    pen.setWidthF(width)
    pen.setCapStyle(Qt.PenCapStyle.RoundCap)
    pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
    return pen


def _stroke_path(stroke: Stroke) -> QPainterPath:
    path = QPainterPath()
    first, *rest = stroke.points
    path.moveTo(QPointF(*first))
    for point in rest:
        path.lineTo(QPointF(*point))
    return path


def paint_stroke(painter: QPainter, stroke: Stroke) -> None:
    painter.setPen(_shape_pen(stroke.color, stroke.width))
    painter.setBrush(Qt.BrushStyle.NoBrush)
    if len(stroke.points) == 1:
        painter.drawPoint(QPointF(*stroke.points[0]))
    else:
        painter.drawPath(_stroke_path(stroke))


def paint_rectangle(painter: QPainter, rect: Rectangle) -> None:
    box = normalized_box(rect)
    painter.setPen(_shape_pen(rect.color, rect.stroke_width))
    painter.setBrush(Qt.BrushStyle.NoBrush)
    painter.drawRect(QRectF(box.x, box.y, box.width, box.height))


def paint_label(painter: QPainter, label: Label) -> None:
    font = label_font(label.font_size)
    metrics = QFontMetricsF(font)
    painter.setFont(font)
    painter.setPen(QColor(label.color))
    painter.drawText(QPointF(label.x, label.y + metrics.ascent()), label.text)


def paint_shape(painter: QPainter, shape: Shape) -> None:
    """Paint one shape in image coordinates."""
    if shape.kind is ShapeKind.STROKE:
        paint_stroke(painter, shape)
    elif shape.kind is ShapeKind.RECTANGLE:
        paint_rectangle(painter, shape)
    elif shape.kind is ShapeKind.LABEL:
        paint_label(painter, shape)
    else:
        raise TypeError(f"Unknown shape kind: {shape.kind!r}")


def paint_selection(
    painter: QPainter, box: Box, zoom: float = 1.0, with_handles: bool = True
) -> None:
    """
    Draw a selection outline, plus resize handles for transformable shapes.

    Line widths and handle sizes are divided by ``zoom`` so they stay the
    same size on screen.
    """
    box = box.normalized()
    painter.setPen(QPen(SELECTION_COLOR, 1 / zoom))
    painter.setBrush(Qt.BrushStyle.NoBrush)
    painter.drawRect(QRectF(box.x, box.y, box.width, box.height))

    if not with_handles:
        return

    painter.setBrush(QColor(255, 255, 255))
    painter.setPen(QPen(SELECTION_COLOR, 1 / zoom))
    for handle in resize_handles(box, HANDLE_SIZE / zoom):
        painter.drawRect(QRectF(handle.x, handle.y, handle.width, handle.height))


def paint_scene(painter: QPainter, background: QImage, shapes: Iterable[Shape]) -> None:
    """Background at its intrinsic size, then shapes in order."""
    painter.drawImage(QRectF(0, 0, background.width(), background.height()), background)
    for shape in shapes:
        paint_shape(painter, shape)


def render_scene(
    background: QImage, shapes: Iterable[Shape], width: int, height: int
) -> QImage:
    """
    Flatten the background and shapes into a new width x height image.

    Used for export; drafts, selection and the text overlay are never part
    of the output.
    """
    result = QImage(width, height, QImage.Format.Format_ARGB32_Premultiplied)
    result.fill(Qt.GlobalColor.transparent)

    painter = QPainter(result)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
    painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
    painter.scale(width / background.width(), height / background.height())
    paint_scene(painter, background, shapes)
    painter.end()
    return result
