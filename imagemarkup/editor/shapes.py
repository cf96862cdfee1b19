"""
Shape model for the ImageMarkup editor.

Annotations are immutable values tagged by ``kind``:

- Stroke: freehand polyline
- Rectangle: outlined box; width/height stay signed until rendered
- Label: single line of text anchored at its top-left corner

Shapes never change in place. Every edit builds a new value, which lets
history entries share shapes safely. Code that needs per-kind behavior
branches on ``shape.kind``.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import NamedTuple, Tuple, Union
from uuid import uuid4


# Any resize that would make a shape narrower or shorter than this is refused
MIN_SHAPE_SIZE = 5.0

Point = Tuple[float, float]


class ShapeKind(Enum):
    """Discriminator for the shape union."""
    STROKE = "stroke"
    RECTANGLE = "rectangle"
    LABEL = "label"


class Box(NamedTuple):
    """Axis-aligned box in image coordinates. Width/height may be negative."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def normalized(self) -> "Box":
        """Return the same area with a top-left origin and non-negative size."""
        x, width = (self.x + self.width, -self.width) if self.width < 0 else (self.x, self.width)
        y, height = (self.y + self.height, -self.height) if self.height < 0 else (self.y, self.height)
        return Box(x, y, width, height)

    def contains(self, px: float, py: float) -> bool:
        box = self.normalized()
        return box.x <= px <= box.right and box.y <= py <= box.bottom

    def adjusted(self, dx1: float, dy1: float, dx2: float, dy2: float) -> "Box":
        box = self.normalized()
        return Box(box.x + dx1, box.y + dy1, box.width - dx1 + dx2, box.height - dy1 + dy2)


@dataclass(frozen=True)
class Stroke:
    id: str
    points: Tuple[Point, ...]
    color: str
    width: float
    kind: ShapeKind = field(default=ShapeKind.STROKE, init=False)


@dataclass(frozen=True)
class Rectangle:
    id: str
    x: float
    y: float
    width: float
    height: float
    color: str
    stroke_width: float
    fill: str = "transparent"
    kind: ShapeKind = field(default=ShapeKind.RECTANGLE, init=False)


@dataclass(frozen=True)
class Label:
    id: str
    x: float
    y: float
    text: str
    font_size: int
    color: str
    kind: ShapeKind = field(default=ShapeKind.LABEL, init=False)


Shape = Union[Stroke, Rectangle, Label]


def new_shape_id(kind: ShapeKind) -> str:
    """Create a fresh identifier; ids are never reused."""
    return f"{kind.value}-{uuid4().hex}"


# ─── Construction ─────────────────────────────────────────────────────────────


def start_stroke(x: float, y: float, color: str, width: float) -> Stroke:
    """Create a stroke draft seeded with its first point."""
    return Stroke(
        id=new_shape_id(ShapeKind.STROKE),
        points=((float(x), float(y)),),
        color=color,
        width=width,
    )


def start_rectangle(x: float, y: float, color: str, stroke_width: float) -> Rectangle:
    """Create a zero-size rectangle draft at the press point."""
    return Rectangle(
        id=new_shape_id(ShapeKind.RECTANGLE),
        x=float(x),
        y=float(y),
        width=0.0,
        height=0.0,
        color=color,
        stroke_width=stroke_width,
    )


def make_label(x: float, y: float, text: str, font_size: int, color: str) -> Label:
    """Create a label. Text is trimmed; blank text is a programming error."""
    text = text.strip()
    if not text:
        raise ValueError("Label text must not be blank")
    return Label(
        id=new_shape_id(ShapeKind.LABEL),
        x=float(x),
        y=float(y),
        text=text,
        font_size=font_size,
        color=color,
    )


# ─── Draft Updates ────────────────────────────────────────────────────────────


def extend_stroke(stroke: Stroke, x: float, y: float) -> Stroke:
    """Append a point to a stroke."""
    return replace(stroke, points=stroke.points + ((float(x), float(y)),))


def stretch_rectangle(rect: Rectangle, x: float, y: float) -> Rectangle:
    """Size a rectangle draft from its origin to the pointer (signed)."""
    return replace(rect, width=x - rect.x, height=y - rect.y)


def is_committable(shape: Shape) -> bool:
    """
    Decide whether a finished draft becomes a permanent shape.

    A single tap leaves a one-point stroke and a micro-drag leaves a
    rectangle no larger than MIN_SHAPE_SIZE in both directions; neither is kept.
    """
    if shape.kind is ShapeKind.STROKE:
        return len(shape.points) > 1
    if shape.kind is ShapeKind.RECTANGLE:
        return abs(shape.width) > MIN_SHAPE_SIZE or abs(shape.height) > MIN_SHAPE_SIZE
    if shape.kind is ShapeKind.LABEL:
        return bool(shape.text.strip())
    raise TypeError(f"Unknown shape kind: {shape.kind!r}")


# ─── Geometry ─────────────────────────────────────────────────────────────────


def is_transformable(shape: Shape) -> bool:
    """Rectangles and labels can be moved/resized; strokes can only be deleted."""
    return shape.kind in (ShapeKind.RECTANGLE, ShapeKind.LABEL)


def normalized_box(rect: Rectangle) -> Box:
    """Return the drawn area of a rectangle with non-negative size."""
    return Box(rect.x, rect.y, rect.width, rect.height).normalized()


def stroke_bounds(stroke: Stroke) -> Box:
    """Bounding box of a stroke padded by its width."""
    xs = [p[0] for p in stroke.points]
    ys = [p[1] for p in stroke.points]
    pad = stroke.width
    return Box(
        min(xs) - pad,
        min(ys) - pad,
        max(xs) - min(xs) + pad * 2,
        max(ys) - min(ys) + pad * 2,
    )


def translate_shape(shape: Shape, dx: float, dy: float) -> Shape:
    """Return the shape moved by (dx, dy)."""
    if shape.kind is ShapeKind.STROKE:
        return replace(shape, points=tuple((x + dx, y + dy) for x, y in shape.points))
    if shape.kind in (ShapeKind.RECTANGLE, ShapeKind.LABEL):
        return replace(shape, x=shape.x + dx, y=shape.y + dy)
    raise TypeError(f"Unknown shape kind: {shape.kind!r}")


def reshape_shape(shape: Shape, box: Box, current: Box) -> Shape:
    """
    Apply a transform-handle box to a shape.

    Args:
        shape: A rectangle or label.
        box: The new bounding box produced by the handle.
        current: The shape's bounding box before the transform.

    Rectangles take the box as-is (normalized). Labels move to the box
    origin and scale their font with the height change.
    """
    box = box.normalized()
    if shape.kind is ShapeKind.RECTANGLE:
        return replace(shape, x=box.x, y=box.y, width=box.width, height=box.height)
    if shape.kind is ShapeKind.LABEL:
        ratio = box.height / current.height if current.height > 0 else 1.0
        font_size = max(1, int(round(shape.font_size * ratio)))
        return replace(shape, x=box.x, y=box.y, font_size=font_size)
    raise TypeError(f"{shape.kind.value} shapes cannot be reshaped")


def point_to_segment_distance(point: Point, seg_start: Point, seg_end: Point) -> float:
    """Distance from a point to a line segment."""
    px, py = point
    sx, sy = seg_start
    ex, ey = seg_end
    dx = ex - sx
    dy = ey - sy
    length_sq = dx * dx + dy * dy

    if length_sq < 1e-12:
        return ((px - sx) ** 2 + (py - sy) ** 2) ** 0.5

    t = max(0.0, min(1.0, ((px - sx) * dx + (py - sy) * dy) / length_sq))
    closest_x = sx + t * dx
    closest_y = sy + t * dy
    return ((px - closest_x) ** 2 + (py - closest_y) ** 2) ** 0.5


def stroke_hit(stroke: Stroke, x: float, y: float, tolerance: float) -> bool:
    """True if (x, y) lies within ``tolerance`` of the stroke's polyline."""
    points = stroke.points
    if len(points) == 1:
        return point_to_segment_distance((x, y), points[0], points[0]) <= tolerance
    return any(
        point_to_segment_distance((x, y), points[i], points[i + 1]) <= tolerance
        for i in range(len(points) - 1)
    )
