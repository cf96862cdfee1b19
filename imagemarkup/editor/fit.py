"""
Scale-to-fit calculation for the background image.

The image is scaled down proportionally to fit the available viewport but
is never enlarged beyond its native resolution.
"""

from typing import NamedTuple, Tuple


class FitResult(NamedTuple):
    scale: float
    width: float
    height: float


def scale_to_fit(
    image_width: float,
    image_height: float,
    viewport_width: float,
    viewport_height: float,
) -> FitResult:
    """
    Compute the displayed size of an image inside a viewport.

    Args:
        image_width: Intrinsic image width in pixels.
        image_height: Intrinsic image height in pixels.
        viewport_width: Available width.
        viewport_height: Available height.

    Returns:
        FitResult with the scale factor (at most 1.0) and displayed size.

    Raises:
        ValueError: If any dimension is not positive.
    """
    if min(image_width, image_height, viewport_width, viewport_height) <= 0:
        raise ValueError(
            f"Dimensions must be positive: image {image_width}x{image_height}, "
            f"viewport {viewport_width}x{viewport_height}"
        )

    scale = min(viewport_width / image_width, viewport_height / image_height, 1.0)
    return FitResult(scale, image_width * scale, image_height * scale)


def available_viewport(
    container_width: float,
    container_height: float,
    reserved_height: float = 60,
    min_height: float = 200,
) -> Tuple[float, float]:
    """
    Usable drawing area when the canvas fills its container.

    Space for the toolbar is subtracted from the height, which never drops
    below ``min_height``.
    """
    return (container_width, max(container_height - reserved_height, min_height))
