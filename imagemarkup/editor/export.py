"""
Raster export of an annotated image.

A surface is anything with ``render_to_image(pixel_ratio) -> Optional[QImage]``;
EditorCanvas is the usual one. The output holds the background plus the
committed shapes at ``pixel_ratio`` times the displayed size. Drafts,
selection handles and the text overlay are never included.
"""

import base64
from pathlib import Path
from typing import Optional, Union

from PySide6.QtCore import QBuffer, QByteArray, QIODevice
from PySide6.QtGui import QImage

from imagemarkup.services.logging_service import get_logger


DEFAULT_PIXEL_RATIO = 2.0

_logger = get_logger(__name__)


def export_image(surface, pixel_ratio: float = DEFAULT_PIXEL_RATIO) -> Optional[QImage]:
    """
    Flatten the surface into a QImage.

    Returns:
        The image, or None when there is no surface or no background image.
    """
    if surface is None:
        return None

    image = surface.render_to_image(pixel_ratio)
    if image is None or image.isNull():
        _logger.debug("Nothing to export: no background image mounted")
        return None
    return image


def export_png_bytes(surface, pixel_ratio: float = DEFAULT_PIXEL_RATIO) -> Optional[bytes]:
    """Export as PNG-encoded bytes."""
    image = export_image(surface, pixel_ratio)
    if image is None:
        return None

    data = QByteArray()
    buffer = QBuffer(data)
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    ok = image.save(buffer, "PNG")
    buffer.close()

    if not ok:
        _logger.error("PNG encoding failed")
        return None
    return bytes(data.data())


def export_data_url(surface, pixel_ratio: float = DEFAULT_PIXEL_RATIO) -> Optional[str]:
    """Export as a ``data:image/png;base64,...`` URL."""
    png = export_png_bytes(surface, pixel_ratio)
    if png is None:
        return None
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


def save_export(
    surface, path: Union[str, Path], pixel_ratio: float = DEFAULT_PIXEL_RATIO
) -> bool:
    """
    Write the export to ``path`` as PNG.

    Returns:
        True on success.
    """
    image = export_image(surface, pixel_ratio)
    if image is None:
        return False

    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        _logger.error(f"Cannot create export folder {path.parent}: {e}")
        return False

    if not image.save(str(path), "PNG"):
        _logger.error(f"Failed to save export to {path}")
        return False

    _logger.info(f"Exported {image.width()}x{image.height()} image to {path}")
    return True
