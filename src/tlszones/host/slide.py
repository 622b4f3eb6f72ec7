"""Pixel calibration lookup from whole slide image metadata via OpenSlide.

Annotation exports carry pixel coordinates only, so the physical pixel
size is read from the slide the annotations were drawn on.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import openslide

from tlszones.host.types import PixelCalibration
from tlszones.utils.logging import get_logger

logger = get_logger(__name__)

# Slide file extensions OpenSlide can read (case-insensitive)
SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".svs",  # Aperio
        ".ndpi",  # Hamamatsu
        ".tiff",  # Generic tiled TIFF
        ".tif",
        ".mrxs",  # 3DHISTECH MIRAX
        ".vms",  # Hamamatsu VMS
        ".scn",  # Leica SCN
        ".bif",  # Ventana BIF
    }
)


class SlideOpenError(Exception):
    """Raised when a slide file cannot be opened by OpenSlide."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        self.path = Path(path) if path else None
        self.message = message
        super().__init__(f"{message} (path: {self.path})" if self.path else message)


def _extract_mpp(props: Mapping[str, str], key: str) -> float | None:
    value = props.get(key)
    if value is None:
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def read_slide_calibration(path: str | Path) -> PixelCalibration | None:
    """Read microns-per-pixel for both axes from a slide file.

    Args:
        path: Path to the whole slide image.

    Returns:
        PixelCalibration in microns, or None when the slide does not
        record a pixel size on both axes.

    Raises:
        SlideOpenError: If the file doesn't exist or OpenSlide cannot open it.
    """
    path = Path(path).resolve()
    if not path.exists():
        raise SlideOpenError("File not found", path=path)

    try:
        slide = openslide.OpenSlide(str(path))
    except openslide.OpenSlideError as e:
        raise SlideOpenError(f"Failed to open slide: {e}", path=path) from e

    try:
        props = slide.properties
        mpp_x = _extract_mpp(props, openslide.PROPERTY_NAME_MPP_X)
        mpp_y = _extract_mpp(props, openslide.PROPERTY_NAME_MPP_Y)
    finally:
        slide.close()

    if mpp_x is None or mpp_y is None:
        logger.warning(
            "Slide has no pixel size", path=str(path), mpp_x=mpp_x, mpp_y=mpp_y
        )
        return None
    return PixelCalibration(pixel_width=mpp_x, pixel_height=mpp_y)


def find_slide(directory: str | Path, stem: str) -> Path | None:
    """Find the slide whose file name stem matches an annotation file's.

    Returns:
        The first match in sorted order, or None.
    """
    for candidate in sorted(Path(directory).iterdir()):
        if (
            candidate.is_file()
            and candidate.stem == stem
            and candidate.suffix.lower() in SUPPORTED_EXTENSIONS
        ):
            return candidate
    return None
