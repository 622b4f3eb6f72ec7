"""Annotation host layer for tlszones.

The zoning pipeline reads annotations from, and writes zones back to, an
injected host object. This package defines that contract and ships two
implementations.

Key Components:
    - AnnotationHostProtocol: What the pipeline needs from a host
    - Annotation, PixelCalibration: Values exchanged with a host
    - InMemoryAnnotationHost: Dict-backed host that records mutations
    - GeoJSONAnnotationHost: Host loaded from / saved to a GeoJSON file

Slide calibration lookup lives in ``tlszones.host.slide`` and is imported
on demand because it loads the OpenSlide native library.

Example:
    from tlszones.host import GeoJSONAnnotationHost, PixelCalibration

    host = GeoJSONAnnotationHost.load(
        "slide.geojson", PixelCalibration(pixel_width=0.25, pixel_height=0.25)
    )
"""

from tlszones.host.geojson import AnnotationFileError, GeoJSONAnnotationHost
from tlszones.host.memory import InMemoryAnnotationHost
from tlszones.host.types import (
    RGB,
    Annotation,
    AnnotationHostProtocol,
    PixelCalibration,
)

__all__ = [
    "RGB",
    "Annotation",
    "AnnotationFileError",
    "AnnotationHostProtocol",
    "GeoJSONAnnotationHost",
    "InMemoryAnnotationHost",
    "PixelCalibration",
]
