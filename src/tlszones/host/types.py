"""Type definitions for the annotation host layer.

The zoning pipeline never talks to a viewer, a file, or a database
directly. It reads from and writes to an object satisfying
AnnotationHostProtocol, which is injected by the caller.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from shapely.geometry.base import BaseGeometry

RGB = tuple[int, int, int]


@dataclass(frozen=True)
class PixelCalibration:
    """Physical size of one pixel (one geometry unit) along each axis.

    Attributes:
        pixel_width: Physical length per pixel in X (e.g., microns).
        pixel_height: Physical length per pixel in Y (e.g., microns).
    """

    pixel_width: float
    pixel_height: float

    @property
    def pixel_size(self) -> float:
        """Return the arithmetic mean of both axes."""
        return (self.pixel_width + self.pixel_height) / 2.0

    @property
    def is_valid(self) -> bool:
        """Return True if both axes are positive and finite."""
        return all(
            math.isfinite(value) and value > 0
            for value in (self.pixel_width, self.pixel_height)
        )

    def is_isotropic(self, rel_tol: float) -> bool:
        """Check whether both axes agree within a relative tolerance."""
        return math.isclose(self.pixel_width, self.pixel_height, rel_tol=rel_tol)

    def to_geometry_units(self, distance: float) -> float:
        """Convert a physical distance into geometry units (pixels)."""
        return distance / self.pixel_size


@dataclass(frozen=True)
class Annotation:
    """One annotated region as seen by the zoning pipeline.

    Attributes:
        id: Stable identity of the annotation within its host.
        label: Classification label (e.g., "Tumor"), or None if unclassified.
        geometry: Shapely geometry in pixel coordinates.
        name: Optional display name.
        color: Optional display color.
        locked: Whether the host treats the annotation as immutable.
    """

    id: str
    label: str | None
    geometry: BaseGeometry | None
    name: str | None = None
    color: RGB | None = None
    locked: bool = False

    def has_label(self, label: str) -> bool:
        """Case-insensitive exact label match."""
        if self.label is None:
            return False
        return self.label.strip().casefold() == label.strip().casefold()


class AnnotationHostProtocol(Protocol):
    """Protocol defining what the zoning pipeline needs from its host.

    This protocol allows for dependency injection and testing with
    in-memory implementations.
    """

    def list_annotations(self) -> Sequence[Annotation]:
        """Return every annotation in enumeration order."""
        ...

    def get_calibration(self) -> PixelCalibration | None:
        """Return the pixel calibration, or None if the image has none."""
        ...

    def remove_annotation(self, annotation_id: str) -> None:
        """Remove an annotation from the live set."""
        ...

    def add_annotation(
        self,
        geometry: BaseGeometry,
        display_name: str,
        color: RGB,
        locked: bool,
    ) -> str:
        """Add a new annotation and return its identity."""
        ...

    def set_annotation_label(self, annotation_id: str, label: str) -> None:
        """Set the classification label of an existing annotation."""
        ...

    def notify_changed(self) -> None:
        """Signal that the annotation set has been modified."""
        ...
