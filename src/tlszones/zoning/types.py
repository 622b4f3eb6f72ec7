"""Type definitions for the zoning core.

All geometries are shapely Polygon or MultiPolygon values in pixel
coordinates. They are never mutated; every operation returns a new value.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum

from shapely import unary_union
from shapely.geometry.base import BaseGeometry

from tlszones.host.types import Annotation, PixelCalibration


class Zone(str, Enum):
    """Spatial zone relative to the tumor boundary."""

    CENTER = "Center"  # tumor eroded by the margin
    INNER_MARGIN = "InnerMargin"  # tumor minus center
    OUTER_MARGIN = "OuterMargin"  # band outside the tumor, clipped to tissue
    STROMA = "Stroma"  # everything else inside the tissue

    @property
    def display_name(self) -> str:
        """Return the name shown for the zone annotation in a viewer."""
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES: dict[Zone, str] = {
    Zone.CENTER: "Center",
    Zone.INNER_MARGIN: "Inner Margin",
    Zone.OUTER_MARGIN: "Outer Margin",
    Zone.STROMA: "Stroma",
}

# Zones checked in this order; the first one holding the maximum overlap wins.
TIE_BREAK_ORDER: tuple[Zone, ...] = (
    Zone.CENTER,
    Zone.INNER_MARGIN,
    Zone.STROMA,
    Zone.OUTER_MARGIN,
)


@dataclass(frozen=True)
class ZoneSet:
    """The four disjoint zones partitioning one tissue geometry.

    Attributes:
        center: Tumor interior eroded by the margin distance.
        inner_margin: Tumor area within the margin distance of its boundary.
        outer_margin: Band of margin width outside the tumor, inside tissue.
        stroma: Remaining tissue.
    """

    center: BaseGeometry
    inner_margin: BaseGeometry
    outer_margin: BaseGeometry
    stroma: BaseGeometry

    def get(self, zone: Zone) -> BaseGeometry:
        """Return the geometry of a zone."""
        return {
            Zone.CENTER: self.center,
            Zone.INNER_MARGIN: self.inner_margin,
            Zone.OUTER_MARGIN: self.outer_margin,
            Zone.STROMA: self.stroma,
        }[zone]

    def items(self) -> Iterator[tuple[Zone, BaseGeometry]]:
        """Iterate (zone, geometry) pairs in declaration order."""
        for zone in Zone:
            yield zone, self.get(zone)

    def areas(self) -> dict[Zone, float]:
        """Return the area of every zone in square pixels."""
        return {zone: geometry.area for zone, geometry in self.items()}

    def union(self) -> BaseGeometry:
        """Return the union of all four zones."""
        return unary_union([geometry for _, geometry in self.items()])


@dataclass(frozen=True)
class ResolvedInputs:
    """Everything the zoning core reads from a host for one image."""

    tumor: Annotation
    tissue: Annotation
    candidates: tuple[Annotation, ...]
    calibration: PixelCalibration


@dataclass(frozen=True)
class ZoneAssignment:
    """Classification of one candidate region.

    Attributes:
        region_id: Identity of the candidate in its host.
        zone: Zone of maximal overlap, or None when the region overlaps
            no zone at all (the NoOverlap outcome).
        overlaps: Intersection area with every zone, in square pixels.
        tied: True if more than one zone shared the maximal overlap and
            the tie-break order decided.
    """

    region_id: str
    zone: Zone | None
    overlaps: Mapping[Zone, float]
    tied: bool = False

    @property
    def is_classified(self) -> bool:
        """Return False for the NoOverlap outcome."""
        return self.zone is not None


@dataclass
class ClassificationResult:
    """Ordered mapping from candidate identity to its assignment."""

    assignments: dict[str, ZoneAssignment] = field(default_factory=dict)

    def add(self, assignment: ZoneAssignment) -> None:
        self.assignments[assignment.region_id] = assignment

    def labels(self) -> dict[str, Zone | None]:
        """Return region id -> zone, with None for NoOverlap regions."""
        return {
            region_id: assignment.zone
            for region_id, assignment in self.assignments.items()
        }

    def counts(self) -> dict[Zone, int]:
        """Return the number of regions assigned to every zone."""
        counter = Counter(
            assignment.zone
            for assignment in self.assignments.values()
            if assignment.zone is not None
        )
        return {zone: counter.get(zone, 0) for zone in Zone}

    @property
    def unclassified(self) -> list[str]:
        """Return ids of regions that overlapped no zone."""
        return [
            region_id
            for region_id, assignment in self.assignments.items()
            if assignment.zone is None
        ]

    @property
    def tie_count(self) -> int:
        return sum(1 for assignment in self.assignments.values() if assignment.tied)

    def __getitem__(self, region_id: str) -> ZoneAssignment:
        return self.assignments[region_id]

    def __len__(self) -> int:
        return len(self.assignments)

    def __iter__(self) -> Iterator[str]:
        return iter(self.assignments)
