"""Assignment of candidate regions to zones by maximal overlap area.

Each candidate goes to the zone it shares the largest area with. Exact
ties are resolved by TIE_BREAK_ORDER (Center, InnerMargin, Stroma,
OuterMargin) and flagged on the assignment. A candidate that overlaps no
zone at all (drawn entirely outside the tissue) is not forced into a zone:
it gets ``zone=None``.
"""

from __future__ import annotations

from collections.abc import Iterable

from shapely.geometry.base import BaseGeometry
from shapely.validation import make_valid

from tlszones.host.types import Annotation
from tlszones.utils.logging import get_logger
from tlszones.zoning.exceptions import InvalidGeometryError
from tlszones.zoning.types import (
    TIE_BREAK_ORDER,
    ClassificationResult,
    Zone,
    ZoneAssignment,
    ZoneSet,
)

logger = get_logger(__name__)


def overlap_areas(region: BaseGeometry, zones: ZoneSet) -> dict[Zone, float]:
    """Return the intersection area of a region with every zone."""
    if not region.is_valid:
        region = make_valid(region)
    return {
        zone: region.intersection(geometry).area for zone, geometry in zones.items()
    }


def select_zone(overlaps: dict[Zone, float]) -> tuple[Zone | None, bool]:
    """Pick the zone of maximal overlap.

    Zones are scanned in TIE_BREAK_ORDER and a later zone replaces the
    current best only with a strictly larger area.

    Returns:
        (zone, tied) where zone is None if every overlap is zero, and tied
        is True if another zone matched the winning area exactly.
    """
    best: Zone | None = None
    best_area = 0.0
    for zone in TIE_BREAK_ORDER:
        area = overlaps.get(zone, 0.0)
        if area > best_area:
            best, best_area = zone, area

    if best is None:
        return None, False

    tied = sum(1 for area in overlaps.values() if area == best_area) > 1
    return best, tied


def classify_region(
    region_id: str, geometry: BaseGeometry, zones: ZoneSet
) -> ZoneAssignment:
    """Classify one region against a ZoneSet."""
    overlaps = overlap_areas(geometry, zones)
    zone, tied = select_zone(overlaps)
    return ZoneAssignment(region_id=region_id, zone=zone, overlaps=overlaps, tied=tied)


def classify(candidates: Iterable[Annotation], zones: ZoneSet) -> ClassificationResult:
    """Assign every candidate region to the zone it overlaps the most.

    Args:
        candidates: Candidate regions (TLS annotations).
        zones: Zones produced by build_zones().

    Returns:
        ClassificationResult in candidate order.

    Raises:
        InvalidGeometryError: If a candidate has no geometry.
    """
    result = ClassificationResult()
    for candidate in candidates:
        if candidate.geometry is None:
            raise InvalidGeometryError(
                f"Candidate region {candidate.id!r} has no geometry",
                role="candidate",
            )

        assignment = classify_region(candidate.id, candidate.geometry, zones)
        if assignment.zone is None:
            logger.warning("Region overlaps no zone", region_id=candidate.id)
        elif assignment.tied:
            logger.debug(
                "Overlap tie resolved by priority",
                region_id=candidate.id,
                zone=assignment.zone.value,
            )
        result.add(assignment)

    logger.info(
        "Regions classified",
        total=len(result),
        unclassified=len(result.unclassified),
        **{zone.value: count for zone, count in result.counts().items()},
    )
    return result
