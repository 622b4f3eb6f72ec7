"""Zone construction from a tumor outline and a tissue outline.

The tissue is split into four disjoint zones using one linear margin
distance (in pixels):

    outer_expanded = tumor + margin
    outer_margin   = (outer_expanded - tumor) & tissue
    center         = (tumor - margin) & tissue
    inner_margin   = (tumor - (tumor - margin)) & tissue
    stroma         = tissue - center - outer_margin - inner_margin

where ``+ d`` / ``- d`` denote outward / inward buffering. The inner margin
subtracts the unclipped eroded tumor, not the clipped center, and is
clipped to the tissue separately. Empty intermediates are valid results.
"""

from __future__ import annotations

import math

from shapely import unary_union
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.validation import make_valid

from tlszones.utils.logging import get_logger
from tlszones.zoning.exceptions import InvalidGeometryError
from tlszones.zoning.types import ZoneSet

logger = get_logger(__name__)

DEFAULT_QUAD_SEGS = 16


def polygonal_part(geometry: BaseGeometry) -> BaseGeometry:
    """Reduce a geometry to its areal part.

    Overlay operations can emit GeometryCollections holding slivers of
    lines or points along shared boundaries; only polygons carry area.

    Returns:
        A Polygon or MultiPolygon, empty if the input has no areal part.
    """
    if isinstance(geometry, Polygon | MultiPolygon):
        return geometry
    if isinstance(geometry, GeometryCollection):
        parts = [
            part
            for part in geometry.geoms
            if isinstance(part, Polygon | MultiPolygon) and not part.is_empty
        ]
        if not parts:
            return Polygon()
        merged = unary_union(parts)
        return merged if isinstance(merged, Polygon | MultiPolygon) else Polygon()
    return Polygon()


def prepare_input(geometry: BaseGeometry | None, role: str) -> BaseGeometry:
    """Validate an input outline and repair it if it is self-intersecting.

    Args:
        geometry: Outline to check.
        role: Name used in errors and logs (e.g., "tumor").

    Returns:
        A valid Polygon or MultiPolygon.

    Raises:
        InvalidGeometryError: If the geometry is None or has no areal part.
    """
    if geometry is None:
        raise InvalidGeometryError(f"No {role} geometry", role=role)
    if not isinstance(geometry, Polygon | MultiPolygon | GeometryCollection):
        raise InvalidGeometryError(
            f"{role.capitalize()} geometry must be polygonal, "
            f"got {geometry.geom_type}",
            role=role,
        )
    if geometry.is_empty:
        return polygonal_part(geometry)

    if not geometry.is_valid:
        logger.warning("Repairing invalid geometry", role=role)
        geometry = make_valid(geometry)

    polygonal = polygonal_part(geometry)
    if polygonal.is_empty:
        raise InvalidGeometryError(
            f"{role.capitalize()} geometry has no area", role=role
        )
    return polygonal


def build_zones(
    tumor: BaseGeometry | None,
    tissue: BaseGeometry | None,
    margin: float,
    *,
    quad_segs: int = DEFAULT_QUAD_SEGS,
) -> ZoneSet:
    """Split the tissue into center, inner margin, outer margin and stroma.

    Args:
        tumor: Tumor outline in pixel coordinates.
        tissue: Tissue outline in pixel coordinates.
        margin: Margin distance in pixels (>= 0).
        quad_segs: Segments per quarter circle used for round buffer joins.

    Returns:
        ZoneSet whose four geometries are pairwise disjoint and whose union
        is the tissue.

    Raises:
        InvalidGeometryError: If an outline is missing or not polygonal,
            or if the margin is negative or not finite.

    Example:
        >>> from shapely.geometry import box
        >>> tissue = box(-1000, -1000, 2000, 2000)
        >>> zones = build_zones(box(0, 0, 1000, 1000), tissue, 200)
        >>> round(zones.center.area)
        360000
    """
    tumor = prepare_input(tumor, "tumor")
    tissue = prepare_input(tissue, "tissue")
    if not math.isfinite(margin) or margin < 0:
        raise InvalidGeometryError(
            f"Margin distance must be finite and non-negative, got {margin}",
            role="margin",
        )

    outer_expanded = tumor.buffer(margin, quad_segs=quad_segs)
    outer_margin = outer_expanded.difference(tumor).intersection(tissue)

    eroded = tumor.buffer(-margin, quad_segs=quad_segs)
    center = eroded.intersection(tissue)

    inner_margin_unclipped = tumor.difference(eroded)
    inner_margin = inner_margin_unclipped.intersection(tissue)

    stroma = tissue.difference(center).difference(outer_margin).difference(inner_margin)

    zones = ZoneSet(
        center=polygonal_part(center),
        inner_margin=polygonal_part(inner_margin),
        outer_margin=polygonal_part(outer_margin),
        stroma=polygonal_part(stroma),
    )

    if eroded.is_empty and not tumor.is_empty:
        logger.info("Tumor fully eroded by margin", margin=margin)

    logger.debug(
        "Zones built",
        margin=margin,
        **{zone.value: round(area, 2) for zone, area in zones.areas().items()},
    )
    return zones
