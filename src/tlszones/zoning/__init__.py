"""Zoning core for tlszones.

Partitions a tissue outline into four disjoint zones around a tumor
outline and assigns each TLS annotation to the zone it overlaps most.

Key Components:
    - InputResolver: Finds tumor, tissue, TLS and calibration on a host
    - build_zones: Center / inner margin / outer margin / stroma geometry
    - classify: Maximal-overlap zone assignment with explicit tie-break
    - ResultEmitter: Writes zones and labels back to the host
    - ZoningPipeline: All-or-nothing run of the four steps for one image

Example:
    from tlszones.host import InMemoryAnnotationHost
    from tlszones.zoning import ZoningPipeline

    outcome = ZoningPipeline().run(host, image_id="slide-01")
    outcome.report.tls_counts  # {"Center": 3, "InnerMargin": 1, ...}
"""

from tlszones.zoning.builder import build_zones, polygonal_part
from tlszones.zoning.classifier import classify, classify_region, select_zone
from tlszones.zoning.emitter import ResultEmitter
from tlszones.zoning.exceptions import (
    DuplicateAnnotationError,
    InsufficientAnnotationsError,
    InvalidGeometryError,
    MissingCalibrationError,
    MissingTissueAnnotationError,
    MissingTumorAnnotationError,
    ZoningError,
)
from tlszones.zoning.pipeline import ZoningOutcome, ZoningPipeline, ZoningReport
from tlszones.zoning.resolver import InputResolver
from tlszones.zoning.types import (
    TIE_BREAK_ORDER,
    ClassificationResult,
    ResolvedInputs,
    Zone,
    ZoneAssignment,
    ZoneSet,
)

__all__ = [
    "TIE_BREAK_ORDER",
    "ClassificationResult",
    "DuplicateAnnotationError",
    "InputResolver",
    "InsufficientAnnotationsError",
    "InvalidGeometryError",
    "MissingCalibrationError",
    "MissingTissueAnnotationError",
    "MissingTumorAnnotationError",
    "ResolvedInputs",
    "ResultEmitter",
    "Zone",
    "ZoneAssignment",
    "ZoneSet",
    "ZoningError",
    "ZoningOutcome",
    "ZoningPipeline",
    "ZoningReport",
    "build_zones",
    "classify",
    "classify_region",
    "polygonal_part",
    "select_zone",
]
