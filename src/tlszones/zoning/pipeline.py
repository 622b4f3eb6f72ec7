"""Single-image zoning pipeline.

Runs resolve -> build -> classify -> emit for one image. Every step that
can fail runs before the first write to the host, so an invocation either
applies all four zones and all labels or changes nothing.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, Field

from tlszones.config import Settings
from tlszones.config import settings as default_settings
from tlszones.host.types import AnnotationHostProtocol
from tlszones.utils.logging import get_logger, image_context
from tlszones.zoning.builder import build_zones
from tlszones.zoning.classifier import classify
from tlszones.zoning.emitter import ResultEmitter
from tlszones.zoning.exceptions import ZoningError
from tlszones.zoning.resolver import InputResolver
from tlszones.zoning.types import ClassificationResult, ResolvedInputs, Zone, ZoneSet

logger = get_logger(__name__)


class ZoningReport(BaseModel):
    """Summary of one image's zoning, suitable for JSON export."""

    image_id: str | None = None
    margin_distance: float = Field(..., description="Margin in physical units")
    margin_pixels: float = Field(..., description="Margin in geometry units")
    pixel_size: float = Field(..., description="Physical units per pixel")
    zone_areas_px: dict[str, float] = Field(default_factory=dict)
    zone_areas_physical: dict[str, float] = Field(default_factory=dict)
    tls_counts: dict[str, int] = Field(default_factory=dict)
    tls_total: int = 0
    tls_unclassified: int = 0
    tls_ties: int = 0
    assignments: dict[str, str | None] = Field(default_factory=dict)

    @classmethod
    def from_run(
        cls,
        *,
        image_id: str | None,
        margin_distance: float,
        inputs: ResolvedInputs,
        zones: ZoneSet,
        result: ClassificationResult,
    ) -> ZoningReport:
        pixel_size = inputs.calibration.pixel_size
        areas = zones.areas()
        return cls(
            image_id=image_id,
            margin_distance=margin_distance,
            margin_pixels=inputs.calibration.to_geometry_units(margin_distance),
            pixel_size=pixel_size,
            zone_areas_px={zone.value: area for zone, area in areas.items()},
            zone_areas_physical={
                zone.value: area * pixel_size**2 for zone, area in areas.items()
            },
            tls_counts={zone.value: n for zone, n in result.counts().items()},
            tls_total=len(result),
            tls_unclassified=len(result.unclassified),
            tls_ties=result.tie_count,
            assignments={
                region_id: zone.value if zone is not None else None
                for region_id, zone in result.labels().items()
            },
        )


@dataclass(frozen=True)
class ZoningOutcome:
    """Everything produced by one successful pipeline run."""

    zones: ZoneSet
    classification: ClassificationResult
    zone_annotation_ids: dict[Zone, str]
    report: ZoningReport


class ZoningPipeline:
    """Zones one image's tissue around its tumor and classifies its TLS.

    The pipeline holds configuration only. Each run() reads from and
    writes to the host it is given, so one pipeline can serve many images,
    sequentially or from several threads.

    Usage:
        pipeline = ZoningPipeline()
        outcome = pipeline.run(host, image_id="slide-01")
        print(outcome.report.tls_counts)
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or default_settings
        self._resolver = InputResolver(self._settings)
        self._emitter = ResultEmitter(self._settings)

    @property
    def settings(self) -> Settings:
        return self._settings

    def run(
        self,
        host: AnnotationHostProtocol,
        image_id: str | None = None,
        *,
        margin_distance: float | None = None,
        lock: bool | None = None,
    ) -> ZoningOutcome:
        """Zone one image and write the result to its host.

        Args:
            host: Annotation host for the image.
            image_id: Identifier used in logs and errors.
            margin_distance: Override for MARGIN_DISTANCE (physical units).
            lock: Override for LOCK_NEW_ANNOTATIONS.

        Returns:
            ZoningOutcome with zones, classification and report.

        Raises:
            ZoningError: Any subclass; the host is left unchanged.
        """
        with image_context(image_id):
            return self._run(
                host, image_id, margin_distance=margin_distance, lock=lock
            )

    def _run(
        self,
        host: AnnotationHostProtocol,
        image_id: str | None,
        *,
        margin_distance: float | None,
        lock: bool | None,
    ) -> ZoningOutcome:
        distance = (
            self._settings.MARGIN_DISTANCE
            if margin_distance is None
            else margin_distance
        )

        try:
            inputs = self._resolver.resolve(host, image_id)
            margin_px = inputs.calibration.to_geometry_units(distance)
            zones = build_zones(
                inputs.tumor.geometry,
                inputs.tissue.geometry,
                margin_px,
                quad_segs=self._settings.BUFFER_QUAD_SEGS,
            )
            result = classify(inputs.candidates, zones)
        except ZoningError as e:
            if e.image_id is None and image_id is not None:
                e.attach_image(image_id)
            logger.error("Zoning failed", error=str(e), error_type=type(e).__name__)
            raise

        zone_ids = self._emitter.emit(host, inputs, zones, result, lock=lock)
        report = ZoningReport.from_run(
            image_id=image_id,
            margin_distance=distance,
            inputs=inputs,
            zones=zones,
            result=result,
        )
        logger.info(
            "Zoning complete",
            margin=distance,
            margin_px=round(margin_px, 3),
            tls=report.tls_total,
        )
        return ZoningOutcome(
            zones=zones,
            classification=result,
            zone_annotation_ids=zone_ids,
            report=report,
        )
