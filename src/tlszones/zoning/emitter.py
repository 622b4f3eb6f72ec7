"""Write zones and TLS labels back to an annotation host."""

from __future__ import annotations

from tlszones.config import Settings
from tlszones.config import settings as default_settings
from tlszones.host.types import AnnotationHostProtocol
from tlszones.utils.logging import get_logger
from tlszones.zoning.types import ClassificationResult, ResolvedInputs, Zone, ZoneSet

logger = get_logger(__name__)


class ResultEmitter:
    """Applies one image's zoning result to its host.

    The emitter performs no computation. Callers must have produced every
    zone and every assignment before calling emit(), so that a failure
    earlier in the pipeline leaves the host untouched.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or default_settings

    def emit(
        self,
        host: AnnotationHostProtocol,
        inputs: ResolvedInputs,
        zones: ZoneSet,
        result: ClassificationResult,
        *,
        lock: bool | None = None,
    ) -> dict[Zone, str]:
        """Add zone annotations, label TLS regions, drop tumor and tissue.

        Args:
            host: Host to write to.
            inputs: Inputs the zones were built from.
            zones: The four zones.
            result: TLS classification.
            lock: Override for LOCK_NEW_ANNOTATIONS.

        Returns:
            Identity of the annotation created for each zone.
        """
        locked = self._settings.LOCK_NEW_ANNOTATIONS if lock is None else lock

        zone_ids: dict[Zone, str] = {}
        for zone, geometry in zones.items():
            zone_ids[zone] = host.add_annotation(
                geometry,
                zone.display_name,
                self._settings.color_for(zone),
                locked,
            )

        for region_id, assignment in result.assignments.items():
            if assignment.zone is not None:
                host.set_annotation_label(
                    region_id, self._settings.label_for(assignment.zone)
                )
            elif self._settings.LABEL_NO_OVERLAP is not None:
                host.set_annotation_label(region_id, self._settings.LABEL_NO_OVERLAP)

        host.remove_annotation(inputs.tumor.id)
        host.remove_annotation(inputs.tissue.id)
        host.notify_changed()

        logger.info("Zones emitted", locked=locked, labeled=len(result))
        return zone_ids
