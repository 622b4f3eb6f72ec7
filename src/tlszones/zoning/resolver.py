"""Extraction and validation of zoning inputs from an annotation host.

Finds the single tumor and tissue annotations, collects every TLS
candidate, and checks the pixel calibration. Reads only; the host is
never modified here.
"""

from __future__ import annotations

from collections.abc import Sequence

from tlszones.config import Settings
from tlszones.config import settings as default_settings
from tlszones.host.types import Annotation, AnnotationHostProtocol, PixelCalibration
from tlszones.utils.logging import get_logger
from tlszones.zoning.exceptions import (
    DuplicateAnnotationError,
    InsufficientAnnotationsError,
    MissingCalibrationError,
    MissingTissueAnnotationError,
    MissingTumorAnnotationError,
)
from tlszones.zoning.types import ResolvedInputs

logger = get_logger(__name__)

MIN_ANNOTATIONS = 2


class InputResolver:
    """Resolves tumor, tissue, TLS candidates and calibration from a host."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or default_settings

    def resolve(
        self,
        host: AnnotationHostProtocol,
        image_id: str | None = None,
    ) -> ResolvedInputs:
        """Read everything the zoning core needs for one image.

        Args:
            host: Annotation host for the image.
            image_id: Identifier used to give errors context.

        Returns:
            ResolvedInputs with the tumor, tissue, candidates and calibration.

        Raises:
            MissingCalibrationError: If the host reports no usable pixel size.
            InsufficientAnnotationsError: If fewer than two annotations exist.
            MissingTumorAnnotationError: If no annotation is labeled as tumor.
            MissingTissueAnnotationError: If no annotation is labeled as tissue.
            DuplicateAnnotationError: If STRICT_LABELS is set and the tumor or
                tissue label appears more than once.
        """
        calibration = self.resolve_calibration(host, image_id)

        annotations = list(host.list_annotations())
        if len(annotations) < MIN_ANNOTATIONS:
            raise InsufficientAnnotationsError(
                f"At least {MIN_ANNOTATIONS} annotations are required",
                image_id,
                count=len(annotations),
            )

        tumor = self._find_single(annotations, self._settings.TUMOR_LABEL, image_id)
        if tumor is None:
            raise MissingTumorAnnotationError(
                f"No annotation labeled {self._settings.TUMOR_LABEL!r}", image_id
            )

        tissue = self._find_single(annotations, self._settings.TISSUE_LABEL, image_id)
        if tissue is None:
            raise MissingTissueAnnotationError(
                f"No annotation labeled {self._settings.TISSUE_LABEL!r}", image_id
            )

        candidates = tuple(
            annotation
            for annotation in annotations
            if annotation.has_label(self._settings.TLS_LABEL)
        )
        logger.info(
            "Inputs resolved",
            annotations=len(annotations),
            candidates=len(candidates),
            pixel_size=calibration.pixel_size,
        )
        return ResolvedInputs(
            tumor=tumor,
            tissue=tissue,
            candidates=candidates,
            calibration=calibration,
        )

    def resolve_calibration(
        self,
        host: AnnotationHostProtocol,
        image_id: str | None = None,
    ) -> PixelCalibration:
        """Return the host calibration, warning if the axes disagree.

        Raises:
            MissingCalibrationError: If the calibration is absent, or either
                axis is non-positive or not finite.
        """
        calibration = host.get_calibration()
        if calibration is None:
            raise MissingCalibrationError("No pixel calibration available", image_id)
        if not calibration.is_valid:
            raise MissingCalibrationError(
                "Pixel calibration must be positive and finite, got "
                f"({calibration.pixel_width}, {calibration.pixel_height})",
                image_id,
            )

        if not calibration.is_isotropic(self._settings.CALIBRATION_REL_TOL):
            logger.warning(
                "Pixel width and height differ, using their mean",
                pixel_width=calibration.pixel_width,
                pixel_height=calibration.pixel_height,
                pixel_size=calibration.pixel_size,
            )
        return calibration

    def _find_single(
        self,
        annotations: Sequence[Annotation],
        label: str,
        image_id: str | None,
    ) -> Annotation | None:
        matches = [
            annotation for annotation in annotations if annotation.has_label(label)
        ]
        if not matches:
            return None
        if len(matches) > 1:
            if self._settings.STRICT_LABELS:
                raise DuplicateAnnotationError(
                    "Expected exactly one annotation with this label",
                    image_id,
                    label=label,
                    count=len(matches),
                )
            logger.warning(
                "Multiple annotations share a label, using the first",
                label=label,
                count=len(matches),
                used_id=matches[0].id,
            )
        return matches[0]
