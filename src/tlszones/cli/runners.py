"""CLI runners for single-image and batch zoning.

This module holds the execution logic for the CLI commands, bridging the
typer interface to the annotation hosts and the zoning pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from tlszones.config import Settings
from tlszones.host.geojson import AnnotationFileError, GeoJSONAnnotationHost
from tlszones.host.types import PixelCalibration
from tlszones.utils.logging import (
    get_logger,
    image_context,
    set_correlation_context,
)
from tlszones.zoning.exceptions import ZoningError
from tlszones.zoning.pipeline import ZoningPipeline, ZoningReport

ZONED_SUFFIX = ".zoned.geojson"


@dataclass
class ImageResult:
    """Result from zoning one annotation file."""

    image_id: str
    success: bool
    output_path: Path | None = None
    report: ZoningReport | None = None
    error_message: str | None = None
    error_type: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "image_id": self.image_id,
            "success": self.success,
            "output_path": str(self.output_path) if self.output_path else None,
            "report": self.report.model_dump() if self.report else None,
            "error": self.error_message,
            "error_type": self.error_type,
        }


@dataclass
class BatchResult:
    """Result from zoning every annotation file in a directory."""

    run_id: str
    results: list[ImageResult] = field(default_factory=list)

    @property
    def n_images(self) -> int:
        return len(self.results)

    @property
    def n_errors(self) -> int:
        return sum(1 for result in self.results if not result.success)

    def to_dict(self) -> dict[str, object]:
        return {
            "run_id": self.run_id,
            "n_images": self.n_images,
            "n_errors": self.n_errors,
            "results": [result.to_dict() for result in self.results],
        }


def image_id_for(annotations_path: Path) -> str:
    """Return the image id for an annotation file.

    Only the known suffix is removed, so ``S1.region1.geojson`` and
    ``S1.region2.geojson`` stay distinct.
    """
    name = annotations_path.name
    for suffix in (ZONED_SUFFIX, ".geojson", ".json"):
        if name.lower().endswith(suffix):
            return name[: -len(suffix)]
    return annotations_path.stem


def default_output_path(annotations_path: Path, output_dir: Path | None = None) -> Path:
    """Return ``<image id>.zoned.geojson`` next to the input or in output_dir."""
    stem = image_id_for(annotations_path)
    directory = output_dir if output_dir is not None else annotations_path.parent
    return directory / f"{stem}{ZONED_SUFFIX}"


def resolve_calibration(
    *,
    pixel_width: float | None,
    pixel_height: float | None,
    slide_path: Path | None,
) -> PixelCalibration | None:
    """Build the calibration from explicit sizes, or read it from a slide.

    Explicit sizes win over the slide. When only one of pixel width and
    pixel height is given it is used for both axes. Returns None when
    neither source is given; the pipeline then fails with
    MissingCalibrationError.
    """
    if pixel_width is not None:
        return PixelCalibration(
            pixel_width=pixel_width,
            pixel_height=pixel_height if pixel_height is not None else pixel_width,
        )
    if pixel_height is not None:
        return PixelCalibration(pixel_width=pixel_height, pixel_height=pixel_height)
    if slide_path is not None:
        from tlszones.host.slide import read_slide_calibration  # noqa: PLC0415

        return read_slide_calibration(slide_path)
    return None


def run_single_image(
    *,
    annotations_path: Path,
    calibration: PixelCalibration | None,
    output_path: Path | None = None,
    report_path: Path | None = None,
    margin_distance: float | None = None,
    lock: bool | None = None,
    settings: Settings | None = None,
) -> ImageResult:
    """Zone one GeoJSON annotation file and save the result.

    Zoning and file errors are captured in the returned ImageResult so
    that a batch can continue with the next image.
    """
    logger = get_logger(__name__)
    image_id = image_id_for(annotations_path)
    pipeline = ZoningPipeline(settings)

    with image_context(image_id):
        try:
            host = GeoJSONAnnotationHost.load(annotations_path, calibration)
            outcome = pipeline.run(
                host,
                image_id=image_id,
                margin_distance=margin_distance,
                lock=lock,
            )
        except (AnnotationFileError, ZoningError) as e:
            logger.warning("Image skipped", error=str(e))
            return ImageResult(
                image_id=image_id,
                success=False,
                error_message=str(e),
                error_type=type(e).__name__,
            )

        destination = output_path or default_output_path(annotations_path)
        host.save(destination)
        if report_path is not None:
            report_path.parent.mkdir(parents=True, exist_ok=True)
            report_path.write_text(outcome.report.model_dump_json(indent=2))
            logger.info("Report saved", path=str(report_path))

    return ImageResult(
        image_id=image_id,
        success=True,
        output_path=destination,
        report=outcome.report,
    )


def run_batch(  # noqa: PLR0913
    *,
    input_dir: Path,
    output_dir: Path,
    pattern: str = "*.geojson",
    pixel_width: float | None = None,
    pixel_height: float | None = None,
    slide_dir: Path | None = None,
    margin_distance: float | None = None,
    lock: bool | None = None,
    settings: Settings | None = None,
) -> BatchResult:
    """Zone every matching annotation file in a directory.

    Each file is an independent invocation with its own host. Files that
    fail are recorded and skipped; previously zoned outputs are ignored.
    """
    from tlszones.host.slide import SlideOpenError, find_slide  # noqa: PLC0415

    logger = get_logger(__name__)
    run_id = f"batch_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S')}"
    set_correlation_context(run_id=run_id)
    output_dir.mkdir(parents=True, exist_ok=True)

    batch = BatchResult(run_id=run_id)
    paths = sorted(
        path
        for path in input_dir.glob(pattern)
        if path.is_file() and not path.name.endswith(ZONED_SUFFIX)
    )
    logger.info("Starting batch", images=len(paths), input_dir=str(input_dir))

    for path in paths:
        image_id = image_id_for(path)
        slide_path = find_slide(slide_dir, image_id) if slide_dir else None
        try:
            calibration = resolve_calibration(
                pixel_width=pixel_width,
                pixel_height=pixel_height,
                slide_path=slide_path,
            )
        except SlideOpenError as e:
            logger.warning("Slide unreadable", image_id=image_id, error=str(e))
            batch.results.append(
                ImageResult(
                    image_id=image_id,
                    success=False,
                    error_message=str(e),
                    error_type=type(e).__name__,
                )
            )
            continue

        batch.results.append(
            run_single_image(
                annotations_path=path,
                calibration=calibration,
                output_path=default_output_path(path, output_dir),
                report_path=output_dir / f"{image_id}.report.json",
                margin_distance=margin_distance,
                lock=lock,
                settings=settings,
            )
        )

    logger.info("Batch complete", images=batch.n_images, errors=batch.n_errors)
    return batch
