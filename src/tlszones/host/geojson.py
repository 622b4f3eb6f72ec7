"""GeoJSON file-backed annotation host.

Reads the FeatureCollection layout that slide viewers export for
annotations and writes the zoned result back in the same layout:

- label: ``properties.classification.name``
- display name: ``properties.name``
- color: ``properties.classification.color`` or ``properties.color``
- lock flag: ``properties.isLocked``

Geometries are in level-0 pixel coordinates. Calibration is not part of
the file and must be supplied by the caller.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from shapely.errors import GeometryTypeError
from shapely.geometry import mapping, shape

from tlszones.host.memory import InMemoryAnnotationHost
from tlszones.host.types import RGB, Annotation, PixelCalibration
from tlszones.utils.logging import get_logger

logger = get_logger(__name__)


class AnnotationFileError(Exception):
    """Raised when an annotation file cannot be read or parsed."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        self.path = Path(path) if path else None
        self.message = message
        super().__init__(f"{message} (path: {self.path})" if self.path else message)


def _parse_color(value: Any) -> RGB | None:
    """Accept either an [r, g, b] list or a packed integer color."""
    if value is None:
        return None
    if isinstance(value, int):
        packed = value & 0xFFFFFF
        return ((packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF)
    if isinstance(value, list | tuple) and len(value) == 3:
        r, g, b = (int(component) for component in value)
        return (r, g, b)
    return None


def _feature_to_annotation(feature: Any, index: int) -> Annotation | None:
    if not isinstance(feature, Mapping):
        raise TypeError(f"expected a feature object, got {type(feature).__name__}")
    properties = feature.get("properties") or {}
    if not isinstance(properties, Mapping):
        raise TypeError(
            f"expected properties object, got {type(properties).__name__}"
        )
    object_type = properties.get("objectType")
    if object_type is not None and object_type != "annotation":
        return None

    classification = properties.get("classification") or {}
    label = classification.get("name") if isinstance(classification, Mapping) else None
    color = _parse_color(
        classification.get("color") if isinstance(classification, Mapping) else None
    ) or _parse_color(properties.get("color"))

    raw_id = feature.get("id")
    raw_geometry = feature.get("geometry")
    geometry = shape(raw_geometry) if raw_geometry else None

    return Annotation(
        id=str(raw_id) if raw_id is not None else f"feature-{index}",
        label=label,
        geometry=geometry,
        name=properties.get("name"),
        color=color,
        locked=bool(properties.get("isLocked", False)),
    )


def _annotation_to_feature(annotation: Annotation) -> dict[str, Any]:
    properties: dict[str, Any] = {
        "objectType": "annotation",
        "isLocked": annotation.locked,
    }
    if annotation.name is not None:
        properties["name"] = annotation.name
    if annotation.label is not None:
        classification: dict[str, Any] = {"name": annotation.label}
        if annotation.color is not None:
            classification["color"] = list(annotation.color)
        properties["classification"] = classification
    elif annotation.color is not None:
        properties["color"] = list(annotation.color)

    return {
        "type": "Feature",
        "id": annotation.id,
        "geometry": (
            mapping(annotation.geometry) if annotation.geometry is not None else None
        ),
        "properties": properties,
    }


class GeoJSONAnnotationHost(InMemoryAnnotationHost):
    """Annotation host loaded from, and saved to, a GeoJSON file.

    Usage:
        host = GeoJSONAnnotationHost.load("slide.geojson", calibration)
        ZoningPipeline().run(host, image_id="slide")
        host.save("slide.zoned.geojson")
    """

    def __init__(
        self,
        annotations: list[Annotation],
        calibration: PixelCalibration | None = None,
        *,
        source: Path | None = None,
    ) -> None:
        super().__init__(annotations, calibration)
        self.source = source

    @classmethod
    def load(
        cls,
        path: str | Path,
        calibration: PixelCalibration | None = None,
    ) -> GeoJSONAnnotationHost:
        """Load annotations from a FeatureCollection or a bare feature list.

        Raises:
            AnnotationFileError: If the file is missing, is not valid UTF-8
                JSON, holds a malformed feature, or contains a geometry
                shapely cannot interpret.
        """
        path = Path(path)
        if not path.exists():
            raise AnnotationFileError("File not found", path=path)

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except UnicodeDecodeError as e:
            raise AnnotationFileError(f"Not UTF-8 text: {e}", path=path) from e
        except json.JSONDecodeError as e:
            raise AnnotationFileError(f"Invalid JSON: {e}", path=path) from e

        if isinstance(payload, dict) and payload.get("type") == "FeatureCollection":
            features = payload.get("features") or []
        elif isinstance(payload, dict) and payload.get("type") == "Feature":
            features = [payload]
        elif isinstance(payload, list):
            features = payload
        else:
            raise AnnotationFileError(
                "Expected a GeoJSON FeatureCollection or a list of features",
                path=path,
            )

        if not isinstance(features, list):
            raise AnnotationFileError("Expected 'features' to be a list", path=path)

        annotations: list[Annotation] = []
        seen_ids: set[str] = set()
        for index, feature in enumerate(features):
            try:
                annotation = _feature_to_annotation(feature, index)
            except (
                AttributeError,
                GeometryTypeError,
                KeyError,
                TypeError,
                ValueError,
            ) as e:
                raise AnnotationFileError(
                    f"Unreadable feature at index {index}: {e}", path=path
                ) from e
            if annotation is None:
                continue
            if annotation.id in seen_ids:
                raise AnnotationFileError(
                    f"Duplicate feature id {annotation.id!r}", path=path
                )
            seen_ids.add(annotation.id)
            annotations.append(annotation)

        logger.debug(
            "Loaded annotations",
            path=str(path),
            features=len(features),
            annotations=len(annotations),
        )
        return cls(annotations, calibration, source=path)

    def to_feature_collection(self) -> dict[str, Any]:
        """Return the current annotation set as a GeoJSON FeatureCollection."""
        return {
            "type": "FeatureCollection",
            "features": [
                _annotation_to_feature(annotation)
                for annotation in self.list_annotations()
            ],
        }

    def save(self, path: str | Path) -> Path:
        """Write the current annotation set to ``path`` and return it."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_feature_collection(), indent=2))
        logger.info("Annotations saved", path=str(path), count=len(self))
        return path
