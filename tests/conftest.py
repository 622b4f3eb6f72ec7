"""Shared pytest fixtures and configuration."""

import json
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from shapely.geometry import box, mapping

from tlszones.config import Settings
from tlszones.host import Annotation, InMemoryAnnotationHost, PixelCalibration
from tlszones.utils.logging import clear_correlation_context, configure_logging

HostFactory = Callable[..., InMemoryAnnotationHost]


@pytest.fixture(autouse=True)
def reset_logging_context() -> Iterator[None]:
    """Reset correlation context between tests."""
    clear_correlation_context()
    yield
    clear_correlation_context()


@pytest.fixture
def test_settings() -> Settings:
    """Create a Settings instance with test-safe defaults."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="console",
        MARGIN_DISTANCE=200.0,
    )


@pytest.fixture
def configure_test_logging() -> Iterator[None]:
    """Configure logging for tests with console output."""
    configure_logging(level="DEBUG", log_format="console")
    yield


@pytest.fixture
def tumor() -> Annotation:
    """1000x1000 tumor square at the origin."""
    return Annotation(id="tumor", label="Tumor", geometry=box(0, 0, 1000, 1000))


@pytest.fixture
def tissue() -> Annotation:
    """3000x3000 tissue square centered on the tumor."""
    return Annotation(
        id="tissue", label="Tissue", geometry=box(-1000, -1000, 2000, 2000)
    )


@pytest.fixture
def tls_regions() -> list[Annotation]:
    """TLS regions in the center, across the boundary, and outside tissue."""
    return [
        Annotation(id="tls-center", label="TLS", geometry=box(400, 400, 500, 500)),
        Annotation(id="tls-boundary", label="TLS", geometry=box(900, 400, 1300, 500)),
        Annotation(id="tls-stroma", label="TLS", geometry=box(1600, 1600, 1700, 1700)),
        Annotation(id="tls-outside", label="TLS", geometry=box(5000, 5000, 5100, 5100)),
    ]


@pytest.fixture
def make_host(
    tumor: Annotation,
    tissue: Annotation,
    tls_regions: list[Annotation],
) -> HostFactory:
    """Build an in-memory host holding the standard scenario."""

    def _make(
        calibration: PixelCalibration | None = PixelCalibration(1.0, 1.0),  # noqa: B008
        extra: list[Annotation] | None = None,
        include_tls: bool = True,
    ) -> InMemoryAnnotationHost:
        annotations = [tumor, tissue]
        if include_tls:
            annotations.extend(tls_regions)
        annotations.extend(extra or [])
        return InMemoryAnnotationHost(annotations, calibration)

    return _make


ExportWriter = Callable[..., Path]


@pytest.fixture
def write_export() -> ExportWriter:
    """Write a GeoJSON export with tumor, tissue and two TLS regions."""

    def _feature(feature_id: str, label: str, geometry: Any) -> dict[str, Any]:
        return {
            "type": "Feature",
            "id": feature_id,
            "geometry": mapping(geometry),
            "properties": {
                "objectType": "annotation",
                "classification": {"name": label},
            },
        }

    def _write(path: Path, *, with_tumor: bool = True) -> Path:
        features = [
            _feature("tissue", "Tissue", box(-1000, -1000, 2000, 2000)),
            _feature("tls-a", "TLS", box(400, 400, 500, 500)),
            _feature("tls-b", "TLS", box(1600, 1600, 1700, 1700)),
        ]
        if with_tumor:
            features.insert(0, _feature("tumor", "Tumor", box(0, 0, 1000, 1000)))
        payload = {"type": "FeatureCollection", "features": features}
        path.write_text(json.dumps(payload))
        return path

    return _write
