"""Tests for the CLI runners."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest

from tlszones.cli.runners import (
    BatchResult,
    ImageResult,
    default_output_path,
    image_id_for,
    resolve_calibration,
    run_batch,
    run_single_image,
)
from tlszones.config import Settings
from tlszones.host import PixelCalibration
from tlszones.host.slide import SlideOpenError

ExportWriter = Callable[..., Path]


class TestDefaultOutputPath:
    """Tests for default_output_path()."""

    def test_next_to_input(self, tmp_path: Path) -> None:
        path = tmp_path / "case-1.geojson"
        assert default_output_path(path) == tmp_path / "case-1.zoned.geojson"

    def test_in_output_dir(self, tmp_path: Path) -> None:
        path = tmp_path / "case-1.geojson"
        out = tmp_path / "out"
        assert default_output_path(path, out) == out / "case-1.zoned.geojson"


class TestImageIdFor:
    """Tests for image_id_for()."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("case-1.geojson", "case-1"),
            ("S1.region1.geojson", "S1.region1"),
            ("S1.region1.zoned.geojson", "S1.region1"),
            ("slide.v2.json", "slide.v2"),
            ("SLIDE.GEOJSON", "SLIDE"),
            ("export.txt", "export"),
        ],
    )
    def test_only_known_suffix_is_removed(self, name: str, expected: str) -> None:
        assert image_id_for(Path(name)) == expected

    def test_dotted_names_get_distinct_outputs(self, tmp_path: Path) -> None:
        first = default_output_path(tmp_path / "S1.region1.geojson")
        second = default_output_path(tmp_path / "S1.region2.geojson")
        assert first != second
        assert first.name == "S1.region1.zoned.geojson"


class TestResolveCalibration:
    """Tests for resolve_calibration()."""

    def test_explicit_width_and_height(self) -> None:
        calibration = resolve_calibration(
            pixel_width=0.25, pixel_height=0.26, slide_path=None
        )
        assert calibration == PixelCalibration(0.25, 0.26)

    def test_height_defaults_to_width(self) -> None:
        calibration = resolve_calibration(
            pixel_width=0.5, pixel_height=None, slide_path=None
        )
        assert calibration == PixelCalibration(0.5, 0.5)

    def test_width_defaults_to_height(self) -> None:
        calibration = resolve_calibration(
            pixel_width=None, pixel_height=0.5, slide_path=None
        )
        assert calibration == PixelCalibration(0.5, 0.5)

    def test_none_without_sources(self) -> None:
        assert (
            resolve_calibration(pixel_width=None, pixel_height=None, slide_path=None)
            is None
        )

    def test_reads_slide(self, tmp_path: Path) -> None:
        slide = tmp_path / "case.svs"
        with patch(
            "tlszones.host.slide.read_slide_calibration",
            return_value=PixelCalibration(0.25, 0.25),
        ) as mock_read:
            calibration = resolve_calibration(
                pixel_width=None, pixel_height=None, slide_path=slide
            )
        mock_read.assert_called_once_with(slide)
        assert calibration == PixelCalibration(0.25, 0.25)

    def test_explicit_width_beats_slide(self, tmp_path: Path) -> None:
        with patch("tlszones.host.slide.read_slide_calibration") as mock_read:
            calibration = resolve_calibration(
                pixel_width=1.0, pixel_height=None, slide_path=tmp_path / "x.svs"
            )
        mock_read.assert_not_called()
        assert calibration == PixelCalibration(1.0, 1.0)


class TestRunSingleImage:
    """Tests for run_single_image()."""

    def test_success_writes_output_and_report(
        self,
        tmp_path: Path,
        test_settings: Settings,
        write_export: ExportWriter,
    ) -> None:
        path = write_export(tmp_path / "case-1.geojson")
        report_path = tmp_path / "reports" / "case-1.json"

        result = run_single_image(
            annotations_path=path,
            calibration=PixelCalibration(1.0, 1.0),
            report_path=report_path,
            settings=test_settings,
        )

        assert result.success
        assert result.image_id == "case-1"
        assert result.output_path == tmp_path / "case-1.zoned.geojson"
        assert result.output_path.exists()
        assert result.report is not None
        assert result.report.tls_counts["Center"] == 1
        assert result.report.tls_counts["Stroma"] == 1
        assert json.loads(report_path.read_text())["tls_total"] == 2

    def test_input_file_is_not_modified(
        self,
        tmp_path: Path,
        test_settings: Settings,
        write_export: ExportWriter,
    ) -> None:
        path = write_export(tmp_path / "case-1.geojson")
        before = path.read_text()
        run_single_image(
            annotations_path=path,
            calibration=PixelCalibration(1.0, 1.0),
            settings=test_settings,
        )
        assert path.read_text() == before

    def test_missing_calibration_is_captured(
        self,
        tmp_path: Path,
        test_settings: Settings,
        write_export: ExportWriter,
    ) -> None:
        path = write_export(tmp_path / "case-1.geojson")
        result = run_single_image(
            annotations_path=path, calibration=None, settings=test_settings
        )
        assert not result.success
        assert result.error_type == "MissingCalibrationError"
        assert "case-1" in (result.error_message or "")
        assert not (tmp_path / "case-1.zoned.geojson").exists()

    def test_missing_tumor_is_captured(
        self,
        tmp_path: Path,
        test_settings: Settings,
        write_export: ExportWriter,
    ) -> None:
        path = write_export(tmp_path / "case-1.geojson", with_tumor=False)
        result = run_single_image(
            annotations_path=path,
            calibration=PixelCalibration(1.0, 1.0),
            settings=test_settings,
        )
        assert result.error_type == "MissingTumorAnnotationError"

    def test_unreadable_file_is_captured(
        self,
        tmp_path: Path,
        test_settings: Settings,
    ) -> None:
        path = tmp_path / "broken.geojson"
        path.write_text("not json")
        result = run_single_image(
            annotations_path=path,
            calibration=PixelCalibration(1.0, 1.0),
            settings=test_settings,
        )
        assert result.error_type == "AnnotationFileError"

    def test_to_dict(
        self,
        tmp_path: Path,
        test_settings: Settings,
        write_export: ExportWriter,
    ) -> None:
        path = write_export(tmp_path / "case-1.geojson")
        result = run_single_image(
            annotations_path=path,
            calibration=PixelCalibration(1.0, 1.0),
            settings=test_settings,
        )
        payload = result.to_dict()
        assert payload["success"] is True
        assert payload["error"] is None
        json.dumps(payload)


class TestRunBatch:
    """Tests for run_batch()."""

    def test_processes_every_file_and_skips_failures(
        self,
        tmp_path: Path,
        test_settings: Settings,
        write_export: ExportWriter,
    ) -> None:
        input_dir = tmp_path / "in"
        input_dir.mkdir()
        write_export(input_dir / "a.geojson")
        write_export(input_dir / "b.geojson", with_tumor=False)
        write_export(input_dir / "c.geojson")
        output_dir = tmp_path / "out"

        batch = run_batch(
            input_dir=input_dir,
            output_dir=output_dir,
            pixel_width=1.0,
            settings=test_settings,
        )

        assert [r.image_id for r in batch.results] == ["a", "b", "c"]
        assert batch.n_images == 3
        assert batch.n_errors == 1
        assert (output_dir / "a.zoned.geojson").exists()
        assert not (output_dir / "b.zoned.geojson").exists()
        assert (output_dir / "c.report.json").exists()

    def test_zoned_outputs_are_ignored(
        self,
        tmp_path: Path,
        test_settings: Settings,
        write_export: ExportWriter,
    ) -> None:
        write_export(tmp_path / "a.geojson")
        write_export(tmp_path / "a.zoned.geojson")
        batch = run_batch(
            input_dir=tmp_path,
            output_dir=tmp_path,
            pixel_width=1.0,
            settings=test_settings,
        )
        assert [r.image_id for r in batch.results] == ["a"]

    @pytest.mark.parametrize(
        "content",
        [
            b'{"type": "\xff\xfe"}',
            b'{"type": "FeatureCollection", "features": [null]}',
            b'{"type": "FeatureCollection", "features": [{"properties": 3}]}',
            b'{"features": [null]}',
        ],
    )
    def test_malformed_file_is_skipped(
        self,
        tmp_path: Path,
        test_settings: Settings,
        write_export: ExportWriter,
        content: bytes,
    ) -> None:
        input_dir = tmp_path / "in"
        input_dir.mkdir()
        (input_dir / "bad.geojson").write_bytes(content)
        write_export(input_dir / "good.geojson")
        output_dir = tmp_path / "out"

        batch = run_batch(
            input_dir=input_dir,
            output_dir=output_dir,
            pixel_width=1.0,
            settings=test_settings,
        )

        assert [r.image_id for r in batch.results] == ["bad", "good"]
        assert batch.n_errors == 1
        assert batch.results[0].error_type == "AnnotationFileError"
        assert (output_dir / "good.zoned.geojson").exists()

    def test_dotted_names_do_not_overwrite_each_other(
        self,
        tmp_path: Path,
        test_settings: Settings,
        write_export: ExportWriter,
    ) -> None:
        input_dir = tmp_path / "in"
        input_dir.mkdir()
        write_export(input_dir / "S1.region1.geojson")
        write_export(input_dir / "S1.region2.geojson", with_tumor=False)
        output_dir = tmp_path / "out"

        batch = run_batch(
            input_dir=input_dir,
            output_dir=output_dir,
            pixel_width=1.0,
            settings=test_settings,
        )

        assert [r.image_id for r in batch.results] == ["S1.region1", "S1.region2"]
        assert batch.n_errors == 1
        assert (output_dir / "S1.region1.zoned.geojson").exists()
        assert (output_dir / "S1.region1.report.json").exists()
        assert not (output_dir / "S1.zoned.geojson").exists()

    def test_slide_matched_by_full_image_id(
        self,
        tmp_path: Path,
        test_settings: Settings,
        write_export: ExportWriter,
    ) -> None:
        input_dir = tmp_path / "in"
        slide_dir = tmp_path / "slides"
        input_dir.mkdir()
        slide_dir.mkdir()
        write_export(input_dir / "S1.region1.geojson")
        (slide_dir / "S1.region1.svs").write_bytes(b"x")
        (slide_dir / "S1.svs").write_bytes(b"x")

        with patch(
            "tlszones.host.slide.read_slide_calibration",
            return_value=PixelCalibration(1.0, 1.0),
        ) as mock_read:
            batch = run_batch(
                input_dir=input_dir,
                output_dir=tmp_path / "out",
                slide_dir=slide_dir,
                settings=test_settings,
            )

        assert batch.n_errors == 0
        mock_read.assert_called_once_with(slide_dir / "S1.region1.svs")

    def test_unreadable_slide_is_recorded(
        self,
        tmp_path: Path,
        test_settings: Settings,
        write_export: ExportWriter,
    ) -> None:
        input_dir = tmp_path / "in"
        slide_dir = tmp_path / "slides"
        input_dir.mkdir()
        slide_dir.mkdir()
        write_export(input_dir / "a.geojson")
        (slide_dir / "a.svs").write_bytes(b"x")

        with patch(
            "tlszones.host.slide.read_slide_calibration",
            side_effect=SlideOpenError("Failed to open slide"),
        ):
            batch = run_batch(
                input_dir=input_dir,
                output_dir=tmp_path / "out",
                slide_dir=slide_dir,
                settings=test_settings,
            )

        assert batch.n_errors == 1
        assert batch.results[0].error_type == "SlideOpenError"

    def test_calibration_from_slide(
        self,
        tmp_path: Path,
        test_settings: Settings,
        write_export: ExportWriter,
    ) -> None:
        input_dir = tmp_path / "in"
        slide_dir = tmp_path / "slides"
        input_dir.mkdir()
        slide_dir.mkdir()
        write_export(input_dir / "a.geojson")
        (slide_dir / "a.svs").write_bytes(b"x")

        with patch(
            "tlszones.host.slide.read_slide_calibration",
            return_value=PixelCalibration(0.5, 0.5),
        ):
            batch = run_batch(
                input_dir=input_dir,
                output_dir=tmp_path / "out",
                slide_dir=slide_dir,
                margin_distance=100.0,
                settings=test_settings,
            )

        report = batch.results[0].report
        assert report is not None
        assert report.margin_pixels == pytest.approx(200.0)

    def test_batch_to_dict(self) -> None:
        batch = BatchResult(
            run_id="abc",
            results=[
                ImageResult(image_id="a", success=True),
                ImageResult(image_id="b", success=False, error_message="boom"),
            ],
        )
        payload = batch.to_dict()
        assert payload["n_images"] == 2
        assert payload["n_errors"] == 1
        assert payload["run_id"] == "abc"
