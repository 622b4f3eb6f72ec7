"""tlszones CLI - tumor margin zoning and TLS classification.

Command-line interface for zoning GeoJSON annotation exports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer

from tlszones import __version__
from tlszones.utils.logging import configure_logging, get_logger

app = typer.Typer(
    name="tlszones",
    help="tlszones: tumor margin zoning and TLS classification",
    add_completion=False,
)


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version(
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show version information."""
    if json_output:
        typer.echo(json.dumps({"version": __version__}))
    else:
        typer.echo(f"tlszones {__version__}")


@app.command()
def run(  # noqa: PLR0913
    annotations: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="GeoJSON annotation export (Tumor, Tissue and TLS regions)",
        ),
    ],
    pixel_width: Annotated[
        float | None,
        typer.Option(
            "--pixel-width", min=0.0, help="Pixel width in microns (default: height)"
        ),
    ] = None,
    pixel_height: Annotated[
        float | None,
        typer.Option(
            "--pixel-height", min=0.0, help="Pixel height in microns (default: width)"
        ),
    ] = None,
    slide: Annotated[
        Path | None,
        typer.Option(
            "--slide", exists=True, dir_okay=False, help="Read pixel size from slide"
        ),
    ] = None,
    margin: Annotated[
        float | None,
        typer.Option("--margin", "-m", min=0.0, help="Margin distance in microns"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Zoned GeoJSON output path"),
    ] = None,
    report: Annotated[
        Path | None, typer.Option("--report", help="Save zoning report to JSON")
    ] = None,
    no_lock: Annotated[
        bool, typer.Option("--no-lock", help="Leave the new zone annotations editable")
    ] = False,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity (-v, -vv)"
        ),
    ] = 0,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Zone a single annotation file."""
    from tlszones.cli.runners import (  # noqa: PLC0415
        resolve_calibration,
        run_single_image,
    )

    _configure_logging(verbose)
    logger = get_logger(__name__)
    logger.info("Starting zoning", annotations=str(annotations))

    try:
        calibration = resolve_calibration(
            pixel_width=pixel_width,
            pixel_height=pixel_height,
            slide_path=slide,
        )
        result = run_single_image(
            annotations_path=annotations,
            calibration=calibration,
            output_path=output,
            report_path=report,
            margin_distance=margin,
            lock=False if no_lock else None,
        )
    except Exception as e:
        logger.exception("Zoning failed")
        if json_output:
            typer.echo(json.dumps({"error": str(e)}))
        else:
            typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    if json_output:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    elif result.success and result.report is not None:
        typer.echo(f"\nZoned: {result.output_path}")
        for zone_name, count in result.report.tls_counts.items():
            typer.echo(f"  {zone_name}: {count} TLS")
        if result.report.tls_unclassified:
            typer.echo(f"  Outside tissue: {result.report.tls_unclassified} TLS")
    else:
        typer.echo(f"Error: {result.error_message}", err=True)

    raise typer.Exit(0 if result.success else 1)


@app.command()
def batch(  # noqa: PLR0913
    input_dir: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=False,
            dir_okay=True,
            help="Directory of GeoJSON annotation exports",
        ),
    ],
    output_dir: Annotated[
        Path, typer.Option("--output-dir", "-o", help="Output directory for results")
    ] = Path("zoned"),
    pattern: Annotated[
        str, typer.Option("--pattern", help="Glob for annotation files")
    ] = "*.geojson",
    pixel_width: Annotated[
        float | None,
        typer.Option(
            "--pixel-width", min=0.0, help="Pixel width in microns (default: height)"
        ),
    ] = None,
    pixel_height: Annotated[
        float | None,
        typer.Option(
            "--pixel-height", min=0.0, help="Pixel height in microns (default: width)"
        ),
    ] = None,
    slide_dir: Annotated[
        Path | None,
        typer.Option(
            "--slide-dir",
            exists=True,
            file_okay=False,
            help="Directory of slides named like the annotation files",
        ),
    ] = None,
    margin: Annotated[
        float | None,
        typer.Option("--margin", "-m", min=0.0, help="Margin distance in microns"),
    ] = None,
    no_lock: Annotated[
        bool, typer.Option("--no-lock", help="Leave the new zone annotations editable")
    ] = False,
    verbose: Annotated[
        int, typer.Option("--verbose", "-v", count=True, help="Increase verbosity")
    ] = 0,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Zone every annotation file in a directory, skipping failures."""
    from tlszones.cli.runners import run_batch  # noqa: PLC0415

    _configure_logging(verbose)
    logger = get_logger(__name__)

    try:
        result = run_batch(
            input_dir=input_dir,
            output_dir=output_dir,
            pattern=pattern,
            pixel_width=pixel_width,
            pixel_height=pixel_height,
            slide_dir=slide_dir,
            margin_distance=margin,
            lock=False if no_lock else None,
        )
    except Exception as e:
        logger.exception("Batch failed")
        if json_output:
            typer.echo(json.dumps({"error": str(e)}))
        else:
            typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    summary_path = output_dir / f"{result.run_id}_summary.json"
    summary_path.write_text(json.dumps(result.to_dict(), indent=2))

    if json_output:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        typer.echo(f"\nImages: {result.n_images}")
        typer.echo(f"Errors: {result.n_errors}")
        for failed in (r for r in result.results if not r.success):
            typer.echo(f"  {failed.image_id}: {failed.error_message}")
        typer.echo(f"Summary: {summary_path}")

    raise typer.Exit(0 if result.n_errors == 0 else 1)


# =============================================================================
# Helpers
# =============================================================================


def _configure_logging(verbose: int) -> None:
    """Configure logging based on verbosity level."""
    if verbose >= 2:
        level = "DEBUG"
    elif verbose == 1:
        level = "INFO"
    else:
        level = "WARNING"
    configure_logging(level=level)


if __name__ == "__main__":  # pragma: no cover
    app()
