"""Build command: run the driver injection pipeline."""

import logging
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer

from vioinject.adapters import create_imaging_service, create_mastering_tool
from vioinject.artifacts.detector import ArtifactDetector
from vioinject.cli.app import AppContext
from vioinject.cli.decorators import handle_errors
from vioinject.cli.helpers import print_pipeline_result
from vioinject.models.artifacts import ArtifactOverrides
from vioinject.pipeline.service import create_pipeline


logger = logging.getLogger(__name__)


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


@handle_errors
def build(
    ctx: typer.Context,
    iso: Annotated[
        Path | None,
        typer.Option("--iso", "-i", help="Windows installer image", dir_okay=False),
    ] = None,
    drivers: Annotated[
        Path | None,
        typer.Option("--drivers", "-d", help="VirtIO driver image", dir_okay=False),
    ] = None,
    payload: Annotated[
        Path | None,
        typer.Option(
            "--payload", "-p", help="Guest tools installer to embed", dir_okay=False
        ),
    ] = None,
    candidates: Annotated[
        Path | None,
        typer.Option(
            "--candidates",
            help="Directory searched for inputs not given explicitly",
            file_okay=False,
        ),
    ] = None,
    output_dir: Annotated[
        Path | None,
        typer.Option("--output-dir", "-o", help="Output directory", file_okay=False),
    ] = None,
    work_dir: Annotated[
        Path | None,
        typer.Option(
            "--work-dir",
            help="Working directory; wiped at the start of the run",
            file_okay=False,
        ),
    ] = None,
    output_format: Annotated[
        OutputFormat,
        typer.Option("--output-format", help="Result format"),
    ] = OutputFormat.TEXT,
) -> None:
    """Inject VirtIO drivers into a Windows installer image."""
    app_ctx: AppContext = ctx.obj
    user_config = app_ctx.user_config
    config = user_config.config

    # Resolve the mastering tool before anything gets mounted
    mastering_tool = create_mastering_tool(config.mastering_tool)
    imaging = create_imaging_service(config.imaging)
    driver_catalog = user_config.get_driver_catalog()

    detector = ArtifactDetector(
        imaging, driver_catalog=driver_catalog, layout=config.image_layout
    )
    selection = detector.select_artifacts(
        candidates or config.candidate_directory,
        ArtifactOverrides(primary=iso, driver=drivers, payload=payload),
    )

    pipeline = create_pipeline(
        imaging=imaging,
        mastering_tool=mastering_tool,
        work_directory=work_dir or config.work_directory,
        output_directory=output_dir or config.output_directory,
        layout=config.image_layout,
        driver_catalog=driver_catalog,
        language_abbreviations=config.language_abbreviations,
    )
    result = pipeline.run(selection)

    if output_format is OutputFormat.JSON:
        typer.echo(result.model_dump_json(indent=2))
    else:
        print_pipeline_result(result)

    if not result.success:
        raise typer.Exit(1)


def register_commands(app: typer.Typer) -> None:
    """Register the build command with the main app."""
    app.command(name="build")(build)
