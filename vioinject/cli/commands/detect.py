"""Detect command: classify candidate images and show the selection."""

import logging
from pathlib import Path
from typing import Annotated

import typer

from vioinject.adapters import create_imaging_service
from vioinject.artifacts.detector import ArtifactDetector
from vioinject.cli.app import AppContext
from vioinject.cli.decorators import handle_errors
from vioinject.cli.helpers import create_table, get_console, print_warning_message


logger = logging.getLogger(__name__)


@handle_errors
def detect(
    ctx: typer.Context,
    candidate_directory: Annotated[
        Path | None,
        typer.Argument(
            help="Directory to scan (defaults to the configured candidate directory)",
            file_okay=False,
        ),
    ] = None,
) -> None:
    """Classify every image in a directory and show what a build would use."""
    app_ctx: AppContext = ctx.obj
    config = app_ctx.user_config.config
    directory = candidate_directory or config.candidate_directory

    detector = ArtifactDetector(
        create_imaging_service(config.imaging),
        driver_catalog=app_ctx.user_config.get_driver_catalog(),
        layout=config.image_layout,
    )

    classified = detector.classify_candidates(directory)
    table = create_table(f"Candidates in {directory}", "File", "Detected type")
    for path, detected in classified.items():
        table.add_row(path.name, detected.value)
    console = get_console()
    console.print(table)

    selection = detector.select_artifacts(directory)
    chosen = create_table("Selection", "Role", "File", "Version")
    for role, artifact in (
        ("primary image", selection.primary),
        ("driver image", selection.driver),
        ("guest tools", selection.payload),
    ):
        if artifact is None:
            chosen.add_row(role, "(none)", "")
        else:
            chosen.add_row(role, artifact.name, artifact.version_string)
    console.print(chosen)

    for warning in selection.warnings:
        print_warning_message(str(warning))


def register_commands(app: typer.Typer) -> None:
    """Register the detect command with the main app."""
    app.command(name="detect")(detect)
