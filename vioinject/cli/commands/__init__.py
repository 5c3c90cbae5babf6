"""CLI command modules."""

import typer

from vioinject.cli.commands.build import register_commands as register_build_commands
from vioinject.cli.commands.config import register_commands as register_config_commands
from vioinject.cli.commands.detect import (
    register_commands as register_detect_commands,
)


def register_all_commands(app: typer.Typer) -> None:
    """Register all CLI commands with the main app.

    Args:
        app: The main Typer app
    """
    register_build_commands(app)
    register_detect_commands(app)
    register_config_commands(app)
