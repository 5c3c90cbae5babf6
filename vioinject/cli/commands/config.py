"""Configuration CLI commands."""

import logging
from typing import Annotated

import typer

from vioinject.cli.app import AppContext
from vioinject.cli.decorators import handle_errors
from vioinject.cli.helpers import create_table, format_value, get_console


logger = logging.getLogger(__name__)

config_app = typer.Typer(
    name="config",
    help="Configuration commands",
    no_args_is_help=True,
)


@config_app.command(name="show")
@handle_errors
def show_config(
    ctx: typer.Context,
    show_sources: Annotated[
        bool, typer.Option("--sources", help="Show configuration sources")
    ] = False,
) -> None:
    """Show the effective configuration."""
    app_ctx: AppContext = ctx.obj
    user_config = app_ctx.user_config

    columns = ["Setting", "Value"] + (["Source"] if show_sources else [])
    table = create_table("vioinject configuration", *columns)

    for key in user_config.display_keys():
        value = user_config.get(key)
        if key == "driver_catalog":
            value_str = "\n".join(entry.path for entry in value) or "(empty list)"
        else:
            value_str = format_value(value)

        if show_sources:
            table.add_row(key, value_str, user_config.get_source(key))
        else:
            table.add_row(key, value_str)

    console = get_console()
    console.print(table)
    if user_config.config_path:
        console.print(f"Loaded from {user_config.config_path}", style="muted", markup=False)


def register_commands(app: typer.Typer) -> None:
    """Register config commands with the main app.

    Args:
        app: The main Typer app
    """
    app.add_typer(config_app, name="config")
