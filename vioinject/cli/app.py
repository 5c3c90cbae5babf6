"""Main CLI application for vioinject."""

import logging
import sys

# Import version from package metadata directly to avoid circular imports
from importlib.metadata import distribution
from typing import Annotated

import typer

from vioinject.cli.decorators.error_handling import print_stack_trace_if_verbose
from vioinject.config.user_config import UserConfig, create_user_config
from vioinject.core.errors import ConfigError
from vioinject.core.logging import setup_logging


__all__ = ["app", "main", "__version__", "setup_logging"]


__version__ = distribution("vioinject").version

logger = logging.getLogger(__name__)


class AppContext:
    """Application context for storing shared state."""

    def __init__(
        self,
        user_config: UserConfig,
        verbose: int = 0,
        log_file: str | None = None,
    ):
        """Initialize AppContext.

        Args:
            user_config: Loaded user configuration
            verbose: Verbosity level
            log_file: Path to log file
        """
        self.user_config = user_config
        self.verbose = verbose
        self.log_file = log_file


app = typer.Typer(
    name="vioinject",
    help=f"""vioinject v{__version__}

Builds a Windows installer image with VirtIO drivers preloaded:

  installer ISO + virtio-win ISO (+ guest tools) -> <Product>_<Release>_<Lang>_<Arch>_VIO<ver>.iso

Common workflows:
  • Show what would be used:  vioinject detect D:\\isos
  • Build from a directory:   vioinject build --candidates D:\\isos
  • Build from explicit files: vioinject build -i Win11.iso -d virtio-win-0.1.285.iso""",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity (-v=INFO, -vv=DEBUG)",
        ),
    ] = 0,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Enable debug logging (equivalent to -vv)"),
    ] = False,
    log_file: Annotated[
        str | None, typer.Option("--log-file", help="Also log to this file as JSON")
    ] = None,
    config_file: Annotated[
        str | None,
        typer.Option("-c", "--config", help="Path to configuration file"),
    ] = None,
    version: Annotated[
        bool, typer.Option("--version", help="Show version and exit")
    ] = False,
) -> None:
    """vioinject: VirtIO driver injection for Windows installer images."""
    if version:
        print(f"vioinject v{__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        print(ctx.get_help())
        raise typer.Exit()

    try:
        user_config = create_user_config(cli_config_path=config_file)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        raise typer.Exit(1) from e

    ctx.obj = AppContext(user_config=user_config, verbose=verbose, log_file=log_file)

    # CLI flags win over the configured level
    if debug or verbose >= 2:
        log_level = logging.DEBUG
    elif verbose == 1:
        log_level = logging.INFO
    else:
        log_level = user_config.get_log_level_int()

    setup_logging(level=log_level, log_file=log_file)


def main() -> int:
    """Main CLI entry point."""
    exit_code = 0

    try:
        from vioinject.cli.commands import register_all_commands

        register_all_commands(app)

        app()

    except SystemExit as e:
        exit_code = e.code if isinstance(e.code, int) else 0

    except Exception as e:
        logger.exception("Unexpected error: %s", e)
        print_stack_trace_if_verbose()
        exit_code = 1

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
