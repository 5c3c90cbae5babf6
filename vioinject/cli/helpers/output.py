"""Helper functions for CLI output formatting with Rich integration."""

from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from vioinject.models.results import PipelineResult


VIOINJECT_THEME = Theme(
    {
        "success": "bold green",
        "error": "bold red",
        "warning": "bold yellow",
        "info": "bold blue",
        "primary": "cyan",
        "muted": "dim",
    }
)


def get_console() -> Console:
    return Console(theme=VIOINJECT_THEME)


def print_success_message(message: str) -> None:
    get_console().print(f"✓ {message}", style="success", markup=False)


def print_error_message(message: str) -> None:
    get_console().print(f"✗ {message}", style="error", markup=False)


def print_warning_message(message: str) -> None:
    get_console().print(f"! {message}", style="warning", markup=False)


def print_info_message(message: str) -> None:
    get_console().print(f"i {message}", style="info", markup=False)


def print_list_item(item: str, indent: int = 1) -> None:
    get_console().print(f"{'  ' * indent}• {item}", style="primary", markup=False)


def create_table(title: str, *columns: str) -> Table:
    """Table with the first column highlighted, as used by all commands."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    for index, column in enumerate(columns):
        table.add_column(column, style="cyan" if index == 0 else None)
    return table


def print_pipeline_result(result: PipelineResult) -> None:
    """Print a pipeline run: phase table, warnings, then the outcome.

    Args:
        result: Result of the run
    """
    console = get_console()

    table = create_table("Pipeline phases", "Phase", "Status", "Time", "Detail")
    styles = {"completed": "green", "skipped": "yellow", "failed": "red"}
    for record in result.phases:
        table.add_row(
            record.phase,
            f"[{styles.get(record.status, 'white')}]{record.status}[/]",
            f"{record.elapsed_time:.1f}s",
            Text(record.detail or ""),
        )
    console.print(table)

    for warning in result.warnings:
        print_warning_message(warning)

    if result.success:
        print_success_message(f"Created {result.output_path}")
    else:
        print_error_message("Driver injection failed")
        for error in result.errors:
            print_list_item(error)

    if result.work_directory_retained:
        print_info_message(f"Work directory kept for inspection: {result.work_directory}")


def format_value(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(format_value(item) for item in value) or "(empty)"
    if isinstance(value, dict):
        return ", ".join(f"{k}={format_value(v)}" for k, v in value.items()) or "(empty)"
    if value is None:
        return "(not set)"
    return str(value)
