"""CLI helper functions."""

from vioinject.cli.helpers.output import (
    create_table,
    format_value,
    get_console,
    print_error_message,
    print_info_message,
    print_list_item,
    print_pipeline_result,
    print_success_message,
    print_warning_message,
)


__all__ = [
    "create_table",
    "format_value",
    "get_console",
    "print_error_message",
    "print_info_message",
    "print_list_item",
    "print_pipeline_result",
    "print_success_message",
    "print_warning_message",
]
