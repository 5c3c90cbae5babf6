"""CLI decorators."""

from vioinject.cli.decorators.error_handling import (
    handle_errors,
    print_stack_trace_if_verbose,
)


__all__ = ["handle_errors", "print_stack_trace_if_verbose"]
