"""Error handling decorators for CLI commands."""

import logging
import sys
import traceback
from collections.abc import Callable
from functools import wraps
from typing import Any

import typer

from vioinject.core.errors import (
    ConfigError,
    PipelineError,
    ToolNotFoundError,
    ValidationError,
)
from vioinject.core.structlog_logger import get_struct_logger


__all__ = ["handle_errors", "print_stack_trace_if_verbose"]

logger = get_struct_logger(__name__)


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator to handle common exceptions in CLI commands.

    Domain errors are logged and turned into exit status 1. The stack trace
    is only printed in verbose mode.

    Args:
        func: The function to decorate

    Returns:
        Decorated function with error handling
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ValidationError as e:
            logger.error("artifact_selection_error", error=str(e))
            print_stack_trace_if_verbose()
            raise typer.Exit(1) from e
        except ConfigError as e:
            logger.error("configuration_error", error=str(e))
            print_stack_trace_if_verbose()
            raise typer.Exit(1) from e
        except ToolNotFoundError as e:
            logger.error("tool_not_found", error=str(e))
            print_stack_trace_if_verbose()
            raise typer.Exit(1) from e
        except PipelineError as e:
            logger.error("pipeline_error", phase=e.phase, error=str(e))
            print_stack_trace_if_verbose()
            raise typer.Exit(1) from e
        except FileNotFoundError as e:
            logger.error("file_not_found", error=str(e))
            print_stack_trace_if_verbose()
            raise typer.Exit(1) from e
        except (typer.Exit, typer.Abort, KeyboardInterrupt):
            raise
        except Exception as e:
            exc_info = logger.isEnabledFor(logging.DEBUG)
            logger.error("unexpected_error", error=str(e), exc_info=exc_info)
            print_stack_trace_if_verbose()
            raise typer.Exit(1) from e

    return wrapper


def print_stack_trace_if_verbose() -> None:
    """Print stack trace if verbose/debug mode is enabled."""
    if any(arg in sys.argv for arg in ["-v", "-vv", "--verbose", "--debug"]):
        print("\nStack trace:", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
