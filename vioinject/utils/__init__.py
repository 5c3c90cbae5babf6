"""Utility helpers for vioinject."""

from vioinject.utils.error_utils import create_mount_error
from vioinject.utils.stream_process import (
    LoggingOutputMiddleware,
    OutputMiddleware,
    run_command,
)


__all__ = [
    "LoggingOutputMiddleware",
    "OutputMiddleware",
    "create_mount_error",
    "run_command",
]
