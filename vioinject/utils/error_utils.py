"""Helpers for building domain errors from low-level failures."""

from pathlib import Path
from typing import Any

from vioinject.core.errors import MountError


def create_mount_error(
    target: str | Path,
    operation: str,
    error: Exception | str,
    context: dict[str, Any] | None = None,
) -> MountError:
    """Create a MountError for a failed imaging operation.

    Args:
        target: Image file, mount directory or container the operation ran on
        operation: Name of the imaging operation
        error: Underlying exception or error text
        context: Additional context for diagnostics

    Returns:
        MountError with a uniform message
    """
    message = f"Imaging operation '{operation}' failed on '{target}': {error}"
    full_context = {"operation": operation, "target": str(target)}
    if context:
        full_context.update(context)
    return MountError(message, context=full_context)
