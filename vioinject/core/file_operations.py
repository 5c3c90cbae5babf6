"""Bulk tree copy used to stage the primary image contents."""

import logging
import os
import shutil
import stat
import time
from dataclasses import dataclass
from pathlib import Path


logger = logging.getLogger(__name__)


@dataclass
class CopyResult:
    """Result of a copy operation with performance metrics."""

    success: bool
    files_copied: int
    bytes_copied: int
    elapsed_time: float
    error: str | None = None

    @property
    def speed_mbps(self) -> float:
        """Calculate copy speed in MB/s."""
        if self.elapsed_time > 0 and self.success:
            return (self.bytes_copied / (1024 * 1024)) / self.elapsed_time
        return 0.0


def copy_tree(src: Path, dst: Path) -> CopyResult:
    """Copy the whole of ``src`` into ``dst``.

    ``dst`` may already exist; its contents are merged with the source tree.
    Failures are reported on the result rather than raised.
    """
    start_time = time.time()

    try:
        shutil.copytree(src, dst, dirs_exist_ok=True)
        files_copied, bytes_copied = _count_files(dst)
        elapsed_time = time.time() - start_time

        logger.debug(
            "Copy completed: %s -> %s (%d files, %.1f MB in %.2f seconds)",
            src,
            dst,
            files_copied,
            bytes_copied / (1024 * 1024),
            elapsed_time,
        )

        return CopyResult(
            success=True,
            files_copied=files_copied,
            bytes_copied=bytes_copied,
            elapsed_time=elapsed_time,
        )

    except (OSError, shutil.Error) as e:
        elapsed_time = time.time() - start_time
        exc_info = logger.isEnabledFor(logging.DEBUG)
        logger.error("Copy failed: %s", e, exc_info=exc_info)
        return CopyResult(
            success=False,
            files_copied=0,
            bytes_copied=0,
            elapsed_time=elapsed_time,
            error=str(e),
        )


def clear_read_only(root: Path) -> int:
    """Make every entry below ``root`` (and ``root`` itself) writable.

    Files copied off optical media keep their read-only attribute, which
    blocks in-place updates later on.

    Returns:
        Number of entries whose mode was changed
    """
    changed = 0
    for entry in [root, *root.rglob("*")]:
        mode = entry.stat().st_mode
        if not mode & stat.S_IWRITE:
            os.chmod(entry, mode | stat.S_IWRITE)
            changed += 1
    if changed:
        logger.debug("Cleared read-only attribute on %d entries below %s", changed, root)
    return changed


def _count_files(directory: Path) -> tuple[int, int]:
    """Count files and their total size below ``directory``."""
    files = 0
    total = 0
    for file_path in directory.rglob("*"):
        if file_path.is_file():
            files += 1
            total += file_path.stat().st_size
    return files, total


def remove_tree(root: Path) -> None:
    """Delete ``root`` and everything below it, read-only entries included."""
    if not root.exists():
        return
    clear_read_only(root)
    shutil.rmtree(root)
    logger.debug("Removed %s", root)
