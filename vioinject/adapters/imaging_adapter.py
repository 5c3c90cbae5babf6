"""Imaging service backed by the Windows storage and DISM PowerShell modules."""

import logging
import shutil
import subprocess
from pathlib import Path

from vioinject.config.models import ImagingServiceConfig
from vioinject.core.errors import MountError
from vioinject.protocols.imaging_protocol import ImagingServiceProtocol
from vioinject.utils.error_utils import create_mount_error


logger = logging.getLogger(__name__)


def ps_quote(value: str | Path) -> str:
    """Quote a value as a single-quoted PowerShell string literal."""
    return "'" + str(value).replace("'", "''") + "'"


class PowerShellImagingService:
    """Mount and service images through PowerShell cmdlets.

    Container images go through ``Mount-DiskImage``; nested images go through
    the DISM cmdlets (``Mount-WindowsImage`` and friends), which require an
    elevated session.
    """

    def __init__(self, config: ImagingServiceConfig | None = None) -> None:
        self.config = config or ImagingServiceConfig()
        executable = shutil.which(self.config.powershell)
        if not executable:
            raise MountError(
                f"`{self.config.powershell}` not found. The imaging service needs "
                "Windows PowerShell with the Storage and DISM modules."
            )
        self.executable = executable
        logger.debug("PowerShell imaging service using %s", self.executable)

    def _run(self, script: str, operation: str, target: str | Path) -> str:
        """Run a PowerShell script and return its stdout.

        Raises:
            MountError: If PowerShell cannot run, times out or exits non-zero
        """
        cmd = [
            self.executable,
            "-NoProfile",
            "-NonInteractive",
            "-ExecutionPolicy",
            "Bypass",
            "-Command",
            f"$ErrorActionPreference = 'Stop'; {script}",
        ]
        logger.debug("Running %s on %s", operation, target)

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.config.command_timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise create_mount_error(
                target,
                operation,
                f"timed out after {self.config.command_timeout} seconds",
            ) from e
        except OSError as e:
            raise create_mount_error(target, operation, e) from e

        if result.returncode != 0:
            detail = result.stderr.strip() or f"exit code {result.returncode}"
            raise create_mount_error(
                target, operation, detail, {"return_code": result.returncode}
            )

        return result.stdout

    def mount_container(self, image_path: Path) -> Path:
        try:
            output = self._run(
                f"$image = Mount-DiskImage -ImagePath {ps_quote(image_path)} "
                "-StorageType ISO -Access ReadOnly -PassThru; "
                "($image | Get-Volume).DriveLetter",
                "mount_container",
                image_path,
            )
        except MountError:
            # The attach may have succeeded before the volume lookup failed
            self._detach_after_failed_mount(image_path)
            raise

        drive_letter = output.strip()
        if len(drive_letter) != 1 or not drive_letter.isalpha():
            self._detach_after_failed_mount(image_path)
            raise create_mount_error(
                image_path, "mount_container", f"no drive letter assigned ({output!r})"
            )
        mount_root = Path(f"{drive_letter}:\\")
        logger.info("Mounted %s at %s", image_path, mount_root)
        return mount_root

    def _detach_after_failed_mount(self, image_path: Path) -> None:
        try:
            self.dismount_container(image_path)
        except MountError as e:
            logger.warning("Failed to detach %s after mount error: %s", image_path, e)

    def dismount_container(self, image_path: Path) -> None:
        self._run(
            f"Dismount-DiskImage -ImagePath {ps_quote(image_path)} | Out-Null",
            "dismount_container",
            image_path,
        )
        logger.info("Dismounted %s", image_path)

    def list_image_indexes(self, image_file: Path) -> list[int]:
        output = self._run(
            f"Get-WindowsImage -ImagePath {ps_quote(image_file)} "
            "| ForEach-Object { $_.ImageIndex }",
            "list_image_indexes",
            image_file,
        )
        indexes = []
        for line in output.splitlines():
            line = line.strip()
            if line.isdigit():
                indexes.append(int(line))
        return sorted(indexes)

    def mount_nested_image(self, image_file: Path, index: int, mount_dir: Path) -> None:
        self._run(
            f"Mount-WindowsImage -ImagePath {ps_quote(image_file)} -Index {index} "
            f"-Path {ps_quote(mount_dir)} | Out-Null",
            "mount_nested_image",
            image_file,
        )
        logger.info("Mounted %s index %d at %s", image_file, index, mount_dir)

    def add_driver(self, mount_dir: Path, driver_dir: Path) -> None:
        self._run(
            f"Add-WindowsDriver -Path {ps_quote(mount_dir)} "
            f"-Driver {ps_quote(driver_dir)} -Recurse -ForceUnsigned | Out-Null",
            "add_driver",
            driver_dir,
        )

    def save_nested_image(self, mount_dir: Path) -> None:
        self._run(
            f"Save-WindowsImage -Path {ps_quote(mount_dir)} | Out-Null",
            "save_nested_image",
            mount_dir,
        )
        logger.info("Saved image mounted at %s", mount_dir)

    def dismount_nested_image(self, mount_dir: Path) -> None:
        self._run(
            f"Dismount-WindowsImage -Path {ps_quote(mount_dir)} -Discard | Out-Null",
            "dismount_nested_image",
            mount_dir,
        )
        logger.info("Unmounted image at %s", mount_dir)

    def get_file_version(self, path: Path) -> str | None:
        try:
            output = self._run(
                f"(Get-Item -LiteralPath {ps_quote(path)}).VersionInfo.FileVersion",
                "get_file_version",
                path,
            )
        except MountError as e:
            logger.debug("Could not read file version of %s: %s", path, e)
            return None
        version = output.strip()
        return version or None


def create_imaging_service(
    config: ImagingServiceConfig | None = None,
) -> ImagingServiceProtocol:
    """Create the imaging service for this host."""
    return PowerShellImagingService(config)
