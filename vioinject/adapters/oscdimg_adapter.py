"""Image-mastering tool adapter for oscdimg."""

import logging
import shutil
from pathlib import Path

from vioinject.config.models import MasteringToolConfig
from vioinject.core.errors import BuildError, ToolNotFoundError
from vioinject.protocols.mastering_protocol import MasteringResult, MasteringToolProtocol
from vioinject.utils.stream_process import LoggingOutputMiddleware, run_command


logger = logging.getLogger(__name__)

ADK_OSCDIMG_PATHS = [
    Path(
        r"C:\Program Files (x86)\Windows Kits\10\Assessment and Deployment Kit"
        r"\Deployment Tools\amd64\Oscdimg\oscdimg.exe"
    ),
    Path(
        r"C:\Program Files\Windows Kits\10\Assessment and Deployment Kit"
        r"\Deployment Tools\amd64\Oscdimg\oscdimg.exe"
    ),
]


def find_oscdimg(configured: Path | None = None) -> Path:
    """Locate oscdimg: configured path, then PATH, then the ADK install.

    Raises:
        ToolNotFoundError: If no candidate exists
    """
    if configured is not None:
        if configured.is_file():
            return configured
        raise ToolNotFoundError(f"Configured oscdimg not found: {configured}")

    on_path = shutil.which("oscdimg")
    if on_path:
        return Path(on_path)

    for candidate in ADK_OSCDIMG_PATHS:
        if candidate.is_file():
            return candidate

    raise ToolNotFoundError(
        "oscdimg.exe not found. Install the Windows ADK Deployment Tools or set "
        "mastering_tool.executable in the configuration."
    )


class OscdimgTool:
    """Build dual ISO9660/UDF bootable images with oscdimg."""

    def __init__(self, executable: Path, udf_version: str = "102") -> None:
        self.executable = executable
        self.udf_version = udf_version

    def build_arguments(
        self,
        source_dir: Path,
        destination: Path,
        volume_label: str,
        boot_data: str,
    ) -> list[str]:
        return [
            str(self.executable),
            "-m",  # ignore the image size limit
            "-o",  # store duplicate files once
            "-u2",  # ISO9660 + UDF
            f"-udfver{self.udf_version}",
            f"-l{volume_label}",
            f"-bootdata:{boot_data}",
            str(source_dir),
            str(destination),
        ]

    def build_image(
        self,
        source_dir: Path,
        destination: Path,
        volume_label: str,
        boot_data: str,
    ) -> MasteringResult:
        cmd = self.build_arguments(source_dir, destination, volume_label, boot_data)
        logger.info("Building %s from %s", destination, source_dir)

        try:
            return_code, stdout, stderr = run_command(
                cmd, middleware=LoggingOutputMiddleware("oscdimg", logger)
            )
        except OSError as e:
            raise BuildError(f"Failed to start {self.executable}: {e}") from e

        return MasteringResult(return_code=return_code, output=stdout + stderr)


def create_mastering_tool(
    config: MasteringToolConfig | None = None,
) -> MasteringToolProtocol:
    """Create the oscdimg adapter, resolving the executable up front."""
    config = config or MasteringToolConfig()
    executable = find_oscdimg(config.executable)
    logger.debug("Using oscdimg at %s", executable)
    return OscdimgTool(executable, udf_version=config.udf_version)
