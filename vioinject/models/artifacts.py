"""Typed records describing pipeline inputs and outputs."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class ArtifactRole(str, Enum):
    """Role an input artifact plays in a pipeline run."""

    PRIMARY_IMAGE = "primary_image"
    DRIVER_IMAGE = "driver_image"
    PAYLOAD_EXECUTABLE = "payload_executable"


class DetectedType(str, Enum):
    """Classification of a candidate file by its mounted contents."""

    DRIVER_IMAGE = "driver_image"
    INSTALLER_IMAGE = "installer_image"
    RAW_INSTALL = "raw_install"
    PAYLOAD_EXECUTABLE = "payload_executable"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SourceArtifact:
    """A resolved input artifact. Immutable once resolved."""

    path: Path
    role: ArtifactRole
    detected_type: DetectedType
    version: tuple[int, ...] = (0, 0, 0)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def version_string(self) -> str:
        return ".".join(str(part) for part in self.version)


@dataclass(frozen=True)
class DriverDescriptor:
    """One entry of the driver catalog.

    ``relative_path_template`` is relative to the driver image root and may
    use the ``{os}`` and ``{arch}`` placeholders.
    """

    relative_path_template: str
    display_name: str

    def resolve(self, os_tag: str, arch: str) -> Path:
        return Path(self.relative_path_template.format(os=os_tag, arch=arch))

    @property
    def root_directory(self) -> str:
        """First path component, used as the driver image signature."""
        return Path(self.relative_path_template).parts[0]


@dataclass(frozen=True)
class OutputArtifact:
    """The bootable image produced by a successful run."""

    name: str
    path: Path


@dataclass
class ArtifactSelection:
    """Artifacts chosen for one run, plus the non-fatal findings."""

    primary: SourceArtifact
    driver: SourceArtifact
    payload: SourceArtifact | None = None
    warnings: list[Warning] = field(default_factory=list)


@dataclass(frozen=True)
class ArtifactOverrides:
    """Explicitly supplied artifact paths; these bypass classification."""

    primary: Path | None = None
    driver: Path | None = None
    payload: Path | None = None
