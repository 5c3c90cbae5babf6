"""Mutable state shared by the phases of one pipeline run."""

from dataclasses import dataclass, field
from pathlib import Path

from vioinject.models.artifacts import ArtifactSelection, OutputArtifact
from vioinject.pipeline.lifecycle import MountedResource, ResourceLifecycleManager
from vioinject.pipeline.phases import PipelinePhase


EXTRACTION_DIRECTORY = "extract"
NESTED_MOUNT_DIRECTORY = "mount"


@dataclass
class PipelineContext:
    work_directory: Path
    selection: ArtifactSelection
    lifecycle: ResourceLifecycleManager
    current_phase: PipelinePhase | None = None
    retain_work_directory: bool = False
    primary_root: Path | None = None
    driver_root: Path | None = None
    install_mount: MountedResource | None = None
    output: OutputArtifact | None = None
    warnings: list[Warning] = field(default_factory=list)

    @property
    def extraction_directory(self) -> Path:
        return self.work_directory / EXTRACTION_DIRECTORY

    @property
    def nested_mount_directory(self) -> Path:
        return self.work_directory / NESTED_MOUNT_DIRECTORY
