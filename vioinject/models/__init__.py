"""Models package for vioinject."""

from vioinject.models.artifacts import (
    ArtifactOverrides,
    ArtifactRole,
    ArtifactSelection,
    DetectedType,
    DriverDescriptor,
    OutputArtifact,
    SourceArtifact,
)
from vioinject.models.base import VioinjectBaseModel
from vioinject.models.results import BaseResult, PhaseRecord, PipelineResult


__all__ = [
    "ArtifactOverrides",
    "ArtifactRole",
    "ArtifactSelection",
    "BaseResult",
    "DetectedType",
    "DriverDescriptor",
    "OutputArtifact",
    "PhaseRecord",
    "PipelineResult",
    "SourceArtifact",
    "VioinjectBaseModel",
]
