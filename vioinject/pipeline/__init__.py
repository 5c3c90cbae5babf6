"""Driver injection pipeline and resource lifecycle management."""

from vioinject.pipeline.context import PipelineContext
from vioinject.pipeline.lifecycle import (
    MountedResource,
    ReleaseReport,
    ResourceKind,
    ResourceLifecycleManager,
)
from vioinject.pipeline.phases import (
    PHASE_SEQUENCE,
    PhaseOutcome,
    PhaseStatus,
    PipelinePhase,
)
from vioinject.pipeline.service import (
    DriverInjectionPipeline,
    create_pipeline,
    render_setup_complete,
)


__all__ = [
    "PHASE_SEQUENCE",
    "DriverInjectionPipeline",
    "MountedResource",
    "PhaseOutcome",
    "PhaseStatus",
    "PipelineContext",
    "PipelinePhase",
    "ReleaseReport",
    "ResourceKind",
    "ResourceLifecycleManager",
    "create_pipeline",
    "render_setup_complete",
]
