"""Pipeline phases and per-phase outcome values."""

from dataclasses import dataclass
from enum import Enum

from vioinject.core.errors import PipelineError
from vioinject.models.results import PhaseRecord


class PipelinePhase(str, Enum):
    MOUNT_SOURCES = "MountSources"
    EXTRACT_PRIMARY_CONTENTS = "ExtractPrimaryContents"
    VERIFY_BOOT_ASSETS = "VerifyBootAssets"
    INJECT_INSTALLATION_IMAGE = "InjectInstallationImage"
    EMBED_POST_INSTALL_PAYLOAD = "EmbedPostInstallPayload"
    COMMIT_INSTALLATION_IMAGE = "CommitInstallationImage"
    INJECT_BOOT_ENVIRONMENT_IMAGE = "InjectBootEnvironmentImage"
    BUILD_OUTPUT_ARTIFACT = "BuildOutputArtifact"
    FINALIZE = "Finalize"


# Strict run order. FINALIZE is last and always runs.
PHASE_SEQUENCE: tuple[PipelinePhase, ...] = tuple(PipelinePhase)


class PhaseStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class PhaseOutcome:
    phase: PipelinePhase
    status: PhaseStatus
    detail: str | None = None
    error: PipelineError | None = None
    elapsed_time: float = 0.0

    @classmethod
    def completed(cls, phase: PipelinePhase, detail: str | None = None) -> "PhaseOutcome":
        return cls(phase=phase, status=PhaseStatus.COMPLETED, detail=detail)

    @classmethod
    def skipped(cls, phase: PipelinePhase, detail: str) -> "PhaseOutcome":
        return cls(phase=phase, status=PhaseStatus.SKIPPED, detail=detail)

    @classmethod
    def failed(cls, phase: PipelinePhase, error: PipelineError) -> "PhaseOutcome":
        if error.phase is None:
            error.phase = phase.value
        return cls(
            phase=phase, status=PhaseStatus.FAILED, detail=error.message, error=error
        )

    @property
    def is_failure(self) -> bool:
        return self.status is PhaseStatus.FAILED

    def to_record(self) -> PhaseRecord:
        return PhaseRecord(
            phase=self.phase.value,
            status=self.status.value,
            elapsed_time=round(self.elapsed_time, 3),
            detail=self.detail,
        )
