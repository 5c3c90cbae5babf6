"""Result models for pipeline runs."""

from datetime import datetime
from pathlib import Path

from pydantic import Field, PrivateAttr, field_validator, model_validator

from vioinject.core.errors import PipelineError
from vioinject.core.structlog_logger import get_struct_logger
from vioinject.models.base import VioinjectBaseModel


logger = get_struct_logger(__name__)


class BaseResult(VioinjectBaseModel):
    """Base class for all operation results."""

    success: bool
    timestamp: datetime = Field(default_factory=datetime.now)
    messages: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_success_consistency(self) -> "BaseResult":
        """Ensure success flag is consistent with errors."""
        if self.errors and self.success:
            logger.warning("result_success_mismatch", has_errors=len(self.errors) > 0)
            self.success = False
        return self

    @field_validator("messages", "errors")
    @classmethod
    def validate_message_lists(cls, v: list[str]) -> list[str]:
        """Validate that message lists contain only strings."""
        for item in v:
            if not isinstance(item, str):
                raise ValueError("All messages and errors must be strings")
        return v

    def add_error(self, error: str) -> None:
        """Add an error message."""
        self.errors.append(error)
        self.success = False


class PhaseRecord(VioinjectBaseModel):
    """Serializable summary of one phase outcome."""

    phase: str
    status: str
    elapsed_time: float = 0.0
    detail: str | None = None


class PipelineResult(BaseResult):
    """Outcome of one driver injection run."""

    phases: list[PhaseRecord] = Field(default_factory=list)
    failed_phase: str | None = None
    warnings: list[str] = Field(default_factory=list)
    output_name: str | None = None
    output_path: Path | None = None
    work_directory: Path | None = None
    work_directory_retained: bool = False
    resources_released: int = 0
    release_failures: int = 0

    _error: PipelineError | None = PrivateAttr(default=None)

    @property
    def error(self) -> PipelineError | None:
        return self._error

    def record_failure(self, error: PipelineError) -> None:
        """Store the fatal error that ended the run."""
        self._error = error
        self.failed_phase = error.phase
        self.add_error(str(error))

    def phase_status(self, phase: str) -> str | None:
        for record in self.phases:
            if record.phase == phase:
                return record.status
        return None

    def raise_for_failure(self) -> None:
        """Re-raise the fatal error of a failed run."""
        if self._error is not None:
            raise self._error


__all__ = ["BaseResult", "PhaseRecord", "PipelineResult"]
