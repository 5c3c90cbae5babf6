"""Exception and warning hierarchy for vioinject.

Fatal conditions are exceptions deriving from ``VioinjectError``. Conditions
that must be reported but never abort a run are ``VioinjectWarning``
instances: they are logged and collected on results, not raised.
"""

from typing import Any


class VioinjectError(Exception):
    """Base exception for all vioinject errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ConfigError(VioinjectError):
    """Invalid or unreadable configuration."""


class ValidationError(VioinjectError):
    """A mandatory source artifact could not be resolved."""


class PipelineError(VioinjectError):
    """Fatal error raised while a pipeline phase is running.

    The failing phase is attached by the pipeline once the error reaches
    the phase boundary, so the message always names it.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, context)
        self.phase = phase

    def __str__(self) -> str:
        if self.phase:
            return f"{self.phase} failed: {self.message}"
        return self.message


class WorkspaceError(PipelineError):
    """The working directory could not be claimed or cleaned."""


class MountError(PipelineError):
    """Container or nested-image mount, save or unmount failure."""


class CopyError(PipelineError):
    """Bulk extraction failed or copied nothing."""


class VerificationError(PipelineError):
    """A required boot asset is missing from the extracted tree."""


class BuildError(PipelineError):
    """The image-mastering tool failed.

    ``output`` holds the tool's captured output, reproduced verbatim in the
    message.
    """

    def __init__(
        self,
        message: str,
        output: list[str] | None = None,
        return_code: int | None = None,
        context: dict[str, Any] | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, context, phase)
        self.output = output or []
        self.return_code = return_code

    def __str__(self) -> str:
        text = super().__str__()
        if self.output:
            text += "\n" + "\n".join(self.output)
        return text


class ToolNotFoundError(BuildError):
    """The image-mastering tool executable could not be located."""


class VioinjectWarning(UserWarning):
    """Base class for non-fatal conditions collected during a run."""


class InjectionWarning(VioinjectWarning):
    """A driver catalog entry was skipped or could not be injected."""

    def __init__(self, message: str, driver: str, image: str | None = None) -> None:
        super().__init__(message)
        self.driver = driver
        self.image = image


class PayloadVersionMismatch(VioinjectWarning):
    """The payload executable does not match the selected driver image."""

    def __init__(
        self, message: str, payload_version: str, driver_version: str
    ) -> None:
        super().__init__(message)
        self.payload_version = payload_version
        self.driver_version = driver_version


class ReleaseWarning(VioinjectWarning):
    """At least one held resource failed to release during cleanup."""


__all__ = [
    "VioinjectError",
    "ConfigError",
    "ValidationError",
    "PipelineError",
    "WorkspaceError",
    "MountError",
    "CopyError",
    "VerificationError",
    "BuildError",
    "ToolNotFoundError",
    "VioinjectWarning",
    "InjectionWarning",
    "PayloadVersionMismatch",
    "ReleaseWarning",
]
