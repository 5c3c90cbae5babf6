from .errors import (
    BuildError,
    ConfigError,
    CopyError,
    InjectionWarning,
    MountError,
    PayloadVersionMismatch,
    PipelineError,
    ReleaseWarning,
    ToolNotFoundError,
    ValidationError,
    VerificationError,
    VioinjectError,
    VioinjectWarning,
    WorkspaceError,
)
from .logging import get_logger, setup_logging


__all__ = [
    "setup_logging",
    "get_logger",
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
