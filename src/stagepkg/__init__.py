"""Public package entrypoint for the stagepkg packager framework."""

from .config import Config
from .errors import (
    DocumentGenerationError,
    ErrorCode,
    ExternalToolFailure,
    MissingRequiredConfiguration,
    PathResolutionError,
    StagepkgError,
    ValidationError,
)
from .observability import StructuredLogger
from .packagers import (
    PACKAGERS,
    PackageResult,
    Packager,
    PackagerPaths,
    get_packager,
    packagers_for_platform,
)
from .project import ProjectMetadata, load_project
from .shell import Command, CommandResult, DryRunExecutor, ShellExecutor

__all__ = [
    "Command",
    "CommandResult",
    "Config",
    "DocumentGenerationError",
    "DryRunExecutor",
    "ErrorCode",
    "ExternalToolFailure",
    "MissingRequiredConfiguration",
    "PACKAGERS",
    "PackageResult",
    "Packager",
    "PackagerPaths",
    "PathResolutionError",
    "ProjectMetadata",
    "ShellExecutor",
    "StagepkgError",
    "StructuredLogger",
    "ValidationError",
    "get_packager",
    "load_project",
    "packagers_for_platform",
]
