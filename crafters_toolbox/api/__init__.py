# crafters_toolbox/api/__init__.py
"""API layer for crafters-toolbox"""

from .exceptions import (
    ToolboxError,
    ConfigError,
    PipelineError,
    SourceUnavailableError,
    BuildFailedError,
    ArtifactMissingError,
    ArtifactAmbiguousError,
    DeployFailedError,
    UnsupportedKindError,
    ManifestIOError,
    PipelineCancelledError,
)

__all__ = [
    "ToolboxError",
    "ConfigError",
    "PipelineError",
    "SourceUnavailableError",
    "BuildFailedError",
    "ArtifactMissingError",
    "ArtifactAmbiguousError",
    "DeployFailedError",
    "UnsupportedKindError",
    "ManifestIOError",
    "PipelineCancelledError",
]
