"""Crafters Toolbox - Assemble a runnable game server from declared components.

Worlds, datapacks, plugins, resource packs and mods are resolved from local
directories, HTTP downloads or git repositories, built when needed, and
deployed into the server tree with stale output cleaned up on redeploy.
"""

from .__version__ import __version__, __version_info__, __author__, __license__

# Data models
from .models import (
    Component,
    ComponentKind,
    ArtifactType,
    LocalSource,
    HttpSource,
    GitSource,
    NoBuild,
    GradleBuild,
    CustomBuild,
    ArtifactConfig,
    DeployConfig,
    ServerFlavor,
    PipelineOutcome,
    BatchResult,
)

# Pipeline
from .core import (
    PathResolver,
    DeploymentManifest,
    SourceResolver,
    BuildRunner,
    ArtifactLocator,
    StatusReporter,
)
from .services import ConfigService, DeploymentOrchestrator
from .utils.async_utils import CancellationToken

# Exceptions
from .api.exceptions import (
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
    # Version information
    "__version__",
    "__version_info__",
    "__author__",
    "__license__",

    # Data models
    "Component",
    "ComponentKind",
    "ArtifactType",
    "LocalSource",
    "HttpSource",
    "GitSource",
    "NoBuild",
    "GradleBuild",
    "CustomBuild",
    "ArtifactConfig",
    "DeployConfig",
    "ServerFlavor",
    "PipelineOutcome",
    "BatchResult",

    # Pipeline
    "PathResolver",
    "DeploymentManifest",
    "SourceResolver",
    "BuildRunner",
    "ArtifactLocator",
    "StatusReporter",
    "ConfigService",
    "DeploymentOrchestrator",
    "CancellationToken",

    # Exceptions
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
