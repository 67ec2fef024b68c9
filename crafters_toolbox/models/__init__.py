# crafters_toolbox/models/__init__.py
"""Data models for crafters-toolbox"""

from .component import (
    ComponentKind,
    ArtifactType,
    Component,
    LocalSource,
    HttpSource,
    GitSource,
    SourceConfig,
    NoBuild,
    GradleBuild,
    CustomBuild,
    BuildConfig,
    ArtifactConfig,
    parse_component_id,
)
from .config import ServerFlavor, DeployConfig, WorldContainer, ServerProperty, ToolboxConfig
from .manifest import ManifestDocument
from .result import PipelinePhase, StageResult, ResolvedSource, PipelineOutcome, BatchResult

__all__ = [
    # Component models
    "ComponentKind",
    "ArtifactType",
    "Component",
    "LocalSource",
    "HttpSource",
    "GitSource",
    "SourceConfig",
    "NoBuild",
    "GradleBuild",
    "CustomBuild",
    "BuildConfig",
    "ArtifactConfig",
    "parse_component_id",

    # Config models
    "ServerFlavor",
    "DeployConfig",
    "WorldContainer",
    "ServerProperty",
    "ToolboxConfig",

    # Manifest models
    "ManifestDocument",

    # Result models
    "PipelinePhase",
    "StageResult",
    "ResolvedSource",
    "PipelineOutcome",
    "BatchResult",
]
