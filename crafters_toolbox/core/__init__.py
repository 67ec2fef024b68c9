"""Core functionality for crafters-toolbox"""

from .path_resolver import PathResolver
from .manifest_engine import DeploymentManifest
from .source_resolver import SourceResolver
from .build_runner import BuildRunner
from .artifact_locator import ArtifactLocator
from .deploy_targets import DeployTargets, read_level_name
from .status import (
    StatusReporter,
    PlainStatusReporter,
    LiveStatusReporter,
    create_status_reporter,
)

__all__ = [
    "PathResolver",
    "DeploymentManifest",
    "SourceResolver",
    "BuildRunner",
    "ArtifactLocator",
    "DeployTargets",
    "read_level_name",
    "StatusReporter",
    "PlainStatusReporter",
    "LiveStatusReporter",
    "create_status_reporter",
]
