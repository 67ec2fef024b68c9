# crafters_toolbox/services/__init__.py
"""Business logic services for crafters-toolbox"""

from .config_service import ConfigService, parse_components
from .deploy_service import DeploymentOrchestrator

__all__ = [
    "ConfigService",
    "DeploymentOrchestrator",
    "parse_components",
]
