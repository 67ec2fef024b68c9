"""Configuration data models"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..api.exceptions import ConfigError
from ..constants import (
    DEFAULT_CACHE_DIR,
    DEFAULT_COMPONENTS_DIR,
    DEFAULT_RUNNER_IMAGE,
    DEFAULT_SERVER_DIR,
)


class WorldContainer(Enum):
    """Where a server flavor keeps its world folders"""
    ROOT = "root"
    WORLDS = "worlds"


@dataclass(frozen=True)
class DeployConfig:
    """Deployment rules of one server flavor"""

    world_container: WorldContainer = WorldContainer.ROOT
    supports_plugins: bool = False
    supports_mods: bool = False


class ServerFlavor(Enum):
    """Known server runtimes"""
    VANILLA = "vanilla"
    PAPER = "paper"
    SPIGOT = "spigot"
    BUKKIT = "bukkit"
    FORGE = "forge"
    FABRIC = "fabric"
    NEOFORGE = "neoforge"

    @classmethod
    def from_string(cls, value: str) -> 'ServerFlavor':
        try:
            return cls(value.lower())
        except ValueError:
            raise ConfigError(f"Unknown server type: {value}")

    @property
    def deploy_config(self) -> DeployConfig:
        return DEPLOY_CONFIGS[self]


_PLUGIN_SERVER = DeployConfig(world_container=WorldContainer.WORLDS, supports_plugins=True)
_MOD_SERVER = DeployConfig(world_container=WorldContainer.ROOT, supports_mods=True)

DEPLOY_CONFIGS: Dict[ServerFlavor, DeployConfig] = {
    ServerFlavor.VANILLA: DeployConfig(),
    ServerFlavor.PAPER: _PLUGIN_SERVER,
    ServerFlavor.SPIGOT: _PLUGIN_SERVER,
    ServerFlavor.BUKKIT: _PLUGIN_SERVER,
    ServerFlavor.FORGE: _MOD_SERVER,
    ServerFlavor.FABRIC: _MOD_SERVER,
    ServerFlavor.NEOFORGE: _MOD_SERVER,
}


@dataclass
class ServerProperty:
    """The ``server`` block of the properties file"""

    type: ServerFlavor = ServerFlavor.VANILLA
    version: Optional[str] = None
    build: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ServerProperty':
        data = data or {}
        version = data.get("version")
        build = data.get("build")
        return cls(
            type=ServerFlavor.from_string(data.get("type", ServerFlavor.VANILLA.value)),
            version=str(version) if version is not None else None,
            build=str(build) if build is not None else None
        )


@dataclass
class ToolboxConfig:
    """Project-level toolbox settings (crtb.config.yml)"""

    runner_image: str = DEFAULT_RUNNER_IMAGE
    components_dir: str = DEFAULT_COMPONENTS_DIR
    cache_root: str = DEFAULT_CACHE_DIR
    server_root: str = DEFAULT_SERVER_DIR
    stream_build_logs: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ToolboxConfig':
        """Create from the parsed YAML document"""
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a mapping")

        runner = data.get("runner") or {}
        paths = data.get("paths") or {}
        build = data.get("build") or {}

        return cls(
            runner_image=runner.get("java_base_image") or DEFAULT_RUNNER_IMAGE,
            components_dir=paths.get("components_dir") or DEFAULT_COMPONENTS_DIR,
            cache_root=paths.get("cache_root") or DEFAULT_CACHE_DIR,
            server_root=paths.get("server_root") or DEFAULT_SERVER_DIR,
            stream_build_logs=bool(build.get("stream_logs", False))
        )
