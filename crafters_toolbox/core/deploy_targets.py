"""Deploy destinations inside the server tree"""

import logging
from pathlib import Path
from typing import List

from ..api.exceptions import UnsupportedKindError
from ..constants import (
    DEFAULT_LEVEL_NAME,
    SERVER_PROPERTIES_FILE,
    WORLDS_CONTAINER_DIR,
)
from ..models.component import ArtifactType, Component, ComponentKind
from ..models.config import DeployConfig, WorldContainer
from ..utils.file_utils import (
    archive_top_level,
    copy_path,
    ensure_directory,
    extract_archive,
    is_same_path,
    merge_directory,
    remove_path,
)

logger = logging.getLogger(__name__)


def read_level_name(server_root: Path) -> str:
    """
    Read ``level-name`` from server.properties

    Args:
        server_root: Server tree root

    Returns:
        Level name, ``world`` when the file or key is absent
    """
    properties = server_root / SERVER_PROPERTIES_FILE
    try:
        text = properties.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return DEFAULT_LEVEL_NAME
    except OSError as e:
        logger.warning("Failed to read %s: %s", properties, e)
        return DEFAULT_LEVEL_NAME

    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith(("#", "!")):
            continue
        key, sep, value = line.partition("=")
        if sep and key.strip() == "level-name":
            value = value.strip()
            return value or DEFAULT_LEVEL_NAME
    return DEFAULT_LEVEL_NAME


class DeployTargets:
    """Maps component kinds to destination directories for one server flavor"""

    def __init__(self, server_root: Path, server_type: str, deploy_config: DeployConfig):
        """
        Args:
            server_root: Server tree root
            server_type: Flavor name used in messages
            deploy_config: Deployment rules of the flavor
        """
        self.server_root = Path(server_root)
        self.server_type = server_type
        self.deploy_config = deploy_config

    def world_path(self) -> Path:
        """Directory of the active world"""
        level_name = read_level_name(self.server_root)
        if self.deploy_config.world_container == WorldContainer.WORLDS:
            return self.server_root / WORLDS_CONTAINER_DIR / level_name
        return self.server_root / level_name

    def check_supported(self, kind: ComponentKind) -> None:
        """
        Raises:
            UnsupportedKindError: If the flavor cannot load this kind
        """
        if kind == ComponentKind.PLUGIN and not self.deploy_config.supports_plugins:
            raise UnsupportedKindError(kind.value, self.server_type)
        if kind == ComponentKind.MOD and not self.deploy_config.supports_mods:
            raise UnsupportedKindError(kind.value, self.server_type)

    def destination_dir(self, kind: ComponentKind) -> Path:
        """
        Directory a component of ``kind`` is deployed into

        For worlds this is the world folder itself, which receives a merge
        of the artifact; for every other kind it is the parent directory of
        the deployed file or folder.
        """
        self.check_supported(kind)

        if kind == ComponentKind.WORLD:
            return self.world_path()
        if kind == ComponentKind.DATAPACK:
            return self.world_path() / "datapacks"
        if kind == ComponentKind.RESOURCEPACK:
            return self.server_root / "resourcepacks"
        if kind == ComponentKind.PLUGIN:
            return self.server_root / "plugins"
        if kind == ComponentKind.MOD:
            return self.server_root / "mods"
        raise AssertionError(f"unhandled component kind: {kind}")

    def _extracts(self, component: Component, artifact: Path) -> bool:
        """Whether a zip artifact is unpacked rather than copied"""
        if not _is_zip(artifact):
            return False
        return component.artifact.unzip or component.artifact_type == ArtifactType.DIR

    def _target(self, component: Component, artifact: Path, dest_dir: Path) -> Path:
        # Directories are named after the component so that unrelated build
        # or download folders never collide in the destination
        if artifact.is_dir() or self._extracts(component, artifact):
            return dest_dir / component.name
        return dest_dir / artifact.name

    def plan(self, component: Component, artifact: Path) -> List[Path]:
        """
        Paths a deployment of ``artifact`` will write

        Args:
            component: Component being deployed
            artifact: Located artifact

        Returns:
            Top-level paths inside the server tree
        """
        dest_dir = self.destination_dir(component.kind)

        if component.kind == ComponentKind.WORLD:
            if artifact.is_dir():
                return [dest_dir / entry.name for entry in sorted(artifact.iterdir())]
            if _is_zip(artifact):
                return [dest_dir / name for name in archive_top_level(artifact, strip_root=True)]
            return [dest_dir / artifact.name]

        return [self._target(component, artifact, dest_dir)]

    def deploy(self, component: Component, artifact: Path) -> List[Path]:
        """
        Copy, merge or extract an artifact into the server tree

        Blocking; callers run it in an executor.

        Args:
            component: Component being deployed
            artifact: Located artifact

        Returns:
            Top-level paths written

        Raises:
            OSError: On copy or write failures
            ValueError: If an archive is malformed or unsafe
        """
        dest_dir = ensure_directory(self.destination_dir(component.kind))

        if component.kind == ComponentKind.WORLD:
            if artifact.is_dir():
                if is_same_path(artifact, dest_dir):
                    return [dest_dir / entry.name for entry in sorted(artifact.iterdir())]
                return merge_directory(artifact, dest_dir)
            if _is_zip(artifact):
                return extract_archive(artifact, dest_dir, strip_root=True)
            target = dest_dir / artifact.name
            if not is_same_path(artifact, target):
                copy_path(artifact, target)
            return [target]

        target = self._target(component, artifact, dest_dir)
        if self._extracts(component, artifact):
            remove_path(target)
            extract_archive(artifact, target, strip_root=True)
            return [target]

        if is_same_path(artifact, target):
            logger.debug("%s already in place at %s", component.label, target)
            return [target]
        copy_path(artifact, target)
        return [target]


def _is_zip(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() == ".zip"
