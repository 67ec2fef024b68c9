"""Project configuration loading"""

import dataclasses
import logging
import os
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from ..api.exceptions import ConfigError
from ..constants import ENV_RUNNER_IMAGE
from ..core.path_resolver import PathResolver
from ..models.component import Component, ComponentKind, GitSource, LocalSource, SourceConfig, staging_path
from ..models.config import ServerProperty, ToolboxConfig
from ..utils import git_utils
from ..utils.file_utils import atomic_write

logger = logging.getLogger(__name__)


def _load_yaml(path: Path) -> Any:
    """Read a YAML file after expanding environment variables"""
    with open(path, 'r', encoding='utf-8') as f:
        content = f.read()

    content = os.path.expandvars(content)

    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")


async def detect_source(path: Path, project_root: Path) -> SourceConfig:
    """
    Work out where a staged component came from

    A git checkout with an ``origin`` remote becomes a git source on its
    current branch; anything else becomes a local source pointing at the
    directory itself.

    Args:
        path: Staged component directory
        project_root: Root the local source path is made relative to
    """
    if git_utils.is_git_checkout(path):
        url = await git_utils.get_remote_url(path)
        if url:
            return GitSource(url=url, branch=await git_utils.get_current_branch(path))
        logger.debug("%s has no origin remote, registering it as local", path)

    try:
        relative = path.resolve().relative_to(Path(project_root).resolve())
    except ValueError:
        relative = path.resolve()
    return LocalSource(path=relative.as_posix())


def parse_components(data: Optional[Dict[str, Any]]) -> List[Component]:
    """
    Parse the ``components`` block of the properties file

    Each kind other than ``world`` accepts either a mapping of name to
    descriptor or a list of descriptors carrying a ``name`` key.

    Args:
        data: Parsed ``components`` mapping

    Returns:
        Components in file order
    """
    if not data:
        return []
    if not isinstance(data, dict):
        raise ConfigError("'components' must be a mapping")

    components: List[Component] = []
    for key, value in data.items():
        kind = ComponentKind.from_string(str(key))

        if kind == ComponentKind.WORLD:
            components.append(Component.from_dict(kind, None, value or {}))
            continue

        if isinstance(value, dict):
            entries = [(name, descriptor) for name, descriptor in value.items()]
        elif isinstance(value, list):
            entries = []
            for descriptor in value:
                if not isinstance(descriptor, dict) or not descriptor.get("name"):
                    raise ConfigError(f"Every entry under '{key}' requires a name")
                entries.append((descriptor["name"], descriptor))
        elif value is None:
            entries = []
        else:
            raise ConfigError(f"'{key}' must be a mapping or a list")

        seen = set()
        for name, descriptor in entries:
            name = str(name)
            if name in seen:
                raise ConfigError(f"Duplicate {kind.value} name: {name}")
            seen.add(name)
            components.append(Component.from_dict(kind, name, descriptor or {}))

    return components


class ConfigService:
    """Loads crtb.config.yml and crtb.properties.yml of a project"""

    def __init__(self, project_root: Path):
        """Initialize config service

        Args:
            project_root: Project root directory
        """
        self.project_root = Path(project_root)
        self._base_resolver = PathResolver(self.project_root)
        self._config: Optional[ToolboxConfig] = None
        self._server: Optional[ServerProperty] = None
        self._components: Optional[List[Component]] = None

    @property
    def config(self) -> ToolboxConfig:
        """Get toolbox configuration (lazy load)"""
        if self._config is None:
            self.load_config()
        return self._config

    @property
    def server(self) -> ServerProperty:
        """Get server properties (lazy load)"""
        if self._server is None:
            self.load_properties()
        return self._server

    @property
    def components(self) -> List[Component]:
        """Get declared components (lazy load)"""
        if self._components is None:
            self.load_properties()
        return self._components

    def load_config(self) -> ToolboxConfig:
        """Load crtb.config.yml

        A missing file yields defaults. ``CRTB_RUNNER_IMAGE`` overrides the
        configured runner image.

        Returns:
            Loaded configuration
        """
        path = self._base_resolver.config_file
        data = _load_yaml(path) if path.exists() else None
        if data is None:
            logger.debug("No %s, using defaults", path.name)

        config = ToolboxConfig.from_dict(data)

        runner_image = os.environ.get(ENV_RUNNER_IMAGE)
        if runner_image:
            config.runner_image = runner_image

        self._config = config
        return config

    def load_properties(self) -> List[Component]:
        """Load crtb.properties.yml

        Returns:
            Declared components
        """
        path = self._base_resolver.properties_file
        if not path.exists():
            raise ConfigError(f"Properties file not found: {path}")

        data = _load_yaml(path) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path.name} root must be a mapping")

        self._server = ServerProperty.from_dict(data.get("server"))
        self._components = parse_components(data.get("components"))
        return self._components

    def get_path_resolver(self) -> PathResolver:
        """Path resolver honoring the configured directories"""
        config = self.config
        return PathResolver(
            self.project_root,
            components_dir=config.components_dir,
            cache_root=config.cache_root,
            server_root=config.server_root,
        )

    def select_components(self, names: Sequence[str] = ()) -> List[Component]:
        """
        Pick components by name or component id

        Args:
            names: Names (``lobby``), component ids (``pl:lobby``) or ``world``;
                empty selects everything

        Returns:
            Selected components in declaration order

        Raises:
            ConfigError: If a name matches nothing
        """
        components = self.components
        if not names:
            return list(components)

        wanted = set(names)
        selected = [
            c for c in components
            if c.label in wanted or c.component_id in wanted
        ]

        matched = set()
        for component in selected:
            matched.update({component.label, component.component_id})
        unknown = sorted(wanted - matched)
        if unknown:
            raise ConfigError(f"Unknown component(s): {', '.join(unknown)}")

        return selected

    def find_unregistered(self) -> List[Component]:
        """
        Staged components the properties file does not declare

        Every directory under ``<components>/<kind>s/`` (and the world
        staging directory) without a matching declaration counts.

        Returns:
            Sourceless components in kind then name order
        """
        components_dir = self.get_path_resolver().get_components_dir()
        declared = {c.component_id for c in self.components}

        found = []
        for kind in ComponentKind:
            if kind == ComponentKind.WORLD:
                candidates = [Component(kind, kind.value)]
            else:
                kind_dir = components_dir / kind.plural
                if not kind_dir.is_dir():
                    continue
                candidates = [
                    Component(kind, entry.name) for entry in sorted(kind_dir.iterdir())
                    if entry.is_dir() and not entry.name.startswith(".")
                ]
            for component in candidates:
                if component.component_id in declared:
                    continue
                if staging_path(components_dir, component).is_dir():
                    found.append(component)
        return found

    async def detect_sources(self, components: Sequence[Component]) -> List[Component]:
        """Attach a detected source to each staged component"""
        components_dir = self.get_path_resolver().get_components_dir()
        detected = []
        for component in components:
            source = await detect_source(staging_path(components_dir, component), self.project_root)
            detected.append(dataclasses.replace(component, source=source))
        return detected

    def register_components(self, components: Sequence[Component]) -> None:
        """
        Declare components in crtb.properties.yml

        The file is read without environment expansion so ``$VARS`` survive
        the rewrite; the previous version is kept as ``crtb.properties.yml.bak``.
        Each kind keeps the mapping or list form it already uses.

        Args:
            components: Components to add

        Raises:
            ConfigError: If the file is missing or malformed
        """
        path = self._base_resolver.properties_file
        if not path.exists():
            raise ConfigError(f"Properties file not found: {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"{path.name} root must be a mapping")

        section = data.get("components")
        if section is None:
            section = data["components"] = {}
        if not isinstance(section, dict):
            raise ConfigError("'components' must be a mapping")

        for component in components:
            kind = component.kind
            key = next(
                (k for k in section if ComponentKind.from_string(str(k)) == kind),
                kind.value if kind == ComponentKind.WORLD else kind.plural
            )
            descriptor = component.to_dict()
            if kind == ComponentKind.WORLD:
                section[key] = descriptor
                continue

            entries = section.get(key)
            if isinstance(entries, list):
                entries.append({"name": component.name, **descriptor})
            elif isinstance(entries, dict):
                entries[component.name] = descriptor
            else:
                section[key] = {component.name: descriptor}

        shutil.copy2(path, path.with_name(f"{path.name}.bak"))
        atomic_write(path, yaml.dump(data, default_flow_style=False, sort_keys=False))
        logger.info("Registered %s in %s", ", ".join(c.component_id for c in components), path.name)

        # Pick the new declarations up on next access
        self._components = None
        self._server = None
