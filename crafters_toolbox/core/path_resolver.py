"""Path resolution module for crafters-toolbox"""

import os
from pathlib import Path
from typing import Optional, Union

from ..constants import (
    DEFAULT_CACHE_DIR,
    DEFAULT_COMPONENTS_DIR,
    DEFAULT_SERVER_DIR,
    ENV_CACHE_DIR,
    HTTP_CACHE_DIR,
    PROJECT_CONFIG_FILE,
    PROPERTIES_FILE,
)
from ..models.component import Component, staging_path


class PathResolver:
    """Resolves paths within a toolbox project"""

    def __init__(self,
                 project_root: Union[str, Path],
                 components_dir: Union[str, Path] = DEFAULT_COMPONENTS_DIR,
                 cache_root: Union[str, Path] = DEFAULT_CACHE_DIR,
                 server_root: Union[str, Path] = DEFAULT_SERVER_DIR):
        """Initialize path resolver

        Args:
            project_root: Root directory of the project
            components_dir: Staging directory, relative to project root
            cache_root: Cache directory, relative to project root
            server_root: Server tree, relative to project root
        """
        self.project_root = Path(project_root).resolve()
        self._components_dir = components_dir
        self._cache_root = cache_root
        self._server_root = server_root

    def resolve(self, path: Union[str, Path]) -> Path:
        """Resolve a path relative to project root

        Args:
            path: Path to resolve (can be relative or absolute)

        Returns:
            Resolved absolute path
        """
        path = Path(os.path.expanduser(os.path.expandvars(str(path))))

        if not path.is_absolute():
            path = self.project_root / path

        return path.resolve()

    @property
    def config_file(self) -> Path:
        return self.project_root / PROJECT_CONFIG_FILE

    @property
    def properties_file(self) -> Path:
        return self.project_root / PROPERTIES_FILE

    def get_components_dir(self) -> Path:
        """Get component staging directory"""
        return self.resolve(self._components_dir)

    def get_cache_dir(self) -> Path:
        """Get cache directory path

        Returns:
            Path to cache directory
        """
        # Check environment variable first
        cache_dir = os.environ.get(ENV_CACHE_DIR)
        if cache_dir:
            return Path(cache_dir).resolve()

        return self.resolve(self._cache_root)

    def get_server_root(self) -> Path:
        """Get server tree root"""
        return self.resolve(self._server_root)

    def get_staging_path(self, component: Component) -> Path:
        """Get the staging directory of a component"""
        return staging_path(self.get_components_dir(), component)

    def get_http_cache_dir(self, component: Component) -> Path:
        """Get HTTP cache directory of a component"""
        return self.get_cache_dir() / HTTP_CACHE_DIR / component.kind.plural / component.label

    def make_relative(self, path: Union[str, Path], root: Optional[Path] = None) -> Path:
        """Make a path relative to ``root`` (project root by default)

        Args:
            path: Path to make relative
            root: Base directory

        Returns:
            Relative path, or the absolute path when it is outside root
        """
        root = root or self.project_root
        path = Path(path).resolve()

        try:
            return path.relative_to(root)
        except ValueError:
            # Path is not under root
            return path
