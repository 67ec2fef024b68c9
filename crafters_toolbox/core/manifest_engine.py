"""Deployment manifest: which paths each component last deployed"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import aiofiles

from ..api.exceptions import ManifestIOError
from ..constants import DEPLOY_MANIFEST_FILE
from ..models.manifest import ManifestDocument

logger = logging.getLogger(__name__)


class DeploymentManifest:
    """Persisted map from component id to deployed paths

    Mutations stay in memory until :meth:`save_if_dirty` writes them.
    The manifest is not safe for concurrent mutation on its own; callers
    running several pipelines serialize access with a lock.
    """

    def __init__(self,
                 server_root: Path,
                 manifest_path: Optional[Path] = None,
                 document: Optional[ManifestDocument] = None):
        """Initialize manifest

        Args:
            server_root: Server tree root that relative paths refer to
            manifest_path: File location (defaults to server_root/.crtb-deploy.json)
            document: Initial content
        """
        self.server_root = Path(server_root)
        self.manifest_path = manifest_path or self.server_root / DEPLOY_MANIFEST_FILE
        self._document = document or ManifestDocument()
        self._dirty = False

    @classmethod
    async def load(cls,
                   server_root: Union[str, Path],
                   manifest_path: Optional[Path] = None) -> 'DeploymentManifest':
        """Load the manifest of a server tree

        A missing file yields an empty manifest silently; an unreadable or
        malformed one yields an empty manifest with a warning.

        Args:
            server_root: Server tree root
            manifest_path: Override for the manifest location

        Returns:
            DeploymentManifest instance
        """
        server_root = Path(server_root)
        try:
            server_root = server_root.resolve()
        except OSError:
            pass
        path = manifest_path or server_root / DEPLOY_MANIFEST_FILE

        document = None
        try:
            async with aiofiles.open(path, 'r', encoding='utf-8') as f:
                content = await f.read()
        except FileNotFoundError:
            content = None
        except OSError as e:
            logger.warning("Failed to read deployment manifest %s: %s", path, e)
            content = None

        if content is not None:
            try:
                document = ManifestDocument.from_dict(json.loads(content))
            except ValueError as e:
                # json.JSONDecodeError is a ValueError too
                logger.warning("Ignoring invalid deployment manifest at %s, resetting: %s", path, e)

        return cls(server_root, path, document)

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def component_ids(self) -> List[str]:
        return sorted(self._document.entries)

    def get_paths(self, component_id: str) -> List[Path]:
        """Get the absolute paths recorded for a component

        Args:
            component_id: Component id

        Returns:
            Absolute paths (empty if nothing recorded)
        """
        stored = self._document.entries.get(component_id, [])
        return [self._to_absolute(entry) for entry in stored]

    def set_paths(self, component_id: str, paths: Iterable[Union[str, Path]]) -> None:
        """Record the paths deployed for a component

        An empty list removes the entry.

        Args:
            component_id: Component id
            paths: Deployed paths (absolute, or relative to the server root)
        """
        stored = []
        for path in paths:
            entry = self._to_stored(path)
            if entry not in stored:
                stored.append(entry)

        if not stored:
            if component_id in self._document.entries:
                del self._document.entries[component_id]
                self._dirty = True
            return

        if self._document.entries.get(component_id) != stored:
            self._document.entries[component_id] = stored
            self._dirty = True

    def to_dict(self) -> Dict:
        return self._document.to_dict()

    async def save_if_dirty(self) -> bool:
        """Write the manifest when it changed since the last save

        Returns:
            True if the file was written

        Raises:
            ManifestIOError: If the file could not be written
        """
        if not self._dirty:
            return False

        content = json.dumps(self._document.to_dict(), indent=2, ensure_ascii=False) + "\n"
        temp_path = self.manifest_path.with_name(f"{self.manifest_path.name}.tmp")
        try:
            self.manifest_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(temp_path, 'w', encoding='utf-8') as f:
                await f.write(content)
            os.replace(temp_path, self.manifest_path)
        except OSError as e:
            raise ManifestIOError(f"Failed to write deployment manifest {self.manifest_path}: {e}")

        self._dirty = False
        return True

    def _to_stored(self, path: Union[str, Path]) -> str:
        path = Path(path)
        absolute = path if path.is_absolute() else self.server_root / path
        absolute = Path(os.path.normpath(absolute))
        try:
            relative = absolute.relative_to(self.server_root)
        except ValueError:
            return str(absolute)
        if str(relative) == ".":
            return str(absolute)
        return relative.as_posix()

    def _to_absolute(self, entry: str) -> Path:
        path = Path(entry)
        if path.is_absolute():
            return path
        return self.server_root / path
