"""Deployment manifest document model"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..constants import DEPLOY_MANIFEST_VERSION


@dataclass
class ManifestDocument:
    """On-disk form of the deployment manifest

    ``entries`` maps a component id to the paths it last deployed. Paths
    are stored relative to the server root when they live under it.
    """
    version: int = DEPLOY_MANIFEST_VERSION
    entries: Dict[str, List[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "version": self.version,
            "entries": {key: list(paths) for key, paths in self.entries.items()}
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'ManifestDocument':
        """Create from dictionary

        Raises:
            ValueError: If the document has an unsupported shape or version
        """
        if not isinstance(data, dict):
            raise ValueError("manifest root is not an object")
        if data.get("version") != DEPLOY_MANIFEST_VERSION:
            raise ValueError(f"unsupported manifest version: {data.get('version')!r}")

        entries = data.get("entries")
        if not isinstance(entries, dict):
            raise ValueError("manifest entries is not an object")

        parsed = {}
        for key, paths in entries.items():
            if not isinstance(paths, list) or not all(isinstance(p, str) for p in paths):
                raise ValueError(f"invalid path list for {key}")
            parsed[str(key)] = list(paths)

        return cls(version=DEPLOY_MANIFEST_VERSION, entries=parsed)
