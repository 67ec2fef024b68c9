"""Selection of the artifact to deploy from build output"""

import logging
import re
from pathlib import Path
from typing import List, Optional, Pattern

from ..api.exceptions import ArtifactAmbiguousError, ArtifactMissingError
from ..models.component import Component
from ..models.result import StageResult

logger = logging.getLogger(__name__)


def _compile_pattern(component: Component) -> Optional[Pattern]:
    pattern = component.artifact.pattern
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        logger.warning("%s: ignoring invalid artifact pattern %r: %s", component.label, pattern, e)
        return None


def _newest_first(candidates: List[Path]) -> List[Path]:
    # Newest modification time wins, ties broken by name
    return sorted(candidates, key=lambda p: (-p.stat().st_mtime, p.name))


class ArtifactLocator:
    """Resolves the single file or directory to deploy"""

    def locate(self, component: Component, output_path: Path) -> StageResult[Path]:
        """
        Locate the artifact of a component

        Args:
            component: Component whose artifact rule is applied
            output_path: Build output directory

        Returns:
            StageResult holding the artifact path, ArtifactMissingError or
            ArtifactAmbiguousError
        """
        base = Path(output_path)
        # A single downloaded file is the artifact whatever the sub-path says
        if component.artifact.path and not base.is_file():
            base = base / component.artifact.path

        if not base.exists():
            return StageResult.failure(ArtifactMissingError(
                f"{component.label}: artifact path {base} does not exist"
            ))

        artifact_type = component.artifact_type
        if base.is_file() or not artifact_type.is_single_file:
            return StageResult.success(base)

        extensions = artifact_type.extensions
        candidates = [
            p for p in base.iterdir()
            if p.is_file() and (not extensions or p.suffix.lower() in extensions)
        ]
        if not candidates:
            return StageResult.failure(ArtifactMissingError(
                f"{component.label}: no {artifact_type.value} artifact found in {base}"
            ))

        pattern = _compile_pattern(component)
        if pattern is not None:
            matching = [p for p in candidates if pattern.search(p.name)]
            if not matching:
                names = ", ".join(sorted(p.name for p in candidates))
                return StageResult.failure(ArtifactAmbiguousError(
                    f"{component.label}: no artifact in {base} matches "
                    f"{component.artifact.pattern!r} (candidates: {names})"
                ))
            candidates = matching

        selected = _newest_first(candidates)[0]
        if len(candidates) > 1:
            logger.debug("%s: selected %s out of %d candidates", component.label, selected.name, len(candidates))
        return StageResult.success(selected)
