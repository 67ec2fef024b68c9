"""Operation result models"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Generic, List, Optional, TypeVar

from ..api.exceptions import PipelineError

T = TypeVar('T')


class PipelinePhase(Enum):
    """Lifecycle states of one component pipeline"""
    PENDING = "pending"
    RESOLVING = "resolving"
    BUILDING = "building"
    LOCATING_ARTIFACT = "locating artifact"
    EVICTING_PREVIOUS = "evicting previous"
    DEPLOYING = "deploying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelinePhase.SUCCEEDED, PipelinePhase.FAILED)


@dataclass
class StageResult(Generic[T]):
    """Value or error produced by one pipeline stage"""

    value: Optional[T] = None
    error: Optional[PipelineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> 'StageResult[T]':
        return cls(value=value)

    @classmethod
    def failure(cls, error: PipelineError) -> 'StageResult[T]':
        return cls(error=error)


@dataclass
class ResolvedSource:
    """Local path holding a component's raw content

    HTTP sources resolve to the downloaded file itself; every other source
    resolves to a directory.
    """

    path: Path
    cached: bool = False


@dataclass
class PipelineOutcome:
    """Result of one component's pipeline within a batch"""

    name: str
    success: bool
    message: Optional[str] = None
    cached: bool = False
    component_id: Optional[str] = None
    error_code: Optional[str] = None
    detail: Optional[str] = None
    deployed_paths: List[Path] = field(default_factory=list)
    duration: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data = {
            "name": self.name,
            "success": self.success,
            "cached": self.cached,
        }
        if self.message:
            data["message"] = self.message
        if self.component_id:
            data["component_id"] = self.component_id
        if self.error_code:
            data["error_code"] = self.error_code
        if self.detail:
            data["detail"] = self.detail
        if self.deployed_paths:
            data["deployed_paths"] = [str(p) for p in self.deployed_paths]
        return data


@dataclass
class BatchResult:
    """Aggregated outcomes of one deployment batch"""

    outcomes: List[PipelineOutcome] = field(default_factory=list)
    pull: bool = False
    duration: float = 0.0

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

    @property
    def cached(self) -> int:
        return sum(1 for o in self.outcomes if o.success and o.cached)

    @property
    def failures(self) -> List[PipelineOutcome]:
        return [o for o in self.outcomes if not o.success]

    @property
    def is_success(self) -> bool:
        return self.failed == 0

    def get(self, name: str) -> Optional[PipelineOutcome]:
        for outcome in self.outcomes:
            if outcome.name == name:
                return outcome
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pull": self.pull,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "cached": self.cached,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "duration": self.duration
        }
