"""Deployment orchestration: resolve, build, locate and deploy components"""

import asyncio
import logging
import time
import zipfile
from pathlib import Path
from typing import List, Optional, Sequence

from ..api.exceptions import (
    ArtifactAmbiguousError,
    DeployFailedError,
    ManifestIOError,
    PipelineCancelledError,
    PipelineError,
    UnsupportedKindError,
)
from ..constants import (
    DEFAULT_RUNNER_IMAGE,
    MSG_ARTIFACT_AMBIGUOUS,
    MSG_ARTIFACT_MISSING,
    MSG_BUILD_FAILED,
    MSG_CANCELLED,
    MSG_DEPLOY_FAILED,
    MSG_DEPLOYED,
    MSG_SOURCE_UNAVAILABLE,
    MSG_STILL_RESOLVING,
    MSG_UNEXPECTED,
    MSG_UNSUPPORTED,
    MSG_UP_TO_DATE,
    SOURCE_SOFT_TIMEOUT,
    ErrorCode,
)
from ..core.artifact_locator import ArtifactLocator
from ..core.build_runner import BuildRunner
from ..core.deploy_targets import DeployTargets
from ..core.manifest_engine import DeploymentManifest
from ..core.path_resolver import PathResolver
from ..core.source_resolver import SourceResolver
from ..core.status import StatusReporter
from ..models.component import Component
from ..models.config import DeployConfig, ServerFlavor
from ..models.result import BatchResult, PipelineOutcome, PipelinePhase
from ..utils.async_utils import CancellationToken, sync_to_async, with_soft_timeout
from ..utils.file_utils import contains_path, is_same_path, remove_path

logger = logging.getLogger(__name__)


class _BatchContext:
    """State shared by the pipelines of one batch"""

    def __init__(self, manifest: DeploymentManifest, pull: bool, token: CancellationToken):
        self.manifest = manifest
        self.pull = pull
        self.token = token
        self.lock = asyncio.Lock()


class DeploymentOrchestrator:
    """Runs one pipeline per component concurrently and aggregates the outcomes

    Each pipeline goes Resolving → Building → LocatingArtifact →
    EvictingPrevious → Deploying → Succeeded, or ends Failed at any step.
    Failures are isolated: a failing component never stops its siblings.
    """

    def __init__(self,
                 path_resolver: PathResolver,
                 server_type: str = ServerFlavor.VANILLA.value,
                 deploy_config: Optional[DeployConfig] = None,
                 runner_image: str = DEFAULT_RUNNER_IMAGE,
                 reporter: Optional[StatusReporter] = None,
                 stream_logs: bool = False,
                 source_timeout: float = SOURCE_SOFT_TIMEOUT,
                 source_resolver: Optional[SourceResolver] = None,
                 build_runner: Optional[BuildRunner] = None,
                 artifact_locator: Optional[ArtifactLocator] = None):
        """Initialize orchestrator

        Args:
            path_resolver: Project path layout
            server_type: Server flavor name
            deploy_config: Deployment rules (looked up from server_type if omitted)
            runner_image: Container image for builds
            reporter: Progress sink
            stream_logs: Forward build output line by line
            source_timeout: Seconds before a slow source resolution is reported
            source_resolver: SourceResolver override
            build_runner: BuildRunner override
            artifact_locator: ArtifactLocator override
        """
        self.path_resolver = path_resolver
        self.server_type = server_type
        if deploy_config is None:
            deploy_config = ServerFlavor.from_string(server_type).deploy_config
        self.deploy_config = deploy_config
        self.reporter = reporter or StatusReporter()
        self.source_timeout = source_timeout

        self.source_resolver = source_resolver or SourceResolver(path_resolver)
        self.build_runner = build_runner or BuildRunner(
            runner_image=runner_image,
            reporter=self.reporter,
            stream_logs=stream_logs,
        )
        self.artifact_locator = artifact_locator or ArtifactLocator()

        self.server_root = path_resolver.get_server_root()
        self.targets = DeployTargets(self.server_root, server_type, deploy_config)

    async def deploy(self,
                     components: Sequence[Component],
                     pull: bool = False,
                     token: Optional[CancellationToken] = None) -> BatchResult:
        """
        Deploy a batch of components

        Args:
            components: Components to deploy
            pull: Force fresh source retrieval
            token: Cooperative cancellation token

        Returns:
            BatchResult with one outcome per component, in input order
        """
        start_time = time.time()
        manifest = await DeploymentManifest.load(self.server_root)
        context = _BatchContext(manifest, pull, token or CancellationToken())

        for component in components:
            self.reporter.start(component.label, PipelinePhase.PENDING)

        outcomes = await asyncio.gather(*[
            self._run_pipeline(component, context) for component in components
        ])

        return BatchResult(
            outcomes=list(outcomes),
            pull=pull,
            duration=time.time() - start_time
        )

    async def _run_pipeline(self, component: Component, context: _BatchContext) -> PipelineOutcome:
        started = time.monotonic()
        try:
            outcome = await self._pipeline(component, context)
        except PipelineCancelledError as e:
            outcome = self._failed(component, MSG_CANCELLED, e)
        except Exception as e:
            logger.exception("Unexpected error while deploying %s", component.label)
            outcome = self._failed(component, MSG_UNEXPECTED, e, error_code=ErrorCode.UNEXPECTED)

        outcome.duration = time.monotonic() - started
        if outcome.success:
            self.reporter.succeed(component.label, outcome.message, cached=outcome.cached)
        else:
            self.reporter.fail(component.label, outcome.message)
        return outcome

    async def _pipeline(self, component: Component, context: _BatchContext) -> PipelineOutcome:
        name = component.label
        token = context.token
        token.raise_if_cancelled()

        # Unsupported kinds fail before anything touches disk or the manifest
        try:
            self.targets.check_supported(component.kind)
        except UnsupportedKindError as e:
            return self._failed(component, MSG_UNSUPPORTED.format(server_type=self.server_type), e)

        # Resolve
        self.reporter.update(name, PipelinePhase.RESOLVING)
        resolved = await with_soft_timeout(
            self.source_resolver.resolve(component, pull=context.pull),
            self.source_timeout,
            lambda: self._on_slow_resolve(component),
        )
        if not resolved.ok:
            return self._failed(component, MSG_SOURCE_UNAVAILABLE, resolved.error)

        if resolved.value.cached and not context.pull:
            if await self._is_deployed(component, context):
                return PipelineOutcome(
                    name=name,
                    success=True,
                    message=MSG_UP_TO_DATE,
                    cached=True,
                    component_id=component.component_id,
                )

        # Build
        token.raise_if_cancelled()
        self.reporter.update(name, PipelinePhase.BUILDING)
        built = await self.build_runner.run(component, resolved.value.path)
        if not built.ok:
            return self._failed(component, MSG_BUILD_FAILED, built.error)

        # Locate artifact
        token.raise_if_cancelled()
        self.reporter.update(name, PipelinePhase.LOCATING_ARTIFACT)
        located = self.artifact_locator.locate(component, built.value)
        if not located.ok:
            message = MSG_ARTIFACT_AMBIGUOUS if isinstance(located.error, ArtifactAmbiguousError) \
                else MSG_ARTIFACT_MISSING
            return self._failed(component, message, located.error)
        artifact = located.value

        try:
            planned = self.targets.plan(component, artifact)
        except (OSError, ValueError) as e:
            return self._failed(component, MSG_DEPLOY_FAILED, DeployFailedError(f"{name}: {e}"))

        # Evict previous output
        token.raise_if_cancelled()
        self.reporter.update(name, PipelinePhase.EVICTING_PREVIOUS)
        async with context.lock:
            previous = context.manifest.get_paths(component.component_id)
            # Recorded paths stay a superset of what is on disk until the deploy is recorded
            context.manifest.set_paths(component.component_id, previous + planned)
            await self._persist(context.manifest)
            # Held across eviction so no other component records output beneath a path being removed
            await self._evict(component, previous, artifact, self._foreign_paths(component, context.manifest))

        # Deploy
        self.reporter.update(name, PipelinePhase.DEPLOYING)
        try:
            deployed = await sync_to_async(self.targets.deploy)(component, artifact)
        except (OSError, ValueError, zipfile.BadZipFile) as e:
            return self._failed(component, MSG_DEPLOY_FAILED, DeployFailedError(f"{name}: {e}"))

        async with context.lock:
            context.manifest.set_paths(component.component_id, deployed)
            await self._persist(context.manifest)

        logger.info("Deployed %s to %s", name, ", ".join(str(p) for p in deployed))
        return PipelineOutcome(
            name=name,
            success=True,
            message=MSG_DEPLOYED,
            component_id=component.component_id,
            deployed_paths=deployed,
        )

    async def _is_deployed(self, component: Component, context: _BatchContext) -> bool:
        """Whether the manifest records existing output for a component"""
        async with context.lock:
            recorded = context.manifest.get_paths(component.component_id)
        return bool(recorded) and all(p.exists() for p in recorded)

    def _foreign_paths(self, component: Component, manifest: DeploymentManifest) -> List[Path]:
        """Paths recorded for every other component"""
        paths = []
        for component_id in manifest.component_ids:
            if component_id != component.component_id:
                paths.extend(manifest.get_paths(component_id))
        return paths

    async def _evict(self,
                     component: Component,
                     paths: List[Path],
                     artifact: Path,
                     protected: Sequence[Path] = ()) -> None:
        """Delete previously deployed paths, best effort

        Paths holding the artifact or output recorded for another component
        are kept, as is the server root.
        """
        for path in paths:
            if is_same_path(path, self.server_root) or contains_path(path, artifact) \
                    or any(contains_path(path, other) for other in protected):
                logger.debug("%s: keeping %s", component.label, path)
                continue
            try:
                removed = await sync_to_async(remove_path)(path)
            except OSError as e:
                logger.warning("%s: failed to remove previous output %s: %s", component.label, path, e)
                continue
            if removed:
                logger.debug("%s: removed previous output %s", component.label, path)

    async def _persist(self, manifest: DeploymentManifest) -> None:
        try:
            await manifest.save_if_dirty()
        except ManifestIOError as e:
            logger.warning("%s", e)

    def _on_slow_resolve(self, component: Component) -> None:
        message = MSG_STILL_RESOLVING.format(seconds=int(self.source_timeout))
        logger.warning("%s: %s", component.label, message)
        self.reporter.update(component.label, PipelinePhase.RESOLVING, message)

    def _failed(self,
                component: Component,
                message: str,
                error: Optional[Exception] = None,
                error_code: Optional[str] = None) -> PipelineOutcome:
        detail = str(error) if error else None
        if error_code is None and isinstance(error, PipelineError):
            error_code = error.error_code
        if detail:
            logger.error("%s: %s (%s)", component.label, message, detail)
        return PipelineOutcome(
            name=component.label,
            success=False,
            message=message,
            component_id=component.component_id,
            error_code=error_code,
            detail=detail,
        )
