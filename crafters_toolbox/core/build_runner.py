"""Build execution, locally or inside the runner container"""

import logging
import os
import shutil
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence

from ..api.exceptions import BuildFailedError
from ..constants import (
    CONTAINER_HOME,
    CONTAINER_TERM,
    DEFAULT_GRADLE_TASK,
    DEFAULT_RUNNER_IMAGE,
    FALLBACK_GID,
    FALLBACK_UID,
)
from ..models.component import Component, CustomBuild, GradleBuild, NoBuild
from ..models.result import StageResult
from ..utils.process_utils import LineCallback, ProcessResult, run_process
from .status import StatusReporter

logger = logging.getLogger(__name__)

ProcessRunner = Callable[..., Awaitable[ProcessResult]]


def host_user() -> str:
    """``uid:gid`` of the calling user, passed to ``docker run --user``"""
    getuid = getattr(os, "getuid", None)
    getgid = getattr(os, "getgid", None)
    if getuid is None or getgid is None:
        return f"{FALLBACK_UID}:{FALLBACK_GID}"
    return f"{getuid()}:{getgid()}"


def resolve_output(base: Path, output: Optional[str]) -> Path:
    """Resolve a build ``output`` setting against the working directory"""
    if not output:
        return base
    path = Path(output)
    if path.is_absolute():
        return path
    return base / path


def has_java() -> bool:
    """Whether a Java runtime is available to run the gradle wrapper"""
    if shutil.which("java"):
        return True
    java_home = os.environ.get("JAVA_HOME")
    return bool(java_home) and (Path(java_home) / "bin" / "java").exists()


class BuildRunner:
    """Turns a resolved source directory into a build output directory"""

    def __init__(self,
                 runner_image: str = DEFAULT_RUNNER_IMAGE,
                 reporter: Optional[StatusReporter] = None,
                 stream_logs: bool = False,
                 process_runner: Optional[ProcessRunner] = None):
        """Initialize build runner

        Args:
            runner_image: Container image for containerized builds
            reporter: Receives streamed build output
            stream_logs: Forward build output line by line
            process_runner: Replacement for run_process
        """
        self.runner_image = runner_image
        self.reporter = reporter or StatusReporter()
        self.stream_logs = stream_logs
        self._run = process_runner or run_process

    async def run(self, component: Component, workdir: Path) -> StageResult[Path]:
        """
        Build a component

        Args:
            component: Component whose build descriptor is executed
            workdir: Resolved source directory

        Returns:
            StageResult holding the output path or BuildFailedError
        """
        build = component.build
        workdir = Path(workdir)

        if isinstance(build, NoBuild):
            return StageResult.success(workdir)
        if workdir.is_file():
            # Downloaded sources build from the directory holding the file
            workdir = workdir.parent

        if isinstance(build, GradleBuild):
            task = build.task or DEFAULT_GRADLE_TASK
            try:
                await self._run_gradle(component, workdir, task)
            except BuildFailedError as e:
                return StageResult.failure(e)
            return StageResult.success(resolve_output(workdir, build.output))

        if isinstance(build, CustomBuild):
            effective = resolve_output(workdir, build.workdir)
            try:
                await self._run_in_container(
                    component,
                    ["sh", "-c", build.command],
                    effective,
                    extra_mounts=[workdir] if effective != workdir else [],
                )
            except BuildFailedError as e:
                return StageResult.failure(e)
            return StageResult.success(resolve_output(effective, build.output))

        raise AssertionError(f"unhandled build type: {build!r}")

    def container_command(self,
                          command: Sequence[str],
                          workdir: Path,
                          extra_mounts: Sequence[Path] = ()) -> List[str]:
        """
        Build the ``docker run`` invocation for a command

        Directories are mounted at the same path inside and outside the
        container so paths in build output stay valid on the host.
        """
        args = ["docker", "run", "--rm"]
        for mount in [workdir, *extra_mounts]:
            args.extend(["-v", f"{mount}:{mount}"])
        args.extend([
            "-w", str(workdir),
            "--user", host_user(),
            "-e", f"TERM={CONTAINER_TERM}",
            "-e", f"HOME={CONTAINER_HOME}",
            self.runner_image,
        ])
        args.extend(command)
        return args

    async def _run_gradle(self, component: Component, workdir: Path, task: str) -> None:
        wrapper = workdir / "gradlew"
        if wrapper.exists() and has_java():
            logger.debug("%s: running gradle wrapper locally", component.label)
            await self._execute(component, ["sh", str(wrapper), "--no-daemon", task], workdir)
            return

        system_gradle = shutil.which("gradle")
        if system_gradle:
            logger.debug("%s: running system gradle", component.label)
            await self._execute(component, [system_gradle, "--no-daemon", task], workdir)
            return

        gradle = "./gradlew" if wrapper.exists() else "gradle"
        await self._run_in_container(
            component,
            ["sh", "-c", f"{gradle} --no-daemon {task}"],
            workdir,
        )

    async def _run_in_container(self,
                                component: Component,
                                command: Sequence[str],
                                workdir: Path,
                                extra_mounts: Sequence[Path] = ()) -> None:
        logger.debug("%s: building in %s", component.label, self.runner_image)
        await self._execute(component, self.container_command(command, workdir, extra_mounts), workdir)

    def _line_forwarder(self, component: Component) -> LineCallback:
        def forward(stream: str, line: str) -> None:
            self.reporter.log(component.label, line)
        return forward

    async def _execute(self, component: Component, args: Sequence[str], cwd: Path) -> None:
        on_line = self._line_forwarder(component) if self.stream_logs else None
        try:
            result = await self._run(args, cwd=cwd, on_line=on_line)
        except FileNotFoundError as e:
            raise BuildFailedError(f"{component.label}: {e}", returncode=127)
        except OSError as e:
            raise BuildFailedError(f"{component.label}: failed to start build: {e}")

        if not result.success:
            raise BuildFailedError(
                f"{component.label}: build exited with code {result.returncode}",
                returncode=result.returncode,
                output=result.diagnostics(),
            )
