import pytest

from crafters_toolbox.api.exceptions import BuildFailedError
from crafters_toolbox.core import build_runner as build_module
from crafters_toolbox.core.build_runner import BuildRunner
from crafters_toolbox.models import Component, ComponentKind, CustomBuild, GradleBuild
from crafters_toolbox.utils.process_utils import ProcessResult


class FakeProcess:
    def __init__(self, returncode=0, stdout="", stderr="", lines=()):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.lines = lines
        self.calls = []

    async def __call__(self, args, cwd=None, on_line=None):
        self.calls.append({"args": list(args), "cwd": cwd, "on_line": on_line})
        if on_line is not None:
            for line in self.lines:
                on_line("stdout", line)
        return ProcessResult(list(args), self.returncode, self.stdout, self.stderr)


@pytest.fixture
def no_local_toolchain(monkeypatch):
    monkeypatch.setattr(build_module, "has_java", lambda: False)
    monkeypatch.setattr(build_module.shutil, "which", lambda name: None)


@pytest.fixture
def fixed_user(monkeypatch):
    monkeypatch.setattr(build_module, "host_user", lambda: "1234:5678")


def component(build):
    return Component(ComponentKind.PLUGIN, "lobby", build=build)


@pytest.mark.asyncio
async def test_no_build_returns_workdir(tmp_path):
    process = FakeProcess()

    result = await BuildRunner(process_runner=process).run(Component(ComponentKind.DATAPACK, "d"), tmp_path)

    assert result.value == tmp_path
    assert process.calls == []


@pytest.mark.asyncio
async def test_downloaded_file_builds_in_its_directory(tmp_path, fixed_user):
    download = tmp_path / "content" / "src.zip"
    download.parent.mkdir()
    download.write_bytes(b"zip")
    process = FakeProcess()

    result = await BuildRunner(process_runner=process).run(
        component(CustomBuild(command="unzip src.zip && make", output="dist")), download
    )

    assert result.value == download.parent / "dist"
    args = process.calls[0]["args"]
    assert args[args.index("-w") + 1] == str(download.parent)


@pytest.mark.asyncio
async def test_gradle_runs_wrapper_locally_when_java_is_present(tmp_path, monkeypatch):
    (tmp_path / "gradlew").write_text("#!/bin/sh\n")
    monkeypatch.setattr(build_module, "has_java", lambda: True)
    process = FakeProcess()

    result = await BuildRunner(process_runner=process).run(
        component(GradleBuild(task="shadowJar", output="build/libs")), tmp_path
    )

    assert result.value == tmp_path / "build" / "libs"
    assert process.calls[0]["args"] == ["sh", str(tmp_path / "gradlew"), "--no-daemon", "shadowJar"]
    assert process.calls[0]["cwd"] == tmp_path


@pytest.mark.asyncio
async def test_gradle_falls_back_to_container(tmp_path, no_local_toolchain, fixed_user):
    (tmp_path / "gradlew").write_text("#!/bin/sh\n")
    process = FakeProcess()
    runner = BuildRunner(runner_image="eclipse-temurin:17-jdk", process_runner=process)

    result = await runner.run(component(GradleBuild()), tmp_path)

    assert result.value == tmp_path
    assert process.calls[0]["args"] == [
        "docker", "run", "--rm",
        "-v", f"{tmp_path}:{tmp_path}",
        "-w", str(tmp_path),
        "--user", "1234:5678",
        "-e", "TERM=dumb",
        "-e", "HOME=/tmp",
        "eclipse-temurin:17-jdk",
        "sh", "-c", "./gradlew --no-daemon build",
    ]


@pytest.mark.asyncio
async def test_custom_build_always_uses_container(tmp_path, monkeypatch, fixed_user):
    monkeypatch.setattr(build_module, "has_java", lambda: True)
    (tmp_path / "pack").mkdir()
    process = FakeProcess()

    result = await BuildRunner(process_runner=process).run(
        component(CustomBuild(command="make dist", workdir="pack", output="dist")), tmp_path
    )

    args = process.calls[0]["args"]
    effective = tmp_path / "pack"
    assert result.value == effective / "dist"
    assert args[:3] == ["docker", "run", "--rm"]
    assert f"{effective}:{effective}" in args
    assert f"{tmp_path}:{tmp_path}" in args
    assert args[args.index("-w") + 1] == str(effective)
    assert args[-3:] == ["sh", "-c", "make dist"]


@pytest.mark.asyncio
async def test_absolute_output_is_used_verbatim(tmp_path, fixed_user):
    target = tmp_path / "elsewhere"

    result = await BuildRunner(process_runner=FakeProcess()).run(
        component(CustomBuild(command="true", output=str(target))), tmp_path
    )

    assert result.value == target


@pytest.mark.asyncio
async def test_non_zero_exit_is_build_failed(tmp_path, no_local_toolchain):
    process = FakeProcess(returncode=2, stderr="line1\nFAILURE: compilation error\n")

    result = await BuildRunner(process_runner=process).run(component(GradleBuild()), tmp_path)

    assert isinstance(result.error, BuildFailedError)
    assert result.error.returncode == 2
    assert "compilation error" in str(result.error)


@pytest.mark.asyncio
async def test_missing_executable_is_build_failed(tmp_path, fixed_user):
    async def missing(args, cwd=None, on_line=None):
        raise FileNotFoundError("docker")

    result = await BuildRunner(process_runner=missing).run(component(CustomBuild(command="true")), tmp_path)

    assert isinstance(result.error, BuildFailedError)


@pytest.mark.asyncio
async def test_streaming_forwards_lines_with_label(tmp_path, reporter, fixed_user):
    process = FakeProcess(lines=["> Task :compileJava", "BUILD SUCCESSFUL"])
    runner = BuildRunner(reporter=reporter, stream_logs=True, process_runner=process)

    result = await runner.run(component(CustomBuild(command="gradle build")), tmp_path)

    assert result.ok
    assert reporter.lines == [("lobby", "> Task :compileJava"), ("lobby", "BUILD SUCCESSFUL")]


@pytest.mark.asyncio
async def test_output_is_captured_when_not_streaming(tmp_path, reporter, fixed_user):
    process = FakeProcess(lines=["ignored"])

    await BuildRunner(reporter=reporter, process_runner=process).run(component(CustomBuild(command="x")), tmp_path)

    assert process.calls[0]["on_line"] is None
    assert reporter.lines == []
