import asyncio
import zipfile

import pytest
import pytest_asyncio
from aiohttp import web

from conftest import write_file
from crafters_toolbox.api.exceptions import PipelineCancelledError
from crafters_toolbox.core.deploy_targets import read_level_name
from crafters_toolbox.utils.async_utils import CancellationToken, sync_to_async, with_soft_timeout
from crafters_toolbox.utils.file_utils import (
    archive_top_level,
    contains_path,
    copy_path,
    extract_archive,
    merge_directory,
    read_json,
    remove_path,
    write_json,
)
from crafters_toolbox.utils.http_utils import HttpFetchError, HttpFetcher, filename_from_response
from crafters_toolbox.utils.process_utils import run_process


# async_utils

@pytest.mark.asyncio
async def test_soft_timeout_reports_but_does_not_cancel():
    fired = []

    async def slow():
        await asyncio.sleep(0.05)
        return "done"

    result = await with_soft_timeout(slow(), 0.01, lambda: fired.append(True))

    assert result == "done"
    assert fired == [True]


@pytest.mark.asyncio
async def test_soft_timeout_silent_for_fast_work():
    fired = []

    async def fast():
        return 42

    assert await with_soft_timeout(fast(), 1, lambda: fired.append(True)) == 42
    assert fired == []


@pytest.mark.asyncio
async def test_cancellation_token():
    token = CancellationToken()
    token.raise_if_cancelled()

    token.cancel("interrupted")

    assert token.cancelled
    with pytest.raises(PipelineCancelledError, match="interrupted"):
        token.raise_if_cancelled()
    await asyncio.wait_for(token.wait(), 1)


@pytest.mark.asyncio
async def test_sync_to_async_runs_in_executor():
    @sync_to_async
    def add(a, b=0):
        return a + b

    assert await add(1, b=2) == 3


# file_utils

def make_zip(path, members):
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as archive:
        for name, content in members.items():
            archive.writestr(name, content)
    return path


def test_extract_archive_returns_top_level_entries(tmp_path):
    archive = make_zip(tmp_path / "pack.zip", {
        "data/arena/functions/start.mcfunction": "say hi",
        "pack.mcmeta": "{}",
    })

    written = extract_archive(archive, tmp_path / "out")

    assert written == [tmp_path / "out" / "data", tmp_path / "out" / "pack.mcmeta"]
    assert (tmp_path / "out" / "data" / "arena" / "functions" / "start.mcfunction").read_text() == "say hi"


def test_extract_archive_strips_single_wrapping_folder(tmp_path):
    archive = make_zip(tmp_path / "lobby.zip", {
        "lobby/": "",
        "lobby/level.dat": "level",
        "lobby/region/r.0.0.mca": "region",
    })
    out = tmp_path / "out"

    written = extract_archive(archive, out, strip_root=True)

    assert written == [out / "level.dat", out / "region"]
    assert (out / "region" / "r.0.0.mca").read_text() == "region"
    assert archive_top_level(archive, strip_root=True) == ["level.dat", "region"]
    assert archive_top_level(archive) == ["lobby"]


def test_extract_archive_keeps_mixed_top_level(tmp_path):
    archive = make_zip(tmp_path / "pack.zip", {"arena/x.json": "{}", "pack.mcmeta": "{}"})

    assert archive_top_level(archive, strip_root=True) == ["arena", "pack.mcmeta"]


def test_extract_archive_rejects_path_traversal(tmp_path):
    archive = make_zip(tmp_path / "evil.zip", {"../escape.txt": "x"})

    with pytest.raises(ValueError):
        extract_archive(archive, tmp_path / "out")

    assert not (tmp_path / "escape.txt").exists()


def test_merge_directory_keeps_unrelated_entries(tmp_path):
    write_file(tmp_path / "src" / "region" / "r.0.0.mca", "new")
    write_file(tmp_path / "src" / "level.dat", "new")
    write_file(tmp_path / "dst" / "region" / "r.1.1.mca", "old")
    write_file(tmp_path / "dst" / "playerdata" / "p.dat", "keep")

    written = merge_directory(tmp_path / "src", tmp_path / "dst")

    dst = tmp_path / "dst"
    assert written == [dst / "level.dat", dst / "region"]
    assert (dst / "region" / "r.0.0.mca").read_text() == "new"
    assert (dst / "region" / "r.1.1.mca").read_text() == "old"
    assert (dst / "playerdata" / "p.dat").read_text() == "keep"


def test_copy_path_replaces_existing_destination(tmp_path):
    write_file(tmp_path / "src" / "a.txt", "a")
    write_file(tmp_path / "dst" / "stale.txt")

    copy_path(tmp_path / "src", tmp_path / "dst")

    assert sorted(p.name for p in (tmp_path / "dst").iterdir()) == ["a.txt"]


def test_remove_path(tmp_path):
    target = write_file(tmp_path / "dir" / "f.txt")

    assert remove_path(tmp_path / "missing") is False
    assert remove_path(target) is True
    assert remove_path(tmp_path / "dir") is True
    assert not (tmp_path / "dir").exists()


def test_contains_path(tmp_path):
    assert contains_path(tmp_path, tmp_path / "a" / "b")
    assert contains_path(tmp_path, tmp_path)
    assert not contains_path(tmp_path / "a", tmp_path / "b")


def test_json_roundtrip_is_atomic(tmp_path):
    path = tmp_path / "nested" / "doc.json"

    write_json(path, {"version": 1, "entries": {}})

    assert read_json(path) == {"version": 1, "entries": {}}
    assert path.read_text().endswith("\n")
    assert [p.name for p in path.parent.iterdir()] == ["doc.json"]


def test_read_level_name(tmp_path):
    assert read_level_name(tmp_path) == "world"

    write_file(tmp_path / "server.properties", "# comment\nmotd=hi\nlevel-name = lobby\n")
    assert read_level_name(tmp_path) == "lobby"

    write_file(tmp_path / "server.properties", "level-name=\n")
    assert read_level_name(tmp_path) == "world"


# process_utils

@pytest.mark.asyncio
async def test_run_process_captures_output():
    result = await run_process(["sh", "-c", "echo out; echo err >&2; exit 3"])

    assert result.returncode == 3
    assert not result.success
    assert result.stdout.strip() == "out"
    assert result.diagnostics() == "err"


@pytest.mark.asyncio
async def test_run_process_streams_lines():
    seen = []

    result = await run_process(
        ["sh", "-c", "echo one; echo two"],
        on_line=lambda stream, line: seen.append((stream, line)),
    )

    assert result.success
    assert seen == [("stdout", "one"), ("stdout", "two")]


@pytest.mark.asyncio
async def test_run_process_missing_program():
    with pytest.raises(FileNotFoundError):
        await run_process(["crtb-definitely-not-installed"])


# http_utils

def test_filename_from_response():
    assert filename_from_response("https://example.com/files/ui%20pack.zip") == "ui pack.zip"
    assert filename_from_response("https://example.com/") == "download"
    assert filename_from_response(
        "https://example.com/dl?id=3", 'attachment; filename="../../ui.zip"'
    ) == "ui.zip"


@pytest_asyncio.fixture
async def http_server():
    hits = []

    async def pack(request):
        hits.append(request.headers.get("If-None-Match"))
        if request.headers.get("If-None-Match") == '"v1"':
            return web.Response(status=304)
        return web.Response(
            body=b"zip-bytes",
            headers={"ETag": '"v1"', "Content-Disposition": 'attachment; filename="ui.zip"'},
        )

    async def broken(request):
        return web.Response(status=500)

    app = web.Application()
    app.router.add_get("/pack", pack)
    app.router.add_get("/broken", broken)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    host, port = runner.addresses[0][:2]

    yield f"http://{host}:{port}", hits

    await runner.cleanup()


@pytest.mark.asyncio
async def test_http_fetch_and_conditional_refetch(http_server, tmp_path):
    base_url, hits = http_server
    fetcher = HttpFetcher(timeout=5)

    first = await fetcher.fetch(f"{base_url}/pack", tmp_path / "a")
    assert first.status == 200
    assert first.file_path == tmp_path / "a" / "ui.zip"
    assert first.file_path.read_bytes() == b"zip-bytes"
    assert first.etag == '"v1"'

    second = await fetcher.fetch(f"{base_url}/pack", tmp_path / "b", etag=first.etag)
    assert second.not_modified
    assert second.file_path is None
    assert not (tmp_path / "b").exists()
    assert hits == [None, '"v1"']


@pytest.mark.asyncio
async def test_http_error_status(http_server, tmp_path):
    base_url, _ = http_server

    with pytest.raises(HttpFetchError) as exc_info:
        await HttpFetcher(timeout=5).fetch(f"{base_url}/broken", tmp_path)

    assert exc_info.value.status == 500
