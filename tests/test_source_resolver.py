import json

import pytest

from conftest import FakeFetcher, write_file
from crafters_toolbox.api.exceptions import SourceUnavailableError
from crafters_toolbox.core import source_resolver as source_module
from crafters_toolbox.core.source_resolver import SourceResolver
from crafters_toolbox.models import Component, ComponentKind, GitSource, HttpSource, LocalSource
from crafters_toolbox.utils.git_utils import GitCommandError
from crafters_toolbox.utils.http_utils import HttpFetchError


def local_component(path, kind=ComponentKind.DATAPACK, name="arena"):
    return Component(kind, name, source=LocalSource(path=str(path)))


# Local

@pytest.mark.asyncio
async def test_local_source_is_copied_into_staging(path_resolver, project_root):
    write_file(project_root / "src" / "arena" / "pack.mcmeta", "{}")
    component = local_component("src/arena")

    result = await SourceResolver(path_resolver).resolve(component)

    staging = project_root / "components" / "datapacks" / "arena"
    assert result.ok
    assert result.value.path == staging
    assert not result.value.cached
    assert (staging / "pack.mcmeta").read_text() == "{}"


@pytest.mark.asyncio
async def test_local_staging_is_reused_without_writes(path_resolver, project_root, monkeypatch):
    write_file(project_root / "src" / "arena" / "pack.mcmeta", "new")
    staged = write_file(project_root / "components" / "datapacks" / "arena" / "pack.mcmeta", "old")
    before = staged.stat().st_mtime_ns

    def forbidden(*args, **kwargs):
        raise AssertionError("no filesystem writes expected")

    monkeypatch.setattr(source_module, "_replace_with_copy", forbidden)

    result = await SourceResolver(path_resolver).resolve(local_component("src/arena"), pull=False)

    assert result.ok
    assert result.value.path == staged.parent
    assert not result.value.cached
    assert staged.read_text() == "old"
    assert staged.stat().st_mtime_ns == before


@pytest.mark.asyncio
async def test_local_pull_replaces_staging(path_resolver, project_root):
    write_file(project_root / "src" / "arena" / "new.txt")
    write_file(project_root / "components" / "datapacks" / "arena" / "stale.txt")

    result = await SourceResolver(path_resolver).resolve(local_component("src/arena"), pull=True)

    staging = result.value.path
    assert sorted(p.name for p in staging.iterdir()) == ["new.txt"]


@pytest.mark.asyncio
async def test_local_file_source_is_staged_by_name(path_resolver, project_root):
    write_file(project_root / "downloads" / "lobby.jar", "jar")
    component = local_component("downloads/lobby.jar", kind=ComponentKind.PLUGIN, name="lobby")

    result = await SourceResolver(path_resolver).resolve(component)

    assert (result.value.path / "lobby.jar").read_text() == "jar"


@pytest.mark.asyncio
async def test_local_source_already_at_staging_is_noop(path_resolver, project_root):
    staged = write_file(project_root / "components" / "datapacks" / "arena" / "pack.mcmeta", "{}")
    component = local_component("components/datapacks/arena")

    result = await SourceResolver(path_resolver).resolve(component, pull=True)

    assert result.ok
    assert result.value.path == staged.parent
    assert staged.read_text() == "{}"


@pytest.mark.asyncio
async def test_missing_local_source_is_unavailable(path_resolver):
    result = await SourceResolver(path_resolver).resolve(local_component("does/not/exist"))

    assert not result.ok
    assert isinstance(result.error, SourceUnavailableError)


@pytest.mark.asyncio
async def test_world_local_source_is_used_in_place(path_resolver, project_root):
    write_file(project_root / "maps" / "lobby" / "level.dat")
    world = Component(ComponentKind.WORLD, "world", source=LocalSource(path="maps/lobby"))

    result = await SourceResolver(path_resolver).resolve(world)

    assert result.value.path == project_root / "maps" / "lobby"
    assert not (project_root / "components" / "world").exists()


@pytest.mark.asyncio
async def test_component_without_source(path_resolver, project_root):
    resolver = SourceResolver(path_resolver)
    component = Component(ComponentKind.DATAPACK, "handmade")

    missing = await resolver.resolve(component)
    assert isinstance(missing.error, SourceUnavailableError)

    write_file(project_root / "components" / "datapacks" / "handmade" / "pack.mcmeta")
    present = await resolver.resolve(component)
    assert present.ok
    assert present.value.path == project_root / "components" / "datapacks" / "handmade"


# HTTP

URL = "https://example.com/files/ui.zip"


def http_component():
    return Component(ComponentKind.RESOURCEPACK, "ui", source=HttpSource(url=URL))


def seed_http_cache(project_root, url=URL, etag='"v1"'):
    cache_dir = project_root / ".cache" / "components" / "http" / "resourcepacks" / "ui"
    write_file(cache_dir / "content" / "ui.zip", "cached")
    write_file(cache_dir / "meta.json", json.dumps({
        "url": url, "etag": etag, "last_modified": None, "filename": "ui.zip",
    }))
    return cache_dir


@pytest.mark.asyncio
async def test_http_cache_hit_makes_no_network_call(path_resolver, project_root):
    cache_dir = seed_http_cache(project_root)
    fetcher = FakeFetcher(error=AssertionError("network must not be used"))

    result = await SourceResolver(path_resolver, http_fetcher=fetcher).resolve(http_component(), pull=False)

    assert result.ok
    assert result.value.cached
    assert result.value.path == cache_dir / "content" / "ui.zip"
    assert fetcher.calls == []


@pytest.mark.asyncio
async def test_http_cache_for_other_url_is_refetched(path_resolver, project_root):
    seed_http_cache(project_root, url="https://example.com/old.zip")
    fetcher = FakeFetcher(filename="ui.zip", content="fresh")

    result = await SourceResolver(path_resolver, http_fetcher=fetcher).resolve(http_component())

    assert len(fetcher.calls) == 1
    assert fetcher.calls[0]["etag"] is None
    assert not result.value.cached
    assert result.value.path.name == "ui.zip"
    assert result.value.path.read_text() == "fresh"


@pytest.mark.asyncio
async def test_http_pull_not_modified_keeps_cache(path_resolver, project_root):
    cache_dir = seed_http_cache(project_root)
    fetcher = FakeFetcher(status=304)

    result = await SourceResolver(path_resolver, http_fetcher=fetcher).resolve(http_component(), pull=True)

    assert fetcher.calls == [{"url": URL, "etag": '"v1"', "last_modified": None}]
    assert result.value.cached
    assert result.value.path == cache_dir / "content" / "ui.zip"
    assert result.value.path.read_text() == "cached"
    assert [p.name for p in cache_dir.iterdir() if p.name.startswith("content.tmp")] == []


@pytest.mark.asyncio
async def test_http_pull_replaces_content_and_metadata(path_resolver, project_root):
    cache_dir = seed_http_cache(project_root)
    fetcher = FakeFetcher(filename="ui-2.zip", content="v2", etag='"v2"')

    result = await SourceResolver(path_resolver, http_fetcher=fetcher).resolve(http_component(), pull=True)

    assert result.ok
    assert not result.value.cached
    assert result.value.path == cache_dir / "content" / "ui-2.zip"
    assert sorted(p.name for p in (cache_dir / "content").iterdir()) == ["ui-2.zip"]
    meta = json.loads((cache_dir / "meta.json").read_text())
    assert meta["etag"] == '"v2"'
    assert meta["filename"] == "ui-2.zip"
    assert meta["url"] == URL


@pytest.mark.asyncio
async def test_http_failure_is_unavailable_and_keeps_cache(path_resolver, project_root):
    cache_dir = seed_http_cache(project_root)
    fetcher = FakeFetcher(error=HttpFetchError("GET failed", status=500))

    result = await SourceResolver(path_resolver, http_fetcher=fetcher).resolve(http_component(), pull=True)

    assert isinstance(result.error, SourceUnavailableError)
    assert (cache_dir / "content" / "ui.zip").read_text() == "cached"
    assert sorted(p.name for p in cache_dir.iterdir()) == ["content", "meta.json"]


# Git

class FakeGit:
    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def install(self, monkeypatch):
        for name in ("shallow_clone", "shallow_update", "checkout_commit", "update_submodules"):
            monkeypatch.setattr(source_module.git_utils, name, self._make(name))

    def _make(self, name):
        async def command(*args):
            self.calls.append(name)
            if name == "shallow_clone":
                path = args[1]
                (path / ".git").mkdir(parents=True)
            if name == self.fail_on:
                raise GitCommandError([name], 128, "fatal: boom")
        return command


def git_component(commit=None):
    return Component(
        ComponentKind.PLUGIN,
        "lobby",
        source=GitSource(url="https://example.com/lobby.git", branch="main", commit=commit),
    )


@pytest.mark.asyncio
async def test_git_clone_when_missing(path_resolver, project_root, monkeypatch):
    git = FakeGit()
    git.install(monkeypatch)

    result = await SourceResolver(path_resolver).resolve(git_component(commit="abc123"))

    assert result.ok
    assert result.value.path == project_root / "components" / "plugins" / "lobby"
    assert git.calls == ["shallow_clone", "checkout_commit", "update_submodules"]


@pytest.mark.asyncio
async def test_git_checkout_reused_without_pull(path_resolver, project_root, monkeypatch):
    (project_root / "components" / "plugins" / "lobby" / ".git").mkdir(parents=True)
    git = FakeGit()
    git.install(monkeypatch)

    result = await SourceResolver(path_resolver).resolve(git_component(), pull=False)

    assert result.ok
    assert git.calls == []


@pytest.mark.asyncio
async def test_git_pull_updates_existing_checkout(path_resolver, project_root, monkeypatch):
    (project_root / "components" / "plugins" / "lobby" / ".git").mkdir(parents=True)
    git = FakeGit()
    git.install(monkeypatch)

    result = await SourceResolver(path_resolver).resolve(git_component(), pull=True)

    assert result.ok
    assert git.calls == ["shallow_update", "update_submodules"]


@pytest.mark.asyncio
async def test_non_checkout_directory_is_replaced(path_resolver, project_root, monkeypatch):
    write_file(project_root / "components" / "plugins" / "lobby" / "junk.txt")
    git = FakeGit()
    git.install(monkeypatch)

    result = await SourceResolver(path_resolver).resolve(git_component())

    assert result.ok
    assert git.calls[0] == "shallow_clone"
    assert not (result.value.path / "junk.txt").exists()


@pytest.mark.asyncio
async def test_failed_checkout_leaves_no_resolved_clone(path_resolver, project_root, monkeypatch):
    git = FakeGit(fail_on="checkout_commit")
    git.install(monkeypatch)
    resolver = SourceResolver(path_resolver)

    result = await resolver.resolve(git_component(commit="deadbeef"))

    assert isinstance(result.error, SourceUnavailableError)
    assert "boom" in str(result.error)
    assert not (project_root / "components" / "plugins" / "lobby").exists()
