import asyncio
import io
import os
import zipfile
from pathlib import Path
from typing import List, Optional, Tuple, Union

import pytest

from crafters_toolbox.core.path_resolver import PathResolver
from crafters_toolbox.core.status import StatusReporter
from crafters_toolbox.models.result import ResolvedSource, StageResult
from crafters_toolbox.utils.http_utils import FetchResult


def write_file(path: Path, content: Union[str, bytes] = "", mtime: Optional[float] = None) -> Path:
    """Create a file with parents, optionally pinning its modification time"""
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def zip_bytes(members) -> bytes:
    """In-memory zip archive holding ``members`` (name to text)"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in members.items():
            archive.writestr(name, content)
    return buffer.getvalue()


class RecordingReporter(StatusReporter):
    """Keeps every event for assertions"""

    def __init__(self):
        self.events: List[Tuple] = []
        self.lines: List[Tuple[str, str]] = []

    def update(self, name, phase, message=None):
        self.events.append(("update", name, phase, message))

    def succeed(self, name, message=None, cached=False):
        self.events.append(("succeed", name, message, cached))

    def fail(self, name, message=None):
        self.events.append(("fail", name, message))

    def log(self, name, line):
        self.lines.append((name, line))

    def phases(self, name):
        return [e[2] for e in self.events if e[0] == "update" and e[1] == name]


class FakeFetcher:
    """Stands in for HttpFetcher; records calls and replays canned responses

    ``content`` is either the body of every response or a mapping of URL to body.
    """

    def __init__(self, status=200, filename="pack.zip", content="data",
                 etag='"v1"', last_modified=None, error=None):
        self.status = status
        self.filename = filename
        self.content = content
        self.etag = etag
        self.last_modified = last_modified
        self.error = error
        self.calls = []

    async def fetch(self, url, dest_dir, etag=None, last_modified=None):
        self.calls.append({"url": url, "etag": etag, "last_modified": last_modified})
        if self.error is not None:
            raise self.error
        if self.status == 304:
            return FetchResult(status=304, etag=etag, last_modified=last_modified)
        content = self.content[url] if isinstance(self.content, dict) else self.content
        file_path = write_file(Path(dest_dir) / self.filename, content)
        return FetchResult(
            status=self.status,
            file_path=file_path,
            etag=self.etag,
            last_modified=self.last_modified,
        )


class StubResolver:
    """Source resolver returning a fixed path"""

    def __init__(self, path: Path, cached: bool = False, delay: float = 0.0):
        self.path = path
        self.cached = cached
        self.delay = delay
        self.calls = 0

    async def resolve(self, component, pull=False):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return StageResult.success(ResolvedSource(path=self.path, cached=self.cached))


@pytest.fixture
def project_root(tmp_path):
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def path_resolver(project_root, monkeypatch):
    monkeypatch.delenv("CRTB_CACHE_DIR", raising=False)
    return PathResolver(project_root)


@pytest.fixture
def reporter():
    return RecordingReporter()
