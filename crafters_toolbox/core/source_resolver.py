"""Source resolution: materialize a component's raw content locally"""

import logging
import shutil
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

from ..api.exceptions import SourceUnavailableError
from ..constants import HTTP_CONTENT_DIR, HTTP_META_FILE
from ..models.component import (
    Component,
    ComponentKind,
    GitSource,
    HttpSource,
    LocalSource,
)
from ..models.result import ResolvedSource, StageResult
from ..utils.async_utils import sync_to_async
from ..utils.file_utils import (
    copy_path,
    is_non_empty_dir,
    is_same_path,
    read_json,
    remove_path,
    write_json,
)
from ..utils import git_utils
from ..utils.git_utils import GitCommandError
from ..utils.http_utils import HttpFetcher, HttpFetchError
from .path_resolver import PathResolver

logger = logging.getLogger(__name__)


def _replace_with_copy(src: Path, dst: Path) -> None:
    """Replace ``dst`` with a copy of ``src`` (directory contents or a single file)"""
    if dst.exists() or dst.is_symlink():
        remove_path(dst)
    if src.is_dir():
        copy_path(src, dst)
    else:
        dst.mkdir(parents=True)
        copy_path(src, dst / src.name)


def _swap_directory(new_dir: Path, target: Path) -> None:
    """Move ``new_dir`` into place as ``target``, discarding the old target"""
    old_dir = target.with_name(f"{target.name}.old-{uuid.uuid4().hex[:8]}")
    if target.exists():
        target.rename(old_dir)
    new_dir.rename(target)
    if old_dir.exists():
        shutil.rmtree(old_dir, ignore_errors=True)


class SourceResolver:
    """Guarantees a local path holding a component's raw content

    Network and git contact only happens when ``pull`` is requested or
    nothing usable is on disk yet.
    """

    def __init__(self, path_resolver: PathResolver, http_fetcher: Optional[HttpFetcher] = None):
        """Initialize source resolver

        Args:
            path_resolver: Project path layout
            http_fetcher: Downloader used for HTTP sources
        """
        self.path_resolver = path_resolver
        self.http_fetcher = http_fetcher or HttpFetcher()

    async def resolve(self, component: Component, pull: bool = False) -> StageResult[ResolvedSource]:
        """Resolve a component's source to a local path

        Args:
            component: Component to resolve
            pull: Force fresh retrieval from the source

        Returns:
            StageResult holding ResolvedSource or SourceUnavailableError
        """
        source = component.source
        try:
            if source is None:
                return self._resolve_without_source(component)
            if isinstance(source, LocalSource):
                return await self._resolve_local(component, source, pull)
            if isinstance(source, HttpSource):
                return await self._resolve_http(component, source, pull)
            if isinstance(source, GitSource):
                return await self._resolve_git(component, source, pull)
        except OSError as e:
            return StageResult.failure(SourceUnavailableError(
                f"{component.label}: filesystem error while resolving source: {e}"
            ))
        raise AssertionError(f"unhandled source type: {source!r}")

    def _resolve_without_source(self, component: Component) -> StageResult[ResolvedSource]:
        staging = self.path_resolver.get_staging_path(component)
        if is_non_empty_dir(staging):
            logger.debug("%s has no source, using existing content at %s", component.label, staging)
            return StageResult.success(ResolvedSource(path=staging))
        return StageResult.failure(SourceUnavailableError(
            f"{component.label}: no source configured and nothing staged at {staging}"
        ))

    # Local

    async def _resolve_local(self,
                             component: Component,
                             source: LocalSource,
                             pull: bool) -> StageResult[ResolvedSource]:
        origin = self.path_resolver.resolve(source.path)

        if component.kind == ComponentKind.WORLD:
            # Worlds are deployed straight from their source directory
            if not origin.exists():
                return StageResult.failure(SourceUnavailableError(
                    f"{component.label}: local source {origin} does not exist"
                ))
            return StageResult.success(ResolvedSource(path=origin))

        staging = self.path_resolver.get_staging_path(component)

        if not pull and is_non_empty_dir(staging):
            return StageResult.success(ResolvedSource(path=staging))

        if is_same_path(origin, staging):
            if not staging.exists():
                return StageResult.failure(SourceUnavailableError(
                    f"{component.label}: local source {origin} does not exist"
                ))
            return StageResult.success(ResolvedSource(path=staging))

        if not origin.exists():
            return StageResult.failure(SourceUnavailableError(
                f"{component.label}: local source {origin} does not exist"
            ))

        logger.info("Copying %s into %s", origin, staging)
        await sync_to_async(_replace_with_copy)(origin, staging)
        return StageResult.success(ResolvedSource(path=staging))

    # HTTP

    def _read_meta(self, cache_dir: Path) -> Dict[str, Any]:
        meta_path = cache_dir / HTTP_META_FILE
        if not meta_path.exists():
            return {}
        try:
            data = read_json(meta_path)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable cache metadata %s: %s", meta_path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _cached_file(self, cache_dir: Path, meta: Dict[str, Any], url: str) -> Optional[Path]:
        """Cached download matching ``url``, if any"""
        if meta.get("url") != url:
            return None
        content_dir = cache_dir / HTTP_CONTENT_DIR
        filename = meta.get("filename")
        if filename and (content_dir / filename).is_file():
            return content_dir / filename
        return None

    async def _resolve_http(self,
                            component: Component,
                            source: HttpSource,
                            pull: bool) -> StageResult[ResolvedSource]:
        cache_dir = self.path_resolver.get_http_cache_dir(component)
        content_dir = cache_dir / HTTP_CONTENT_DIR
        meta = self._read_meta(cache_dir)
        cached_file = self._cached_file(cache_dir, meta, source.url)

        if cached_file and not pull:
            logger.debug("%s: using cached download %s", component.label, cached_file)
            return StageResult.success(ResolvedSource(path=cached_file, cached=True))

        cache_dir.mkdir(parents=True, exist_ok=True)
        download_dir = cache_dir / f"{HTTP_CONTENT_DIR}.tmp-{uuid.uuid4().hex[:8]}"
        try:
            result = await self.http_fetcher.fetch(
                source.url,
                download_dir,
                etag=meta.get("etag") if cached_file else None,
                last_modified=meta.get("last_modified") if cached_file else None,
            )

            if result.not_modified and cached_file:
                logger.info("%s: %s not modified", component.label, source.url)
                return StageResult.success(ResolvedSource(path=cached_file, cached=True))
            if result.file_path is None:
                return StageResult.failure(SourceUnavailableError(
                    f"{component.label}: {source.url} returned no content"
                ))

            await sync_to_async(_swap_directory)(download_dir, content_dir)
            write_json(cache_dir / HTTP_META_FILE, {
                "url": source.url,
                "etag": result.etag,
                "last_modified": result.last_modified,
                "filename": result.file_path.name,
            })
            logger.info("%s: downloaded %s", component.label, source.url)
            downloaded = content_dir / result.file_path.name
            return StageResult.success(ResolvedSource(path=downloaded, cached=False))

        except HttpFetchError as e:
            return StageResult.failure(SourceUnavailableError(f"{component.label}: {e}"))
        finally:
            if download_dir.exists():
                shutil.rmtree(download_dir, ignore_errors=True)

    # Git

    async def _resolve_git(self,
                           component: Component,
                           source: GitSource,
                           pull: bool) -> StageResult[ResolvedSource]:
        checkout = self.path_resolver.get_staging_path(component)

        if checkout.exists() and not git_utils.is_git_checkout(checkout):
            logger.warning("%s: %s is not a git checkout, replacing it", component.label, checkout)
            await sync_to_async(remove_path)(checkout)

        exists = checkout.exists()
        if exists and not pull:
            return StageResult.success(ResolvedSource(path=checkout))

        try:
            if exists:
                logger.info("%s: updating %s", component.label, source.url)
                await git_utils.shallow_update(checkout, source.url, source.branch)
            else:
                logger.info("%s: cloning %s", component.label, source.url)
                await git_utils.shallow_clone(source.url, checkout, source.branch)

            if source.commit:
                await git_utils.checkout_commit(checkout, source.commit)
            await git_utils.update_submodules(checkout)

        except GitCommandError as e:
            if not exists and checkout.exists():
                # Never leave a half-initialized checkout that a later run would reuse
                await sync_to_async(remove_path)(checkout)
            return StageResult.failure(SourceUnavailableError(f"{component.label}: {e}"))

        return StageResult.success(ResolvedSource(path=checkout))
