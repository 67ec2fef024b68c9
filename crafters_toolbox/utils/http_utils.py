# crafters_toolbox/utils/http_utils.py
"""HTTP download utilities"""

import asyncio
import logging
import posixpath
from dataclasses import dataclass
from email.message import Message
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import unquote, urlparse

import aiofiles
import aiohttp

from ..constants import DEFAULT_CHUNK_SIZE, HTTP_TIMEOUT

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "download"


class HttpFetchError(Exception):
    """Request failed or returned an unexpected status"""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


@dataclass
class FetchResult:
    """Outcome of a conditional download"""
    status: int
    file_path: Optional[Path] = None
    etag: Optional[str] = None
    last_modified: Optional[str] = None

    @property
    def not_modified(self) -> bool:
        return self.status == 304


def filename_from_response(url: str, content_disposition: Optional[str] = None) -> str:
    """
    Pick a local file name for a download

    Args:
        url: Final request URL
        content_disposition: Content-Disposition header value

    Returns:
        Safe file name
    """
    if content_disposition:
        message = Message()
        message["Content-Disposition"] = content_disposition
        name = message.get_filename()
        if name:
            name = posixpath.basename(name.replace("\\", "/"))
            if name and name not in (".", ".."):
                return name

    name = posixpath.basename(unquote(urlparse(url).path))
    if name and name not in (".", ".."):
        return name
    return DEFAULT_FILENAME


class HttpFetcher:
    """Conditional GET downloader with a hard request timeout"""

    def __init__(self, timeout: float = HTTP_TIMEOUT):
        self.timeout = timeout

    async def fetch(self,
                    url: str,
                    dest_dir: Path,
                    etag: Optional[str] = None,
                    last_modified: Optional[str] = None) -> FetchResult:
        """
        Download ``url`` into ``dest_dir``

        Args:
            url: URL to fetch
            dest_dir: Directory receiving the downloaded file
            etag: Previous ETag, sent as If-None-Match
            last_modified: Previous Last-Modified, sent as If-Modified-Since

        Returns:
            FetchResult; ``file_path`` is None on 304

        Raises:
            HttpFetchError: On network errors, timeout, or non-2xx/304 status
        """
        headers: Dict[str, str] = {}
        if etag:
            headers["If-None-Match"] = etag
        if last_modified:
            headers["If-Modified-Since"] = last_modified

        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, headers=headers) as response:
                    if response.status == 304:
                        return FetchResult(status=304, etag=etag, last_modified=last_modified)

                    if not 200 <= response.status < 300:
                        raise HttpFetchError(
                            f"GET {url} returned HTTP {response.status}",
                            status=response.status
                        )

                    filename = filename_from_response(
                        str(response.url),
                        response.headers.get("Content-Disposition")
                    )
                    dest_dir.mkdir(parents=True, exist_ok=True)
                    file_path = dest_dir / filename

                    async with aiofiles.open(file_path, 'wb') as f:
                        async for chunk in response.content.iter_chunked(DEFAULT_CHUNK_SIZE):
                            await f.write(chunk)

                    return FetchResult(
                        status=response.status,
                        file_path=file_path,
                        etag=response.headers.get("ETag"),
                        last_modified=response.headers.get("Last-Modified"),
                    )
        except aiohttp.ClientError as e:
            raise HttpFetchError(f"GET {url} failed: {e}")
        except asyncio.TimeoutError as e:
            raise HttpFetchError(f"GET {url} timed out after {self.timeout}s") from e
