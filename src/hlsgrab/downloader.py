"""Async downloader for HLS manifests and segments."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict, Optional
from urllib.parse import urljoin

import aiofiles
import aiofiles.os
import aiohttp

from .errors import FetchError, ManifestDecodeError, RedirectError

logger = logging.getLogger(__name__)

WORK_SUFFIX = "-work"


class SegmentDownloader:
    """Asynchronous, resumable segment downloader."""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        *,
        timeout: float = 15.0,
        max_redirects: int = 16,
        chunk_size: int = 64 * 1024,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize downloader.

        Args:
            session: Optional aiohttp session. If None, a new one will be created.
            timeout: Total timeout in seconds for a single request.
            max_redirects: Maximum number of redirect hops to follow.
            chunk_size: Size of the chunks streamed to disk.
            headers: Extra HTTP headers sent with every request.
        """
        self.session = session
        self._own_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.max_redirects = max_redirects
        self.chunk_size = chunk_size
        self.headers = headers or {}

    async def __aenter__(self):
        if self._own_session:
            self.session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._own_session and self.session:
            await self.session.close()

    @asynccontextmanager
    async def _get(self, url: str) -> AsyncIterator[aiohttp.ClientResponse]:
        """Issue a GET, following redirects, and yield the final 2xx response."""
        if self.session is None:
            raise RuntimeError("Session not initialized. Use 'async with' context manager.")

        visited = set()
        current = url
        for _ in range(self.max_redirects + 1):
            visited.add(current)
            response = await self.session.get(
                current,
                headers=self.headers,
                allow_redirects=False,
                timeout=self.timeout,
            )
            try:
                if 300 <= response.status < 400 and "Location" in response.headers:
                    target = urljoin(str(response.url), response.headers["Location"])
                    if target in visited:
                        raise RedirectError(f"Redirect loop detected for {url} at {target}")
                    logger.debug("Redirect %s -> %s", current, target)
                    current = target
                    continue
                if not 200 <= response.status < 300:
                    raise FetchError(current, response.status, response.reason or "")
                yield response
                return
            finally:
                response.release()

        raise RedirectError(f"Too many redirects (>{self.max_redirects}) for {url}")

    async def download(self, url: str) -> bytes:
        """
        Download a URL and return its content.

        Args:
            url: URL to download

        Returns:
            Downloaded content as bytes
        """
        async with self._get(url) as response:
            return await response.read()

    async def download_text(self, url: str) -> str:
        """
        Download a URL and return its content decoded as UTF-8.

        Args:
            url: URL to download

        Returns:
            Downloaded content as string

        Raises:
            ManifestDecodeError: if the body is not valid UTF-8
        """
        payload = await self.download(url)
        try:
            return payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ManifestDecodeError(f"Content of {url} is not valid UTF-8: {exc}") from exc

    async def fetch(self, url: str, destination: Path) -> bool:
        """
        Download a URL to ``destination`` unless it is already there.

        The body is streamed into a ``-work`` sibling which is renamed onto
        ``destination`` only once complete, so the final path never holds a
        partial file.

        Args:
            url: URL to download
            destination: Final path of the file

        Returns:
            True if the file was downloaded, False if it already existed
        """
        if await aiofiles.os.path.isfile(destination):
            logger.debug("Skipping %s, %s already exists", url, destination)
            return False

        await aiofiles.os.makedirs(destination.parent, exist_ok=True)
        work_path = destination.with_name(destination.name + WORK_SUFFIX)

        async with self._get(url) as response:
            async with aiofiles.open(work_path, "wb") as handle:
                async for chunk in response.content.iter_chunked(self.chunk_size):
                    await handle.write(chunk)
                await handle.flush()

        await aiofiles.os.replace(work_path, destination)
        logger.debug("Fetched %s -> %s", url, destination)
        return True
