"""
Streaming file downloader with progress reporting.

Used by page processors that want to keep binary assets such as
images. The crawl loop itself never downloads through this helper.
"""

import asyncio
import inspect
import logging
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional
from urllib.parse import urlsplit
from aiohttp import ClientError, ClientSession
from tqdm import tqdm

from ..crawler.errors import DownloadError


class _ThreadedWriter:
    """Forwards writes on a blocking file object to a worker thread."""

    def __init__(self, file):
        self.file = file

    async def write(self, chunk: bytes):
        return await asyncio.to_thread(self.file.write, chunk)


class ContentDownloader:
    """
    Downloads URLs through an aiohttp session in chunks.

    The response must carry a Content-Length header, which sizes the
    progress bar.
    """

    def __init__(self, session: ClientSession,
                 allowed_extensions: Optional[Iterable[str]] = None,
                 save_path: Optional[str] = None,
                 show_progress: bool = True,
                 chunk_size: int = 8192):
        self.session = session
        self.allowed_extensions = {ext.lower() for ext in (allowed_extensions or [])}
        self.save_path = Path(save_path) if save_path else None
        self.show_progress = show_progress
        self.chunk_size = chunk_size
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, session: ClientSession, config, **kwargs) -> "ContentDownloader":
        """Build a downloader from a DownloadConfig."""
        return cls(session, config.allowed_extensions, config.save_path, **kwargs)

    def wants(self, url: str) -> bool:
        """Check whether the URL path ends in one of the allowed extensions."""
        path = urlsplit(url).path.lower()
        return any(path.endswith(ext) for ext in self.allowed_extensions)

    async def download(self, url: str, writer) -> int:
        """
        Stream a URL into a writer.

        Args:
            url: The URL to download
            writer: Object with a ``write(bytes)`` method, plain or async

        Returns:
            Number of bytes written

        Raises:
            DownloadError: on request failure, non-2xx status, missing
                Content-Length, or a read or write error mid-stream
        """
        try:
            response = await self.session.get(url)
        except (ClientError, asyncio.TimeoutError) as e:
            raise DownloadError(f"Failed to GET from {url}", url) from e

        async with response:
            if not 200 <= response.status < 300:
                raise DownloadError(f"Failed to GET from {url}: HTTP {response.status}", url)

            total_size = response.content_length
            if total_size is None:
                raise DownloadError(f"Failed to get content length from {url}", url)

            written = 0
            with tqdm(total=total_size, unit='B', unit_scale=True,
                      desc=f"Downloading {url}", disable=not self.show_progress) as progress:
                try:
                    async for chunk in response.content.iter_chunked(self.chunk_size):
                        try:
                            result = writer.write(chunk)
                            if inspect.isawaitable(result):
                                await result
                        except OSError as e:
                            raise DownloadError(f"Error while writing to file for {url}", url) from e

                        written += len(chunk)
                        progress.update(min(total_size, written) - progress.n)
                except (ClientError, asyncio.TimeoutError) as e:
                    raise DownloadError(f"Error while downloading {url}", url) from e

        self.logger.info(f"Downloaded {url} ({written} bytes)")
        return written

    async def save(self, url: str) -> Path:
        """
        Download a URL into the save path, named after its last path segment.

        File writes run in a worker thread so they do not block the event
        loop the crawl workers share.

        Returns:
            Path of the written file
        """
        if self.save_path is None:
            raise DownloadError("No save path configured", url)

        name = PurePosixPath(urlsplit(url).path).name or 'index'
        self.save_path.mkdir(parents=True, exist_ok=True)
        target = self.save_path / name

        file = await asyncio.to_thread(open, target, 'wb')
        try:
            await self.download(url, _ThreadedWriter(file))
        finally:
            await asyncio.to_thread(file.close)

        return target
