"""
Web page fetcher built on a shared aiohttp session.
"""

import asyncio
import aiohttp
import logging
import time
from typing import Optional, Dict
from dataclasses import dataclass
from aiohttp import ClientSession, ClientTimeout, ClientError


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36"
)

TEXT_CONTENT_TYPES = [
    'text/html',
    'text/plain',
    'text/xml',
    'application/xml',
    'application/xhtml+xml',
]


@dataclass
class FetchResult:
    """Result of a fetch operation."""
    url: str
    status_code: int
    content: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    error: Optional[str] = None
    fetch_time: float = 0.0
    content_type: Optional[str] = None
    encoding: Optional[str] = None

    @property
    def ok(self) -> bool:
        """True for a completed request with a 2xx status."""
        return self.error is None and 200 <= self.status_code < 300

    @property
    def network_error(self) -> bool:
        """True when no HTTP response was received at all."""
        return self.status_code == 0


class WebFetcher:
    """
    Fetches web pages with a fixed request header set.

    One fetcher, and so one connection pool, is shared by every worker
    of a crawl. Failures are reported in the returned FetchResult rather
    than raised, and the caller decides what is fatal.
    """

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, request_timeout: int = 30,
                 max_concurrent_requests: int = 10, max_content_size: int = 10 * 1024 * 1024):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_concurrent_requests = max_concurrent_requests
        self.max_content_size = max_content_size

        self.logger = logging.getLogger(__name__)

        # Session management
        self.session: Optional[ClientSession] = None
        self.semaphore = asyncio.Semaphore(max_concurrent_requests)

        # Statistics
        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'total_bytes_downloaded': 0
        }

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    @property
    def headers(self) -> Dict[str, str]:
        """Headers sent with every request."""
        return {
            'User-Agent': self.user_agent,
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
        }

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None:
            timeout = ClientTimeout(total=self.request_timeout)

            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers=self.headers,
                connector=aiohttp.TCPConnector(
                    limit=self.max_concurrent_requests * 2,
                    ttl_dns_cache=300,
                    use_dns_cache=True
                )
            )
            self.logger.info("WebFetcher session started")

    async def close(self):
        """Close the fetcher session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.info("WebFetcher session closed")

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch a single URL.

        Args:
            url: The URL to fetch

        Returns:
            FetchResult object containing the response data or error information
        """
        if self.session is None:
            await self.start()

        start_time = time.time()

        async with self.semaphore:
            try:
                self.stats['total_requests'] += 1

                async with self.session.get(url) as response:
                    fetch_time = time.time() - start_time

                    headers = dict(response.headers)
                    content_type = response.headers.get('content-type', '').lower()

                    if not 200 <= response.status < 300:
                        self.stats['failed_requests'] += 1
                        self.logger.debug(f"Fetched {url}: HTTP {response.status}")
                        return FetchResult(
                            url=url,
                            status_code=response.status,
                            headers=headers,
                            content_type=content_type,
                            error=f"HTTP {response.status}",
                            fetch_time=fetch_time
                        )

                    # Only download text content
                    if not self._is_text_content(content_type):
                        self.logger.debug(f"Skipping non-text content: {url} ({content_type})")
                        return FetchResult(
                            url=url,
                            status_code=response.status,
                            headers=headers,
                            content_type=content_type,
                            error="Non-text content type",
                            fetch_time=fetch_time
                        )

                    content = await self._read_content_safely(response)

                    if content is None:
                        return FetchResult(
                            url=url,
                            status_code=response.status,
                            headers=headers,
                            content_type=content_type,
                            error="Unreadable or oversized body",
                            fetch_time=fetch_time
                        )

                    self.stats['total_bytes_downloaded'] += len(content)
                    self.stats['successful_requests'] += 1

                    self.logger.debug(f"Fetched {url}: {response.status} ({len(content)} bytes)")
                    return FetchResult(
                        url=url,
                        status_code=response.status,
                        content=content,
                        headers=headers,
                        content_type=content_type,
                        encoding=response.charset,
                        fetch_time=fetch_time
                    )

            except asyncio.TimeoutError:
                self.stats['failed_requests'] += 1
                error_msg = "Request timeout"
                self.logger.warning(f"Timeout fetching {url}")

            except ClientError as e:
                self.stats['failed_requests'] += 1
                error_msg = f"Client error: {str(e)}"
                self.logger.warning(f"Client error fetching {url}: {e}")

            return FetchResult(
                url=url,
                status_code=0,
                error=error_msg,
                fetch_time=time.time() - start_time
            )

    def _is_text_content(self, content_type: str) -> bool:
        """Check if content type is text-based. A missing header is treated as HTML."""
        if not content_type:
            return True
        return any(text_type in content_type for text_type in TEXT_CONTENT_TYPES)

    async def _read_content_safely(self, response) -> Optional[str]:
        """
        Read response content with a size limit.

        Args:
            response: aiohttp response object

        Returns:
            Content string or None if too large
        """
        content_length = response.headers.get('content-length')
        if content_length and content_length.isdigit() and int(content_length) > self.max_content_size:
            self.logger.warning(f"Content too large ({content_length} bytes): {response.url}")
            return None

        # Read content in chunks to respect size limit
        content_bytes = b''
        async for chunk in response.content.iter_chunked(8192):
            content_bytes += chunk
            if len(content_bytes) > self.max_content_size:
                self.logger.warning(f"Content exceeded size limit during reading: {response.url}")
                return None

        encoding = response.charset or 'utf-8'
        try:
            return content_bytes.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            # Try common encodings
            for fallback_encoding in ['utf-8', 'cp1252']:
                try:
                    return content_bytes.decode(fallback_encoding)
                except UnicodeDecodeError:
                    continue

            return content_bytes.decode('latin-1')

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()

    def reset_stats(self):
        """Reset statistics counters."""
        for key in self.stats:
            self.stats[key] = 0
