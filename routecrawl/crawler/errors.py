"""
Exception hierarchy for the crawler core.
"""

from typing import Optional


class CrawlError(Exception):
    """Base class for every error raised by the crawler."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class ConfigError(CrawlError):
    """Invalid route pattern, configuration file or seed list."""
    pass


class FetchError(CrawlError):
    """Network failure or non-success HTTP status."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: int = 0):
        super().__init__(message, url)
        self.status_code = status_code


class ParseError(CrawlError):
    """A response body or a link could not be parsed."""
    pass


class RouteNotFound(CrawlError):
    """No registered route matches the URL."""
    pass


class ProcessorError(CrawlError):
    """A page processor raised while building a crawl record."""
    pass


class DownloadError(CrawlError):
    """Content download failed."""
    pass
