"""
Follow-up link extraction gated by the route table.
"""

import logging
from typing import List, Optional, Sequence, Tuple
from urllib.parse import SplitResult, urljoin, urlsplit, urlunsplit
from bs4 import BeautifulSoup

from .errors import RouteNotFound
from .router import Router


# (tag, attribute) pairs, applied in order
DEFAULT_EXTRACTION_RULES: Tuple[Tuple[str, str], ...] = (
    ('a', 'href'),
    ('img', 'src'),
)

ALLOWED_SCHEMES = ('http', 'https')


class LinkExtractor:
    """
    Finds the links on a page that the crawl may follow.

    A link survives only if it resolves to an http(s) URL that the
    router can match, so the set of reachable pages is exactly the
    registered route surface.
    """

    def __init__(self, router: Router,
                 rules: Optional[Sequence[Tuple[str, str]]] = None):
        self.router = router
        self.rules = tuple(rules) if rules is not None else DEFAULT_EXTRACTION_RULES
        self.logger = logging.getLogger(__name__)

    def next_page(self, base_url: str, document: BeautifulSoup) -> List[str]:
        """
        Extract routable follow-up URLs from a document.

        Args:
            base_url: Scheme and authority used to resolve relative links
            document: Parsed page

        Returns:
            Absolute URLs in document order, rule by rule. Duplicates are
            kept; the worker deduplicates.
        """
        urls = []

        for candidate in self._candidates(document):
            url = self._resolve(base_url, candidate)
            if url is None:
                continue

            try:
                self.router.match(url)
            except RouteNotFound:
                self.logger.debug(f"Dropping unrouted link: {url}")
                continue

            urls.append(url)

        return urls

    def _candidates(self, document: BeautifulSoup) -> List[str]:
        """Collect raw attribute values for every extraction rule."""
        candidates = []
        for tag, attribute in self.rules:
            for element in document.find_all(tag, attrs={attribute: True}):
                candidates.append(element[attribute].strip())
        return candidates

    def _resolve(self, base_url: str, candidate: str) -> Optional[str]:
        """
        Turn a raw link into a normalized absolute URL.

        Returns None for links that cannot be parsed or use a scheme
        other than http(s).
        """
        try:
            parts = urlsplit(candidate)
            if not parts.scheme:
                parts = urlsplit(urljoin(base_url, candidate))
        except ValueError:
            self.logger.debug(f"Dropping malformed link: {candidate!r}")
            return None

        if parts.scheme.lower() not in ALLOWED_SCHEMES or not parts.netloc:
            return None

        return _rebuild(parts)


def normalize_url(url: str) -> str:
    """
    Canonical form used for visited-set keys.

    Lower-cases scheme and host, turns an empty path into ``/`` and drops
    the fragment. Raises ValueError if the URL cannot be parsed.
    """
    return _rebuild(urlsplit(url))


def _rebuild(parts: SplitResult) -> str:
    return urlunsplit((
        parts.scheme.lower(),
        parts.netloc.lower(),
        parts.path or '/',
        parts.query,
        ''  # Remove fragment
    ))
