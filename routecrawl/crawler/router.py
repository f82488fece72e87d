"""
Per-host path-template router.

Routes are registered with full URL patterns such as
``https://example.com/users/:id``. The host selects a partition of the
table and the path is compiled into that partition's segment trie.
The same table decides which processor handles a page and which
discovered links are worth following.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit

from .errors import ConfigError, RouteNotFound
from .processor import PageProcessor


LITERAL = "literal"
PARAM = "param"
WILDCARD = "wildcard"


@dataclass(frozen=True)
class TemplateSegment:
    """One segment of a path template.

    Literal:  ``users``  -> TemplateSegment("literal", "users")
    Param:    ``:id``    -> TemplateSegment("param", "id")
    Wildcard: ``*rest``  -> TemplateSegment("wildcard", "rest")
    """
    kind: str
    value: str


@dataclass(frozen=True)
class RouteMatch:
    """Result of a successful route lookup."""
    processor: PageProcessor
    params: Dict[str, str]
    template: str


@dataclass
class _RouteNode:
    """Trie node. Only mutated while routes are being inserted."""
    children: Dict[str, "_RouteNode"] = field(default_factory=dict)
    param_name: Optional[str] = None
    param_child: Optional["_RouteNode"] = None
    wildcard_name: Optional[str] = None
    wildcard_processor: Optional[PageProcessor] = None
    wildcard_template: Optional[str] = None
    processor: Optional[PageProcessor] = None
    template: Optional[str] = None


def parse_template(path: str) -> List[TemplateSegment]:
    """
    Split a path template into segments.

    Empty segments are ignored, so ``/`` yields no segments and a
    trailing slash is not significant.

    Raises:
        ConfigError: on an empty parameter name or a wildcard that is
            not the last segment.
    """
    parts = [part for part in path.split('/') if part]
    segments: List[TemplateSegment] = []

    for index, part in enumerate(parts):
        if part.startswith(':'):
            name = part[1:]
            if not name:
                raise ConfigError(f"Empty parameter name in template {path!r}")
            segments.append(TemplateSegment(PARAM, name))
        elif part.startswith('*'):
            name = part[1:]
            if not name:
                raise ConfigError(f"Empty wildcard name in template {path!r}")
            if index != len(parts) - 1:
                raise ConfigError(f"Wildcard must be the last segment in template {path!r}")
            segments.append(TemplateSegment(WILDCARD, name))
        else:
            segments.append(TemplateSegment(LITERAL, part))

    return segments


class Router:
    """
    Route table keyed by host, then by path template.

    Usage::

        router = (
            Router()
            .insert("https://example.com/", IndexPage())
            .insert("https://example.com/users/:id", UserPage())
        )
        match = router.match("https://example.com/users/20")
        match.params  # {"id": "20"}

    Lookups prefer literal segments over parameters and parameters over
    wildcards, so registration order never changes the outcome.
    """

    def __init__(self):
        self._routes: Dict[str, _RouteNode] = {}
        self._templates: List[Tuple[str, str]] = []
        self.logger = logging.getLogger(__name__)

    def __len__(self) -> int:
        return len(self._templates)

    @property
    def hosts(self) -> List[str]:
        """Hosts that have at least one registered route."""
        return list(self._routes)

    @property
    def routes(self) -> List[Tuple[str, str]]:
        """Registered (host, template) pairs in registration order."""
        return list(self._templates)

    def insert(self, pattern: str, processor: PageProcessor) -> "Router":
        """
        Register a processor for a URL pattern.

        Args:
            pattern: Absolute URL whose path is the template
            processor: Handler for pages matching the pattern

        Returns:
            The router itself, so registrations can be chained

        Raises:
            ConfigError: if the pattern cannot be parsed or conflicts with
                a template already registered for the same host
        """
        host, path = self._split_pattern(pattern)
        segments = parse_template(path)
        template = '/' + '/'.join(self._render(seg) for seg in segments)

        node = self._routes.setdefault(host, _RouteNode())
        for seg in segments:
            if seg.kind == LITERAL:
                node = node.children.setdefault(seg.value, _RouteNode())
            elif seg.kind == PARAM:
                if node.param_child is None:
                    node.param_name = seg.value
                    node.param_child = _RouteNode()
                elif node.param_name != seg.value:
                    raise ConfigError(
                        f"Parameter ':{seg.value}' in {pattern!r} conflicts with "
                        f"existing parameter ':{node.param_name}'"
                    )
                node = node.param_child
            else:
                if node.wildcard_processor is not None:
                    raise ConfigError(
                        f"Wildcard in {pattern!r} conflicts with existing route "
                        f"{node.wildcard_template!r}"
                    )
                node.wildcard_name = seg.value
                node.wildcard_processor = processor
                node.wildcard_template = template
                self._templates.append((host, template))
                self.logger.debug(f"Registered route {host}{template}")
                return self

        if node.processor is not None:
            raise ConfigError(
                f"Route {pattern!r} conflicts with existing route {node.template!r}"
            )
        node.processor = processor
        node.template = template
        self._templates.append((host, template))
        self.logger.debug(f"Registered route {host}{template}")
        return self

    def match(self, url: str) -> RouteMatch:
        """
        Find the processor registered for a URL.

        Raises:
            RouteNotFound: if the URL cannot be parsed, its host has no
                routes, or no template matches its path
        """
        try:
            parts = urlsplit(url)
            host = parts.hostname
        except ValueError as e:
            raise RouteNotFound(f"Cannot parse URL {url!r}: {e}", url) from e

        root = self._routes.get(host) if host else None
        if root is None:
            raise RouteNotFound(f"No routes registered for host {host!r}", url)

        segments = [part for part in parts.path.split('/') if part]
        result = self._match_node(root, segments, 0, {})
        if result is None:
            raise RouteNotFound(f"No route matches {url}", url)

        processor, template, params = result
        return RouteMatch(processor=processor, params=params, template=template)

    def is_routable(self, url: str) -> bool:
        """Check whether any route matches the URL."""
        try:
            self.match(url)
        except RouteNotFound:
            return False
        return True

    def _match_node(self, node: _RouteNode, segments: List[str], index: int,
                    params: Dict[str, str]) -> Optional[Tuple[PageProcessor, str, Dict[str, str]]]:
        """Recursively match path segments, most specific edge first."""
        if index == len(segments):
            if node.processor is not None:
                return node.processor, node.template, params
            return None

        segment = segments[index]

        child = node.children.get(segment)
        if child is not None:
            result = self._match_node(child, segments, index + 1, params)
            if result is not None:
                return result

        if node.param_child is not None:
            bound = {**params, node.param_name: segment}
            result = self._match_node(node.param_child, segments, index + 1, bound)
            if result is not None:
                return result

        if node.wildcard_processor is not None:
            bound = {**params, node.wildcard_name: '/'.join(segments[index:])}
            return node.wildcard_processor, node.wildcard_template, bound

        return None

    @staticmethod
    def _split_pattern(pattern: str) -> Tuple[str, str]:
        """Split a route pattern into its host and path template."""
        try:
            parts = urlsplit(pattern)
            host = parts.hostname
        except ValueError as e:
            raise ConfigError(f"Cannot parse route pattern {pattern!r}: {e}") from e

        if parts.scheme not in ('http', 'https'):
            raise ConfigError(f"Route pattern {pattern!r} must be an http(s) URL")
        if not host:
            raise ConfigError(f"Route pattern {pattern!r} has no host")

        return host, parts.path or '/'

    @staticmethod
    def _render(segment: TemplateSegment) -> str:
        if segment.kind == PARAM:
            return f":{segment.value}"
        if segment.kind == WILDCARD:
            return f"*{segment.value}"
        return segment.value
