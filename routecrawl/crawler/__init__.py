"""
Web crawler core components.
"""

from .errors import (
    CrawlError, ConfigError, FetchError, ParseError, RouteNotFound, ProcessorError, DownloadError
)
from .processor import PageProcessor, DefaultPageProcessor
from .router import Router, RouteMatch
from .fetcher import WebFetcher, FetchResult
from .link_extractor import LinkExtractor
from .visited import VisitedSet, SharedVisitedSet
from .worker import Worker, WorkerResult, WorkerState
from .orchestrator import CrawlOrchestrator

__all__ = [
    'CrawlError', 'ConfigError', 'FetchError', 'ParseError', 'RouteNotFound',
    'ProcessorError', 'DownloadError',
    'PageProcessor', 'DefaultPageProcessor',
    'Router', 'RouteMatch',
    'WebFetcher', 'FetchResult',
    'LinkExtractor',
    'VisitedSet', 'SharedVisitedSet',
    'Worker', 'WorkerResult', 'WorkerState',
    'CrawlOrchestrator'
]
