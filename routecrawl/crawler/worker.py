"""
Crawl worker: a depth-first traversal from one seed URL.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
from urllib.parse import urlsplit
from bs4 import BeautifulSoup

from .errors import CrawlError, FetchError, ParseError, ProcessorError
from .fetcher import FetchResult
from .link_extractor import LinkExtractor, normalize_url
from .parser import parse_document
from .router import Router
from .visited import VisitedSet
from ..output.record import CrawlRecord
from ..output.sinks import LoggingSink, RecordSink
from ..utils.logger import get_crawler_logger
from ..utils.monitoring import CrawlerMonitor


class WorkerState(Enum):
    """Worker lifecycle states. DONE and FAILED are terminal."""
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


@dataclass
class WorkerResult:
    """Outcome of one worker run."""
    worker_id: int
    seed_url: str
    state: WorkerState
    pages_crawled: int = 0
    error: Optional[Exception] = None
    failed_url: Optional[str] = None
    elapsed_time: float = 0.0

    @property
    def ok(self) -> bool:
        return self.state == WorkerState.DONE

    def describe(self) -> str:
        """One-line human readable outcome."""
        if self.ok:
            return (f"worker-{self.worker_id} done: {self.pages_crawled} pages "
                    f"from {self.seed_url}")
        return (f"worker-{self.worker_id} failed at {self.failed_url} after "
                f"{self.pages_crawled} pages: {type(self.error).__name__}: {self.error}")


def base_url_of(url: str) -> str:
    """Scheme and authority of a URL, with the path dropped."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def _canonical_seed(seed_url: str) -> str:
    """Normalize a seed the way discovered links are, so it dedups against them."""
    try:
        return normalize_url(seed_url)
    except ValueError:
        # Left as given; the fetch or route lookup reports it
        return seed_url


class Worker:
    """
    Crawls from a single seed until its frontier is empty.

    The frontier is a stack, so traversal is depth-first: the last link
    extracted from a page is the next one fetched. A URL is marked
    visited when it is pushed, so it is never queued twice. Any fetch,
    parse, routing or processor error ends the run and the rest of the
    frontier is discarded.
    """

    def __init__(self, worker_id: int, seed_url: str, router: Router, fetcher,
                 link_extractor: Optional[LinkExtractor] = None,
                 sink: Optional[RecordSink] = None,
                 visited: Optional[VisitedSet] = None,
                 monitor: Optional[CrawlerMonitor] = None):
        self.worker_id = worker_id
        self.seed_url = _canonical_seed(seed_url)
        self.router = router
        self.fetcher = fetcher
        self.link_extractor = link_extractor or LinkExtractor(router)
        self.sink = sink or LoggingSink()
        self.visited = visited if visited is not None else VisitedSet()
        self.monitor = monitor

        self.frontier: List[str] = []
        self.state = WorkerState.IDLE
        self.pages_crawled = 0
        self.logger = get_crawler_logger(__name__, worker_id=worker_id, seed_url=self.seed_url)

    async def run(self) -> WorkerResult:
        """
        Crawl until the frontier is empty or a fatal error occurs.

        Returns:
            WorkerResult with the terminal state and, on failure, the
            error and the URL being processed
        """
        self.state = WorkerState.RUNNING
        start_time = time.time()
        current_url = None
        error = None

        if self.monitor:
            self.monitor.worker_started()
        self.logger.info(f"Worker started with seed {self.seed_url}")

        try:
            if self.visited.add(self.seed_url):
                self.frontier.append(self.seed_url)
            else:
                self.logger.info(f"Seed already claimed by another worker: {self.seed_url}")

            while self.frontier:
                current_url = self.frontier.pop()
                record = await self._process_url(current_url)
                await self.sink.emit(record)
                self.pages_crawled += 1

            self.state = WorkerState.DONE
            self.logger.info(f"Worker finished: {self.pages_crawled} pages crawled")

        except CrawlError as e:
            self.state = WorkerState.FAILED
            error = e
            self.logger.log_url_event(logging.ERROR, current_url,
                                      f"Worker failed at {current_url}: {e}")
        except Exception as e:
            self.state = WorkerState.FAILED
            error = e
            self.logger.error(f"Unexpected error at {current_url}: {e}", exc_info=True)
        finally:
            if self.monitor:
                if error is not None:
                    self.monitor.record_error(type(error).__name__)
                self.monitor.worker_finished(self.state.value)

        if error is not None:
            self.frontier.clear()

        return WorkerResult(
            worker_id=self.worker_id,
            seed_url=self.seed_url,
            state=self.state,
            pages_crawled=self.pages_crawled,
            error=error,
            failed_url=current_url if error is not None else None,
            elapsed_time=time.time() - start_time
        )

    async def _process_url(self, url: str) -> CrawlRecord:
        """Fetch, parse, queue follow-up links and dispatch one page."""
        result = await self.fetcher.fetch(url)
        document = self._parse(result)

        links = self.link_extractor.next_page(base_url_of(url), document)
        queued = self._enqueue(links)
        self.logger.debug(f"Queued {queued} of {len(links)} links from {url}")
        if self.monitor:
            self.monitor.record_links_queued(queued)

        match = self.router.match(url)

        try:
            contents = list(match.processor.contents(document, match.params))
            metainfo = {key: list(values) for key, values in
                        match.processor.metainfo(document, match.params).items()}
        except Exception as e:
            raise ProcessorError(
                f"{type(match.processor).__name__} failed on {url}: {e}", url
            ) from e

        if self.monitor:
            self.monitor.record_page_crawled(url, result.fetch_time)

        return CrawlRecord(
            url=url,
            contents=contents,
            metainfo=metainfo,
            params=dict(match.params),
            worker_id=self.worker_id
        )

    def _parse(self, result: FetchResult) -> BeautifulSoup:
        """Turn a fetch result into a document, raising on fetch or body errors."""
        if result.network_error:
            raise FetchError(f"Failed to fetch {result.url}: {result.error}", result.url)

        if not 200 <= result.status_code < 300:
            raise FetchError(
                f"Failed to fetch {result.url}: HTTP {result.status_code}",
                result.url,
                status_code=result.status_code
            )

        if result.content is None:
            raise ParseError(f"Cannot parse response from {result.url}: {result.error}", result.url)

        return parse_document(result.content, result.url)

    def _enqueue(self, urls: List[str]) -> int:
        """Push unvisited URLs in order. Returns how many were pushed."""
        pushed = 0
        for url in urls:
            if self.visited.add(url):
                self.frontier.append(url)
                pushed += 1
        return pushed
