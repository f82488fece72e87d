"""
Crawl orchestrator that spawns workers and collects their outcomes.
"""

import asyncio
import logging
import time
from typing import List, Optional, Sequence

from .errors import ConfigError, RouteNotFound
from .fetcher import WebFetcher
from .link_extractor import LinkExtractor
from .router import Router
from .visited import SharedVisitedSet, VisitedSet
from .worker import Worker, WorkerResult, WorkerState
from ..output.sinks import LoggingSink, RecordSink
from ..utils.monitoring import CrawlerMonitor


class CrawlOrchestrator:
    """
    Runs one worker per concurrency slot over a shared, read-only router.

    Worker ``i`` starts from ``seed_urls[i % len(seed_urls)]``. Workers
    share the router, the fetcher's connection pool and the sink, but each
    owns its frontier and, unless ``shared_visited`` is set, its visited
    set. A failing worker never cancels its siblings; every outcome is
    returned from ``run``.
    """

    def __init__(self, router: Router, seed_urls: Sequence[str], worker_count: int = 1,
                 fetcher=None, sink: Optional[RecordSink] = None,
                 shared_visited: bool = False, validate_seeds: bool = True,
                 monitor: Optional[CrawlerMonitor] = None, stats_interval: float = 30.0):
        seed_urls = list(seed_urls)
        if not seed_urls:
            raise ConfigError("At least one seed URL must be provided")
        if worker_count < 1:
            raise ConfigError("worker_count must be at least 1")

        self.router = router
        self.seed_urls = seed_urls
        self.worker_count = worker_count
        self.sink = sink or LoggingSink()
        self.shared_visited = shared_visited
        self.monitor = monitor
        self.stats_interval = stats_interval
        self.logger = logging.getLogger(__name__)

        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher if fetcher is not None else WebFetcher()
        self.link_extractor = LinkExtractor(router)

        self.workers: List[Worker] = []
        self.results: List[WorkerResult] = []
        self.is_running = False

        if validate_seeds:
            self._validate_seeds()

    @classmethod
    def from_config(cls, crawler_config, router: Router, **kwargs) -> "CrawlOrchestrator":
        """
        Build an orchestrator from a CrawlerConfig.

        A WebFetcher is created from the config unless one is passed in.
        """
        owns_fetcher = 'fetcher' not in kwargs
        if owns_fetcher:
            kwargs['fetcher'] = WebFetcher(
                user_agent=crawler_config.user_agent,
                request_timeout=crawler_config.request_timeout,
                max_concurrent_requests=crawler_config.max_concurrent_requests
            )
        orchestrator = cls(
            router,
            crawler_config.seed_urls,
            worker_count=crawler_config.worker_count,
            shared_visited=crawler_config.shared_visited,
            validate_seeds=crawler_config.validate_seeds,
            stats_interval=crawler_config.stats_interval,
            **kwargs
        )
        orchestrator._owns_fetcher = owns_fetcher
        return orchestrator

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _validate_seeds(self):
        """Reject seeds no route can dispatch, before any worker starts."""
        for seed_url in self.seed_urls:
            try:
                self.router.match(seed_url)
            except RouteNotFound as e:
                raise ConfigError(f"Seed URL has no matching route: {seed_url}", seed_url) from e

    def seed_for(self, worker_id: int) -> str:
        """Round-robin seed assignment."""
        return self.seed_urls[worker_id % len(self.seed_urls)]

    def _create_workers(self) -> List[Worker]:
        shared = SharedVisitedSet() if self.shared_visited else None
        return [
            Worker(
                worker_id=worker_id,
                seed_url=self.seed_for(worker_id),
                router=self.router,
                fetcher=self.fetcher,
                link_extractor=self.link_extractor,
                sink=self.sink,
                visited=shared if shared is not None else VisitedSet(),
                monitor=self.monitor
            )
            for worker_id in range(self.worker_count)
        ]

    async def run(self) -> List[WorkerResult]:
        """
        Run every worker to a terminal state.

        Returns:
            One WorkerResult per worker, in worker-id order
        """
        if self.is_running:
            raise RuntimeError("Crawl is already running")

        self.is_running = True
        start_time = time.time()
        self.workers = self._create_workers()

        self.logger.info(
            f"Starting crawl with {self.worker_count} workers over {len(self.seed_urls)} seeds "
            f"({len(self.router)} routes, shared visited set: {self.shared_visited})"
        )

        stats_task = asyncio.create_task(self._stats_reporter())
        try:
            tasks = [asyncio.create_task(worker.run()) for worker in self.workers]
            outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            stats_task.cancel()
            await asyncio.gather(stats_task, return_exceptions=True)
            self.is_running = False

        self.results = [
            self._as_result(worker, outcome) for worker, outcome in zip(self.workers, outcomes)
        ]
        self._log_final_stats(time.time() - start_time)
        return self.results

    def _as_result(self, worker: Worker, outcome) -> WorkerResult:
        """Turn a gathered task outcome into a WorkerResult."""
        if isinstance(outcome, WorkerResult):
            return outcome
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome
        self.logger.error(f"Worker {worker.worker_id} crashed: {outcome}")
        return WorkerResult(
            worker_id=worker.worker_id,
            seed_url=worker.seed_url,
            state=WorkerState.FAILED,
            pages_crawled=worker.pages_crawled,
            error=outcome
        )

    async def _stats_reporter(self):
        """Periodically log crawl progress."""
        while True:
            await asyncio.sleep(self.stats_interval)
            self._log_current_stats()

    def _log_current_stats(self):
        running = sum(1 for worker in self.workers if worker.state == WorkerState.RUNNING)
        crawled = sum(worker.pages_crawled for worker in self.workers)
        queued = sum(len(worker.frontier) for worker in self.workers)
        self.logger.info(
            f"Crawl Progress: Crawled={crawled}, Queued={queued}, "
            f"Running={running}/{self.worker_count}"
        )

    def _log_final_stats(self, elapsed: float):
        """Log final crawl statistics and every worker outcome."""
        failed = [result for result in self.results if not result.ok]

        self.logger.info("=== CRAWL COMPLETED ===")
        self.logger.info(f"Total pages crawled: {sum(r.pages_crawled for r in self.results)}")
        self.logger.info(f"Workers done: {len(self.results) - len(failed)}, failed: {len(failed)}")
        self.logger.info(f"Total time: {elapsed:.2f} seconds")
        for result in self.results:
            if result.ok:
                self.logger.info(result.describe())
            else:
                self.logger.warning(result.describe())
        if isinstance(self.fetcher, WebFetcher):
            self.logger.info(f"Fetcher stats: {self.fetcher.get_stats()}")

    async def close(self):
        """Close the sink and, if this orchestrator created it, the fetcher."""
        await self.sink.close()
        if self._owns_fetcher and isinstance(self.fetcher, WebFetcher):
            await self.fetcher.close()
        self.logger.info("Crawl orchestrator closed")
