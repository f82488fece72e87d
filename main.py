#!/usr/bin/env python3
"""
Main entry point for the route-gated crawler.
"""

import asyncio
import argparse
import logging
import signal
import sys
from dataclasses import asdict
from typing import List, Optional

from routecrawl import __version__
from routecrawl.crawler import CrawlError, CrawlOrchestrator, WebFetcher, WorkerResult
from routecrawl.output import LoggingSink
from routecrawl.utils.config import Config, build_router, load_config
from routecrawl.utils.logger import log_system_info, setup_logging
from routecrawl.utils.monitoring import CrawlerMonitor, MetricsCollector


class CrawlerApp:
    """Main application class for the crawler."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._crawl_task: Optional[asyncio.Task] = None

    def setup_signal_handlers(self):
        """Cancel the running crawl on SIGINT or SIGTERM."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum):
            self.logger.info(f"Received signal {signum}, initiating shutdown...")
            if self._crawl_task and not self._crawl_task.done():
                self._crawl_task.cancel()

        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, signal_handler, signum)
            except NotImplementedError:
                # Windows event loops do not support signal handlers
                pass

    async def run(self, config_path: str, workers: Optional[int] = None,
                  dry_run: bool = False) -> int:
        """Run the crawler. Returns the process exit code."""
        try:
            config = load_config(config_path)
        except CrawlError as e:
            print(f"Configuration error: {e}", file=sys.stderr)
            return 1

        if workers is not None:
            config.crawler.worker_count = workers

        setup_logging(asdict(config.logging), enable_json=config.logging.json)
        log_system_info()

        self.logger.info("=== CRAWLER STARTING ===")
        self.logger.info(f"Configuration loaded from: {config_path}")
        self.logger.info(f"Seed URLs: {config.crawler.seed_urls}")
        self.logger.info(f"Workers: {config.crawler.worker_count}")
        self.logger.info(f"Routes: {[route.pattern for route in config.routes]}")

        try:
            router = build_router(config)

            if dry_run:
                self.logger.info("DRY RUN MODE: No actual crawling will be performed")
                await self._dry_run(config, router)
                return 0

            monitor = None
            if config.monitoring.metrics_enabled:
                monitor = CrawlerMonitor(MetricsCollector(config.monitoring.prometheus_port))
                monitor.metrics.start_prometheus_server()

            async with CrawlOrchestrator.from_config(
                config.crawler, router, sink=LoggingSink(as_json=config.logging.json), monitor=monitor
            ) as orchestrator:
                self.setup_signal_handlers()
                self._crawl_task = asyncio.create_task(orchestrator.run())
                results = await self._crawl_task

        except asyncio.CancelledError:
            self.logger.info("Crawl cancelled")
            return 1
        except CrawlError as e:
            self.logger.error(f"Fatal error: {e}")
            return 1
        finally:
            self.logger.info("=== CRAWLER FINISHED ===")

        return self._report(results)

    def _report(self, results: List[WorkerResult]) -> int:
        """Print one line per worker. Returns 0 only if every worker finished."""
        for result in results:
            print(result.describe())
        return 0 if all(result.ok for result in results) else 1

    async def _dry_run(self, config: Config, router):
        """Check the route table and fetch the first seed without crawling."""
        self.logger.info(f"Router has {len(router)} routes over hosts {router.hosts}")

        for seed_url in config.crawler.seed_urls:
            if router.is_routable(seed_url):
                self.logger.info(f"✓ Seed is routable: {seed_url}")
            else:
                self.logger.error(f"✗ Seed has no matching route: {seed_url}")

        async with WebFetcher(
            user_agent=config.crawler.user_agent,
            request_timeout=config.crawler.request_timeout,
            max_concurrent_requests=1
        ) as fetcher:
            test_url = config.crawler.seed_urls[0]
            result = await fetcher.fetch(test_url)
            if result.ok:
                self.logger.info(f"✓ Test fetch successful: {result.status_code}")
            else:
                self.logger.warning(f"Test fetch failed: {result.error}")

        self.logger.info("Dry run completed")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Route-gated web crawler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                           # Run with default config.yaml
  python main.py --config my_config.yaml  # Run with custom config
  python main.py --workers 8              # Override the worker count
  python main.py --dry-run                # Test configuration only
        """
    )

    parser.add_argument(
        '--config',
        default='config.yaml',
        help='Path to configuration file (default: config.yaml)'
    )

    parser.add_argument(
        '--workers',
        type=int,
        help='Number of concurrent workers'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Test configuration without actually crawling'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'routecrawl {__version__}'
    )

    args = parser.parse_args()

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(
            config_path=args.config,
            workers=args.workers,
            dry_run=args.dry_run
        ))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1


if __name__ == '__main__':
    sys.exit(main())
