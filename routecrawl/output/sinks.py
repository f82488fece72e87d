"""
Output sinks for crawl records.

Workers hand every dispatched page to a sink. Storage or indexing lives
downstream of the sink and is not part of the crawler.
"""

import asyncio
import inspect
import json
import logging
from typing import Any, Awaitable, Callable, List, Optional, Union

from .record import CrawlRecord


class RecordSink:
    """Base class for crawl record sinks."""

    async def emit(self, record: CrawlRecord):
        """Accept one crawl record."""
        raise NotImplementedError

    async def close(self):
        """Flush and release resources. Called once after all workers finish."""
        pass


class LoggingSink(RecordSink):
    """Writes each record to the log. The default sink."""

    def __init__(self, level: int = logging.INFO, as_json: bool = False):
        self.level = level
        self.as_json = as_json
        self.logger = logging.getLogger(__name__)

    async def emit(self, record: CrawlRecord):
        if self.as_json:
            self.logger.log(self.level, json.dumps(record.to_dict(), ensure_ascii=False))
        else:
            self.logger.log(self.level, f"{record.url} {record.contents}")


class CallbackSink(RecordSink):
    """Passes each record to a plain or async callable."""

    def __init__(self, callback: Callable[[CrawlRecord], Union[Any, Awaitable[Any]]]):
        self.callback = callback

    async def emit(self, record: CrawlRecord):
        result = self.callback(record)
        if inspect.isawaitable(result):
            await result


class QueueSink(RecordSink):
    """
    Puts records on a bounded asyncio queue.

    ``emit`` waits while the queue is full, so a slow consumer slows the
    workers down instead of growing memory. ``close`` enqueues ``None`` to
    tell the consumer the crawl is over.
    """

    def __init__(self, maxsize: int = 100, queue: Optional[asyncio.Queue] = None):
        self.queue = queue if queue is not None else asyncio.Queue(maxsize=maxsize)

    async def emit(self, record: CrawlRecord):
        await self.queue.put(record)

    async def close(self):
        await self.queue.put(None)


class CollectingSink(RecordSink):
    """Keeps every record in memory, in emission order."""

    def __init__(self):
        self.records: List[CrawlRecord] = []

    async def emit(self, record: CrawlRecord):
        self.records.append(record)

    @property
    def urls(self) -> List[str]:
        return [record.url for record in self.records]
