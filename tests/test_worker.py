"""Tests for routecrawl.crawler.worker: the per-worker depth-first crawl loop."""

import pytest

from routecrawl.crawler.errors import FetchError, ParseError, ProcessorError, RouteNotFound
from routecrawl.crawler.fetcher import FetchResult
from routecrawl.crawler.processor import PageProcessor
from routecrawl.crawler.router import Router
from routecrawl.crawler.visited import SharedVisitedSet
from routecrawl.crawler.worker import Worker, WorkerState, base_url_of
from routecrawl.output.sinks import CollectingSink
from routecrawl.utils.monitoring import CrawlerMonitor

ROOT = "https://example.com/"


class _Exploding(PageProcessor):
    def contents(self, document, params):
        raise ValueError("boom")

    def metainfo(self, document, params):
        return {}


@pytest.fixture
def router(stub_processor) -> Router:
    return (
        Router()
        .insert("https://example.com/", stub_processor)
        .insert("https://example.com/p/:id", stub_processor)
    )


def _worker(router, fetcher, seed=ROOT, **kwargs) -> Worker:
    kwargs.setdefault("sink", CollectingSink())
    return Worker(worker_id=0, seed_url=seed, router=router, fetcher=fetcher, **kwargs)


def test_base_url_drops_path() -> None:
    assert base_url_of("https://example.com:8443/a/b?q=1") == "https://example.com:8443"


class TestTraversal:
    @pytest.mark.asyncio
    async def test_end_to_end_visit_order(self, router, make_fetcher, page) -> None:
        fetcher = make_fetcher({
            ROOT: page("/p/1", "/p/2", "/other"),
            "https://example.com/p/1": page("/"),
            "https://example.com/p/2": page("/"),
            "https://example.com/other": page(),
        })
        sink = CollectingSink()

        result = await _worker(router, fetcher, sink=sink).run()

        assert result.state == WorkerState.DONE
        assert result.error is None
        assert fetcher.fetched == [ROOT, "https://example.com/p/2", "https://example.com/p/1"]
        assert sink.urls == [ROOT, "https://example.com/p/2", "https://example.com/p/1"]
        assert [record.params for record in sink.records] == [{}, {"id": "2"}, {"id": "1"}]
        assert result.pages_crawled == 3

    @pytest.mark.parametrize("seed", [
        "https://example.com",
        "https://EXAMPLE.com/",
        "HTTPS://example.com/#top",
    ])
    @pytest.mark.asyncio
    async def test_seed_dedups_against_its_own_links(self, router, make_fetcher, page,
                                                     seed: str) -> None:
        fetcher = make_fetcher({
            ROOT: page("/", "https://example.com", "/p/1"),
            "https://example.com/p/1": page("/"),
        })
        sink = CollectingSink()

        result = await _worker(router, fetcher, seed=seed, sink=sink).run()

        assert result.state == WorkerState.DONE
        assert result.seed_url == ROOT
        assert fetcher.fetched == [ROOT, "https://example.com/p/1"]
        assert sink.urls == [ROOT, "https://example.com/p/1"]

    @pytest.mark.asyncio
    async def test_identical_links_enqueued_once(self, router, make_fetcher, page) -> None:
        fetcher = make_fetcher({
            ROOT: page("/p/b", "/p/b"),
            "https://example.com/p/b": page(),
        })

        await _worker(router, fetcher).run()

        assert fetcher.fetched == [ROOT, "https://example.com/p/b"]

    @pytest.mark.asyncio
    async def test_last_extracted_link_is_popped_first(self, router, make_fetcher, page) -> None:
        fetcher = make_fetcher({
            ROOT: page("/p/b", "/p/c"),
            "https://example.com/p/b": page(),
            "https://example.com/p/c": page(),
        })

        await _worker(router, fetcher).run()

        assert fetcher.fetched == [ROOT, "https://example.com/p/c", "https://example.com/p/b"]

    @pytest.mark.asyncio
    async def test_depth_first(self, router, make_fetcher, page) -> None:
        fetcher = make_fetcher({
            ROOT: page("/p/a", "/p/b"),
            "https://example.com/p/a": page(),
            "https://example.com/p/b": page("/p/b1"),
            "https://example.com/p/b1": page(),
        })

        await _worker(router, fetcher).run()

        assert fetcher.fetched == [
            ROOT,
            "https://example.com/p/b",
            "https://example.com/p/b1",
            "https://example.com/p/a",
        ]

    @pytest.mark.asyncio
    async def test_record_carries_processor_output(self, router, make_fetcher, page) -> None:
        fetcher = make_fetcher({ROOT: page("/p/9"), "https://example.com/p/9": page()})
        sink = CollectingSink()

        await _worker(router, fetcher, sink=sink).run()

        record = sink.records[1]
        assert record.contents == ["stub"]
        assert record.metainfo == {"id": ["9"]}
        assert record.worker_id == 0


class TestFailures:
    @pytest.mark.asyncio
    async def test_http_error_stops_worker(self, router, make_fetcher, page) -> None:
        fetcher = make_fetcher({
            ROOT: page("/p/b", "/p/c"),
            "https://example.com/p/b": page(),
            "https://example.com/p/c": FetchResult(
                url="https://example.com/p/c", status_code=500, error="HTTP 500"
            ),
        })
        worker = _worker(router, fetcher)

        result = await worker.run()

        assert result.state == WorkerState.FAILED
        assert isinstance(result.error, FetchError)
        assert result.error.status_code == 500
        assert result.failed_url == "https://example.com/p/c"
        assert result.pages_crawled == 1
        assert "https://example.com/p/b" not in fetcher.fetched
        assert worker.frontier == []

    @pytest.mark.asyncio
    async def test_network_error_is_fetch_error(self, router, make_fetcher) -> None:
        fetcher = make_fetcher({
            ROOT: FetchResult(url=ROOT, status_code=0, error="Client error: refused"),
        })

        result = await _worker(router, fetcher).run()

        assert isinstance(result.error, FetchError)
        assert result.failed_url == ROOT

    @pytest.mark.asyncio
    async def test_unparsable_body_is_parse_error(self, router, make_fetcher) -> None:
        fetcher = make_fetcher({
            ROOT: FetchResult(url=ROOT, status_code=200, content_type="image/png",
                              error="Non-text content type"),
        })

        result = await _worker(router, fetcher).run()

        assert result.state == WorkerState.FAILED
        assert isinstance(result.error, ParseError)

    @pytest.mark.asyncio
    async def test_unrouted_seed_fails_after_fetch(self, router, make_fetcher, page) -> None:
        seed = "https://example.com/index.html/extra"
        fetcher = make_fetcher({seed: page("/p/1")})
        sink = CollectingSink()

        result = await _worker(router, fetcher, seed=seed, sink=sink).run()

        assert isinstance(result.error, RouteNotFound)
        assert result.failed_url == seed
        assert fetcher.fetched == [seed]
        assert sink.records == []

    @pytest.mark.asyncio
    async def test_processor_error(self, make_fetcher, page) -> None:
        router = Router().insert("https://example.com/", _Exploding())
        fetcher = make_fetcher({ROOT: page()})

        result = await _worker(router, fetcher).run()

        assert isinstance(result.error, ProcessorError)
        assert isinstance(result.error.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_describe_mentions_failure(self, router, make_fetcher) -> None:
        result = await _worker(router, make_fetcher({})).run()

        assert "FetchError" in result.describe()
        assert ROOT in result.describe()


class TestVisitedAndMonitoring:
    @pytest.mark.asyncio
    async def test_claimed_seed_in_shared_set(self, router, make_fetcher, page) -> None:
        shared = SharedVisitedSet()
        shared.add(ROOT)
        fetcher = make_fetcher({ROOT: page()})

        result = await _worker(router, fetcher, visited=shared).run()

        assert result.state == WorkerState.DONE
        assert result.pages_crawled == 0
        assert fetcher.fetched == []

    @pytest.mark.asyncio
    async def test_monitor_counts_pages(self, router, make_fetcher, page) -> None:
        fetcher = make_fetcher({ROOT: page("/p/1"), "https://example.com/p/1": page()})
        monitor = CrawlerMonitor()

        await _worker(router, fetcher, monitor=monitor).run()

        values = monitor.metrics.get_current_values()
        assert values["pages_crawled_total"] == 2
        assert values["links_queued_total"] == 1
        assert values["active_workers"] == 0
        assert values["worker_outcomes_total,state=done"] == 1
