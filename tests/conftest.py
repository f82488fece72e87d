"""Shared fixtures: an in-memory fetcher, a stub processor and page builders."""

from typing import Dict, List, Union

import pytest

from routecrawl.crawler.fetcher import FetchResult
from routecrawl.crawler.processor import PageProcessor


class StubProcessor(PageProcessor):
    """Returns its name as contents and the route params as metainfo."""

    def __init__(self, name: str = "stub") -> None:
        self.name = name

    def contents(self, document, params):
        return [self.name]

    def metainfo(self, document, params):
        return {key: [value] for key, value in params.items()}


class FakeFetcher:
    """Serves pages from a dict and remembers every fetched URL in order."""

    def __init__(self, pages: Dict[str, Union[str, FetchResult]]) -> None:
        self.pages = pages
        self.fetched: List[str] = []

    async def fetch(self, url: str) -> FetchResult:
        self.fetched.append(url)
        page = self.pages.get(url)
        if page is None:
            return FetchResult(url=url, status_code=404, error="HTTP 404")
        if isinstance(page, FetchResult):
            return page
        return FetchResult(url=url, status_code=200, content=page, content_type="text/html")


def build_page(*links: str, images: tuple = (), title: str = "page") -> str:
    anchors = "".join(f'<a href="{link}">link</a>' for link in links)
    imgs = "".join(f'<img src="{src}">' for src in images)
    return f"<html><head><title>{title}</title></head><body>{anchors}{imgs}</body></html>"


@pytest.fixture
def stub_processor() -> StubProcessor:
    return StubProcessor()


@pytest.fixture
def make_fetcher():
    return FakeFetcher


@pytest.fixture
def page():
    return build_page
