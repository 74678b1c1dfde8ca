# File: tests/conftest.py
import logging
from typing import Dict, List, Optional, Sequence, Union

import pytest

from site_indexer.crawler.models import CrawledPage
from site_indexer.errors import SinkError, TransportError
from site_indexer.indexer.models import IndexResult, PageRecord
from site_indexer.logger import logger as project_logger

Response = Union[str, int, Exception]

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"


def urlset(*locs: str) -> str:
    """Build a urlset document with one <url> per location."""
    entries = "".join(f"<url><loc>{loc}</loc></url>" for loc in locs)
    return f'<?xml version="1.0" encoding="UTF-8"?><urlset xmlns="{SITEMAP_NS}">{entries}</urlset>'


def sitemap_index(*locs: str) -> str:
    """Build a sitemapindex document with one <sitemap> per location."""
    entries = "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in locs)
    return f'<?xml version="1.0" encoding="UTF-8"?><sitemapindex xmlns="{SITEMAP_NS}">{entries}</sitemapindex>'


class FakeFetcher:
    """
    In-memory transport. A route maps to body text, an HTTP status (int) or an
    exception to raise. Unknown URLs answer 404.
    """

    def __init__(self, routes: Dict[str, Response]) -> None:
        self.routes = routes
        self.requested: List[str] = []

    async def fetch_text(self, url: str) -> str:
        self.requested.append(url)
        response = self.routes.get(url, 404)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, int):
            raise TransportError(url, response)
        return response

    async def fetch_optional(self, url: str) -> Optional[str]:
        try:
            return await self.fetch_text(url)
        except TransportError as exc:
            if exc.not_found:
                return None
            raise


class RecordingProcessor:
    """Page processor that remembers what it was given."""

    def __init__(self, fail_on: Optional[str] = None) -> None:
        self.pages: List[CrawledPage] = []
        self.finished = 0
        self.fail_on = fail_on

    @property
    def urls(self) -> List[str]:
        return [p.url for p in self.pages]

    async def page_crawled(self, page: CrawledPage) -> None:
        if page.url == self.fail_on:
            raise SinkError("index unavailable")
        self.pages.append(page)

    async def crawl_finished(self) -> None:
        self.finished += 1


class MemorySink:
    """Sink that stores every batch; the first *failures* calls raise SinkError."""

    def __init__(self, failures: int = 0) -> None:
        self.batches: List[List[PageRecord]] = []
        self.failures = failures
        self.calls = 0

    @property
    def submitted(self) -> List[PageRecord]:
        return [r for batch in self.batches for r in batch]

    async def bulk_upsert(self, records: Sequence[PageRecord]) -> IndexResult:
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise SinkError("bulk upsert failed")
        self.batches.append(list(records))
        return IndexResult.all_succeeded(records)


def make_record(i: int) -> PageRecord:
    return PageRecord(url=f"http://example.com/page{i}", title=f"Page {i}", content=f"content {i}")


@pytest.fixture()
def logs(caplog):
    """
    Capture records of the project logger (it does not propagate to root).
    """
    caplog.set_level(logging.DEBUG, logger=project_logger.name)
    project_logger.addHandler(caplog.handler)
    yield caplog
    project_logger.removeHandler(caplog.handler)


def messages(caplog, level: str, text: str) -> List[str]:
    """Messages at *level* that contain *text*."""
    return [r.getMessage() for r in caplog.records if r.levelname == level and text in r.getMessage()]


@pytest.fixture()
def processor() -> RecordingProcessor:
    return RecordingProcessor()
