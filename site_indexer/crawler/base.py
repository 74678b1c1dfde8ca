# site_indexer/crawler/base.py
"""
Seams between crawl strategies and whatever consumes the crawled pages.
"""
from __future__ import annotations

from typing import Protocol

from site_indexer.crawler.models import CrawledPage


class PageProcessor(Protocol):
    """Receives pages from a crawl strategy."""

    async def page_crawled(self, page: CrawledPage) -> None:
        """Handle one fetched, in-scope page."""

    async def crawl_finished(self) -> None:
        """Called exactly once after a successful crawl."""


class CrawlStrategy(Protocol):
    """A way of walking a site and feeding a :class:`PageProcessor`."""

    async def crawl(self, root_url: str, max_pages: int, max_depth: int) -> int:
        """Crawl *root_url*; return the number of pages handed to the processor."""
