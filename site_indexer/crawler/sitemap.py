# === FILE: site_indexer/crawler/sitemap.py ===
"""Sitemap-driven crawl strategy.

The entry sitemap is located through robots.txt or a list of conventional
paths, then sitemap indexes are expanded recursively (depth first, in
document order) down to urlsets whose pages are fetched and handed to a
:class:`~site_indexer.crawler.base.PageProcessor`.

Bounds enforced per run:

* every sitemap URL is expanded at most once (circular indexes are skipped);
* nested indexes deeper than :data:`MAX_SITEMAP_DEPTH` are not expanded;
* pages on other hosts than the root are never fetched;
* at most ``max_pages`` pages are handed to the processor, across all branches.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from site_indexer.crawler.base import PageProcessor
from site_indexer.crawler.fetcher import Fetcher
from site_indexer.crawler.models import CrawledPage, SitemapReference
from site_indexer.crawler.robots import first_sitemap_url
from site_indexer.errors import (
    InvalidArgumentError,
    MalformedDocumentError,
    NoSitemapFoundError,
    TransportError,
)
from site_indexer.logger import logger
from site_indexer.parser.sitemap_parser import SitemapDocument, parse_sitemap
from site_indexer.utils import is_absolute_url, normalize_url, origin_of, resolve_url, same_host

__all__ = ("SitemapCrawler", "MAX_SITEMAP_DEPTH", "SITEMAP_PATHS")

MAX_SITEMAP_DEPTH = 10

SITEMAP_PATHS: Tuple[str, ...] = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemaps/sitemap.xml",
    "/sitemap/sitemap.xml",
)


@dataclass
class _CrawlRun:
    """State of one :meth:`SitemapCrawler.crawl` call."""

    root_url: str
    max_pages: int
    processed: int = 0
    visited: Set[str] = field(default_factory=set)
    limit_logged: bool = False

    def mark_visited(self, url: str) -> bool:
        """Add *url* to the visited set; False if it was already there."""
        key = normalize_url(url)
        if key in self.visited:
            return False
        self.visited.add(key)
        return True

    def limit_reached(self) -> bool:
        if self.processed < self.max_pages:
            return False
        if not self.limit_logged:
            logger.info("Reached maximum pages limit (%d)", self.max_pages)
            self.limit_logged = True
        return True


class SitemapCrawler:
    """Crawl a site through its sitemaps."""

    def __init__(self, processor: PageProcessor, fetcher: Fetcher) -> None:
        if processor is None:
            raise InvalidArgumentError("processor is required")
        if fetcher is None:
            raise InvalidArgumentError("fetcher is required")
        self.processor = processor
        self.fetcher = fetcher

    async def crawl(self, root_url: str, max_pages: int, max_depth: int) -> int:
        """Crawl *root_url* and return the number of pages handed to the processor.

        ``max_depth`` is validated for compatibility with other strategies;
        sitemap nesting is bounded by :data:`MAX_SITEMAP_DEPTH`.

        Raises InvalidArgumentError on bad arguments (before any request) and
        NoSitemapFoundError when no entry sitemap could be found.
        """
        if not root_url or not is_absolute_url(str(root_url)):
            raise InvalidArgumentError(f"root_url must be an absolute URL, got {root_url!r}")
        if max_pages <= 0:
            raise InvalidArgumentError("max_pages must be greater than 0")
        if max_depth <= 0:
            raise InvalidArgumentError("max_depth must be greater than 0")

        run = _CrawlRun(root_url=str(root_url), max_pages=max_pages)
        logger.info("Starting sitemap crawl of %s (max %d pages)", run.root_url, max_pages)
        start = time.monotonic()

        discovered = await self._discover(run)
        if discovered is None:
            logger.error("Could not find sitemap at any common location of %s", run.root_url)
            raise NoSitemapFoundError(f"Could not find sitemap at any common location of {run.root_url}")

        ref, doc = discovered
        await self._expand(run, ref, doc)
        await self.processor.crawl_finished()

        duration = time.monotonic() - start
        logger.info(
            "Sitemap crawl of %s finished: %d pages, %d sitemaps in %.2f s",
            run.root_url,
            run.processed,
            len(run.visited),
            duration,
        )
        return run.processed

    # ------------------------------------------------------------------ #
    # Discovery                                                          #
    # ------------------------------------------------------------------ #

    async def _candidates(self, run: _CrawlRun) -> List[str]:
        origin = origin_of(run.root_url)
        candidates: List[str] = []

        robots_url = f"{origin}/robots.txt"
        try:
            robots = await self.fetcher.fetch_optional(robots_url)
        except TransportError as exc:
            logger.warning("Could not read %s: %s", robots_url, exc)
            robots = None

        if robots:
            location = first_sitemap_url(robots)
            if location:
                try:
                    sitemap_url = resolve_url(run.root_url, location)
                except ValueError:
                    logger.warning("Invalid sitemap URL in robots.txt: %s", location)
                else:
                    logger.info("Found sitemap URL in robots.txt: %s", sitemap_url)
                    candidates.append(sitemap_url)

        for path in SITEMAP_PATHS:
            url = origin + path
            if url not in candidates:
                candidates.append(url)
        return candidates

    async def _discover(self, run: _CrawlRun) -> Optional[Tuple[SitemapReference, SitemapDocument]]:
        for url in await self._candidates(run):
            logger.debug("Trying sitemap at %s", url)
            try:
                text = await self.fetcher.fetch_optional(url)
            except TransportError as exc:
                logger.error("Error processing sitemap at %s: %s", url, exc)
                continue
            if text is None:
                logger.debug("No sitemap found at %s", url)
                continue

            try:
                doc = parse_sitemap(text)
            except MalformedDocumentError:
                logger.warning("Invalid XML found at %s", url)
                continue
            if not (doc.is_index or doc.is_urlset):
                logger.warning("Invalid sitemap format at %s", url)
                continue

            run.mark_visited(url)
            return SitemapReference(url, 0), doc
        return None

    # ------------------------------------------------------------------ #
    # Expansion                                                          #
    # ------------------------------------------------------------------ #

    async def _expand(self, run: _CrawlRun, ref: SitemapReference, doc: SitemapDocument) -> None:
        if doc.is_index:
            await self._process_index(run, ref, doc)
        elif doc.is_urlset:
            await self._process_urlset(run, doc)
        else:
            logger.warning("Invalid sitemap format at %s", ref.url)

    async def _process_index(self, run: _CrawlRun, ref: SitemapReference, doc: SitemapDocument) -> None:
        logger.debug("Sitemap index %s (depth %d): %d entries", ref.url, ref.depth, len(doc.locations))
        for location in doc.locations:
            if run.limit_reached():
                return
            if not location:
                logger.warning("Invalid sitemap location: empty")
                continue
            try:
                url = resolve_url(run.root_url, location)
            except ValueError:
                logger.warning("Invalid sitemap location: %s", location)
                continue

            if not run.mark_visited(url):
                logger.warning("Circular reference detected: %s", url)
                continue

            child = ref.child(url)
            try:
                sub_doc = parse_sitemap(await self.fetcher.fetch_text(url))
            except (TransportError, MalformedDocumentError) as exc:
                logger.error("Failed to process sitemap %s: %s", url, exc)
                continue

            if sub_doc.is_index and child.depth > MAX_SITEMAP_DEPTH:
                logger.warning("Maximum sitemap depth reached (%d), not expanding %s", MAX_SITEMAP_DEPTH, url)
                continue
            await self._expand(run, child, sub_doc)

    async def _process_urlset(self, run: _CrawlRun, doc: SitemapDocument) -> None:
        for location in doc.locations:
            if run.limit_reached():
                return
            if not location:
                logger.warning("Skipping invalid URL: empty location")
                continue
            try:
                url = resolve_url(run.root_url, location)
            except ValueError:
                logger.warning("Skipping invalid URL: %s", location)
                continue
            if not same_host(url, run.root_url):
                logger.warning("Skipping external URL: %s", url)
                continue

            try:
                content = await self.fetcher.fetch_text(url)
            except TransportError as exc:
                logger.error("Failed to fetch page %s: %s", url, exc)
                continue

            await self.processor.page_crawled(CrawledPage(url=url, content=content))
            run.processed += 1
            logger.info("Crawled %s (%d/%d)", url, run.processed, run.max_pages)
