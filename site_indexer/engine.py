# File: site_indexer/engine.py
"""site_indexer.engine: wires transport, indexer and sitemap crawler together and runs a crawl."""

from __future__ import annotations

from typing import Optional

from aiohttp import ClientSession, ClientTimeout

from site_indexer.config import CrawlerConfig
from site_indexer.crawler.base import CrawlStrategy
from site_indexer.crawler.fetcher import Fetcher
from site_indexer.crawler.sitemap import SitemapCrawler
from site_indexer.indexer.embedding import EmbeddingClient
from site_indexer.indexer.indexer import SearchIndexer
from site_indexer.indexer.queue import IndexingQueue
from site_indexer.indexer.sink import AzureSearchSink
from site_indexer.logger import logger
from site_indexer.throttle import RateLimiter

__all__ = ["CrawlCoordinator", "start_crawl"]


class CrawlCoordinator:
    """Facade for the CLI and tests: builds the pipeline from config and crawls every site."""

    def __init__(self, config: CrawlerConfig, session: Optional[ClientSession] = None) -> None:
        self.config = config
        self.session = session
        self._owns_session = session is None
        self.indexer: Optional[SearchIndexer] = None
        self.crawler: Optional[CrawlStrategy] = None

    async def __aenter__(self) -> CrawlCoordinator:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.config.timeout),
                headers={"User-Agent": self.config.user_agent},
                raise_for_status=False,
            )
        self._build()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    def _build(self) -> None:
        cfg = self.config
        if self.session is None:
            raise RuntimeError("CrawlCoordinator has no HTTP session")

        sink = None
        embedder = None
        limiter = None
        if cfg.dry_run:
            logger.info("Dry run: nothing will be uploaded to the index")
        else:
            sink = AzureSearchSink(self.session, cfg.search)
            if cfg.embedding is not None:
                embedder = EmbeddingClient(self.session, cfg.embedding)
                limiter = RateLimiter(cfg.embedding.min_interval, enabled=cfg.embedding.rate_limiting)

        queue = IndexingQueue(sink, batch_size=cfg.batch_size)
        self.indexer = SearchIndexer(queue, extract_text=cfg.extract_text, embedder=embedder, rate_limiter=limiter)
        self.crawler = SitemapCrawler(self.indexer, Fetcher(self.session, retry_times=cfg.retry_times))

    async def run(self) -> int:
        """Crawl every configured site in order; return the total number of pages crawled."""
        if self.crawler is None:
            raise RuntimeError("CrawlCoordinator must be used as an async context manager")

        total = 0
        for site in self.config.targets():
            url = str(site.uri)
            logger.info("Crawling %s with depth %d...", url, site.max_depth)
            total += await self.crawler.crawl(url, self.config.max_pages, site.max_depth)
        logger.info("Crawl finished: %d pages from %d site(s)", total, len(self.config.targets()))
        return total


async def start_crawl(cfg: CrawlerConfig) -> int:
    """
    Run a complete crawl for *cfg* and return the number of pages crawled.

    Parameters
    ----------
    cfg : CrawlerConfig
        Crawl configuration.
    """
    async with CrawlCoordinator(cfg) as coordinator:
        return await coordinator.run()
