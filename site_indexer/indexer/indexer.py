# === FILE: site_indexer/indexer/indexer.py ===
"""Page processor that turns crawled pages into search index records."""

from __future__ import annotations

import asyncio
import time
from typing import Optional, Tuple

from site_indexer.crawler.models import CrawledPage
from site_indexer.errors import EmbeddingError, InvalidArgumentError
from site_indexer.indexer.embedding import EmbeddingClient
from site_indexer.indexer.models import PageRecord
from site_indexer.indexer.queue import IndexingQueue
from site_indexer.logger import VERBOSE, logger
from site_indexer.parser.html_parser import extract_content
from site_indexer.throttle import RateLimiter

__all__ = ["SearchIndexer", "MAX_EMBEDDING_INPUT"]

MAX_EMBEDDING_INPUT = 8000


def _truncate(text: str, limit: int = MAX_EMBEDDING_INPUT) -> str:
    return text if len(text) <= limit else text[:limit]


class SearchIndexer:
    """Extracts, embeds and queues every crawled page; drains the queue when the crawl ends."""

    def __init__(
        self,
        queue: IndexingQueue,
        extract_text: bool = True,
        embedder: Optional[EmbeddingClient] = None,
        rate_limiter: Optional[RateLimiter] = None,
        rate_limit_pause: float = 5.0,
    ) -> None:
        self.queue = queue
        self.extract_text = extract_text
        self.embedder = embedder
        self.rate_limiter = rate_limiter
        self.rate_limit_pause = rate_limit_pause

    async def page_crawled(self, page: CrawledPage) -> None:
        if page is None or not page.url:
            raise InvalidArgumentError("page with a url is required")

        if self.queue.dry_run:
            await self.queue.enqueue(PageRecord(url=page.url, title="", content=""))
            return

        extracted = extract_content(page.content, self.extract_text)
        if extracted.is_empty():
            logger.warning("No content extracted from %s", page.url)
            return

        logger.info("Processing page: %s", page.url)
        logger.debug(
            "Content details - Size: %d chars, Title length: %d chars",
            len(extracted.content),
            len(extracted.title),
        )

        try:
            title_vector, content_vector = await self._embed(extracted.title, extracted.content)
        except EmbeddingError as exc:
            if exc.status == 429:
                logger.warning(
                    "Rate limit exceeded while processing %s. Waiting %.0f seconds...",
                    page.url,
                    self.rate_limit_pause,
                )
                await asyncio.sleep(self.rate_limit_pause)
                return
            logger.error("Critical error processing page %s: %s", page.url, exc)
            raise

        record = PageRecord(
            url=page.url,
            title=extracted.title,
            content=extracted.content,
            title_vector=title_vector,
            content_vector=content_vector,
        )
        await self.queue.enqueue(record)

    async def _embed(self, title: str, content: str) -> Tuple[Tuple[float, ...], Tuple[float, ...]]:
        if self.embedder is None:
            return (), ()

        start = time.monotonic()
        title_vector: Tuple[float, ...] = ()
        if title:
            await self._throttle()
            title_vector = tuple(await self.embedder.embed(_truncate(title)))
        await self._throttle()
        content_vector = tuple(await self.embedder.embed(_truncate(content)))
        logger.log(VERBOSE, "Embedding generation timing: %.2f seconds", time.monotonic() - start)
        return title_vector, content_vector

    async def _throttle(self) -> None:
        if self.rate_limiter is not None:
            logger.log(VERBOSE, "Applying rate limiting before embedding call")
            await self.rate_limiter.wait()

    async def crawl_finished(self) -> None:
        logger.info("Processing remaining items in indexing queue")
        try:
            await self.queue.drain_on_finish()
        except Exception as exc:
            logger.error("Critical error: %d items remain in indexing queue (%s)", len(self.queue), exc)
            raise
        logger.info("Indexing completed successfully")
