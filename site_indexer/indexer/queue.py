# === FILE: site_indexer/indexer/queue.py ===
"""Batching queue between the crawl and the search index.

Records are buffered in FIFO order and submitted to the sink in batches of at
most ``batch_size``. At most one bulk upsert is in flight per queue: flushes
are serialized by an :class:`asyncio.Lock`. A batch whose upsert fails is put
back at the front of the buffer, in its original order, before the error is
re-raised, so a retry resubmits exactly the same records and nothing is lost.

Without a sink (dry-run) the queue only logs what it would index.
"""
from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Deque, List, Optional, Tuple

from site_indexer.errors import InvalidArgumentError
from site_indexer.indexer.models import IndexResult, PageRecord
from site_indexer.indexer.sink import IndexSink
from site_indexer.logger import VERBOSE, logger

__all__ = ["IndexingQueue", "DEFAULT_BATCH_SIZE"]

DEFAULT_BATCH_SIZE = 1000


class IndexingQueue:
    """FIFO buffer of :class:`PageRecord` flushed to an :class:`IndexSink` in bounded batches."""

    def __init__(self, sink: Optional[IndexSink], batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        if batch_size <= 0:
            raise InvalidArgumentError("batch_size must be greater than 0")
        self.sink = sink
        self.batch_size = batch_size
        self._buffer: Deque[PageRecord] = deque()
        self._flush_lock = asyncio.Lock()

    @property
    def dry_run(self) -> bool:
        return self.sink is None

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def pending(self) -> Tuple[PageRecord, ...]:
        """Snapshot of the buffered records, oldest first."""
        return tuple(self._buffer)

    async def enqueue(self, record: PageRecord) -> Optional[IndexResult]:
        """Append *record*; flush inline once the buffer exceeds ``batch_size``."""
        if self.dry_run:
            logger.info("[DRY RUN] Would index page: %s", record.url)
            return None

        self._buffer.append(record)
        logger.debug("Added page to indexing queue (size: %d/%d)", len(self._buffer), self.batch_size)
        if len(self._buffer) > self.batch_size:
            return await self.flush_if_necessary()
        return None

    async def flush_if_necessary(self) -> Optional[IndexResult]:
        """Submit the oldest batch; ``None`` when there is nothing to do.

        Sink errors are re-raised after the batch has been restored.
        """
        async with self._flush_lock:
            if not self._buffer or self.sink is None:
                return None

            batch: List[PageRecord] = []
            while self._buffer and len(batch) < self.batch_size:
                batch.append(self._buffer.popleft())

            logger.info("Indexing batch of %d pages", len(batch))
            start = time.monotonic()
            try:
                result = await self.sink.bulk_upsert(batch)
            except BaseException as exc:
                # also on cancellation
                self._buffer.extendleft(reversed(batch))
                logger.error("Indexing batch of %d pages failed, requeued: %s", len(batch), exc)
                raise

            logger.debug(
                "Batch details - Size: %d, Average content length: %.0f chars",
                len(batch),
                sum(len(r.content) for r in batch) / len(batch),
            )
            logger.log(VERBOSE, "Batch indexing timing: %.2f seconds", time.monotonic() - start)
            return result

    async def drain_on_finish(self) -> Optional[IndexResult]:
        """Flush once at the end of a crawl and report anything left behind.

        This is a single flush pass, not a loop: records beyond one batch stay
        queued and are reported as an error.
        """
        if self.dry_run:
            return None
        try:
            return await self.flush_if_necessary()
        finally:
            if self._buffer:
                logger.error("Indexing queue still not empty: %d items remain", len(self._buffer))
