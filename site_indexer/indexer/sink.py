# site_indexer/indexer/sink.py
"""
Search index sink: bulk "merge or upload" of page records into Azure AI Search
through its REST API.
"""
from __future__ import annotations

import asyncio
from typing import Protocol, Sequence

from aiohttp import ClientError, ClientSession

from site_indexer.config import SearchServiceConfig
from site_indexer.errors import SinkError
from site_indexer.indexer.models import IndexResult, PageRecord
from site_indexer.logger import VERBOSE, logger


class IndexSink(Protocol):
    """Anything that can upsert a batch of records; must be idempotent on ``url``."""

    async def bulk_upsert(self, records: Sequence[PageRecord]) -> IndexResult:
        ...


class AzureSearchSink:
    """Upserts documents with ``@search.action = mergeOrUpload``."""

    def __init__(self, session: ClientSession, config: SearchServiceConfig) -> None:
        self.session = session
        self.config = config
        endpoint = str(config.endpoint).rstrip("/")
        self.url = f"{endpoint}/indexes/{config.index_name}/docs/index"
        logger.info("Initializing Azure Search client")
        logger.debug("Connecting to %s, index: %s", endpoint, config.index_name)

    async def bulk_upsert(self, records: Sequence[PageRecord]) -> IndexResult:
        if not records:
            return IndexResult()
        payload = {"value": [r.to_document() for r in records]}
        headers = {"api-key": self.config.admin_api_key, "Content-Type": "application/json"}
        params = {"api-version": self.config.api_version}

        try:
            async with self.session.post(self.url, json=payload, headers=headers, params=params) as resp:
                if resp.status >= 400:
                    body = await resp.text()
                    raise SinkError(f"Indexing failed with HTTP {resp.status}: {body[:500]}")
                data = await resp.json(content_type=None)
        except (ClientError, asyncio.TimeoutError) as exc:
            raise SinkError(f"Indexing request failed: {exc}") from exc

        result = IndexResult.from_response(data or {})
        if not result.succeeded and not result.failed:
            result = IndexResult.all_succeeded(records)
        for key, reason in result.failed.items():
            logger.warning("Document %s was rejected by the index: %s", key, reason)
        logger.log(VERBOSE, "Index response: %d succeeded, %d failed", len(result.succeeded), len(result.failed))
        return result
