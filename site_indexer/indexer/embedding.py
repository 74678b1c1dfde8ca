# site_indexer/indexer/embedding.py
"""
Embedding vectors from an Azure OpenAI deployment (REST API).
"""
from __future__ import annotations

import asyncio
from typing import List

from aiohttp import ClientError, ClientSession

from site_indexer.config import EmbeddingConfig
from site_indexer.errors import EmbeddingError
from site_indexer.logger import logger


class EmbeddingClient:
    """Turns text into a vector of ``config.dimensions`` floats."""

    def __init__(self, session: ClientSession, config: EmbeddingConfig) -> None:
        self.session = session
        self.config = config
        endpoint = str(config.endpoint).rstrip("/")
        self.url = f"{endpoint}/openai/deployments/{config.deployment}/embeddings"
        logger.info("Creating embedding client for deployment %s", config.deployment)
        logger.debug("Using dimensions: %d", config.dimensions)

    async def embed(self, text: str) -> List[float]:
        payload = {"input": text, "dimensions": self.config.dimensions}
        headers = {"api-key": self.config.admin_api_key}
        params = {"api-version": self.config.api_version}
        try:
            async with self.session.post(self.url, json=payload, headers=headers, params=params) as resp:
                if resp.status >= 400:
                    body = await resp.text()
                    raise EmbeddingError(f"Embedding failed with HTTP {resp.status}: {body[:500]}", resp.status)
                data = await resp.json(content_type=None)
        except (ClientError, asyncio.TimeoutError) as exc:
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc

        try:
            vector = [float(v) for v in data["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise EmbeddingError(f"Unexpected embedding response: {exc}") from exc
        logger.debug("Embedding generated with %d dimensions", len(vector))
        return vector
