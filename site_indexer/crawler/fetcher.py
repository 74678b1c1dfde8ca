# site_indexer/crawler/fetcher.py
"""
Fetcher module: HTTP GET with retry/backoff and timeout, returning body text.
"""
from __future__ import annotations

import asyncio
import random
from typing import Optional, Sequence

from aiohttp import ClientError, ClientSession

from site_indexer.errors import TransportError
from site_indexer.logger import VERBOSE, logger

RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)


class Fetcher:
    """Fetches text bodies, retrying 429/5xx responses with exponential backoff."""

    def __init__(
        self,
        session: ClientSession,
        retry_times: int = 2,
        retry_status: Sequence[int] = RETRY_STATUS,
        max_backoff: float = 60.0,
    ) -> None:
        self.session = session
        self.retry_times = retry_times
        self._retry_status = retry_status
        self._max_backoff = max_backoff

    async def fetch_text(self, url: str) -> str:
        """
        Return the body of *url* as text.

        Raises TransportError for non-2xx statuses (after retries for
        retryable ones), network errors, timeouts and bodies that do not
        decode in the declared charset.
        """
        attempts = 0
        while True:
            try:
                async with self.session.get(url, raise_for_status=False) as resp:
                    if not 200 <= resp.status < 300:
                        raise TransportError(url, resp.status)
                    try:
                        text = await resp.text()
                    except UnicodeDecodeError as exc:
                        raise TransportError(url, resp.status, message=f"undecodable body ({exc.reason})") from exc
                    logger.log(VERBOSE, "Fetched %s (%d chars)", url, len(text))
                    return text
            except TransportError as exc:
                if exc.status not in self._retry_status:
                    raise
                error: Exception = exc
            except asyncio.TimeoutError as exc:
                # no retry on timeout
                raise TransportError(url, message="timed out") from exc
            except ClientError as exc:
                error = exc

            attempts += 1
            if attempts > self.retry_times:
                if isinstance(error, TransportError):
                    raise error
                raise TransportError(url, message=str(error) or type(error).__name__) from error
            backoff = min(self._max_backoff, 2**attempts + random.random())
            logger.debug("Retry %d/%d for %s after %.2f s", attempts, self.retry_times, url, backoff)
            await asyncio.sleep(backoff)

    async def fetch_optional(self, url: str) -> Optional[str]:
        """Like :meth:`fetch_text`, but a 404 yields ``None`` instead of an error."""
        try:
            return await self.fetch_text(url)
        except TransportError as exc:
            if exc.not_found:
                return None
            raise
