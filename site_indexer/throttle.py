# site_indexer/throttle.py
"""
Minimum-interval rate limiter for calls to paid remote services.
"""
from __future__ import annotations

import asyncio
import time


class RateLimiter:
    """Makes consecutive :meth:`wait` calls at least *min_interval* seconds apart."""

    def __init__(self, min_interval: float, enabled: bool = True) -> None:
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.min_interval = min_interval
        self.enabled = enabled
        self._lock = asyncio.Lock()
        self._last_call = float("-inf")

    async def wait(self) -> None:
        if not self.enabled:
            return
        async with self._lock:
            now = time.monotonic()
            delay = self.min_interval - (now - self._last_call)
            if delay > 0:
                await asyncio.sleep(delay)
            self._last_call = time.monotonic()
