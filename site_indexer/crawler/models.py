# site_indexer/crawler/models.py
"""
Data models for the sitemap crawler.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SitemapReference:
    """Absolute sitemap URL together with the depth it was discovered at."""

    url: str
    depth: int = 0

    def __post_init__(self) -> None:
        if self.depth < 0:
            raise ValueError("depth must be >= 0")

    def child(self, url: str) -> SitemapReference:
        return SitemapReference(url, self.depth + 1)


@dataclass(frozen=True, slots=True)
class CrawledPage:
    """Fetched page: URL and raw body text."""

    url: str
    content: str
