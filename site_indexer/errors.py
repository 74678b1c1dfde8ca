# site_indexer/errors.py
"""
Exception hierarchy for SiteIndexer.
"""
from __future__ import annotations

from typing import Optional

__all__ = (
    "SiteIndexerError",
    "InvalidArgumentError",
    "TransportError",
    "MalformedDocumentError",
    "NoSitemapFoundError",
    "SinkError",
    "EmbeddingError",
)


class SiteIndexerError(Exception):
    """Base class for all SiteIndexer errors."""


class InvalidArgumentError(SiteIndexerError, ValueError):
    """Bad call parameters, raised before any I/O."""


class TransportError(SiteIndexerError):
    """A fetch failed (network error or non-2xx HTTP status)."""

    def __init__(self, url: str, status: Optional[int] = None, message: str = "") -> None:
        self.url = url
        self.status = status
        detail = message or (f"HTTP {status}" if status is not None else "request failed")
        super().__init__(f"{url}: {detail}")

    @property
    def not_found(self) -> bool:
        return self.status == 404


class MalformedDocumentError(SiteIndexerError):
    """XML could not be parsed or has an unknown root element."""


class NoSitemapFoundError(SiteIndexerError):
    """No discovery candidate yielded a parseable sitemap."""


class SinkError(SiteIndexerError):
    """The search index rejected or failed a bulk upsert."""


class EmbeddingError(SiteIndexerError):
    """The embedding service returned an error."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        self.status = status
        super().__init__(message)
