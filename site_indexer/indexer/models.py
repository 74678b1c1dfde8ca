# site_indexer/indexer/models.py
"""
Records sent to the search index and the result of a bulk upsert.
"""
from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple


def document_key(url: str) -> str:
    """URL-safe index key for *url* (Azure Search keys may not contain ``/`` or ``:``)."""
    return base64.urlsafe_b64encode(url.encode("utf-8")).decode("ascii").rstrip("=")


@dataclass(frozen=True, slots=True)
class PageRecord:
    """Extracted page, the unit queued for indexing."""

    url: str
    title: str
    content: str
    title_vector: Tuple[float, ...] = ()
    content_vector: Tuple[float, ...] = ()

    @property
    def key(self) -> str:
        return document_key(self.url)

    def to_document(self, action: str = "mergeOrUpload") -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "@search.action": action,
            "id": self.key,
            "url": self.url,
            "title": self.title,
            "content": self.content,
        }
        if self.title_vector:
            doc["titleVector"] = list(self.title_vector)
        if self.content_vector:
            doc["contentVector"] = list(self.content_vector)
        return doc


@dataclass(slots=True)
class IndexResult:
    """Outcome of one bulk upsert: keys accepted and keys rejected by the index."""

    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> IndexResult:
        result = cls()
        for item in payload.get("value", []):
            key = str(item.get("key", ""))
            if item.get("status", False):
                result.succeeded.append(key)
            else:
                result.failed[key] = str(item.get("errorMessage") or item.get("statusCode", "unknown error"))
        return result

    @classmethod
    def all_succeeded(cls, records: Sequence[PageRecord]) -> IndexResult:
        return cls(succeeded=[r.key for r in records])
