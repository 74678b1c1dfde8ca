# File: site_indexer/utils.py
"""site_indexer.utils: URL helpers shared by the sitemap traversal."""

from __future__ import annotations

from typing import Sequence
from urllib.parse import urljoin, urlsplit, urlunsplit

from site_indexer.logger import logger

__all__: Sequence[str] = (
    "is_absolute_url",
    "origin_of",
    "resolve_url",
    "normalize_url",
    "extract_host",
    "same_host",
)


def is_absolute_url(url: str) -> bool:
    """True for URLs that carry both a scheme and a host."""
    parts = urlsplit(url)
    return bool(parts.scheme) and bool(parts.netloc)


def origin_of(url: str) -> str:
    """Return ``scheme://host[:port]`` of *url*."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, "", "", ""))


def resolve_url(base_url: str, location: str) -> str:
    """Resolve a sitemap ``<loc>`` against *base_url*.

    Absolute locations are returned unchanged. Relative ones lose their
    leading dots (``./a`` and ``../a`` both become ``/a``), get a leading
    slash when missing and are joined to the origin of *base_url*.
    """
    location = location.strip()
    if not location:
        raise ValueError("empty location")
    if is_absolute_url(location):
        return location
    if urlsplit(location).scheme:
        # "mailto:x", "javascript:..." and friends
        raise ValueError(f"unsupported location: {location}")

    relative = location.lstrip(".")
    if not relative.startswith("/"):
        relative = "/" + relative
    resolved = urljoin(origin_of(base_url) + "/", relative)
    logger.debug("Resolved URL: %s -> %s", location, resolved)
    return resolved


def normalize_url(url: str) -> str:
    """Lower-case scheme and host, keep path and query as-is, drop the fragment."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, ""))


def extract_host(url: str) -> str:
    """Host name of *url*, lower-cased, without port."""
    return (urlsplit(url).hostname or "").lower()


def same_host(url: str, other: str) -> bool:
    """Case-insensitive host comparison."""
    return extract_host(url) == extract_host(other)
