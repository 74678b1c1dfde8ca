# site_indexer/crawler/robots.py
"""
Sitemap discovery through robots.txt ``Sitemap:`` directives.
"""
from __future__ import annotations

from typing import List, Optional

_DIRECTIVE = "sitemap:"


def find_sitemap_urls(text: str) -> List[str]:
    """Return every ``Sitemap:`` URL of a robots.txt, in file order."""
    urls: List[str] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line.lower().startswith(_DIRECTIVE):
            continue
        _, _, val = line.partition(":")
        val = val.strip()
        if val:
            urls.append(val)
    return urls


def first_sitemap_url(text: str) -> Optional[str]:
    """The first ``Sitemap:`` URL of a robots.txt, or None."""
    urls = find_sitemap_urls(text)
    return urls[0] if urls else None
