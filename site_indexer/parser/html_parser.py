# === FILE: site_indexer/parser/html_parser.py ===
"""HTML extraction utilities for SiteIndexer.

:func:`extract_content` turns a fetched page body into the two fields that
end up in the search index:

* title   - document <title> text or ``""`` if absent.
* content - cleaned-up visible text of <body> (default), or the raw inner
  HTML of <body> when ``extract_text=False``.

Text extraction drops <script>, <style>, <svg> and <path> elements and joins
the remaining text nodes with single spaces.
"""
from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from bs4 import BeautifulSoup

__all__: Sequence[str] = ("ExtractedContent", "extract_content")

_REMOVED_TAGS = ("script", "style", "svg", "path", "noscript", "template")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(slots=True)
class ExtractedContent:
    """Title and indexable content of one HTML page."""

    title: str
    content: str

    def is_empty(self) -> bool:
        return not self.content.strip()


def _clean(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def extract_content(html: str | None, extract_text: bool = True) -> ExtractedContent:
    """Extract title and content from raw HTML.

    Parameters
    ----------
    html
        Page markup; ``None`` or ``""`` yield empty fields.
    extract_text
        ``True`` - cleaned visible text of the body; ``False`` - body inner HTML.
    """
    if not html:
        return ExtractedContent(title="", content="")

    soup = BeautifulSoup(html, "html.parser")

    title_tag = soup.find("title")
    title = _clean(title_tag.get_text()) if title_tag else ""

    body = soup.find("body")
    if body is None:
        return ExtractedContent(title=title, content="")

    if not extract_text:
        return ExtractedContent(title=title, content=body.decode_contents())

    for element in body(list(_REMOVED_TAGS)):
        element.decompose()
    text = " ".join(_clean(t) for t in body.stripped_strings)
    return ExtractedContent(title=title, content=_clean(text))
