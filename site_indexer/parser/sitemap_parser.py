# File: site_indexer/parser/sitemap_parser.py
"""site_indexer.parser.sitemap_parser: parse sitemap.xml documents and extract <loc> entries."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List

from lxml import etree

from site_indexer.errors import MalformedDocumentError

SITEMAP_INDEX = "sitemapindex"
URLSET = "urlset"

# The text is already decoded; a declared encoding would be applied a second time.
_XML_DECLARATION_RE = re.compile(r"^<\?xml[^>]*\?>")


@dataclass(slots=True)
class SitemapDocument:
    """Parsed sitemap: root element name plus the raw ``<loc>`` values in document order.

    An entry without a ``<loc>`` (or with an empty one) is kept as ``""`` so that
    callers can report it.
    """

    kind: str
    locations: List[str] = field(default_factory=list)

    @property
    def is_index(self) -> bool:
        return self.kind == SITEMAP_INDEX

    @property
    def is_urlset(self) -> bool:
        return self.kind == URLSET


def _loc_text(entry: etree._Element) -> str:
    loc = entry.find("{*}loc")
    if loc is None or loc.text is None:
        return ""
    return loc.text.strip()


def parse_sitemap(xml_content: str) -> SitemapDocument:
    """Parse the XML of a sitemap index or urlset.

    Namespaces are ignored: whatever default namespace the document declares,
    ``<sitemap>``, ``<url>`` and ``<loc>`` are matched by local name.

    Args:
        xml_content: text of the sitemap document.

    Returns:
        SitemapDocument with ``kind`` set to ``"sitemapindex"``, ``"urlset"`` or
        the (lower-cased) name of any other root element.

    Raises:
        MalformedDocumentError: the text is not well-formed XML.

    Example:
    ```python
    doc = parse_sitemap(text)
    if doc.is_urlset:
        print(doc.locations)
    ```
    """
    text = _XML_DECLARATION_RE.sub("", (xml_content or "").lstrip("\ufeff \t\r\n"), count=1)
    if not text.strip():
        raise MalformedDocumentError("empty document")

    parser = etree.XMLParser(ns_clean=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(text.encode("utf-8"), parser=parser)
    except etree.XMLSyntaxError as exc:
        raise MalformedDocumentError(str(exc)) from exc

    kind = etree.QName(root).localname.lower()
    if kind == SITEMAP_INDEX:
        entries = root.iterfind(".//{*}sitemap")
    elif kind == URLSET:
        entries = root.iterfind(".//{*}url")
    else:
        return SitemapDocument(kind)
    return SitemapDocument(kind, [_loc_text(entry) for entry in entries])
