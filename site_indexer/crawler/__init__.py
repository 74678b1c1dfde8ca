"""Sitemap crawling: transport, discovery and traversal."""

from site_indexer.crawler.models import CrawledPage, SitemapReference
from site_indexer.crawler.sitemap import MAX_SITEMAP_DEPTH, SitemapCrawler

__all__ = ["CrawledPage", "SitemapReference", "SitemapCrawler", "MAX_SITEMAP_DEPTH"]
