"""Indexing side of SiteIndexer: records, batching queue, sink and page processor."""

from site_indexer.indexer.indexer import SearchIndexer
from site_indexer.indexer.models import IndexResult, PageRecord
from site_indexer.indexer.queue import IndexingQueue
from site_indexer.indexer.sink import AzureSearchSink, IndexSink

__all__ = ["SearchIndexer", "IndexResult", "PageRecord", "IndexingQueue", "AzureSearchSink", "IndexSink"]
