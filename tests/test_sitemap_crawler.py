# File: tests/test_sitemap_crawler.py
"""Sitemap traversal: discovery, recursion bounds, page cap and error recovery."""
from __future__ import annotations

import pytest
from conftest import FakeFetcher, RecordingProcessor, messages, sitemap_index, urlset

from site_indexer.crawler.sitemap import MAX_SITEMAP_DEPTH, SitemapCrawler
from site_indexer.errors import InvalidArgumentError, NoSitemapFoundError, SinkError, TransportError

ROOT = "http://example.com"
PAGE = "<html><head><title>T</title></head><body>Page content</body></html>"


def make_crawler(routes, processor) -> tuple[SitemapCrawler, FakeFetcher]:
    fetcher = FakeFetcher(routes)
    return SitemapCrawler(processor, fetcher), fetcher


# --------------------------------------------------------------------------- #
#                               Argument checks                               #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
@pytest.mark.parametrize(
    "root,max_pages,max_depth",
    [
        ("", 10, 1),
        ("/relative", 10, 1),
        (ROOT, 0, 1),
        (ROOT, 10, 0),
        (ROOT, -1, 1),
    ],
)
async def test_invalid_arguments_fail_without_io(processor, root, max_pages, max_depth):
    crawler, fetcher = make_crawler({}, processor)
    with pytest.raises(InvalidArgumentError):
        await crawler.crawl(root, max_pages, max_depth)
    assert fetcher.requested == []
    assert processor.finished == 0


def test_invalid_argument_is_value_error():
    assert issubclass(InvalidArgumentError, ValueError)


# --------------------------------------------------------------------------- #
#                                  Discovery                                  #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_robots_sitemap_is_used_directly(processor, logs):
    routes = {
        f"{ROOT}/robots.txt": "User-agent: *\nSitemap: http://example.com/custom.xml",
        f"{ROOT}/custom.xml": urlset(f"{ROOT}/page1"),
        f"{ROOT}/page1": PAGE,
    }
    crawler, fetcher = make_crawler(routes, processor)

    assert await crawler.crawl(ROOT, 10, 1) == 1

    assert processor.urls == [f"{ROOT}/page1"]
    assert f"{ROOT}/sitemap.xml" not in fetcher.requested
    assert fetcher.requested[:2] == [f"{ROOT}/robots.txt", f"{ROOT}/custom.xml"]
    assert messages(logs, "INFO", "Found sitemap URL in robots.txt")


@pytest.mark.asyncio()
async def test_robots_directive_is_case_insensitive(processor):
    routes = {
        f"{ROOT}/robots.txt": "sitemap: /maps/site.xml\n",
        f"{ROOT}/maps/site.xml": urlset(f"{ROOT}/a"),
        f"{ROOT}/a": PAGE,
    }
    crawler, _ = make_crawler(routes, processor)
    await crawler.crawl(ROOT, 10, 1)
    assert processor.urls == [f"{ROOT}/a"]


@pytest.mark.asyncio()
async def test_conventional_paths_tried_in_order(processor, logs):
    routes = {
        f"{ROOT}/sitemaps/sitemap.xml": urlset(f"{ROOT}/a"),
        f"{ROOT}/a": PAGE,
    }
    crawler, fetcher = make_crawler(routes, processor)

    await crawler.crawl(ROOT, 10, 1)

    assert fetcher.requested == [
        f"{ROOT}/robots.txt",
        f"{ROOT}/sitemap.xml",
        f"{ROOT}/sitemap_index.xml",
        f"{ROOT}/sitemaps/sitemap.xml",
        f"{ROOT}/a",
    ]
    assert len(messages(logs, "DEBUG", "No sitemap found at")) == 2
    assert processor.finished == 1


@pytest.mark.asyncio()
async def test_unusable_candidates_are_skipped(processor, logs):
    routes = {
        f"{ROOT}/sitemap.xml": "<urlset><url><loc>broken",
        f"{ROOT}/sitemap_index.xml": f'<wrongroot xmlns="x"><url><loc>{ROOT}/p</loc></url></wrongroot>',
        f"{ROOT}/sitemaps/sitemap.xml": 500,
        f"{ROOT}/sitemap/sitemap.xml": urlset(f"{ROOT}/ok"),
        f"{ROOT}/ok": PAGE,
    }
    crawler, _ = make_crawler(routes, processor)

    await crawler.crawl(ROOT, 10, 1)

    assert processor.urls == [f"{ROOT}/ok"]
    assert messages(logs, "WARNING", f"Invalid XML found at {ROOT}/sitemap.xml")
    assert messages(logs, "WARNING", f"Invalid sitemap format at {ROOT}/sitemap_index.xml")
    assert messages(logs, "ERROR", f"Error processing sitemap at {ROOT}/sitemaps/sitemap.xml")


@pytest.mark.asyncio()
async def test_no_sitemap_found(processor, logs):
    crawler, fetcher = make_crawler({}, processor)

    with pytest.raises(NoSitemapFoundError):
        await crawler.crawl(ROOT, 10, 1)

    assert processor.finished == 0
    assert len(fetcher.requested) == 5
    assert messages(logs, "ERROR", "Could not find sitemap")


@pytest.mark.asyncio()
async def test_robots_failure_falls_back_to_conventional_paths(processor):
    routes = {
        f"{ROOT}/robots.txt": TransportError(f"{ROOT}/robots.txt", message="connection reset"),
        f"{ROOT}/sitemap.xml": urlset(f"{ROOT}/a"),
        f"{ROOT}/a": PAGE,
    }
    crawler, _ = make_crawler(routes, processor)
    await crawler.crawl(ROOT, 10, 1)
    assert processor.urls == [f"{ROOT}/a"]


# --------------------------------------------------------------------------- #
#                                  Expansion                                  #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_index_with_two_urlsets(processor, logs):
    routes = {
        f"{ROOT}/sitemap.xml": sitemap_index(f"{ROOT}/a.xml", f"{ROOT}/b.xml"),
        f"{ROOT}/a.xml": urlset(f"{ROOT}/page-a"),
        f"{ROOT}/b.xml": urlset(f"{ROOT}/page-b"),
        f"{ROOT}/page-a": PAGE,
        f"{ROOT}/page-b": PAGE,
    }
    crawler, _ = make_crawler(routes, processor)

    assert await crawler.crawl(ROOT, 10, 1) == 2

    assert processor.urls == [f"{ROOT}/page-a", f"{ROOT}/page-b"]
    assert processor.finished == 1
    assert [r for r in logs.records if r.levelname == "WARNING"] == []


@pytest.mark.asyncio()
async def test_relative_locations_are_resolved(processor):
    routes = {
        f"{ROOT}/sitemap.xml": sitemap_index("./child.xml"),
        f"{ROOT}/child.xml": urlset("docs/intro", "/docs/setup"),
        f"{ROOT}/docs/intro": PAGE,
        f"{ROOT}/docs/setup": PAGE,
    }
    crawler, _ = make_crawler(routes, processor)
    await crawler.crawl(ROOT + "/docs/", 10, 1)
    assert processor.urls == [f"{ROOT}/docs/intro", f"{ROOT}/docs/setup"]


@pytest.mark.asyncio()
async def test_page_cap(processor):
    routes = {
        f"{ROOT}/sitemap.xml": urlset(f"{ROOT}/page1", f"{ROOT}/page2", f"{ROOT}/page3"),
        f"{ROOT}/page1": PAGE,
        f"{ROOT}/page2": PAGE,
        f"{ROOT}/page3": PAGE,
    }
    crawler, fetcher = make_crawler(routes, processor)

    assert await crawler.crawl(ROOT, 1, 1) == 1

    assert processor.urls == [f"{ROOT}/page1"]
    assert f"{ROOT}/page2" not in fetcher.requested
    assert f"{ROOT}/page3" not in fetcher.requested
    assert processor.finished == 1


@pytest.mark.asyncio()
async def test_page_cap_spans_all_branches(processor):
    routes = {
        f"{ROOT}/sitemap.xml": sitemap_index(f"{ROOT}/a.xml", f"{ROOT}/b.xml"),
        f"{ROOT}/a.xml": urlset(f"{ROOT}/a1", f"{ROOT}/a2"),
        f"{ROOT}/b.xml": urlset(f"{ROOT}/b1"),
        f"{ROOT}/a1": PAGE,
        f"{ROOT}/a2": PAGE,
        f"{ROOT}/b1": PAGE,
    }
    crawler, fetcher = make_crawler(routes, processor)

    await crawler.crawl(ROOT, 2, 1)

    assert processor.urls == [f"{ROOT}/a1", f"{ROOT}/a2"]
    assert f"{ROOT}/b.xml" not in fetcher.requested


@pytest.mark.asyncio()
async def test_counter_resets_between_runs(processor):
    routes = {
        f"{ROOT}/sitemap.xml": urlset(f"{ROOT}/a", f"{ROOT}/b"),
        f"{ROOT}/a": PAGE,
        f"{ROOT}/b": PAGE,
    }
    crawler, _ = make_crawler(routes, processor)

    assert await crawler.crawl(ROOT, 1, 1) == 1
    assert await crawler.crawl(ROOT, 1, 1) == 1
    assert processor.urls == [f"{ROOT}/a", f"{ROOT}/a"]
    assert processor.finished == 2


@pytest.mark.asyncio()
async def test_external_and_empty_locations_are_skipped(processor, logs):
    routes = {
        f"{ROOT}/sitemap.xml": urlset(f"{ROOT}/valid-page", "http://different-domain.com/page", "", "   "),
        f"{ROOT}/valid-page": PAGE,
    }
    crawler, fetcher = make_crawler(routes, processor)

    await crawler.crawl(ROOT, 10, 1)

    assert processor.urls == [f"{ROOT}/valid-page"]
    assert "http://different-domain.com/page" not in fetcher.requested
    assert len(messages(logs, "WARNING", "Skipping external URL")) == 1
    assert len(messages(logs, "WARNING", "Skipping invalid URL: empty location")) == 2


@pytest.mark.asyncio()
async def test_host_comparison_ignores_case(processor):
    routes = {
        f"{ROOT}/sitemap.xml": urlset("http://EXAMPLE.com/upper"),
        "http://EXAMPLE.com/upper": PAGE,
    }
    crawler, _ = make_crawler(routes, processor)
    await crawler.crawl(ROOT, 10, 1)
    assert processor.urls == ["http://EXAMPLE.com/upper"]


@pytest.mark.asyncio()
async def test_failed_page_fetch_does_not_abort(processor, logs):
    routes = {
        f"{ROOT}/sitemap.xml": urlset(f"{ROOT}/broken", f"{ROOT}/fine"),
        f"{ROOT}/broken": 503,
        f"{ROOT}/fine": PAGE,
    }
    crawler, _ = make_crawler(routes, processor)

    await crawler.crawl(ROOT, 10, 1)

    assert processor.urls == [f"{ROOT}/fine"]
    assert messages(logs, "ERROR", f"Failed to fetch page {ROOT}/broken")


@pytest.mark.asyncio()
async def test_failed_child_sitemap_keeps_siblings(processor, logs):
    routes = {
        f"{ROOT}/sitemap.xml": sitemap_index(
            f"{ROOT}/error-sitemap.xml", f"{ROOT}/garbage.xml", f"{ROOT}/good.xml"
        ),
        f"{ROOT}/error-sitemap.xml": TransportError(f"{ROOT}/error-sitemap.xml", message="Simulated error"),
        f"{ROOT}/garbage.xml": "not xml at all",
        f"{ROOT}/good.xml": urlset(f"{ROOT}/page"),
        f"{ROOT}/page": PAGE,
    }
    crawler, _ = make_crawler(routes, processor)

    await crawler.crawl(ROOT, 10, 1)

    assert processor.urls == [f"{ROOT}/page"]
    assert len(messages(logs, "ERROR", "Failed to process sitemap")) == 2
    assert processor.finished == 1


@pytest.mark.asyncio()
async def test_child_with_unknown_root_is_exhausted(processor, logs):
    routes = {
        f"{ROOT}/sitemap.xml": sitemap_index(f"{ROOT}/feed.xml"),
        f"{ROOT}/feed.xml": "<rss><channel/></rss>",
    }
    crawler, _ = make_crawler(routes, processor)

    assert await crawler.crawl(ROOT, 10, 1) == 0
    assert messages(logs, "WARNING", f"Invalid sitemap format at {ROOT}/feed.xml")
    assert processor.finished == 1


@pytest.mark.asyncio()
async def test_empty_sitemap_location_in_index(processor, logs):
    routes = {
        f"{ROOT}/sitemap.xml": sitemap_index("", f"{ROOT}/a.xml"),
        f"{ROOT}/a.xml": urlset(f"{ROOT}/a"),
        f"{ROOT}/a": PAGE,
    }
    crawler, _ = make_crawler(routes, processor)
    await crawler.crawl(ROOT, 10, 1)
    assert processor.urls == [f"{ROOT}/a"]
    assert len(messages(logs, "WARNING", "Invalid sitemap location: empty")) == 1


# --------------------------------------------------------------------------- #
#                              Cycles and depth                               #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_cycle_is_visited_once(processor, logs):
    routes = {
        f"{ROOT}/sitemap.xml": sitemap_index(f"{ROOT}/b.xml"),
        f"{ROOT}/b.xml": sitemap_index(f"{ROOT}/sitemap.xml", f"{ROOT}/urls.xml"),
        f"{ROOT}/urls.xml": urlset(f"{ROOT}/page1"),
        f"{ROOT}/page1": PAGE,
    }
    crawler, fetcher = make_crawler(routes, processor)

    await crawler.crawl(ROOT, 10, 1)

    assert processor.urls == [f"{ROOT}/page1"]
    assert fetcher.requested.count(f"{ROOT}/sitemap.xml") == 1
    assert fetcher.requested.count(f"{ROOT}/b.xml") == 1
    assert len(messages(logs, "WARNING", "Circular reference detected")) == 1


@pytest.mark.asyncio()
async def test_mutually_referencing_indexes(processor, logs):
    routes = {
        f"{ROOT}/sitemap.xml": sitemap_index(f"{ROOT}/sitemap2.xml", f"{ROOT}/urls1.xml"),
        f"{ROOT}/sitemap1.xml": sitemap_index(f"{ROOT}/sitemap2.xml", f"{ROOT}/urls1.xml"),
        f"{ROOT}/sitemap2.xml": sitemap_index(f"{ROOT}/sitemap1.xml", f"{ROOT}/urls2.xml"),
        f"{ROOT}/urls1.xml": urlset(f"{ROOT}/page1"),
        f"{ROOT}/urls2.xml": urlset(f"{ROOT}/page2"),
        f"{ROOT}/page1": PAGE,
        f"{ROOT}/page2": PAGE,
    }
    crawler, _ = make_crawler(routes, processor)

    await crawler.crawl(ROOT, 10, 1)

    assert sorted(processor.urls) == [f"{ROOT}/page1", f"{ROOT}/page2"]
    assert len(processor.urls) == 2
    assert messages(logs, "WARNING", "Circular reference detected")


@pytest.mark.asyncio()
async def test_visited_set_is_case_insensitive_on_host(processor, logs):
    routes = {
        f"{ROOT}/sitemap.xml": sitemap_index("HTTP://Example.COM/sitemap.xml"),
    }
    crawler, fetcher = make_crawler(routes, processor)
    await crawler.crawl(ROOT, 10, 1)
    assert fetcher.requested.count(f"{ROOT}/sitemap.xml") == 1
    assert len(messages(logs, "WARNING", "Circular reference detected")) == 1


@pytest.mark.asyncio()
async def test_depth_bound(processor, logs):
    levels = MAX_SITEMAP_DEPTH + 3
    routes = {f"{ROOT}/sitemap.xml": sitemap_index(f"{ROOT}/level_1.xml")}
    for depth in range(1, levels):
        children = [f"{ROOT}/level_{depth + 1}.xml"]
        if depth == 5:
            children.append(f"{ROOT}/pages.xml")
        routes[f"{ROOT}/level_{depth}.xml"] = sitemap_index(*children)
    routes[f"{ROOT}/pages.xml"] = urlset(f"{ROOT}/shallow-page")
    routes[f"{ROOT}/shallow-page"] = PAGE
    crawler, fetcher = make_crawler(routes, processor)

    await crawler.crawl(ROOT, 10, 1)

    deepest = MAX_SITEMAP_DEPTH + 1
    assert f"{ROOT}/level_{deepest}.xml" in fetcher.requested
    assert f"{ROOT}/level_{deepest + 1}.xml" not in fetcher.requested
    assert len(messages(logs, "WARNING", "Maximum sitemap depth reached")) == 1
    assert processor.urls == [f"{ROOT}/shallow-page"]
    assert processor.finished == 1


@pytest.mark.asyncio()
async def test_urlset_below_max_depth_is_processed(processor):
    routes = {f"{ROOT}/sitemap.xml": sitemap_index(f"{ROOT}/level_1.xml")}
    for depth in range(1, MAX_SITEMAP_DEPTH + 1):
        routes[f"{ROOT}/level_{depth}.xml"] = sitemap_index(f"{ROOT}/level_{depth + 1}.xml")
    routes[f"{ROOT}/level_{MAX_SITEMAP_DEPTH + 1}.xml"] = urlset(f"{ROOT}/deep-page")
    routes[f"{ROOT}/deep-page"] = PAGE
    crawler, _ = make_crawler(routes, processor)

    await crawler.crawl(ROOT, 10, 1)

    assert processor.urls == [f"{ROOT}/deep-page"]


# --------------------------------------------------------------------------- #
#                           Processor error handling                          #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_processor_errors_propagate():
    processor = RecordingProcessor(fail_on=f"{ROOT}/b")
    routes = {
        f"{ROOT}/sitemap.xml": sitemap_index(f"{ROOT}/urls.xml"),
        f"{ROOT}/urls.xml": urlset(f"{ROOT}/a", f"{ROOT}/b", f"{ROOT}/c"),
        f"{ROOT}/a": PAGE,
        f"{ROOT}/b": PAGE,
        f"{ROOT}/c": PAGE,
    }
    crawler, fetcher = make_crawler(routes, processor)

    with pytest.raises(SinkError):
        await crawler.crawl(ROOT, 10, 1)

    assert processor.urls == [f"{ROOT}/a"]
    assert f"{ROOT}/c" not in fetcher.requested
    assert processor.finished == 0
