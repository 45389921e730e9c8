"""Tests for the site crawler."""

import asyncio
import os
import sys

import pytest
from unittest.mock import AsyncMock, patch

sys.path.insert(0, os.path.dirname(__file__))

from conftest import LONG_PARAGRAPH, page_html

from pipelines.crawler import CrawlStats, SiteCrawler, crawl_site_sync
from pipelines.fetchers import FetchedPage, FetchError, PageFetcher
from pipelines.sitemap import SitemapDiscovery

ORIGIN = "https://example.com"


class FakeFetcher(PageFetcher):
    """Serves pages from a dict and records every fetch."""

    def __init__(self, pages, errors=None):
        super().__init__()
        self.pages = pages
        self.errors = errors or {}
        self.fetched = []
        self.opened = False
        self.closed = False

    async def open(self):
        self.opened = True

    async def close(self):
        self.closed = True

    async def fetch(self, url):
        self.fetched.append(url)
        if url in self.errors:
            raise self.errors[url]
        if url not in self.pages:
            raise FetchError(url, "HTTP 404", 404)
        return FetchedPage(url=url, html=self.pages[url], status_code=200)


def sitemap_returning(urls):
    async def fetch_text(url):
        if url == f"{ORIGIN}/sitemap.xml" and urls:
            return "<urlset>" + "".join(f"<url><loc>{u}</loc></url>" for u in urls) + "</urlset>"
        return None
    return SitemapDiscovery(user_agent="test", fetch_text=fetch_text)


def make_crawler(fetcher, sitemap_urls=()):
    return SiteCrawler(fetcher, sitemap_discovery=sitemap_returning(list(sitemap_urls)))


def content_page(title, links=()):
    return page_html(title=title, body=f"<p>{LONG_PARAGRAPH}</p>", links=links)


class TestSiteCrawler:
    """Crawl loop behaviour."""

    @pytest.mark.asyncio
    async def test_max_pages_one_returns_single_page(self):
        links = [f"{ORIGIN}/page-{i}" for i in range(50)]
        pages = {f"{ORIGIN}/": content_page("Home", links)}
        pages.update({link: content_page(link) for link in links})
        fetcher = FakeFetcher(pages)

        result, stats = await make_crawler(fetcher).crawl(f"{ORIGIN}/", max_pages=1)

        assert len(result) == 1
        assert result[0].url == f"{ORIGIN}/"
        assert fetcher.fetched == [f"{ORIGIN}/"]
        assert stats.pages_scraped == 1

    @pytest.mark.asyncio
    async def test_no_sitemap_seeds_only_start_url(self):
        fetcher = FakeFetcher({f"{ORIGIN}/start": content_page("Start")})

        result, stats = await make_crawler(fetcher).crawl(f"{ORIGIN}/start", max_pages=5)

        assert [page.url for page in result] == [f"{ORIGIN}/start"]
        assert stats.sitemap_urls == 0

    @pytest.mark.asyncio
    async def test_sitemap_urls_seed_frontier(self):
        sitemap_urls = [f"{ORIGIN}/a", f"{ORIGIN}/b"]
        pages = {url: content_page(url) for url in sitemap_urls + [f"{ORIGIN}/"]}
        fetcher = FakeFetcher(pages)

        result, stats = await make_crawler(fetcher, sitemap_urls).crawl(f"{ORIGIN}/", max_pages=10)

        assert fetcher.fetched == [f"{ORIGIN}/a", f"{ORIGIN}/b", f"{ORIGIN}/"]
        assert len(result) == 3
        assert stats.sitemap_urls == 2

    @pytest.mark.asyncio
    async def test_follows_links_by_priority(self):
        pages = {
            f"{ORIGIN}/": content_page("Home", [f"{ORIGIN}/team", f"{ORIGIN}/blog"]),
            f"{ORIGIN}/team": content_page("Team"),
            f"{ORIGIN}/blog": content_page("Blog"),
        }
        fetcher = FakeFetcher(pages)

        await make_crawler(fetcher).crawl(f"{ORIGIN}/", max_pages=10)

        # The listing page outranks the plain page
        assert fetcher.fetched == [f"{ORIGIN}/", f"{ORIGIN}/blog", f"{ORIGIN}/team"]

    @pytest.mark.asyncio
    async def test_only_same_host_links_followed(self):
        pages = {
            f"{ORIGIN}/": content_page("Home", ["https://other.com/page", f"{ORIGIN}/local"]),
            f"{ORIGIN}/local": content_page("Local"),
        }
        fetcher = FakeFetcher(pages)

        await make_crawler(fetcher).crawl(f"{ORIGIN}/", max_pages=10)

        assert "https://other.com/page" not in fetcher.fetched
        assert f"{ORIGIN}/local" in fetcher.fetched

    @pytest.mark.asyncio
    async def test_each_url_fetched_once(self):
        pages = {
            f"{ORIGIN}/": content_page("Home", [f"{ORIGIN}/a", f"{ORIGIN}/b"]),
            f"{ORIGIN}/a": content_page("A", [f"{ORIGIN}/", f"{ORIGIN}/b"]),
            f"{ORIGIN}/b": content_page("B", [f"{ORIGIN}/", f"{ORIGIN}/a"]),
        }
        fetcher = FakeFetcher(pages)

        result, _ = await make_crawler(fetcher).crawl(f"{ORIGIN}/", max_pages=10)

        assert sorted(fetcher.fetched) == sorted(set(fetcher.fetched))
        assert len(result) == 3

    @pytest.mark.asyncio
    async def test_failed_pages_are_skipped(self):
        pages = {
            f"{ORIGIN}/": content_page("Home", [f"{ORIGIN}/missing", f"{ORIGIN}/good"]),
            f"{ORIGIN}/good": content_page("Good"),
        }
        fetcher = FakeFetcher(pages)

        result, stats = await make_crawler(fetcher).crawl(f"{ORIGIN}/", max_pages=10)

        assert [page.url for page in result] == [f"{ORIGIN}/", f"{ORIGIN}/good"]
        assert stats.failed == 1
        assert stats.pages_scraped == 2

    @pytest.mark.asyncio
    async def test_failed_seed_gives_no_pages(self):
        fetcher = FakeFetcher({})

        result, stats = await make_crawler(fetcher).crawl(f"{ORIGIN}/", max_pages=3)

        assert result == []
        assert stats.failed == 1

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        fetcher = FakeFetcher({}, errors={f"{ORIGIN}/": asyncio.CancelledError()})

        with pytest.raises(asyncio.CancelledError):
            await make_crawler(fetcher).crawl(f"{ORIGIN}/", max_pages=3)
        assert fetcher.closed

    @pytest.mark.asyncio
    async def test_fetcher_opened_and_closed(self):
        fetcher = FakeFetcher({f"{ORIGIN}/": content_page("Home")})

        await make_crawler(fetcher).crawl(f"{ORIGIN}/", max_pages=1)

        assert fetcher.opened
        assert fetcher.closed

    @pytest.mark.asyncio
    async def test_pages_carry_site_profile(self):
        fetcher = FakeFetcher({f"{ORIGIN}/": content_page("Home")})

        result, _ = await make_crawler(fetcher).crawl(f"{ORIGIN}/", max_pages=1)

        assert result[0].site_profile is not None
        assert result[0].title == "Home"
        assert "plain text" in result[0].raw_text

    @pytest.mark.asyncio
    async def test_max_pages_must_be_positive(self):
        with pytest.raises(ValueError):
            await make_crawler(FakeFetcher({})).crawl(f"{ORIGIN}/", max_pages=0)


class TestCrawlStats:
    """Coverage statistics and warnings."""

    def test_warnings_for_small_thin_crawl(self):
        stats = CrawlStats(max_pages=10, pages_scraped=2, total_chars=400)
        warnings = stats.coverage_warnings()

        assert "No articles detected - may need to adjust heuristics" in warnings
        assert "Low content per page - may be scraping thin pages" in warnings
        assert "Only 2/10 pages scraped - site may be smaller than expected" in warnings

    def test_low_article_ratio_warning(self):
        stats = CrawlStats(max_pages=20, pages_scraped=20, articles_found=2, total_chars=20000)
        assert "Less than 30% articles - crawler may be getting navigation pages" in stats.coverage_warnings()

    def test_healthy_crawl_has_no_warnings(self):
        stats = CrawlStats(max_pages=10, pages_scraped=10, articles_found=8, total_chars=20000)
        assert stats.coverage_warnings() == []

    def test_counts(self):
        stats = CrawlStats(max_pages=10, pages_scraped=4, articles_found=2,
                           listing_pages_found=1, total_chars=1000)
        assert stats.other_pages == 1
        assert stats.avg_chars_per_page == 250
        assert stats.duration is None
        stats.finish()
        assert stats.duration >= 0

    def test_to_dict(self):
        data = CrawlStats(max_pages=1).to_dict()
        assert data["pages_scraped"] == 0
        assert data["avg_chars_per_page"] == 0
        assert isinstance(data["warnings"], list)


@patch("pipelines.crawler.SitemapDiscovery.discover", new_callable=AsyncMock)
def test_crawl_site_sync_returns_pages(mock_discover):
    mock_discover.return_value = []
    fetcher = FakeFetcher({
        f"{ORIGIN}/": content_page("Home", [f"{ORIGIN}/about"]),
        f"{ORIGIN}/about": content_page("About"),
    })

    pages = crawl_site_sync(f"{ORIGIN}/", max_pages=5, fetcher=fetcher)

    assert [page.url for page in pages] == [f"{ORIGIN}/", f"{ORIGIN}/about"]
    mock_discover.assert_awaited_once_with(ORIGIN)
    assert fetcher.closed
