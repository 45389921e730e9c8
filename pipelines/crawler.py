"""Website crawler pipeline for SiteChat.

Discovers the pages of a site through its sitemaps and by following
same-host links in priority order, classifies every page and extracts
its content. Fetching is sequential: one page at a time.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Set, Tuple
from urllib.parse import urlparse

from observability.metrics import record_crawl_page

from .fetchers import DEFAULT_USER_AGENT, HttpPageFetcher, PageFetcher
from .frontier import CrawlFrontier, get_origin, is_article_link, is_listing_page
from .html_ingest import PageDocument, extract_page
from .site_detector import SiteDetector, log_detection, site_detector
from .sitemap import SitemapDiscovery

logger = logging.getLogger(__name__)

LOW_ARTICLE_RATIO = 0.3
LOW_ARTICLE_RATIO_MIN_PAGES = 10
THIN_PAGE_CHARS = 500


@dataclass
class CrawlStats:
    """Coverage statistics for one crawl run."""
    max_pages: int
    pages_scraped: int = 0
    failed: int = 0
    articles_found: int = 0
    listing_pages_found: int = 0
    total_chars: int = 0
    sitemap_urls: int = 0
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    end_time: Optional[datetime] = None

    @property
    def other_pages(self) -> int:
        return self.pages_scraped - self.articles_found - self.listing_pages_found

    @property
    def avg_chars_per_page(self) -> int:
        if not self.pages_scraped:
            return 0
        return round(self.total_chars / self.pages_scraped)

    @property
    def duration(self) -> Optional[float]:
        if self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    def finish(self):
        """Mark crawl as finished."""
        self.end_time = datetime.now(timezone.utc)

    def coverage_warnings(self) -> List[str]:
        """Advisory quality warnings. They never affect the crawl itself."""
        warnings = []
        if self.articles_found == 0:
            warnings.append("No articles detected - may need to adjust heuristics")
        if (self.pages_scraped > LOW_ARTICLE_RATIO_MIN_PAGES
                and self.articles_found < self.pages_scraped * LOW_ARTICLE_RATIO):
            warnings.append("Less than 30% articles - crawler may be getting navigation pages")
        if self.avg_chars_per_page < THIN_PAGE_CHARS:
            warnings.append("Low content per page - may be scraping thin pages")
        if self.pages_scraped < self.max_pages / 2:
            warnings.append(
                f"Only {self.pages_scraped}/{self.max_pages} pages scraped - "
                f"site may be smaller than expected"
            )
        return warnings

    def log_summary(self) -> None:
        logger.info(
            f"Crawl summary: {self.pages_scraped}/{self.max_pages} pages, "
            f"{self.articles_found} articles, {self.listing_pages_found} listing pages, "
            f"{self.other_pages} other pages, {self.failed} failed"
        )
        logger.info(
            f"Total content: {self.total_chars / 1000:.1f}K characters, "
            f"average per page: {self.avg_chars_per_page / 1000:.1f}K characters"
        )
        warnings = self.coverage_warnings()
        for warning in warnings:
            logger.warning(f"Crawl coverage: {warning}")
        if not warnings:
            logger.info("Crawl quality checks passed")

    def to_dict(self) -> dict:
        return {
            "max_pages": self.max_pages,
            "pages_scraped": self.pages_scraped,
            "failed": self.failed,
            "articles_found": self.articles_found,
            "listing_pages_found": self.listing_pages_found,
            "other_pages": self.other_pages,
            "total_chars": self.total_chars,
            "avg_chars_per_page": self.avg_chars_per_page,
            "sitemap_urls": self.sitemap_urls,
            "duration": self.duration,
            "warnings": self.coverage_warnings(),
        }


class SiteCrawler:
    """Prioritised single-site crawler."""

    def __init__(self,
                 fetcher: PageFetcher,
                 detector: Optional[SiteDetector] = None,
                 sitemap_discovery: Optional[SitemapDiscovery] = None,
                 use_sitemap: bool = True,
                 user_agent: str = DEFAULT_USER_AGENT,
                 sitemap_timeout: float = 10.0,
                 max_nested_sitemaps: int = 10):
        """Initialize crawler.

        Args:
            fetcher: Page fetch provider, opened and closed around each crawl
            detector: Site type classifier (defaults to the shared detector)
            sitemap_discovery: Sitemap prober (built from the other arguments if omitted)
            use_sitemap: Whether to seed the frontier from sitemaps
            user_agent: User agent for sitemap probes
            sitemap_timeout: Per-probe timeout in seconds
            max_nested_sitemaps: Nested sitemaps followed per crawl
        """
        self.fetcher = fetcher
        self.detector = detector or site_detector
        self.use_sitemap = use_sitemap
        self.sitemap_discovery = sitemap_discovery or SitemapDiscovery(
            user_agent=user_agent,
            timeout=sitemap_timeout,
            max_nested_sitemaps=max_nested_sitemaps,
        )

    async def _seed_frontier(self, seed_url: str, frontier: CrawlFrontier, stats: CrawlStats) -> None:
        sitemap_urls: List[str] = []
        if self.use_sitemap:
            logger.info("Searching for sitemaps...")
            sitemap_urls = await self.sitemap_discovery.discover(frontier.origin)

        if sitemap_urls:
            logger.info(f"Found {len(sitemap_urls)} URLs in sitemap(s)")
            stats.sitemap_urls = len(sitemap_urls)
            frontier.seed(sitemap_urls + [seed_url])
        else:
            logger.info("No sitemap found, using crawler mode")
            frontier.seed([seed_url])

    async def _scrape(self, url: str) -> PageDocument:
        fetched = await self.fetcher.fetch(url)
        profile = self.detector.classify(fetched.html, url)
        log_detection(profile, url)
        return extract_page(fetched.html, url, profile)

    async def crawl(self, seed_url: str, max_pages: int) -> Tuple[List[PageDocument], CrawlStats]:
        """Crawl a site starting from ``seed_url``.

        Args:
            seed_url: Absolute http(s) URL to start from
            max_pages: Maximum number of pages to collect

        Returns:
            Tuple of (pages in fetch order, stats)
        """
        if max_pages < 1:
            raise ValueError("max_pages must be at least 1")

        origin = get_origin(seed_url)
        hostname = urlparse(seed_url).hostname
        frontier = CrawlFrontier(origin)
        visited: Set[str] = set()
        pages: List[PageDocument] = []
        stats = CrawlStats(max_pages=max_pages)

        logger.info(f"Starting crawl of {seed_url} (max_pages={max_pages})")
        await self._seed_frontier(seed_url, frontier, stats)

        async with self.fetcher:
            while frontier and len(pages) < max_pages:
                candidate = frontier.pop()
                url = candidate.url
                if url in visited:
                    continue
                # Marked on attempt so a failing URL is not retried in this run
                visited.add(url)

                is_listing = is_listing_page(url)
                is_article = is_article_link(url, origin)
                logger.info(f"[{len(pages) + 1}/{max_pages}] Scraping: {url}")

                try:
                    page = await self._scrape(url)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.warning(f"Error scraping {url}: {e}")
                    stats.failed += 1
                    record_crawl_page("failed")
                    continue

                pages.append(page)
                stats.pages_scraped += 1
                stats.total_chars += len(page.raw_text)
                if is_listing:
                    stats.listing_pages_found += 1
                    logger.debug("  Listing page detected")
                if is_article:
                    stats.articles_found += 1
                    logger.debug("  Article detected")
                record_crawl_page("scraped", page.site_profile.site_type.value)

                same_host = [link for link in page.outbound_links if urlparse(link).hostname == hostname]
                added = frontier.push_batch(same_host, exclude=visited)
                logger.debug(
                    f"  Found {len(page.outbound_links)} links, added {len(added)} new URLs "
                    f"to queue ({len(frontier)} total)"
                )

        stats.finish()
        stats.log_summary()
        return pages, stats


async def crawl_site(seed_url: str, max_pages: int, fetcher: Optional[PageFetcher] = None) -> List[PageDocument]:
    """Crawl a site and return its pages (plain HTTP fetching unless a fetcher is given)."""
    crawler = SiteCrawler(fetcher or HttpPageFetcher())
    pages, _ = await crawler.crawl(seed_url, max_pages)
    return pages


def crawl_site_sync(seed_url: str, max_pages: int, fetcher: Optional[PageFetcher] = None) -> List[PageDocument]:
    """Synchronous wrapper for crawl_site."""
    return asyncio.run(crawl_site(seed_url, max_pages, fetcher))
