"""Sitemap discovery.

Probes the conventional sitemap locations of a site and robots.txt, and
collects the page URLs they list. Nested sitemaps (sitemap indexes and
sitemaps declared in robots.txt) are followed once each, up to a limit.
"""

import asyncio
import logging
import re
from typing import Awaitable, Callable, List, Optional, Set
from urllib.parse import urljoin

import aiohttp

logger = logging.getLogger(__name__)

SITEMAP_PATHS = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap-index.xml",
    "/sitemap1.xml",
    "/post-sitemap.xml",
    "/page-sitemap.xml",
    "/robots.txt",
)

LOC_PATTERN = re.compile(r"<loc>(.*?)</loc>", re.IGNORECASE | re.DOTALL)
CDATA_PATTERN = re.compile(r"<!\[CDATA\[|\]\]>")
ROBOTS_SITEMAP_PATTERN = re.compile(r"^\s*Sitemap:\s*(\S+)", re.IGNORECASE | re.MULTILINE)

# Returns the body of a successful response, or None
TextFetcher = Callable[[str], Awaitable[Optional[str]]]


def parse_sitemap_locs(content: str) -> List[str]:
    """Return the <loc> entries of a sitemap document, CDATA stripped."""
    locs = []
    for match in LOC_PATTERN.findall(content or ""):
        url = CDATA_PATTERN.sub("", match).strip()
        if url:
            locs.append(url)
    return locs


def parse_robots_sitemaps(content: str) -> List[str]:
    """Return the URLs of ``Sitemap:`` directives in a robots.txt."""
    return [url.strip() for url in ROBOTS_SITEMAP_PATTERN.findall(content or "") if url.strip()]


def is_nested_sitemap(url: str) -> bool:
    return url.lower().split("?")[0].endswith(".xml")


def _dedupe(urls: List[str]) -> List[str]:
    seen: Set[str] = set()
    result = []
    for url in urls:
        if url not in seen:
            seen.add(url)
            result.append(url)
    return result


class SitemapDiscovery:
    """Finds page URLs through sitemaps at a site's origin."""

    def __init__(self,
                 user_agent: str,
                 timeout: float = 10.0,
                 max_nested_sitemaps: int = 10,
                 fetch_text: Optional[TextFetcher] = None):
        """Initialize discovery.

        Args:
            user_agent: User agent sent with probe requests
            timeout: Per-request timeout in seconds
            max_nested_sitemaps: Upper bound on nested sitemaps followed
            fetch_text: Optional replacement for the HTTP probe
        """
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_nested_sitemaps = max_nested_sitemaps
        self._fetch_text = fetch_text
        self._session: Optional[aiohttp.ClientSession] = None

    async def _http_fetch_text(self, url: str) -> Optional[str]:
        try:
            async with self._session.get(url, allow_redirects=True) as response:
                if response.status != 200:
                    logger.debug(f"Sitemap probe {url}: HTTP {response.status}")
                    return None
                return await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError, UnicodeDecodeError) as e:
            logger.debug(f"Sitemap probe {url} failed: {e}")
            return None

    async def _fetch(self, url: str) -> Optional[str]:
        if self._fetch_text is not None:
            try:
                return await self._fetch_text(url)
            except Exception as e:
                logger.debug(f"Sitemap probe {url} failed: {e}")
                return None
        return await self._http_fetch_text(url)

    async def discover(self, origin: str) -> List[str]:
        """Collect page URLs from the sitemaps of ``origin``.

        Returns:
            Deduplicated page URLs in discovery order (empty when none found)
        """
        if self._fetch_text is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"User-Agent": self.user_agent},
            )
        try:
            return await self._discover(origin)
        finally:
            if self._session is not None:
                await self._session.close()
                self._session = None

    async def _discover(self, origin: str) -> List[str]:
        page_urls: List[str] = []
        nested: List[str] = []
        fetched: Set[str] = set()

        for path in SITEMAP_PATHS:
            sitemap_url = urljoin(origin, path)
            fetched.add(sitemap_url)
            content = await self._fetch(sitemap_url)
            if content is None:
                continue

            if path == "/robots.txt":
                declared = parse_robots_sitemaps(content)
                if declared:
                    logger.info(f"robots.txt declares {len(declared)} sitemap(s)")
                nested.extend(declared)
                continue

            locs = parse_sitemap_locs(content)
            logger.info(f"Found sitemap at {sitemap_url} with {len(locs)} entries")
            for loc in locs:
                (nested if is_nested_sitemap(loc) else page_urls).append(loc)

        followed = 0
        while nested and followed < self.max_nested_sitemaps:
            sitemap_url = nested.pop(0)
            if sitemap_url in fetched:
                continue
            fetched.add(sitemap_url)
            followed += 1

            content = await self._fetch(sitemap_url)
            if content is None:
                continue
            locs = parse_sitemap_locs(content)
            logger.info(f"Found nested sitemap at {sitemap_url} with {len(locs)} entries")
            for loc in locs:
                (nested if is_nested_sitemap(loc) else page_urls).append(loc)

        return _dedupe(page_urls)


async def find_sitemap_urls(origin: str, user_agent: str, timeout: float = 10.0) -> List[str]:
    """Convenience wrapper around SitemapDiscovery."""
    return await SitemapDiscovery(user_agent=user_agent, timeout=timeout).discover(origin)
