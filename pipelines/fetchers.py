"""Page fetch providers.

A fetcher turns a URL into rendered HTML. The browser fetcher runs a
headless Chromium so client-side rendered pages execute before their
HTML is captured; the HTTP fetcher is a lighter option for static sites.
Both are async context managers owning their underlying resources.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import aiohttp
from playwright.async_api import Browser, Playwright, async_playwright

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class FetchError(Exception):
    """Raised when a page cannot be fetched or returns a non-OK status."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason
        self.status_code = status_code


@dataclass(frozen=True)
class FetchedPage:
    """Rendered HTML of one page."""
    url: str
    html: str
    status_code: int
    final_url: Optional[str] = None
    response_time: Optional[float] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400


class PageFetcher(ABC):
    """Interface of a page fetch provider."""

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, timeout: float = 30.0):
        self.user_agent = user_agent
        self.timeout = timeout

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def open(self) -> None:
        """Acquire resources (session, browser)."""

    async def close(self) -> None:
        """Release resources."""

    @abstractmethod
    async def fetch(self, url: str) -> FetchedPage:
        """Fetch a page, raising FetchError on failure."""


class HttpPageFetcher(PageFetcher):
    """Plain HTTP fetcher for server-rendered sites."""

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, timeout: float = 30.0):
        super().__init__(user_agent, timeout)
        self.session: Optional[aiohttp.ClientSession] = None

    async def open(self) -> None:
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"User-Agent": self.user_agent},
            )

    async def close(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None

    async def fetch(self, url: str) -> FetchedPage:
        if self.session is None:
            await self.open()

        start_time = time.time()
        try:
            async with self.session.get(url, allow_redirects=True) as response:
                if response.status >= 400:
                    raise FetchError(url, f"HTTP {response.status}", response.status)
                content_type = response.headers.get("content-type", "")
                if content_type and "html" not in content_type:
                    raise FetchError(url, f"Non-HTML content type: {content_type}", response.status)
                html = await response.text()
                return FetchedPage(
                    url=url,
                    html=html,
                    status_code=response.status,
                    final_url=str(response.url),
                    response_time=time.time() - start_time,
                )
        except asyncio.TimeoutError as e:
            raise FetchError(url, f"Timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise FetchError(url, str(e)) from e


class BrowserPageFetcher(PageFetcher):
    """Headless Chromium fetcher; one browser per crawl, one page per fetch."""

    def __init__(self,
                 user_agent: str = DEFAULT_USER_AGENT,
                 timeout: float = 30.0,
                 wait_until: str = "networkidle"):
        super().__init__(user_agent, timeout)
        self.wait_until = wait_until
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def open(self) -> None:
        if self._browser is None:
            self._playwright = await async_playwright().start()
            try:
                self._browser = await self._playwright.chromium.launch(
                    headless=True,
                    args=["--no-sandbox", "--disable-setuid-sandbox"],
                )
            except Exception:
                await self._playwright.stop()
                self._playwright = None
                raise
            logger.debug("Headless browser launched")

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def fetch(self, url: str) -> FetchedPage:
        if self._browser is None:
            await self.open()

        start_time = time.time()
        context = await self._browser.new_context(user_agent=self.user_agent)
        try:
            page = await context.new_page()
            try:
                response = await page.goto(url, wait_until=self.wait_until, timeout=self.timeout * 1000)
            except Exception as e:
                raise FetchError(url, str(e)) from e

            status_code = response.status if response is not None else 200
            if status_code >= 400:
                raise FetchError(url, f"HTTP {status_code}", status_code)

            html = await page.content()
            return FetchedPage(
                url=url,
                html=html,
                status_code=status_code,
                final_url=page.url,
                response_time=time.time() - start_time,
            )
        finally:
            await context.close()


def create_fetcher(renderer: str, user_agent: str, timeout: float) -> PageFetcher:
    """Build the fetcher named by ``renderer`` ('browser' or 'http')."""
    if renderer == "browser":
        return BrowserPageFetcher(user_agent=user_agent, timeout=timeout)
    if renderer == "http":
        return HttpPageFetcher(user_agent=user_agent, timeout=timeout)
    raise ValueError(f"Unknown renderer: {renderer}")
