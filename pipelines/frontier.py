"""Crawl frontier and link prioritisation.

Links found on a page are scored with URL heuristics (listing pages first,
then article-like pages, then everything else), sorted per batch and
appended to a FIFO frontier. Ordering is therefore sorted within a batch
only: a low priority link queued early is still fetched before a high
priority link discovered later.
"""

import logging
import re
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable, List, Optional, Sequence, Set
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

LISTING_PRIORITY = 1000
PRIMARY_ARTICLE_PRIORITY = 100
SECONDARY_ARTICLE_PRIORITY = 50
DATE_BONUS = 20
LONG_PATH_BONUS = 10
DEFAULT_PRIORITY = 1
ARTICLE_SCORE_THRESHOLD = 20

EXCLUDE_PATTERNS = (
    "/author/", "/category/", "/tag/", "/tags/", "/categories/",
    "/page/", "/feed", "/rss", "/atom",
    "/wp-admin", "/wp-content", "/wp-includes", "/wp-json",
    "/admin/", "/login", "/register", "/sign-in", "/sign-up",
    "/search", "/cart", "/checkout", "/account",
    "/privacy", "/terms", "/legal", "/cookies",
    "/contact", "/about-us", "/sitemap",
    ".pdf", ".jpg", ".png", ".gif", ".zip", ".xml",
)

LISTING_PATTERNS = (
    "/tous-nos-articles", "/all-articles", "/articles",
    "/blog", "/posts", "/news",
    "/archive", "/archives",
)

CONTENT_SEGMENT_SCORES = (
    ("/blog/", 25),
    ("/post/", 25),
    ("/article/", 25),
    ("/news/", 20),
    ("/story/", 20),
)

# Path segments that mark the secondary locale
SECONDARY_LOCALE_SEGMENTS = ("/en/",)

FULL_DATE_IN_PATH = re.compile(r"/\d{4}[/-]\d{1,2}[/-]\d{1,2}")
YEAR_SEGMENT = re.compile(r"/\d{4}/")
YEAR_PREFIX = re.compile(r"/\d{4}[/-]")
SLUG_TOKEN = re.compile(r"[a-z0-9\-_]{10,}")
TRAILING_SLUG = re.compile(r"/[a-z0-9-]+/?$")


@dataclass(frozen=True)
class CrawlCandidate:
    """A discovered URL waiting in the frontier."""
    url: str
    priority: int
    path: str


def get_origin(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def relative_path(url: str, origin: str) -> str:
    """Path of a URL relative to the crawl origin."""
    return url[len(origin):] if url.startswith(origin) else url.replace(origin, "")


def is_listing_page(url: str) -> bool:
    """True when the URL looks like an index, category or archive page."""
    lower = url.lower()
    return any(pattern in lower for pattern in LISTING_PATTERNS)


def article_score(url: str, origin: str) -> int:
    """Point score for how article-like a URL is; -1 for excluded URLs."""
    lower = url.lower()
    path = relative_path(url, origin)
    origin_lower = origin.lower()

    if any(pattern in lower for pattern in EXCLUDE_PATTERNS):
        return -1
    if "?" in lower or "#" in lower:
        return -1
    if lower in (origin_lower, origin_lower + "/", origin_lower + "/en", origin_lower + "/en/"):
        return -1

    score = 0

    if FULL_DATE_IN_PATH.search(path):
        score += 30
    if YEAR_SEGMENT.search(path):
        score += 20

    for segment, points in CONTENT_SEGMENT_SCORES:
        if segment in lower:
            score += points

    segments = [segment for segment in path.split("/") if segment]
    if len(segments) >= 2:
        score += 15
    if len(segments) >= 3:
        score += 10

    if len(path) > 40:
        score += 10

    if SLUG_TOKEN.search(path):
        score += 15

    if TRAILING_SLUG.search(path) and len(path) > 20:
        score += 10

    return score


def is_article_link(url: str, origin: str) -> bool:
    return article_score(url, origin) >= ARTICLE_SCORE_THRESHOLD


def is_primary_locale(url: str) -> bool:
    return not any(segment in url for segment in SECONDARY_LOCALE_SEGMENTS)


def score_link(url: str, origin: str) -> int:
    """Crawl priority for a discovered link."""
    if is_listing_page(url):
        return LISTING_PRIORITY

    if is_article_link(url, origin):
        priority = PRIMARY_ARTICLE_PRIORITY if is_primary_locale(url) else SECONDARY_ARTICLE_PRIORITY
        if YEAR_PREFIX.search(url):
            priority += DATE_BONUS
        if len(relative_path(url, origin)) > 50:
            priority += LONG_PATH_BONUS
        return priority

    return DEFAULT_PRIORITY


class CrawlFrontier:
    """FIFO of candidate URLs, appended to in locally sorted batches."""

    def __init__(self, origin: str):
        self.origin = origin
        self._queue: Deque[CrawlCandidate] = deque()
        self._queued: Set[str] = set()

    def __len__(self) -> int:
        return len(self._queue)

    def __bool__(self) -> bool:
        return bool(self._queue)

    def __contains__(self, url: str) -> bool:
        return url in self._queued

    def seed(self, urls: Iterable[str]) -> int:
        """Queue seed URLs in the given order, without scoring."""
        added = 0
        for url in urls:
            if url not in self._queued:
                self._queue.append(CrawlCandidate(url, 0, relative_path(url, self.origin)))
                self._queued.add(url)
                added += 1
        return added

    def push_batch(self, urls: Sequence[str], exclude: Optional[Set[str]] = None) -> List[CrawlCandidate]:
        """Score a batch of links, sort it by priority and append it.

        URLs already queued, repeated within the batch, or present in
        ``exclude`` (the visited set) are dropped.
        """
        exclude = exclude or set()
        batch: List[CrawlCandidate] = []
        in_batch: Set[str] = set()

        for url in urls:
            if url in exclude or url in self._queued or url in in_batch:
                continue
            in_batch.add(url)
            batch.append(CrawlCandidate(url, score_link(url, self.origin), relative_path(url, self.origin)))

        # sorted() is stable, so equal priorities keep discovery order
        batch = sorted(batch, key=lambda candidate: candidate.priority, reverse=True)
        for candidate in batch:
            self._queue.append(candidate)
            self._queued.add(candidate.url)

        return batch

    def pop(self) -> CrawlCandidate:
        """Remove and return the oldest candidate."""
        candidate = self._queue.popleft()
        self._queued.discard(candidate.url)
        return candidate
