"""HTML page extraction.

Turns a rendered HTML page into a PageDocument: title, description,
site-specific metadata, the main content text and the outbound links.
Block structure is kept as blank-line separated paragraphs and headings
are written as Markdown headings so the section and heading chunkers
have boundaries to work with.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urldefrag, urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from .metadata_patterns import MetadataPatterns
from .site_detector import SiteProfile

logger = logging.getLogger(__name__)

MIN_CONTENT_CHARS = 100
MAX_TITLE_CHARS = 500
MAX_DESCRIPTION_CHARS = 1000
HEADING_MARKER = re.compile(r"^#{1,6}\s+")

NOISE_SELECTORS = ["script", "style", "noscript", "nav", "header", "footer", ".advertisement", ".ad"]

FALLBACK_CONTENT_SELECTORS = [
    "main",
    "article",
    '[role="main"]',
    ".content",
    ".main-content",
    "#content",
    "body",
]

BLOCK_TAGS = [
    "p", "div", "section", "article", "main", "aside", "li", "ul", "ol",
    "table", "tr", "blockquote", "pre", "figure", "figcaption", "dl", "dt", "dd",
]
HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]

AUTHOR_PREFIX = re.compile(r"^(Par|By|Author:|Auteur:)\s*", re.IGNORECASE)
PRICE_CHARS = re.compile(r"[\d,.$€£¥]")
SKIPPED_LINK_PREFIXES = ("#", "javascript:", "mailto:", "tel:")


@dataclass(frozen=True)
class PageMetadata:
    """Metadata extracted from one page."""
    url: str
    scraped_at: datetime
    content_length: int
    author: Optional[str] = None
    publish_date: Optional[str] = None
    article_title: Optional[str] = None
    price: Optional[str] = None
    category: Optional[str] = None
    rating: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "url": self.url,
            "scraped_at": self.scraped_at.isoformat(),
            "content_length": self.content_length,
        }
        for name in ("author", "publish_date", "article_title", "price", "category", "rating"):
            value = getattr(self, name)
            if value:
                data[name] = value
        return data


@dataclass(frozen=True)
class PageDocument:
    """A successfully fetched and extracted page."""
    url: str
    title: str
    description: str
    raw_text: str
    outbound_links: Tuple[str, ...]
    metadata: PageMetadata
    site_profile: SiteProfile

    def source_metadata(self) -> Dict[str, Any]:
        """Metadata attached to every chunk cut from this page."""
        return {
            "url": self.url,
            "title": self.title,
            "author": self.metadata.author,
            "publish_date": self.metadata.publish_date,
            "article_title": self.metadata.article_title,
            "site_type": self.site_profile.site_type.value,
        }


def normalize_url(href: str, base_url: Optional[str] = None) -> Optional[str]:
    """Resolve a link against its page and drop the fragment.

    Returns None for anything that is not an http(s) URL.
    """
    if not href:
        return None
    href = href.strip()
    absolute = urljoin(base_url, href) if base_url else href
    absolute, _ = urldefrag(absolute)
    parsed = urlparse(absolute)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return absolute


def clean_text(text: str) -> str:
    """Collapse runs of whitespace while keeping paragraph breaks."""
    lines = [re.sub(r"\s+", " ", line).strip() for line in text.split("\n")]
    cleaned = "\n".join(lines)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    return cleaned.strip()


def _mark_blocks(soup: BeautifulSoup) -> None:
    """Insert paragraph breaks after block elements and Markdown markers on headings."""
    for heading in soup.find_all(HEADING_TAGS):
        level = int(heading.name[1])
        heading.insert(0, "\n\n" + "#" * level + " ")
        heading.append("\n\n")
    for block in soup.find_all(BLOCK_TAGS):
        block.append("\n\n")
    for br in soup.find_all("br"):
        br.replace_with("\n")


def _first_value(soup: BeautifulSoup, selectors, attributes=("content",)) -> str:
    """Return the first non-empty value among the selectors."""
    for selector in selectors:
        try:
            element = soup.select_one(selector)
        except Exception as e:
            logger.debug(f"Invalid selector {selector}: {e}")
            continue
        if element is None:
            continue
        for attribute in attributes:
            value = element.get(attribute)
            if value and str(value).strip():
                return str(value).strip()
        text = re.sub(r"\s+", " ", element.get_text()).strip()
        if text:
            return text
    return ""


def extract_metadata(soup: BeautifulSoup, patterns: MetadataPatterns) -> Dict[str, str]:
    """Probe the site-specific selectors for author, date, category, price and rating."""
    found: Dict[str, str] = {}

    author = _first_value(soup, patterns.author)
    if author:
        found["author"] = AUTHOR_PREFIX.sub("", author).strip()

    publish_date = _first_value(soup, patterns.date, attributes=("content", "datetime"))
    if publish_date:
        found["publish_date"] = publish_date

    category = _first_value(soup, patterns.category)
    if category:
        found["category"] = category

    # A price candidate must contain a digit or currency sign
    for selector in patterns.price:
        value = _first_value(soup, [selector])
        if value and PRICE_CHARS.search(value):
            found["price"] = value
            break

    rating = _first_value(soup, patterns.rating)
    if rating:
        found["rating"] = rating

    return {name: value for name, value in found.items() if value}


def extract_content(soup: BeautifulSoup, priority_selectors) -> str:
    """Extract the main content with the site's selectors, falling back to the body."""
    content = ""
    for selector in list(priority_selectors) + FALLBACK_CONTENT_SELECTORS:
        try:
            elements = soup.select(selector)
        except Exception as e:
            logger.debug(f"Invalid content selector {selector}: {e}")
            continue
        if not elements:
            continue
        content = clean_text("\n\n".join(element.get_text() for element in elements))
        if len(content) >= MIN_CONTENT_CHARS:
            logger.debug(f"Content extracted using selector: {selector}")
            return content

    body = soup.body or soup
    return clean_text(body.get_text())


def extract_links(soup: BeautifulSoup, base_url: str) -> List[str]:
    """Extract absolute http(s) links, deduplicated in document order."""
    links: List[str] = []
    seen = set()
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.lower().startswith(SKIPPED_LINK_PREFIXES):
            continue
        absolute = normalize_url(href, base_url)
        if absolute and absolute not in seen:
            seen.add(absolute)
            links.append(absolute)
    return links


def extract_page(html: str, url: str, profile: SiteProfile) -> PageDocument:
    """Build a PageDocument from rendered HTML and the page's site profile."""
    soup = BeautifulSoup(html or "", "html.parser")

    # Links are collected before navigation chrome is stripped
    links = extract_links(soup, url)

    for selector in NOISE_SELECTORS:
        for element in soup.select(selector):
            element.decompose()

    _mark_blocks(soup)

    title_tag = soup.find("title")
    first_h1 = soup.find("h1")
    h1_text = HEADING_MARKER.sub("", clean_text(first_h1.get_text())).strip() if isinstance(first_h1, Tag) else ""
    title = (title_tag.get_text().strip() if title_tag else "") or h1_text or "Untitled"

    description = _first_value(soup, ['meta[name="description"]', 'meta[property="og:description"]'])

    og_title = soup.select_one('meta[property="og:title"]')
    article_title = (og_title.get("content", "").strip() if og_title else "") or h1_text or title

    metadata_values = extract_metadata(soup, profile.metadata_patterns)
    content = extract_content(soup, profile.chunking_strategy.priority_selectors)

    metadata = PageMetadata(
        url=url,
        scraped_at=datetime.now(timezone.utc),
        content_length=len(content),
        article_title=article_title[:MAX_TITLE_CHARS],
        **metadata_values,
    )

    return PageDocument(
        url=url,
        title=title[:MAX_TITLE_CHARS],
        description=description[:MAX_DESCRIPTION_CHARS],
        raw_text=content,
        outbound_links=tuple(links),
        metadata=metadata,
        site_profile=profile,
    )
