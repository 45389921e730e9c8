"""Metadata extraction selectors per site type.

Every field holds an ordered tuple of CSS selectors. The extractor probes
them in order and the first non-empty match wins for that field.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, Tuple

from .site_types import SiteType

METADATA_FIELDS = ("author", "date", "category", "price", "rating")


@dataclass(frozen=True)
class MetadataPatterns:
    """Ordered selector lists for the metadata fields of one site type."""
    author: Tuple[str, ...] = ()
    date: Tuple[str, ...] = ()
    category: Tuple[str, ...] = ()
    price: Tuple[str, ...] = ()
    rating: Tuple[str, ...] = ()

    def items(self) -> Iterator[Tuple[str, Tuple[str, ...]]]:
        """Yield (field, selectors) pairs for the fields that have selectors."""
        for name in METADATA_FIELDS:
            selectors = getattr(self, name)
            if selectors:
                yield name, selectors

    def to_dict(self) -> Dict[str, list]:
        return {name: list(selectors) for name, selectors in self.items()}


_ARTICLE_PATTERNS = MetadataPatterns(
    author=(
        'meta[name="author"]',
        'meta[property="article:author"]',
        '.author',
        '.byline',
        '[rel="author"]',
        '[class*="author"]',
    ),
    date=(
        'meta[property="article:published_time"]',
        'time[datetime]',
        '.publish-date',
        '.entry-date',
        '[class*="date"]',
    ),
    category=(
        'meta[property="article:section"]',
        '.category',
        '[class*="category"]',
        'a[rel="category"]',
    ),
)

METADATA_PATTERN_CATALOG: Dict[SiteType, MetadataPatterns] = {
    SiteType.BLOG: _ARTICLE_PATTERNS,
    SiteType.NEWS: _ARTICLE_PATTERNS,
    SiteType.ECOMMERCE: MetadataPatterns(
        price=(
            'meta[property="product:price:amount"]',
            '[class*="price"]',
            '[itemprop="price"]',
            '.product-price',
        ),
        rating=(
            '[itemprop="ratingValue"]',
            '[class*="rating"]',
            '[class*="stars"]',
        ),
        category=(
            'meta[property="product:category"]',
            '.breadcrumb',
            '[class*="category"]',
        ),
    ),
    SiteType.DOCUMENTATION: MetadataPatterns(
        category=(
            '.breadcrumb',
            'nav[class*="sidebar"] a.active',
            '[class*="section"]',
        ),
        date=(
            'meta[name="revised"]',
            '.last-updated',
            '[class*="updated"]',
        ),
    ),
    SiteType.FORUM: MetadataPatterns(
        author=(
            '[class*="username"]',
            '[class*="member"]',
            '.author',
        ),
        date=(
            'time[datetime]',
            '[class*="timestamp"]',
            '[class*="date"]',
        ),
    ),
}

EMPTY_PATTERNS = MetadataPatterns()


def get_metadata_patterns(site_type: SiteType) -> MetadataPatterns:
    """Return the metadata selectors for a site type (empty for marketing/unknown)."""
    return METADATA_PATTERN_CATALOG.get(SiteType(site_type), EMPTY_PATTERNS)
