"""Heuristic site type detection.

Scores the parsed structure of a page against a table of indicator rules.
Each rule belongs to one site type and contributes a fixed weight when it
matches. The best scoring type selects the chunking strategy and metadata
patterns used for the rest of the page's processing.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from .metadata_patterns import MetadataPatterns, get_metadata_patterns
from .site_types import ChunkingStrategy, SiteType, get_chunking_strategy

logger = logging.getLogger(__name__)


@dataclass
class DetectionContext:
    """Parsed page handed to every indicator predicate."""
    soup: BeautifulSoup
    url: str
    _counts: Dict[str, int] = field(default_factory=dict)

    def count(self, selector: str) -> int:
        """Number of elements matching a CSS selector (memoised per page)."""
        if selector not in self._counts:
            self._counts[selector] = len(self.soup.select(selector))
        return self._counts[selector]


@dataclass(frozen=True)
class IndicatorRule:
    """One row of the indicator table."""
    site_type: SiteType
    weight: int
    description: str
    predicate: Callable[[DetectionContext], bool]


def more_than(selector: str, threshold: int = 0) -> Callable[[DetectionContext], bool]:
    """Predicate: more than ``threshold`` elements match ``selector``."""
    return lambda ctx: ctx.count(selector) > threshold


def url_matches(pattern: str) -> Callable[[DetectionContext], bool]:
    """Predicate: the page URL matches a case-insensitive regex."""
    regex = re.compile(pattern, re.IGNORECASE)
    return lambda ctx: bool(regex.search(ctx.url or ""))


def any_of(*predicates: Callable[[DetectionContext], bool]) -> Callable[[DetectionContext], bool]:
    return lambda ctx: any(predicate(ctx) for predicate in predicates)


# Type order doubles as the tie-break order
INDICATOR_RULES: Tuple[IndicatorRule, ...] = (
    # Blog
    IndicatorRule(SiteType.BLOG, 20, "Post classes found", more_than('[class*="post"]')),
    IndicatorRule(SiteType.BLOG, 20, "Article classes found", more_than('[class*="article"]')),
    IndicatorRule(SiteType.BLOG, 15, "Author elements found", more_than('[class*="author"]')),
    IndicatorRule(SiteType.BLOG, 25, "Article meta tags found",
                  more_than('meta[property="article:published_time"]')),
    IndicatorRule(SiteType.BLOG, 10, "Comment section found", more_than('[class*="comment"]', 5)),
    IndicatorRule(SiteType.BLOG, 15, "Blog-related URL", url_matches(r"blog|article|post")),

    # Documentation
    IndicatorRule(SiteType.DOCUMENTATION, 25, "Navigation sidebar/TOC found",
                  any_of(more_than('nav[class*="sidebar"]'), more_than('[class*="toc"]'))),
    IndicatorRule(SiteType.DOCUMENTATION, 20, "Many code blocks found", more_than("code, pre", 10)),
    IndicatorRule(SiteType.DOCUMENTATION, 15, "Breadcrumb navigation found",
                  more_than('[class*="breadcrumb"]')),
    IndicatorRule(SiteType.DOCUMENTATION, 25, "Documentation URL pattern",
                  url_matches(r"docs|documentation|api|reference|guide")),
    IndicatorRule(SiteType.DOCUMENTATION, 10, "Many headings (structured content)",
                  more_than("h1, h2, h3, h4", 15)),

    # E-commerce
    IndicatorRule(SiteType.ECOMMERCE, 25, "Product elements found", more_than('[class*="product"]', 3)),
    IndicatorRule(SiteType.ECOMMERCE, 20, "Price elements found", more_than('[class*="price"]', 3)),
    IndicatorRule(SiteType.ECOMMERCE, 25, "Shopping cart found",
                  more_than('[class*="cart"], [class*="basket"]')),
    IndicatorRule(SiteType.ECOMMERCE, 20, "Buy buttons found",
                  more_than('[class*="add-to-cart"], button[class*="buy"]')),
    IndicatorRule(SiteType.ECOMMERCE, 25, "Product meta tags found",
                  more_than('meta[property="product:price"]')),
    IndicatorRule(SiteType.ECOMMERCE, 15, "E-commerce URL pattern",
                  url_matches(r"shop|store|product|checkout")),

    # Marketing / landing pages
    IndicatorRule(SiteType.MARKETING, 15, "Hero/banner section found",
                  more_than('[class*="hero"], [class*="banner"]')),
    IndicatorRule(SiteType.MARKETING, 20, "Multiple CTAs found",
                  more_than('[class*="cta"], button[class*="sign-up"], button[class*="get-started"]', 2)),
    IndicatorRule(SiteType.MARKETING, 15, "Testimonials found",
                  more_than('[class*="testimonial"], [class*="review"]', 2)),
    IndicatorRule(SiteType.MARKETING, 20, "Pricing section found",
                  more_than('[class*="pricing"], [class*="plan"]')),
    IndicatorRule(SiteType.MARKETING, 15, "Lead capture form found",
                  more_than('form[class*="contact"], form[class*="lead"]')),

    # News
    IndicatorRule(SiteType.NEWS, 20, "Multiple headlines found", more_than('[class*="headline"]', 5)),
    IndicatorRule(SiteType.NEWS, 15, "Many timestamps found", more_than("time[datetime]", 5)),
    IndicatorRule(SiteType.NEWS, 20, "Breaking/latest news indicators",
                  more_than('[class*="breaking"], [class*="latest"]')),
    IndicatorRule(SiteType.NEWS, 15, "News URL pattern", url_matches(r"news|press|media")),

    # Forum
    IndicatorRule(SiteType.FORUM, 25, "Thread/topic elements found",
                  more_than('[class*="thread"], [class*="topic"]', 3)),
    IndicatorRule(SiteType.FORUM, 20, "Many posts/replies found",
                  more_than('[class*="reply"], [class*="post"]', 10)),
    IndicatorRule(SiteType.FORUM, 15, "User/member indicators",
                  more_than('[class*="user"], [class*="member"]', 5)),
    IndicatorRule(SiteType.FORUM, 20, "Forum URL pattern", url_matches(r"forum|community|discussion")),
)

SCORED_TYPES: Tuple[SiteType, ...] = (
    SiteType.BLOG,
    SiteType.DOCUMENTATION,
    SiteType.ECOMMERCE,
    SiteType.MARKETING,
    SiteType.NEWS,
    SiteType.FORUM,
)


@dataclass(frozen=True)
class SiteProfile:
    """The detector's verdict for one page."""
    site_type: SiteType
    confidence: float
    indicators: Tuple[str, ...]
    chunking_strategy: ChunkingStrategy
    metadata_patterns: MetadataPatterns
    scores: Tuple[Tuple[SiteType, int], ...] = ()

    def to_dict(self) -> Dict[str, object]:
        return {
            "site_type": self.site_type.value,
            "confidence": self.confidence,
            "indicators": list(self.indicators),
            "chunking_strategy": self.chunking_strategy.to_dict(),
            "metadata_patterns": self.metadata_patterns.to_dict(),
            "scores": {site_type.value: score for site_type, score in self.scores},
        }


class SiteDetector:
    """Generic scorer over a table of indicator rules."""

    def __init__(self, rules: Optional[Tuple[IndicatorRule, ...]] = None):
        self.rules = rules if rules is not None else INDICATOR_RULES

    def score(self, html: str, url: str) -> Tuple[Dict[SiteType, int], List[str]]:
        """Evaluate every rule and return per-type scores and matched descriptions."""
        context = DetectionContext(soup=BeautifulSoup(html or "", "html.parser"), url=url or "")
        scores: Dict[SiteType, int] = {site_type: 0 for site_type in SCORED_TYPES}
        indicators: List[str] = []

        for rule in self.rules:
            if rule.predicate(context):
                scores[rule.site_type] = scores.get(rule.site_type, 0) + rule.weight
                indicators.append(rule.description)

        return scores, indicators

    def classify(self, html: str, url: str) -> SiteProfile:
        """Classify a page into a site type with its strategy and patterns."""
        scores, indicators = self.score(html, url)

        detected_type = SiteType.UNKNOWN
        max_score = 0
        for site_type, score in scores.items():
            if score > max_score:
                max_score = score
                detected_type = site_type

        confidence = min(max_score / 100, 1.0)

        return SiteProfile(
            site_type=detected_type,
            confidence=confidence,
            indicators=tuple(indicators),
            chunking_strategy=get_chunking_strategy(detected_type),
            metadata_patterns=get_metadata_patterns(detected_type),
            scores=tuple(scores.items()),
        )


site_detector = SiteDetector()


def classify(html: str, url: str) -> SiteProfile:
    """Classify a page with the default indicator table."""
    return site_detector.classify(html, url)


def log_detection(profile: SiteProfile, url: str) -> None:
    """Log the detection verdict for a page."""
    strategy = profile.chunking_strategy
    logger.info(
        f"Site type for {url}: {profile.site_type.value.upper()} "
        f"(confidence {profile.confidence * 100:.0f}%)"
    )
    for indicator in profile.indicators:
        logger.debug(f"  indicator: {indicator}")
    logger.debug(
        f"  chunking: {strategy.preferred_size} chars, {strategy.overlap} overlap, "
        f"boundary={strategy.boundary_mode.value}"
    )
