"""Site types and per-type chunking strategies.

Each detected site type maps to one fixed chunking strategy. The strategy
controls chunk size, overlap, the boundary the chunker respects, and the
selectors used to locate the main content of a page.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple


class SiteType(str, Enum):
    """Structural site types recognised by the detector."""
    BLOG = "blog"
    DOCUMENTATION = "documentation"
    ECOMMERCE = "ecommerce"
    MARKETING = "marketing"
    NEWS = "news"
    FORUM = "forum"
    UNKNOWN = "unknown"


class BoundaryMode(str, Enum):
    """Granularity at which the chunker may split text."""
    PARAGRAPH = "paragraph"
    SECTION = "section"
    HEADING = "heading"
    PAGE = "page"


@dataclass(frozen=True)
class ChunkingStrategy:
    """Size/overlap/boundary configuration used to split one page's text."""
    preferred_size: int
    overlap: int
    boundary_mode: BoundaryMode
    priority_selectors: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.preferred_size <= 0:
            raise ValueError("preferred_size must be positive")
        if self.overlap < 0:
            raise ValueError("overlap cannot be negative")
        if self.overlap >= self.preferred_size:
            raise ValueError("overlap must be smaller than preferred_size")
        # Accept plain strings for the boundary mode
        object.__setattr__(self, "boundary_mode", BoundaryMode(self.boundary_mode))
        object.__setattr__(self, "priority_selectors", tuple(self.priority_selectors))

    def to_dict(self) -> Dict[str, object]:
        return {
            "preferred_size": self.preferred_size,
            "overlap": self.overlap,
            "boundary_mode": self.boundary_mode.value,
            "priority_selectors": list(self.priority_selectors),
        }


DEFAULT_CHUNKING_STRATEGY = ChunkingStrategy(
    preferred_size=1000,
    overlap=200,
    boundary_mode=BoundaryMode.PARAGRAPH,
    priority_selectors=("article", "main", "body"),
)

CHUNKING_STRATEGIES: Dict[SiteType, ChunkingStrategy] = {
    SiteType.BLOG: ChunkingStrategy(
        preferred_size=1000,
        overlap=200,
        boundary_mode=BoundaryMode.PARAGRAPH,
        priority_selectors=("article", "main", ".post-content", ".entry-content"),
    ),
    SiteType.DOCUMENTATION: ChunkingStrategy(
        preferred_size=800,
        overlap=150,
        boundary_mode=BoundaryMode.SECTION,
        priority_selectors=("article", "main", ".content", '[role="main"]', ".markdown"),
    ),
    # One product per page, so the page is the chunk
    SiteType.ECOMMERCE: ChunkingStrategy(
        preferred_size=500,
        overlap=100,
        boundary_mode=BoundaryMode.PAGE,
        priority_selectors=(".product", ".item", '[itemtype*="Product"]'),
    ),
    SiteType.MARKETING: ChunkingStrategy(
        preferred_size=600,
        overlap=150,
        boundary_mode=BoundaryMode.SECTION,
        priority_selectors=(".hero", ".section", ".feature", "main"),
    ),
    SiteType.NEWS: ChunkingStrategy(
        preferred_size=1200,
        overlap=200,
        boundary_mode=BoundaryMode.PARAGRAPH,
        priority_selectors=("article", ".article-body", ".story-content"),
    ),
    SiteType.FORUM: ChunkingStrategy(
        preferred_size=600,
        overlap=100,
        boundary_mode=BoundaryMode.PAGE,
        priority_selectors=(".post", ".thread", ".message"),
    ),
    SiteType.UNKNOWN: DEFAULT_CHUNKING_STRATEGY,
}


def get_chunking_strategy(site_type: SiteType) -> ChunkingStrategy:
    """Return the chunking strategy tuned for a site type."""
    return CHUNKING_STRATEGIES.get(SiteType(site_type), DEFAULT_CHUNKING_STRATEGY)
