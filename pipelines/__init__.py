"""Pipelines package for SiteChat.

Provides site crawling, site type detection, page extraction and adaptive chunking.
"""

from .site_types import SiteType, BoundaryMode, ChunkingStrategy, get_chunking_strategy
from .metadata_patterns import MetadataPatterns, get_metadata_patterns
from .site_detector import SiteDetector, SiteProfile, classify, site_detector
from .chunker import AdaptiveChunker, ContentChunk, chunk_text, build_content_chunks
from .html_ingest import PageDocument, PageMetadata, extract_page
from .frontier import CrawlFrontier, CrawlCandidate, score_link
from .sitemap import SitemapDiscovery, find_sitemap_urls
from .fetchers import FetchError, FetchedPage, PageFetcher, HttpPageFetcher, BrowserPageFetcher, create_fetcher
from .crawler import SiteCrawler, CrawlStats, crawl_site, crawl_site_sync
from .security import InvalidWebsiteURL, validate_website_url

__all__ = [
    # Site types
    'SiteType',
    'BoundaryMode',
    'ChunkingStrategy',
    'get_chunking_strategy',
    'MetadataPatterns',
    'get_metadata_patterns',

    # Detection
    'SiteDetector',
    'SiteProfile',
    'classify',
    'site_detector',

    # Chunker
    'AdaptiveChunker',
    'ContentChunk',
    'chunk_text',
    'build_content_chunks',

    # Extraction
    'PageDocument',
    'PageMetadata',
    'extract_page',

    # Crawler
    'CrawlFrontier',
    'CrawlCandidate',
    'score_link',
    'SitemapDiscovery',
    'find_sitemap_urls',
    'FetchError',
    'FetchedPage',
    'PageFetcher',
    'HttpPageFetcher',
    'BrowserPageFetcher',
    'create_fetcher',
    'SiteCrawler',
    'CrawlStats',
    'crawl_site',
    'crawl_site_sync',

    # Security
    'InvalidWebsiteURL',
    'validate_website_url',
]
