#!/usr/bin/env python3
"""
Crawl a website and report what the crawler found.

Prints, per page, the detected site type, confidence and content length,
followed by the crawl coverage summary. Nothing is stored.
"""

import os
import sys
import json
import asyncio
import argparse

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.settings import get_app_config
from observability.logging import setup_logging
from pipelines.chunker import chunk_text
from pipelines.crawler import SiteCrawler
from pipelines.fetchers import create_fetcher
from pipelines.security import InvalidWebsiteURL, validate_website_url


def parse_args(argv=None) -> argparse.Namespace:
    config = get_app_config()
    crawl = config.get_crawl_settings()

    parser = argparse.ArgumentParser(description="Crawl a website and print per-page classification")
    parser.add_argument("url", help="Website URL to crawl")
    parser.add_argument("--max-pages", type=int, default=crawl['max_pages'],
                        help=f"Maximum pages to collect (default: {crawl['max_pages']})")
    parser.add_argument("--renderer", choices=["browser", "http"], default=crawl['renderer'],
                        help="Fetch pages with a headless browser or plain HTTP")
    parser.add_argument("--no-sitemap", action="store_true", help="Skip sitemap discovery")
    parser.add_argument("--timeout", type=float, default=crawl['page_timeout'],
                        help="Per-page timeout in seconds")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument("--log-level", default="WARNING", help="Log level for crawler output")
    return parser.parse_args(argv)


async def run_crawl(args: argparse.Namespace) -> dict:
    config = get_app_config()
    crawl = config.get_crawl_settings()
    user_agent = config.get_user_agent()

    crawler = SiteCrawler(
        create_fetcher(args.renderer, user_agent, args.timeout),
        use_sitemap=not args.no_sitemap,
        user_agent=user_agent,
        sitemap_timeout=crawl['sitemap_timeout'],
        max_nested_sitemaps=crawl['max_nested_sitemaps'],
    )
    pages, stats = await crawler.crawl(args.url, args.max_pages)

    return {
        "url": args.url,
        "pages": [
            {
                "url": page.url,
                "title": page.title,
                "site_type": page.site_profile.site_type.value,
                "confidence": page.site_profile.confidence,
                "content_length": len(page.raw_text),
                "chunks": len(chunk_text(page.raw_text, page.site_profile.chunking_strategy)),
                "links": len(page.outbound_links),
            }
            for page in pages
        ],
        "stats": stats.to_dict(),
    }


def print_report(report: dict):
    print(f"\n🌐 {report['url']}")
    print("=" * 60)
    for page in report["pages"]:
        print(f"  {page['site_type']:<14} {page['confidence'] * 100:>4.0f}%  "
              f"{page['content_length']:>7} chars  {page['chunks']:>3} chunks  {page['url']}")

    stats = report["stats"]
    print("=" * 60)
    print(f"Pages scraped: {stats['pages_scraped']}/{stats['max_pages']} ({stats['failed']} failed)")
    print(f"Articles: {stats['articles_found']}  Listing pages: {stats['listing_pages_found']}  "
          f"Other: {stats['other_pages']}")
    print(f"Total content: {stats['total_chars'] / 1000:.1f}K chars, "
          f"average {stats['avg_chars_per_page'] / 1000:.1f}K per page")

    if stats["warnings"]:
        print("\n⚠️  Warnings:")
        for warning in stats["warnings"]:
            print(f"  - {warning}")
    else:
        print("\n✅ Quality checks passed")


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(level=args.log_level)

    try:
        args.url = validate_website_url(args.url)
    except InvalidWebsiteURL as e:
        print(f"❌ {e.message}: {args.url}", file=sys.stderr)
        return 2

    report = asyncio.run(run_crawl(args))

    if args.json:
        print(json.dumps(report, indent=2))
    else:
        print_report(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
