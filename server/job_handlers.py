"""Job handlers for background processing tasks."""

import logging
import time
from typing import Any, Callable, Dict, List

from indexer.embeddings import EmbeddingService
from indexer.models import WebsiteStatus
from indexer.website_store import WebsiteNotFound, WebsiteStore
from observability.logging import get_structured_logger, log_performance
from observability.metrics import record_indexing_metrics, record_ingestion_job
from pipelines.chunker import build_content_chunks
from pipelines.crawler import SiteCrawler
from pipelines.html_ingest import PageDocument

from .jobs import JobHandler

logger = logging.getLogger(__name__)

INGEST_WEBSITE_JOB = "ingest_website"


class IngestionError(RuntimeError):
    """Raised when a website yields nothing to index."""


@log_performance(threshold_ms=30000.0)
def index_pages(store: WebsiteStore,
                embedding_service: EmbeddingService,
                website_id: str,
                pages: List[PageDocument]) -> int:
    """Chunk, embed and store crawled pages in fetch order.

    Each page is chunked with the strategy its own site profile selected.

    Returns:
        Total number of chunks stored
    """
    total = 0
    for page in pages:
        chunks = build_content_chunks(
            page.raw_text,
            page.site_profile.chunking_strategy,
            page.source_metadata(),
        )
        if not chunks:
            logger.debug(f"No content to index on {page.url}")
            continue

        logger.info(f"Processing: {page.metadata.article_title or page.title} ({len(chunks)} chunks)")
        embeddings = embedding_service.embed_batch([chunk.text for chunk in chunks])
        total += store.bulk_insert_chunks(website_id, chunks, embeddings)
        record_indexing_metrics(page.site_profile.site_type.value, len(chunks))
    return total


def make_ingest_website_job(store: WebsiteStore,
                            embedding_service: EmbeddingService,
                            crawler_factory: Callable[[], SiteCrawler],
                            max_pages: int = 10) -> JobHandler:
    """
    Build the handler that ingests one website.

    Args:
        store: Website store
        embedding_service: Shared embedding service (acquired for the job's duration)
        crawler_factory: Returns a fresh crawler per job
        max_pages: Default page budget when the job parameters carry none

    Returns:
        Async handler ``(job_id, params) -> result`` where params holds
        website_id, url and optionally max_pages
    """

    async def ingest_website_job(job_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        website_id = params["website_id"]
        url = params["url"]
        page_budget = int(params.get("max_pages") or max_pages)
        log = get_structured_logger(__name__, job_id=job_id, website_id=website_id)
        start_time = time.time()

        log.info(f"Starting to process website: {url}")
        store.update_website_status(website_id, WebsiteStatus.PROCESSING)

        try:
            crawler = crawler_factory()
            pages, stats = await crawler.crawl(url, page_budget)

            if not pages:
                raise IngestionError(f"No pages could be scraped from {url}")

            first_page = pages[0]
            store.update_website_details(website_id, title=first_page.title, description=first_page.description)

            embedding_service.acquire()
            try:
                chunk_count = index_pages(store, embedding_service, website_id, pages)
            finally:
                embedding_service.release()

            store.update_website_status(website_id, WebsiteStatus.COMPLETED)

        except Exception as e:
            log.exception(f"Error processing website: {e}")
            try:
                store.update_website_status(website_id, WebsiteStatus.FAILED)
            except WebsiteNotFound:
                log.warning("Website was deleted while processing")
            record_ingestion_job("failed", time.time() - start_time)
            raise

        duration = time.time() - start_time
        record_ingestion_job("completed", duration)
        log.info(f"Website processing completed: {len(pages)} pages, {chunk_count} chunks in {duration:.1f}s")

        return {
            "website_id": website_id,
            "pages": len(pages),
            "chunks": chunk_count,
            "crawl": stats.to_dict(),
        }

    return ingest_website_job
