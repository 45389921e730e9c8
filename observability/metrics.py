"""Prometheus metrics for SiteChat."""

import logging
import os
import re
import time
from typing import Optional

from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, Info, generate_latest
from prometheus_client.core import CollectorRegistry

logger = logging.getLogger(__name__)

# Custom registry so tests and multiple apps do not collide with the default one
sitechat_registry = CollectorRegistry()

# Request metrics
request_count = Counter(
    'sitechat_http_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=sitechat_registry
)

request_duration = Histogram(
    'sitechat_http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=sitechat_registry
)

# Crawl metrics
crawled_pages = Counter(
    'sitechat_crawled_pages_total',
    'Pages taken from the crawl frontier',
    ['outcome'],
    registry=sitechat_registry
)

site_type_detections = Counter(
    'sitechat_site_type_detections_total',
    'Pages classified per site type',
    ['site_type'],
    registry=sitechat_registry
)

# Indexing metrics
indexed_chunks = Counter(
    'sitechat_indexed_chunks_total',
    'Chunks embedded and stored',
    ['site_type'],
    registry=sitechat_registry
)

ingestion_jobs = Counter(
    'sitechat_ingestion_jobs_total',
    'Website ingestion jobs by final status',
    ['status'],
    registry=sitechat_registry
)

ingestion_duration = Histogram(
    'sitechat_ingestion_duration_seconds',
    'Website ingestion duration in seconds',
    buckets=[1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0],
    registry=sitechat_registry
)

# Query metrics
retrieval_duration = Histogram(
    'sitechat_retrieval_duration_seconds',
    'Query embedding and ranking duration in seconds',
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
    registry=sitechat_registry
)

completion_duration = Histogram(
    'sitechat_completion_duration_seconds',
    'Completion provider call duration in seconds',
    ['status'],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
    registry=sitechat_registry
)

# Application info
app_info = Info(
    'sitechat_app_info',
    'SiteChat application information',
    registry=sitechat_registry
)

# Error metrics
error_count = Counter(
    'sitechat_errors_total',
    'Total number of errors',
    ['error_type', 'component'],
    registry=sitechat_registry
)


class PrometheusMiddleware:
    """ASGI middleware collecting request count and latency."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        method = request.method
        endpoint = self._normalize_endpoint(request.url.path)

        start_time = time.time()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as e:
            logger.error(f"Request processing error: {e}")
            error_count.labels(error_type=type(e).__name__, component="http").inc()
            raise
        finally:
            request_count.labels(
                method=method,
                endpoint=endpoint,
                status_code=str(status_code)
            ).inc()
            request_duration.labels(method=method, endpoint=endpoint).observe(time.time() - start_time)

    def _normalize_endpoint(self, path: str) -> str:
        """Normalize endpoint path to reduce cardinality."""
        path = re.sub(r'/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}', '/{uuid}', path)
        path = re.sub(r'/\d+', '/{id}', path)
        return path


def setup_prometheus_metrics(app: FastAPI) -> None:
    """Install the middleware and the /metrics endpoint on an app."""
    app.add_middleware(PrometheusMiddleware)

    @app.get("/metrics")
    async def metrics_endpoint():
        """Prometheus metrics endpoint."""
        return Response(content=generate_latest(sitechat_registry), media_type=CONTENT_TYPE_LATEST)

    app_info.info({
        'version': os.getenv('APP_VERSION', 'unknown'),
        'environment': os.getenv('ENVIRONMENT', 'development'),
    })

    logger.info("Prometheus metrics configured")


def record_crawl_page(outcome: str, site_type: Optional[str] = None) -> None:
    """Record one frontier pop: outcome is 'scraped' or 'failed'."""
    crawled_pages.labels(outcome=outcome).inc()
    if site_type:
        site_type_detections.labels(site_type=site_type).inc()
    if outcome == "failed":
        error_count.labels(error_type="fetch_error", component="crawler").inc()


def record_indexing_metrics(site_type: str, chunk_count: int) -> None:
    indexed_chunks.labels(site_type=site_type).inc(chunk_count)


def record_ingestion_job(status: str, duration: float) -> None:
    """Record the final status of a website ingestion job."""
    ingestion_jobs.labels(status=status).inc()
    ingestion_duration.observe(duration)
    if status == "failed":
        error_count.labels(error_type="ingestion_error", component="jobs").inc()


def record_retrieval_metrics(duration: float) -> None:
    retrieval_duration.observe(duration)


def record_completion_metrics(duration: float, error: Optional[str] = None) -> None:
    """Record a completion provider call."""
    status = "error" if error else "success"
    completion_duration.labels(status=status).observe(duration)
    if error:
        error_count.labels(error_type="completion_error", component="chat").inc()
