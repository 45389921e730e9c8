"""Observability package for SiteChat."""

from .logging import setup_logging, get_logger, get_structured_logger, log_performance, StructuredLogger
from .metrics import (
    setup_prometheus_metrics,
    record_crawl_page,
    record_indexing_metrics,
    record_ingestion_job,
    record_retrieval_metrics,
    record_completion_metrics,
    PrometheusMiddleware,
    sitechat_registry
)

__all__ = [
    'setup_logging',
    'get_logger',
    'log_performance',
    'get_structured_logger',
    'StructuredLogger',
    'setup_prometheus_metrics',
    'record_crawl_page',
    'record_indexing_metrics',
    'record_ingestion_job',
    'record_retrieval_metrics',
    'record_completion_metrics',
    'PrometheusMiddleware',
    'sitechat_registry'
]
