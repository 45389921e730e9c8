"""SiteChat HTTP API.

Websites are submitted by URL, ingested in the background and then
queried through a per-website chat.
"""

import datetime
import logging
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel

from config.database import DatabaseConfig, create_session_factory
from config.settings import AppConfig, get_app_config
from indexer.embeddings import EmbeddingService
from indexer.models import WebsiteStatus
from indexer.website_store import WebsiteNotFound, WebsiteStore
from observability.logging import setup_logging
from observability.metrics import setup_prometheus_metrics
from pipelines.crawler import SiteCrawler
from pipelines.fetchers import create_fetcher
from pipelines.security import InvalidWebsiteURL, validate_website_url

from .chat_service import ChatService, WebsiteNotReady
from .completion import CompletionClient, CompletionError
from .cors import setup_cors
from .job_handlers import INGEST_WEBSITE_JOB, make_ingest_website_job
from .jobs import JobManager, JobStatus

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


class CreateWebsiteRequest(BaseModel):
    url: Optional[str] = None


class ChatMessageRequest(BaseModel):
    message: Optional[str] = None


def build_crawler_factory(config: AppConfig) -> Callable[[], SiteCrawler]:
    """Crawler factory configured from the crawl settings."""
    def crawler_factory() -> SiteCrawler:
        crawl = config.get_crawl_settings()
        user_agent = config.get_user_agent()
        fetcher = create_fetcher(crawl['renderer'], user_agent, crawl['page_timeout'])
        return SiteCrawler(
            fetcher,
            use_sitemap=crawl['use_sitemap'],
            user_agent=user_agent,
            sitemap_timeout=crawl['sitemap_timeout'],
            max_nested_sitemaps=crawl['max_nested_sitemaps'],
        )
    return crawler_factory


class ServiceContainer:
    """The long-lived services behind the API."""

    def __init__(self, config: AppConfig, store: WebsiteStore, embedding_service: EmbeddingService,
                 chat_service: ChatService, job_manager: JobManager,
                 crawler_factory: Callable[[], SiteCrawler]):
        self.config = config
        self.store = store
        self.embedding_service = embedding_service
        self.chat_service = chat_service
        self.job_manager = job_manager
        self.crawler_factory = crawler_factory
        self._started = False

    @classmethod
    def from_config(cls, config: Optional[AppConfig] = None,
                    db_config: Optional[DatabaseConfig] = None) -> 'ServiceContainer':
        config = config or get_app_config()
        store = WebsiteStore(create_session_factory(db_config))

        embedding_settings = config.get_embedding_settings()
        embedding_service = EmbeddingService(
            model_name=embedding_settings['model_name'],
            cache_dir=embedding_settings['cache_dir'],
            batch_size=embedding_settings['batch_size'],
        )

        completion_settings = config.get_completion_settings()
        completion_client = CompletionClient(
            api_key=completion_settings['api_key'],
            base_url=completion_settings['base_url'],
            model=completion_settings['model'],
            timeout=completion_settings['timeout'],
        )

        retrieval = config.get_retrieval_settings()
        chat_service = ChatService(store, embedding_service, completion_client,
                                   top_k=retrieval['top_k'], history_limit=retrieval['history_limit'])

        return cls(config, store, embedding_service, chat_service,
                   JobManager(max_workers=config.get_max_workers(),
                              max_finished_jobs=config.get_max_finished_jobs()),
                   build_crawler_factory(config))

    def start(self):
        """Load the embedding model and register the ingestion job."""
        if self._started:
            return
        self.embedding_service.acquire()
        self.job_manager.register_handler(
            INGEST_WEBSITE_JOB,
            make_ingest_website_job(
                self.store,
                self.embedding_service,
                self.crawler_factory,
                max_pages=self.config.get('crawl.max_pages', 10),
            ),
        )
        self._started = True

    def shutdown(self):
        if not self._started:
            return
        self.job_manager.shutdown(wait=False)
        self.embedding_service.release()
        self._started = False

    def submit_ingestion(self, website_id: str, url: str) -> str:
        return self.job_manager.submit(INGEST_WEBSITE_JOB, {"website_id": website_id, "url": url})


def get_container(request: Request) -> ServiceContainer:
    """Dependency to get the service container."""
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(status_code=500, detail="Services not initialized")
    return container


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """Build the API app; services are created on startup unless supplied."""
    app = FastAPI(title="SiteChat API", version=API_VERSION)
    app.state.container = container
    setup_cors(app)
    setup_prometheus_metrics(app)

    @app.on_event("startup")
    async def startup_event():
        """Initialize services on startup."""
        if app.state.container is None:
            config = get_app_config()
            log_settings = config.get_logging_settings()
            setup_logging(level=log_settings['level'], log_file=log_settings['file'],
                          use_json=log_settings['json'])
            app.state.container = ServiceContainer.from_config(config)
        try:
            app.state.container.start()
            logger.info("SiteChat services initialized")
        except Exception as e:
            logger.error(f"Failed to initialize application: {e}")
            raise

    @app.on_event("shutdown")
    async def shutdown_event():
        """Clean up resources on shutdown."""
        if app.state.container is not None:
            app.state.container.shutdown()
            logger.info("SiteChat services shut down")

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "message": "SiteChat API",
            "version": API_VERSION,
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics"
        }

    @app.get("/health")
    def health():
        return {"ok": True, "time": datetime.datetime.now(datetime.timezone.utc).isoformat()}

    @app.get("/websites")
    def list_websites(services: ServiceContainer = Depends(get_container)) -> List[Dict[str, Any]]:
        """All websites, newest first."""
        return [website.to_dict() for website in services.store.list_websites()]

    @app.post("/websites")
    def create_website(req: CreateWebsiteRequest, services: ServiceContainer = Depends(get_container)):
        """Register a website and queue its ingestion."""
        try:
            url = validate_website_url(req.url, resolve_dns=services.config.get('crawl.resolve_dns', False))
        except InvalidWebsiteURL as e:
            raise HTTPException(status_code=400, detail=e.message)

        website = services.store.create_website(url)
        try:
            job_id = services.submit_ingestion(website.id, url)
        except (RuntimeError, ValueError) as e:
            logger.error(f"Failed to enqueue ingestion for {url}: {e}")
            services.store.update_website_status(website.id, WebsiteStatus.FAILED)
            raise HTTPException(status_code=500, detail="Failed to create website")

        return {**website.to_dict(), "job_id": job_id}

    @app.get("/websites/{website_id}")
    def get_website(website_id: str, services: ServiceContainer = Depends(get_container)):
        website = services.store.get_website(website_id)
        if website is None:
            raise HTTPException(status_code=404, detail="Website not found")
        return {**website.to_dict(), "chunk_count": services.store.count_chunks(website_id)}

    @app.delete("/websites/{website_id}")
    def delete_website(website_id: str, services: ServiceContainer = Depends(get_container)):
        """Delete a website with its chunks and chats."""
        if not services.store.delete_website(website_id):
            raise HTTPException(status_code=404, detail="Website not found")
        return {"success": True}

    @app.get("/chat/{website_id}/messages")
    def list_messages(website_id: str, services: ServiceContainer = Depends(get_container)):
        """Messages of the website's default chat, oldest first."""
        try:
            chat = services.store.get_or_create_chat(website_id)
        except WebsiteNotFound:
            raise HTTPException(status_code=404, detail="Website not found")
        return [message.to_dict() for message in services.store.list_chat_messages(chat.id)]

    @app.post("/chat/{website_id}/messages")
    def post_message(website_id: str, req: ChatMessageRequest,
                     services: ServiceContainer = Depends(get_container)):
        """Ask a question about a website."""
        if not req.message or not req.message.strip():
            raise HTTPException(status_code=400, detail="Message is required")

        try:
            answer = services.chat_service.handle_message(website_id, req.message)
        except WebsiteNotFound:
            raise HTTPException(status_code=404, detail="Website not found")
        except WebsiteNotReady as e:
            raise HTTPException(status_code=400, detail=str(e))
        except CompletionError as e:
            logger.error(f"Error processing message for website {website_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to process message")

        return {"success": True, "message": answer.to_dict()}

    @app.get("/jobs/{job_id}")
    def get_job_status(job_id: str, services: ServiceContainer = Depends(get_container)):
        """Get job status and logs"""
        job_record = services.job_manager.get_job(job_id)
        if not job_record:
            raise HTTPException(status_code=404, detail="Job not found")
        return job_record.to_dict()

    @app.get("/jobs")
    def list_jobs(status: Optional[str] = None, limit: int = 100,
                  services: ServiceContainer = Depends(get_container)):
        """List jobs with optional status filter"""
        job_status = None
        if status:
            try:
                job_status = JobStatus(status)
            except ValueError:
                raise HTTPException(status_code=400, detail=f"Invalid status: {status}")

        jobs = services.job_manager.list_jobs(job_status, limit)
        return {"jobs": [job.to_dict() for job in jobs], "total": len(jobs)}

    return app


app = create_app()
