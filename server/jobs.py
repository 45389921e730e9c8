"""Job processing system for SiteChat.

Runs background jobs (website ingestion) on a thread pool. Each job
runs its async handler on a fresh event loop in its worker thread, so
a long crawl never blocks the API's event loop.
"""

import asyncio
import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

JobHandler = Callable[[str, Dict[str, Any]], Awaitable[Optional[Dict[str, Any]]]]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    """Job status enumeration."""
    QUEUED = "queued"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


@dataclass
class JobRecord:
    """Job record for tracking job state."""
    id: str
    type: str
    status: JobStatus
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    parameters: Dict[str, Any] = field(default_factory=dict)
    logs: List[str] = field(default_factory=list)
    error: Optional[str] = None
    result: Optional[Dict[str, Any]] = None

    def add_log(self, message: str):
        """Add a log message with timestamp."""
        self.logs.append(f"[{_now().isoformat()}] {message}")

    @property
    def finished(self) -> bool:
        return self.status in (JobStatus.DONE, JobStatus.FAILED)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data['status'] = self.status.value
        for name in ['created_at', 'started_at', 'completed_at']:
            if data[name]:
                data[name] = data[name].isoformat()
        return data


class JobManager:
    """Manages background jobs on a worker thread pool."""

    def __init__(self, max_workers: int = 2, max_finished_jobs: int = 500):
        self.max_workers = max_workers
        self.max_finished_jobs = max_finished_jobs
        self.job_handlers: Dict[str, JobHandler] = {}
        self._jobs: Dict[str, JobRecord] = {}
        self._futures: Dict[str, Future] = {}
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="sitechat-job")
        self._running = True

    def register_handler(self, job_type: str, handler: JobHandler):
        """Register an async job handler ``handler(job_id, parameters)``."""
        self.job_handlers[job_type] = handler
        logger.info(f"Registered handler for job type: {job_type}")

    def submit(self, job_type: str, parameters: Dict[str, Any] = None) -> str:
        """Queue a job and return its id."""
        if not self._running:
            raise RuntimeError("Job manager is shut down")
        if job_type not in self.job_handlers:
            raise ValueError(f"No handler registered for job type: {job_type}")

        job_id = str(uuid.uuid4())
        job_record = JobRecord(
            id=job_id,
            type=job_type,
            status=JobStatus.QUEUED,
            created_at=_now(),
            parameters=dict(parameters or {})
        )
        job_record.add_log("Job queued")

        with self._lock:
            self._prune_finished()
            self._jobs[job_id] = job_record
            self._futures[job_id] = self._executor.submit(self._execute_job, job_id)

        logger.info(f"Enqueued job {job_id} of type {job_type}")
        return job_id

    def get_job(self, job_id: str) -> Optional[JobRecord]:
        with self._lock:
            return self._jobs.get(job_id)

    def get_future(self, job_id: str) -> Optional[Future]:
        with self._lock:
            return self._futures.get(job_id)

    def _prune_finished(self):
        """Drop the oldest finished jobs beyond max_finished_jobs. Caller holds the lock."""
        finished = [job for job in self._jobs.values() if job.finished]
        excess = len(finished) - self.max_finished_jobs
        if excess <= 0:
            return
        finished.sort(key=lambda job: job.completed_at or job.created_at)
        for job in finished[:excess]:
            del self._jobs[job.id]
            self._futures.pop(job.id, None)
        logger.debug(f"Pruned {excess} finished jobs")

    def wait(self, job_id: str, timeout: Optional[float] = None) -> JobRecord:
        """Block until a job finishes and return its record.

        Raises:
            KeyError: If the job id is unknown
            TimeoutError: If the job does not finish in time
        """
        future = self.get_future(job_id)
        if future is None:
            raise KeyError(job_id)
        try:
            future.result(timeout=timeout)
        except FutureTimeoutError as e:
            raise TimeoutError(f"Job {job_id} did not finish within {timeout}s") from e
        return self.get_job(job_id)

    def list_jobs(self, status: Optional[JobStatus] = None, limit: int = 100) -> List[JobRecord]:
        """List jobs, newest first, optionally filtered by status."""
        with self._lock:
            jobs = [job for job in self._jobs.values() if status is None or job.status == status]
        jobs.sort(key=lambda job: job.created_at, reverse=True)
        return jobs[:limit]

    def _execute_job(self, job_id: str):
        """Run one job in the current worker thread."""
        job_record = self.get_job(job_id)
        handler = self.job_handlers[job_record.type]

        job_record.status = JobStatus.RUNNING
        job_record.started_at = _now()
        job_record.add_log("Job started")

        try:
            result = asyncio.run(handler(job_record.id, job_record.parameters))
            job_record.status = JobStatus.DONE
            job_record.result = result
            job_record.add_log("Job completed successfully")
        except Exception as e:
            # The handler records domain failures itself; the job just ends failed
            job_record.status = JobStatus.FAILED
            job_record.error = str(e)
            job_record.add_log(f"Job failed: {e}")
            logger.error(f"Job {job_id} failed: {e}")
        finally:
            job_record.completed_at = _now()

    def shutdown(self, wait: bool = True):
        """Stop accepting jobs and optionally wait for running ones."""
        self._running = False
        self._executor.shutdown(wait=wait)
        logger.info("Job manager shutdown complete")
