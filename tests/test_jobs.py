"""Tests for the background job manager."""

import asyncio
import threading

import pytest

from server.jobs import JobManager, JobStatus


@pytest.fixture
def manager():
    manager = JobManager(max_workers=2)
    yield manager
    manager.shutdown(wait=True)


async def succeed(job_id, params):
    await asyncio.sleep(0)
    return {"echo": params.get("value")}


async def fail(job_id, params):
    raise RuntimeError("boom")


class TestJobManager:
    """Submission and completion."""

    def test_successful_job(self, manager):
        manager.register_handler("echo", succeed)
        job_id = manager.submit("echo", {"value": 42})

        record = manager.wait(job_id, timeout=5)

        assert record.status is JobStatus.DONE
        assert record.result == {"echo": 42}
        assert record.started_at is not None
        assert record.completed_at is not None
        assert any("completed" in line for line in record.logs)

    def test_failed_job(self, manager):
        manager.register_handler("fail", fail)
        job_id = manager.submit("fail")

        record = manager.wait(job_id, timeout=5)

        assert record.status is JobStatus.FAILED
        assert record.error == "boom"
        assert record.finished

    def test_unknown_job_type(self, manager):
        with pytest.raises(ValueError):
            manager.submit("nope")

    def test_submit_after_shutdown(self):
        manager = JobManager()
        manager.register_handler("echo", succeed)
        manager.shutdown()

        with pytest.raises(RuntimeError):
            manager.submit("echo")

    def test_wait_unknown_job(self, manager):
        with pytest.raises(KeyError):
            manager.wait("missing")

    def test_wait_timeout(self, manager):
        release = threading.Event()

        async def blocked(job_id, params):
            await asyncio.get_running_loop().run_in_executor(None, release.wait, 5)

        manager.register_handler("blocked", blocked)
        job_id = manager.submit("blocked")
        try:
            with pytest.raises(TimeoutError):
                manager.wait(job_id, timeout=0.05)
        finally:
            release.set()
        assert manager.wait(job_id, timeout=5).status is JobStatus.DONE

    def test_list_jobs_by_status(self, manager):
        manager.register_handler("echo", succeed)
        manager.register_handler("fail", fail)
        ok_id = manager.submit("echo")
        failed_id = manager.submit("fail")
        manager.wait(ok_id, timeout=5)
        manager.wait(failed_id, timeout=5)

        assert [job.id for job in manager.list_jobs(JobStatus.FAILED)] == [failed_id]
        assert {job.id for job in manager.list_jobs()} == {ok_id, failed_id}
        assert len(manager.list_jobs(limit=1)) == 1

    def test_get_job(self, manager):
        manager.register_handler("echo", succeed)
        job_id = manager.submit("echo", {"value": 1})

        record = manager.get_job(job_id)
        assert record.type == "echo"
        assert record.parameters == {"value": 1}
        assert manager.get_job("missing") is None

    def test_record_to_dict(self, manager):
        manager.register_handler("echo", succeed)
        job_id = manager.submit("echo")
        data = manager.wait(job_id, timeout=5).to_dict()

        assert data["status"] == "done"
        assert isinstance(data["created_at"], str)
        assert isinstance(data["completed_at"], str)

    def test_future_resolves_when_job_finishes(self, manager):
        manager.register_handler("echo", succeed)
        job_id = manager.submit("echo")

        future = manager.get_future(job_id)
        future.result(timeout=5)

        assert future.done()
        assert manager.get_job(job_id).status is JobStatus.DONE
        assert manager.get_future("missing") is None


class TestJobRetention:
    """Finished job records are bounded."""

    def test_oldest_finished_jobs_dropped(self):
        manager = JobManager(max_workers=1, max_finished_jobs=2)
        manager.register_handler("echo", succeed)
        try:
            first, second, third = (manager.submit("echo") for _ in range(3))
            for job_id in (first, second, third):
                manager.wait(job_id, timeout=5)

            fourth = manager.submit("echo")
            manager.wait(fourth, timeout=5)

            assert manager.get_job(first) is None
            assert manager.get_future(first) is None
            assert all(manager.get_job(job_id) is not None for job_id in (second, third, fourth))
        finally:
            manager.shutdown()

    def test_unfinished_jobs_are_kept(self):
        manager = JobManager(max_workers=2, max_finished_jobs=0)
        release = threading.Event()

        async def blocked(job_id, params):
            await asyncio.get_running_loop().run_in_executor(None, release.wait, 5)

        manager.register_handler("blocked", blocked)
        manager.register_handler("echo", succeed)
        try:
            blocked_id = manager.submit("blocked")
            manager.submit("echo")

            assert manager.get_job(blocked_id) is not None
        finally:
            release.set()
            manager.shutdown()
