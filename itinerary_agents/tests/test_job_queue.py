"""
Tests for the single-slot job queue.
"""

import asyncio

import pytest

from itinerary_agents.jobs.queue import JOB_COMPLETE, JOB_ERROR, JobQueue, JobStatus
from itinerary_agents.shared.exceptions import DuplicateJobError


# ============================================================================
# Test Fixtures
# ============================================================================


class _Tracker:
    """Records job order and how many processors overlap."""

    def __init__(self):
        self.order = []
        self.running = 0
        self.max_running = 0

    def processor(self, name, result=None, error=None):
        async def run():
            self.running += 1
            self.max_running = max(self.max_running, self.running)
            self.order.append(name)
            await asyncio.sleep(0.01)
            self.running -= 1
            if error is not None:
                raise error
            return result if result is not None else name

        return run


class _RecordingListener:
    def __init__(self):
        self.events = []

    def on_job_event(self, event, job, error):
        self.events.append((event, job.id, error))


# ============================================================================
# TestJobQueue
# ============================================================================


class TestJobQueue:
    """Tests for submission, ordering and completion events."""

    def test_one_job_at_a_time_in_order(self):
        """Jobs should run one at a time, in submission order."""
        tracker = _Tracker()

        async def scenario():
            queue = JobQueue()
            for name in ("a", "b", "c"):
                queue.add_job(name, tracker.processor(name))
            await queue.join()
            return queue

        queue = asyncio.run(scenario())

        assert tracker.order == ["a", "b", "c"]
        assert tracker.max_running == 1
        assert all(job["status"] == "completed" for job in queue.list_jobs())
        assert queue.is_processing is False

    def test_status_while_queued(self):
        """A job behind a running one should report pending."""
        tracker = _Tracker()

        async def scenario():
            queue = JobQueue()
            queue.add_job("first", tracker.processor("first"))
            queue.add_job("second", tracker.processor("second"), {"destination": "Paris"})
            await asyncio.sleep(0)
            snapshot = (queue.get_job_status("first"), queue.get_job_status("second"), queue.pending_count)
            await queue.join()
            return snapshot, queue.get_job_status("second")

        (first, second, pending), finished = asyncio.run(scenario())

        assert first["status"] == "processing"
        assert first["started_at"] is not None
        assert second["status"] == "pending"
        assert second["metadata"] == {"destination": "Paris"}
        assert pending == 1
        assert finished["status"] == "completed"
        assert finished["result"] == "second"

    def test_failure_does_not_stop_queue(self):
        """A failing job should be marked failed and the next one should run."""
        tracker = _Tracker()
        listener = _RecordingListener()
        error = RuntimeError("planner crashed")

        async def scenario():
            queue = JobQueue(listener=listener)
            queue.add_job("bad", tracker.processor("bad", error=error))
            queue.add_job("good", tracker.processor("good"))
            await queue.join()
            return queue

        queue = asyncio.run(scenario())

        bad = queue.get_job_status("bad")
        assert bad["status"] == "failed"
        assert bad["error"] == "planner crashed"
        assert bad["completed_at"] is not None
        assert queue.get_job_status("good")["status"] == "completed"
        assert listener.events == [(JOB_ERROR, "bad", error), (JOB_COMPLETE, "good", None)]

    def test_async_listener(self):
        """Coroutine listeners should be awaited."""
        seen = []

        class _AsyncListener:
            async def on_job_event(self, event, job, error):
                await asyncio.sleep(0)
                seen.append((event, job.id))

        async def scenario():
            queue = JobQueue(listener=_AsyncListener())
            queue.add_job("a", _Tracker().processor("a"))
            await queue.join()

        asyncio.run(scenario())

        assert seen == [(JOB_COMPLETE, "a")]

    def test_listener_failure_is_ignored(self):
        """A raising listener should not stop later jobs."""

        class _BrokenListener:
            def on_job_event(self, event, job, error):
                raise RuntimeError("listener down")

        tracker = _Tracker()

        async def scenario():
            queue = JobQueue(listener=_BrokenListener())
            queue.add_job("a", tracker.processor("a"))
            queue.add_job("b", tracker.processor("b"))
            await queue.join()
            return queue

        queue = asyncio.run(scenario())

        assert tracker.order == ["a", "b"]
        assert queue.get_job_status("b")["status"] == "completed"

    def test_duplicate_active_id_rejected(self):
        """An id that is still pending or processing should be rejected."""
        tracker = _Tracker()

        async def scenario():
            queue = JobQueue()
            queue.add_job("run-1", tracker.processor("run-1"))
            with pytest.raises(DuplicateJobError):
                queue.add_job("run-1", tracker.processor("again"))
            await queue.join()

        asyncio.run(scenario())

        assert tracker.order == ["run-1"]

    def test_finished_id_can_be_reused(self):
        """A terminal job should be replaced by a new one with the same id."""
        tracker = _Tracker()

        async def scenario():
            queue = JobQueue()
            queue.add_job("run-1", tracker.processor("first"))
            await queue.join()
            queue.add_job("run-1", tracker.processor("second"))
            await queue.join()
            return queue

        queue = asyncio.run(scenario())

        assert tracker.order == ["first", "second"]
        assert queue.get_job_status("run-1")["result"] == "second"
        assert len(queue.list_jobs()) == 1

    def test_history_is_bounded(self):
        """Only the newest finished jobs should be kept."""

        async def scenario():
            queue = JobQueue(max_history=2)
            for name in ("a", "b", "c", "d"):
                queue.add_job(name, _Tracker().processor(name))
            await queue.join()
            return queue

        queue = asyncio.run(scenario())

        assert [job["id"] for job in queue.list_jobs()] == ["c", "d"]
        assert queue.get_job_status("a") is None

    def test_add_job_requires_running_loop(self):
        """Submitting outside an event loop should fail loudly."""
        with pytest.raises(RuntimeError):
            JobQueue().add_job("a", _Tracker().processor("a"))

    def test_terminal_statuses(self):
        """Only completed and failed are terminal."""
        assert JobStatus.COMPLETED.is_terminal
        assert JobStatus.FAILED.is_terminal
        assert not JobStatus.PENDING.is_terminal
        assert not JobStatus.PROCESSING.is_terminal
