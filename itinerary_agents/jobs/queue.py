"""
Single-slot background job queue.

Serializes itinerary-generation runs: at most one job is processing at a
time, the rest wait as ``pending`` in submission order. When a job ends,
``job:complete`` or ``job:error`` is delivered to the listener and the
next pending job starts straight away.
"""

import asyncio
import inspect
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Protocol

from itinerary_agents.shared.exceptions import DuplicateJobError


logger = logging.getLogger(__name__)

JOB_COMPLETE = "job:complete"
JOB_ERROR = "job:error"

DEFAULT_MAX_HISTORY = 100


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


@dataclass
class Job:
    id: str
    processor: Callable[[], Awaitable[Any]]
    metadata: Dict[str, Any] = field(default_factory=dict)
    status: JobStatus = JobStatus.PENDING
    created_at: float = field(default_factory=time.time)
    started_at: Optional[float] = None
    completed_at: Optional[float] = None
    result: Any = None
    error: Optional[str] = None

    def snapshot(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "metadata": dict(self.metadata),
            "created_at": self.created_at,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "result": self.result,
            "error": self.error,
        }


class JobQueueListener(Protocol):
    def on_job_event(self, event: str, job: Job, error: Optional[BaseException]) -> Any:
        ...


class JobQueue:
    """
    In-memory FIFO queue with exactly one job in flight.

    ``add_job`` must be called from a running event loop; processing
    happens on a background task of that loop.
    """

    def __init__(
        self,
        listener: Optional[JobQueueListener] = None,
        max_history: int = DEFAULT_MAX_HISTORY,
    ):
        self.listener = listener
        self.max_history = max_history
        self._jobs: Dict[str, Job] = {}
        self._pending: Deque[str] = deque()
        self._processing = False
        self._drain_task: Optional[asyncio.Task] = None

    # ========== SUBMISSION ==========

    def add_job(
        self,
        job_id: str,
        processor: Callable[[], Awaitable[Any]],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Job:
        """
        Enqueue a job and start processing if the queue is idle.

        A finished job with the same id is replaced.

        Raises:
            DuplicateJobError: If a job with this id is pending or processing
        """
        existing = self._jobs.get(job_id)
        if existing is not None:
            if not existing.status.is_terminal:
                raise DuplicateJobError(job_id)
            del self._jobs[job_id]

        job = Job(id=job_id, processor=processor, metadata=dict(metadata or {}))
        self._jobs[job_id] = job
        self._pending.append(job_id)
        logger.info(f"[job={job_id}] Queued | pending={len(self._pending)}")

        if not self._processing:
            self._processing = True
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())
        return job

    # ========== STATUS ==========

    def get_job_status(self, job_id: str) -> Optional[Dict[str, Any]]:
        job = self._jobs.get(job_id)
        return job.snapshot() if job is not None else None

    def list_jobs(self) -> List[Dict[str, Any]]:
        return [job.snapshot() for job in self._jobs.values()]

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def is_processing(self) -> bool:
        return self._processing

    async def join(self) -> None:
        """Wait until every queued job has finished."""
        while self._drain_task is not None and not self._drain_task.done():
            await asyncio.shield(self._drain_task)

    # ========== PROCESSING ==========

    async def _drain(self) -> None:
        try:
            while self._pending:
                job = self._jobs.get(self._pending.popleft())
                if job is None or job.status is not JobStatus.PENDING:
                    continue
                await self._run(job)
                self._evict()
        finally:
            self._processing = False

    async def _run(self, job: Job) -> None:
        job.status = JobStatus.PROCESSING
        job.started_at = time.time()
        logger.info(f"[job={job.id}] Processing")

        try:
            job.result = await job.processor()
        except Exception as e:
            job.status = JobStatus.FAILED
            job.error = str(e)
            job.completed_at = time.time()
            logger.error(f"[job={job.id}] Failed: {e}")
            await self._notify(JOB_ERROR, job, e)
            return

        job.status = JobStatus.COMPLETED
        job.completed_at = time.time()
        logger.info(
            f"[job={job.id}] Completed in {(job.completed_at - job.started_at) * 1000:.0f}ms"
        )
        await self._notify(JOB_COMPLETE, job, None)

    async def _notify(self, event: str, job: Job, error: Optional[BaseException]) -> None:
        if self.listener is None:
            return
        try:
            outcome = self.listener.on_job_event(event, job, error)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.warning(f"[job={job.id}] Listener failed on {event}: {e}")

    def _evict(self) -> None:
        terminal = [job_id for job_id, job in self._jobs.items() if job.status.is_terminal]
        excess = len(terminal) - self.max_history
        for job_id in terminal[: max(excess, 0)]:
            del self._jobs[job_id]
