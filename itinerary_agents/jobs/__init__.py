from itinerary_agents.jobs.queue import (
    JOB_COMPLETE,
    JOB_ERROR,
    Job,
    JobQueue,
    JobQueueListener,
    JobStatus,
)

__all__ = [
    "JOB_COMPLETE",
    "JOB_ERROR",
    "Job",
    "JobQueue",
    "JobQueueListener",
    "JobStatus",
]
