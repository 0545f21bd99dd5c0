"""Job queue for sequential conversion."""

from .job_queue import JobQueue
from .models import HttpOptions, Job, QueueState, QueueStep

__all__ = [
    "JobQueue",
    "HttpOptions",
    "Job",
    "QueueState",
    "QueueStep",
]
