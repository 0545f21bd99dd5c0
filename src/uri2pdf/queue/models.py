"""Pydantic models for job queue data structures."""

import uuid
from enum import Enum
from typing import Any, Dict, Mapping, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class QueueState(str, Enum):
    """Queue drain states.

    State transitions:
        idle → draining   (a job is dequeued)
        draining → idle   (queue found empty; ``end`` fires once)
    """

    IDLE = "idle"
    DRAINING = "draining"


class HttpOptions(BaseModel):
    """Per-job HTTP settings."""

    model_config = ConfigDict(frozen=True)

    headers: Dict[str, str] = Field(default_factory=dict, description="Custom request headers")


class Job(BaseModel):
    """Immutable conversion request.

    Unknown fields are kept as-is so callers can pass their own data through
    to the ``render`` event.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    job_id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Job identifier")
    uri: str = Field(..., min_length=1, description="URI to convert")
    outfile: str = Field(..., min_length=1, description="Output artifact path")
    http: Optional[HttpOptions] = Field(default=None, description="HTTP options (headers)")

    @classmethod
    def coerce(cls, options: Union["Job", Mapping[str, Any]]) -> "Job":
        """Return ``options`` as a Job, validating plain mappings."""
        if isinstance(options, Job):
            return options
        return cls(**dict(options))

    @property
    def http_headers(self) -> Dict[str, str]:
        return dict(self.http.headers) if self.http else {}

    @property
    def passthrough(self) -> Dict[str, Any]:
        """Pass-through fields supplied by the caller."""
        return dict(self.model_extra or {})


class QueueStep(NamedTuple):
    """Outcome of ``JobQueue.next()``.

    ``job`` is the job to run next; ``drained`` is True only on the call that
    moved the queue from draining back to idle.
    """

    job: Optional[Job]
    drained: bool
