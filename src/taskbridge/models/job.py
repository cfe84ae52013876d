"""External job models (owned by the job backend)."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class JobStatus(StrEnum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Job(BaseModel):
    """A simulated external job as persisted in the job store."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: str
    status: JobStatus = JobStatus.IN_PROGRESS
    poll_count: int = 0
    completion_polls: int
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    completed_at: Optional[datetime] = None
    failure_reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != JobStatus.IN_PROGRESS


class JobCreated(BaseModel):
    """Response of JobBackend.create_job."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: str
    status: JobStatus = JobStatus.IN_PROGRESS
    completion_polls: int


class JobSnapshot(BaseModel):
    """Response of JobBackend.check_status."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: str
    status: JobStatus
    poll_count: int
    completion_polls: int

    @classmethod
    def of(cls, job: Job) -> JobSnapshot:
        return cls(
            job_id=job.job_id,
            status=job.status,
            poll_count=job.poll_count,
            completion_polls=job.completion_polls,
        )
