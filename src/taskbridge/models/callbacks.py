"""Request/response contracts for job creation, polling and resume output."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from taskbridge.models.job import JobSnapshot
from taskbridge.models.task_token import TokenStatus


class _Contract(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResumeErrorKind(StrEnum):
    """Error names sent to the workflow engine on resume-failure."""

    MAX_ATTEMPTS_EXCEEDED = "MaxAttemptsExceeded"
    JOB_FAILED = "JobFailed"
    TIMEOUT_EXCEEDED = "TimeoutExceeded"


class PollingOptions(_Contract):
    """Per-request polling limits chosen by the workflow definition."""

    interval_minutes: int = Field(default=5, ge=1)
    max_attempts: int = Field(default=10, ge=1)
    timeout_minutes: int = Field(default=60, ge=1)


class RecordData(_Contract):
    id: str
    data: dict[str, Any] = Field(default_factory=dict)


class CreateJobRequest(_Contract):
    """Payload the workflow sends when it enters the waiting step."""

    record: RecordData
    task_token: str = Field(min_length=1)
    execution_id: str
    polling_config: Optional[PollingOptions] = None


class CreateJobResponse(_Contract):
    job_id: str
    status: TokenStatus = TokenStatus.POLLING


class PollResult(_Contract):
    """Outcome of a single poll invocation."""

    status: str
    attempt: Optional[int] = None
    max_attempts: Optional[int] = None
    reconnected: Optional[bool] = None
    error: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _plain_status(cls, v: object) -> str:
        # JobStatus and TokenStatus members both land here
        return str(v)

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class CompletedJobResult(_Contract):
    """Output handed to the workflow on resume-success."""

    job_id: str
    status: str = "COMPLETED"
    completed_at: datetime
    attempts: int
    result: JobSnapshot
