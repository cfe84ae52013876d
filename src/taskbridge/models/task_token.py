"""Task token record and its lifecycle status."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class TokenStatus(StrEnum):
    POLLING = "POLLING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    MAX_ATTEMPTS = "MAX_ATTEMPTS"
    TIMEOUT = "TIMEOUT"


TERMINAL_STATUSES = frozenset(
    {TokenStatus.COMPLETED, TokenStatus.FAILED, TokenStatus.MAX_ATTEMPTS, TokenStatus.TIMEOUT}
)


class TaskTokenRecord(BaseModel):
    """A suspended workflow's resumption token, keyed by job id."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: str
    task_token: str
    execution_id: str
    attempt_count: int = 0
    max_attempts: int
    status: TokenStatus = TokenStatus.POLLING
    created_at: datetime
    expires_at: datetime
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at
