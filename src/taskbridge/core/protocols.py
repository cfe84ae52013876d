"""Protocol interfaces for all TaskBridge abstractions.

All inter-layer communication uses these Protocols: structural typing,
no inheritance required, easy to test with isinstance().
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from taskbridge.models.job import Job, JobCreated, JobSnapshot, JobStatus
from taskbridge.models.task_token import TaskTokenRecord, TokenStatus


# ---------------------------------------------------------------------------
# Persistence: Job Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IJobStore(Protocol):
    """Key-value table of simulated external jobs, keyed by job id."""

    def put_job(self, job: Job) -> None: ...

    def get_job(self, job_id: str) -> Job | None: ...

    def replace_job(self, job: Job, expected_poll_count: int, expected_status: JobStatus) -> bool:
        """Write ``job`` only if the stored poll count and status still match."""
        ...


# ---------------------------------------------------------------------------
# Persistence: Token Store
# ---------------------------------------------------------------------------

@runtime_checkable
class ITokenStore(Protocol):
    """Key-value table of task tokens, keyed by job id.

    Every mutation after creation is conditional on ``status == POLLING``.
    """

    def put_token(self, record: TaskTokenRecord) -> None: ...

    def get_token(self, job_id: str) -> TaskTokenRecord | None: ...

    def increment_attempt(self, job_id: str, expected_attempts: int) -> TaskTokenRecord | None:
        """Add one attempt while POLLING and still at ``expected_attempts``.

        None when the token left POLLING or another poll already took this attempt.
        """
        ...

    def mark_terminal(self, job_id: str, status: TokenStatus, completed_at: datetime) -> bool:
        """Move POLLING -> ``status``. False when another writer got there first."""
        ...

    def list_polling(self) -> list[TaskTokenRecord]: ...


# ---------------------------------------------------------------------------
# External job system
# ---------------------------------------------------------------------------

@runtime_checkable
class IJobBackend(Protocol):
    """The external system that runs the long job."""

    def create_job(self, payload: dict[str, Any]) -> JobCreated: ...

    def check_status(self, job_id: str) -> JobSnapshot: ...


# ---------------------------------------------------------------------------
# Workflow engine
# ---------------------------------------------------------------------------

@runtime_checkable
class IWorkflowResumer(Protocol):
    """Resume API of the workflow engine holding the suspended execution."""

    def send_task_success(self, task_token: str, output: dict[str, Any]) -> None: ...

    def send_task_failure(self, task_token: str, error: str, cause: str) -> None: ...
