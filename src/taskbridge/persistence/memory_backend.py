"""In-memory backends for unit tests and local runs: dict-backed fakes.

A single lock per store makes each conditional write atomic, so the
compare-and-swap semantics match the DynamoDB and Redis backends.
"""

from __future__ import annotations

import threading
from datetime import datetime

from taskbridge.core.exceptions import TokenAlreadyExistsError
from taskbridge.models.job import Job, JobStatus
from taskbridge.models.task_token import TaskTokenRecord, TokenStatus


class MemoryJobStore:
    """Dict-backed IJobStore."""

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def put_job(self, job: Job) -> None:
        with self._lock:
            self._jobs[job.job_id] = job.model_copy(deep=True)

    def get_job(self, job_id: str) -> Job | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    def replace_job(self, job: Job, expected_poll_count: int, expected_status: JobStatus) -> bool:
        with self._lock:
            current = self._jobs.get(job.job_id)
            if current is None:
                return False
            if current.poll_count != expected_poll_count or current.status != expected_status:
                return False
            self._jobs[job.job_id] = job.model_copy(deep=True)
            return True


class MemoryTokenStore:
    """Dict-backed ITokenStore."""

    def __init__(self) -> None:
        self._tokens: dict[str, TaskTokenRecord] = {}
        self._lock = threading.Lock()

    def put_token(self, record: TaskTokenRecord) -> None:
        with self._lock:
            if record.job_id in self._tokens:
                raise TokenAlreadyExistsError(record.job_id)
            self._tokens[record.job_id] = record.model_copy(deep=True)

    def get_token(self, job_id: str) -> TaskTokenRecord | None:
        with self._lock:
            record = self._tokens.get(job_id)
            return record.model_copy(deep=True) if record else None

    def increment_attempt(self, job_id: str, expected_attempts: int) -> TaskTokenRecord | None:
        with self._lock:
            record = self._tokens.get(job_id)
            if record is None or record.status != TokenStatus.POLLING:
                return None
            if record.attempt_count != expected_attempts:
                return None
            updated = record.model_copy(update={"attempt_count": record.attempt_count + 1})
            self._tokens[job_id] = updated
            return updated.model_copy(deep=True)

    def mark_terminal(self, job_id: str, status: TokenStatus, completed_at: datetime) -> bool:
        with self._lock:
            record = self._tokens.get(job_id)
            if record is None or record.status != TokenStatus.POLLING:
                return False
            self._tokens[job_id] = record.model_copy(
                update={"status": status, "completed_at": completed_at}
            )
            return True

    def list_polling(self) -> list[TaskTokenRecord]:
        with self._lock:
            return [
                r.model_copy(deep=True)
                for r in self._tokens.values()
                if r.status == TokenStatus.POLLING
            ]
