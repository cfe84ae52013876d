"""Simulated external job system.

Stands in for a real job API: each ``check_status`` call advances the job
by one poll, and the job completes once its randomized threshold is reached.
"""

from __future__ import annotations

import logging
import random
import string
from typing import Any

from taskbridge.core.clock import Clock, utcnow
from taskbridge.core.exceptions import JobNotFoundError
from taskbridge.core.protocols import IJobStore
from taskbridge.models.job import Job, JobCreated, JobSnapshot, JobStatus

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase


class JobSimulator:
    """IJobBackend whose jobs complete after a random number of status checks."""

    def __init__(
        self,
        store: IJobStore,
        *,
        min_completion_polls: int = 2,
        max_completion_polls: int = 3,
        rng: random.Random | None = None,
        clock: Clock = utcnow,
    ) -> None:
        if min_completion_polls < 1 or max_completion_polls < min_completion_polls:
            raise ValueError(
                f"Invalid completion poll range {min_completion_polls}..{max_completion_polls}"
            )
        self._store = store
        self._min_polls = min_completion_polls
        self._max_polls = max_completion_polls
        self._rng = rng or random.Random()
        self._clock = clock

    def _new_job_id(self) -> str:
        millis = int(self._clock().timestamp() * 1000)
        suffix = "".join(self._rng.choice(_ID_ALPHABET) for _ in range(6))
        return f"job-{millis}-{suffix}"

    def create_job(self, payload: dict[str, Any]) -> JobCreated:
        job = Job(
            job_id=self._new_job_id(),
            completion_polls=self._rng.randint(self._min_polls, self._max_polls),
            payload=payload,
            created_at=self._clock(),
        )
        self._store.put_job(job)
        logger.info("Created job %s, completes after %d polls", job.job_id, job.completion_polls)
        return JobCreated(job_id=job.job_id, completion_polls=job.completion_polls)

    def check_status(self, job_id: str) -> JobSnapshot:
        """Advance the job by one poll and return its post-update status.

        Raises:
            JobNotFoundError: no job with ``job_id``.
        """
        while True:
            job = self._store.get_job(job_id)
            if job is None:
                raise JobNotFoundError(job_id)

            update: dict[str, Any] = {"poll_count": job.poll_count + 1}
            if job.status == JobStatus.IN_PROGRESS and job.poll_count + 1 >= job.completion_polls:
                update["status"] = JobStatus.COMPLETED
                update["completed_at"] = self._clock()
            advanced = job.model_copy(update=update)

            if self._store.replace_job(advanced, job.poll_count, job.status):
                logger.info(
                    "Job %s: poll %d/%d = %s",
                    job_id, advanced.poll_count, advanced.completion_polls, advanced.status,
                )
                return JobSnapshot.of(advanced)
            logger.debug("Job %s changed concurrently, re-reading", job_id)

    def fail_job(self, job_id: str, reason: str = "External job failed") -> JobSnapshot:
        """Mark an in-progress job FAILED. Terminal jobs are returned unchanged."""
        while True:
            job = self._store.get_job(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if job.is_terminal:
                return JobSnapshot.of(job)

            failed = job.model_copy(update={
                "status": JobStatus.FAILED,
                "completed_at": self._clock(),
                "failure_reason": reason,
            })
            if self._store.replace_job(failed, job.poll_count, job.status):
                logger.info("Job %s marked FAILED: %s", job_id, reason)
                return JobSnapshot.of(failed)
