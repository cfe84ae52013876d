"""Poller / resumer: the task token state machine.

::

    POLLING --(job COMPLETED)----------> COMPLETED     send_task_success
    POLLING --(job FAILED)-------------> FAILED        send_task_failure JobFailed
    POLLING --(job IN_PROGRESS)--------> POLLING       attempt += 1
    POLLING --(attempts > max)---------> MAX_ATTEMPTS  send_task_failure MaxAttemptsExceeded
    POLLING --(expire, past expiresAt)-> TIMEOUT       send_task_failure TimeoutExceeded
    terminal --(anything)--------------> terminal      no-op

Each attempt is claimed with a conditional write on the stored attempt count,
and every transition out of POLLING is a conditional write on the token store,
committed before the workflow engine is notified. Losing either write means a
concurrent poll got there first, so the caller gets the stored state back and
nothing is sent.
"""

from __future__ import annotations

import logging
from datetime import datetime

from taskbridge.core.clock import Clock, utcnow
from taskbridge.core.exceptions import TokenNotFoundError
from taskbridge.core.protocols import IJobBackend, ITokenStore, IWorkflowResumer
from taskbridge.models.callbacks import CompletedJobResult, PollResult, ResumeErrorKind
from taskbridge.models.job import JobSnapshot, JobStatus
from taskbridge.models.task_token import TaskTokenRecord, TokenStatus

logger = logging.getLogger(__name__)


class Poller:
    """Checks a job on behalf of its suspended workflow and resumes it exactly once."""

    def __init__(
        self,
        *,
        token_store: ITokenStore,
        backend: IJobBackend,
        resumer: IWorkflowResumer,
        clock: Clock = utcnow,
    ) -> None:
        self._tokens = token_store
        self._backend = backend
        self._resumer = resumer
        self._clock = clock

    # ---- reads ----

    def status(self, job_id: str) -> TaskTokenRecord:
        """Return the stored token record without touching it."""
        record = self._tokens.get_token(job_id)
        if record is None:
            raise TokenNotFoundError(job_id)
        return record

    # ---- poll ----

    def poll(self, job_id: str) -> PollResult:
        """Run one poll attempt for ``job_id``.

        Raises:
            TokenNotFoundError: no token stored for ``job_id``.
        """
        record = self.status(job_id)

        if record.is_terminal:
            logger.info("Job %s already processed: %s", job_id, record.status)
            return PollResult(status=record.status)

        # Persist the attempt before looking at the job. Only one poll may take
        # each attempt number, so at most one of them goes on to check the job.
        record = self._tokens.increment_attempt(job_id, record.attempt_count)
        if record is None:
            return self._already_resolved(job_id)

        if record.attempt_count > record.max_attempts:
            logger.info("Max attempts exceeded for job %s", job_id)
            return self._fail(
                record,
                TokenStatus.MAX_ATTEMPTS,
                ResumeErrorKind.MAX_ATTEMPTS_EXCEEDED,
                f"Exceeded {record.max_attempts} polling attempts",
            )

        logger.info(
            "Checking status for job %s, attempt %d/%d",
            job_id, record.attempt_count, record.max_attempts,
        )
        snapshot = self._backend.check_status(job_id)

        if snapshot.status == JobStatus.COMPLETED:
            return self._complete(record, snapshot)

        if snapshot.status == JobStatus.FAILED:
            logger.info("Job %s FAILED", job_id)
            return self._fail(
                record, TokenStatus.FAILED, ResumeErrorKind.JOB_FAILED, "External job failed",
            )

        logger.info(
            "Job %s still IN_PROGRESS (%d/%d)", job_id, record.attempt_count, record.max_attempts,
        )
        return PollResult(
            status=JobStatus.IN_PROGRESS,
            attempt=record.attempt_count,
            max_attempts=record.max_attempts,
        )

    # ---- timeout ----

    def expire(self, job_id: str, now: datetime | None = None) -> PollResult:
        """Move a POLLING token past its ``expiresAt`` to TIMEOUT.

        Poll never checks expiry itself; an external reaper calls this.
        Tokens that are terminal or not yet expired are left alone.
        """
        record = self.status(job_id)
        if record.is_terminal:
            return PollResult(status=record.status)

        now = now or self._clock()
        if not record.is_expired(now):
            return PollResult(
                status=record.status,
                attempt=record.attempt_count,
                max_attempts=record.max_attempts,
            )

        logger.info("Task token for job %s expired at %s", job_id, record.expires_at.isoformat())
        return self._fail(
            record,
            TokenStatus.TIMEOUT,
            ResumeErrorKind.TIMEOUT_EXCEEDED,
            f"Task token expired at {record.expires_at.isoformat()}",
        )

    def reap_expired(self, now: datetime | None = None) -> list[str]:
        """Expire every POLLING token past its deadline; return the job ids moved to TIMEOUT."""
        now = now or self._clock()
        expired: list[str] = []
        for record in self._tokens.list_polling():
            if not record.is_expired(now):
                continue
            if self.expire(record.job_id, now).status == TokenStatus.TIMEOUT:
                expired.append(record.job_id)
        if expired:
            logger.info("Reaped %d expired task tokens", len(expired))
        return expired

    # ---- transitions ----

    def _commit_terminal(self, record: TaskTokenRecord, status: TokenStatus) -> datetime | None:
        """Durably move the token out of POLLING. None if another poll won."""
        completed_at = self._clock()
        if not self._tokens.mark_terminal(record.job_id, status, completed_at):
            logger.warning("Token for job %s already resolved; skipping %s", record.job_id, status)
            return None
        return completed_at

    def _complete(self, record: TaskTokenRecord, snapshot: JobSnapshot) -> PollResult:
        completed_at = self._commit_terminal(record, TokenStatus.COMPLETED)
        if completed_at is None:
            return self._already_resolved(record.job_id)

        output = CompletedJobResult(
            job_id=record.job_id,
            completed_at=completed_at,
            attempts=record.attempt_count,
            result=snapshot,
        )
        logger.info("Job %s COMPLETED, resuming execution %s", record.job_id, record.execution_id)
        self._resumer.send_task_success(
            record.task_token, output.model_dump(by_alias=True, mode="json"),
        )
        return PollResult(status=TokenStatus.COMPLETED, reconnected=True)

    def _fail(
        self,
        record: TaskTokenRecord,
        status: TokenStatus,
        error: ResumeErrorKind,
        cause: str,
    ) -> PollResult:
        if self._commit_terminal(record, status) is None:
            return self._already_resolved(record.job_id)

        logger.info("Resuming execution %s with failure %s", record.execution_id, error)
        self._resumer.send_task_failure(record.task_token, str(error), cause)
        return PollResult(status=status)

    def _already_resolved(self, job_id: str) -> PollResult:
        record = self.status(job_id)
        if not record.is_terminal:
            logger.info(
                "Attempt for job %s taken by a concurrent poll (%d/%d)",
                job_id, record.attempt_count, record.max_attempts,
            )
            return PollResult(
                status=record.status,
                attempt=record.attempt_count,
                max_attempts=record.max_attempts,
            )
        logger.info("Job %s resolved by a concurrent poll: %s", job_id, record.status)
        return PollResult(status=record.status)
