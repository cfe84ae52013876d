"""Job creation: start the external job and park the task token."""

from __future__ import annotations

import logging
from datetime import timedelta

from taskbridge.core.clock import Clock, utcnow
from taskbridge.core.protocols import IJobBackend, ITokenStore
from taskbridge.models.callbacks import CreateJobRequest, CreateJobResponse, PollingOptions, RecordData
from taskbridge.models.task_token import TaskTokenRecord, TokenStatus

logger = logging.getLogger(__name__)


class JobCreator:
    """Creates a job for a waiting workflow and stores its task token.

    The job is created first; the token is only written once the job exists.
    Any failure propagates, so the workflow never sees a success response
    without a stored token.
    """

    def __init__(
        self,
        *,
        backend: IJobBackend,
        token_store: ITokenStore,
        default_polling: PollingOptions | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._backend = backend
        self._tokens = token_store
        self._default_polling = default_polling or PollingOptions()
        self._clock = clock

    def create(
        self,
        task_token: str,
        execution_id: str,
        polling_config: PollingOptions | None,
        record: RecordData,
    ) -> CreateJobResponse:
        polling = polling_config or self._default_polling

        job = self._backend.create_job({"recordId": record.id, "data": record.data})
        logger.info("Job created: %s (execution %s)", job.job_id, execution_id)

        now = self._clock()
        self._tokens.put_token(TaskTokenRecord(
            job_id=job.job_id,
            task_token=task_token,
            execution_id=execution_id,
            attempt_count=0,
            max_attempts=polling.max_attempts,
            status=TokenStatus.POLLING,
            created_at=now,
            expires_at=now + timedelta(minutes=polling.timeout_minutes),
        ))
        logger.info(
            "Task token saved for job %s; workflow waiting for callback (max %d attempts, %d min timeout)",
            job.job_id, polling.max_attempts, polling.timeout_minutes,
        )
        return CreateJobResponse(job_id=job.job_id, status=TokenStatus.POLLING)

    def handle(self, request: CreateJobRequest) -> CreateJobResponse:
        return self.create(
            request.task_token, request.execution_id, request.polling_config, request.record,
        )
