"""Redis backends implementing IJobStore and ITokenStore.

Each record is a JSON document under ``<prefix>job:<id>`` or
``<prefix>token:<id>``. Conditional writes use WATCH/MULTI/EXEC.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

import redis

from taskbridge.core.exceptions import StoreError, TokenAlreadyExistsError
from taskbridge.models.job import Job, JobStatus
from taskbridge.models.task_token import TaskTokenRecord, TokenStatus

logger = logging.getLogger(__name__)


class _RedisDocuments:
    """Optimistic-transaction helpers over JSON documents."""

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0,
                 key_prefix: str = "taskbridge:") -> None:
        self._host = host
        self._port = port
        self._db = db
        self._prefix = key_prefix
        self._client = redis.Redis(
            host=host, port=port, db=db, decode_responses=True,
        )

    def _read(self, key: str) -> str | None:
        try:
            return self._client.get(key)
        except redis.RedisError as exc:
            raise StoreError(f"Redis GET failed for key={key!r}: {exc}") from exc

    def _compare_and_set(self, key: str, mutate: Callable[[str | None], str | None]) -> str | None:
        """Apply ``mutate`` to the current value under WATCH; None from ``mutate`` aborts."""
        try:
            with self._client.pipeline() as pipe:
                while True:
                    try:
                        pipe.watch(key)
                        new_value = mutate(pipe.get(key))
                        if new_value is None:
                            pipe.unwatch()
                            return None
                        pipe.multi()
                        pipe.set(key, new_value)
                        pipe.execute()
                        return new_value
                    except redis.WatchError:
                        logger.debug("Concurrent write on %s, retrying", key)
                        continue
        except redis.RedisError as exc:
            raise StoreError(f"Redis transaction failed for key={key!r}: {exc}") from exc


class RedisJobStore(_RedisDocuments):
    """IJobStore backed by Redis."""

    def _key(self, job_id: str) -> str:
        return f"{self._prefix}job:{job_id}"

    def put_job(self, job: Job) -> None:
        try:
            self._client.set(self._key(job.job_id), job.model_dump_json(by_alias=True))
        except redis.RedisError as exc:
            raise StoreError(f"Redis SET failed for job {job.job_id!r}: {exc}") from exc

    def get_job(self, job_id: str) -> Job | None:
        raw = self._read(self._key(job_id))
        return Job.model_validate_json(raw) if raw else None

    def replace_job(self, job: Job, expected_poll_count: int, expected_status: JobStatus) -> bool:
        def mutate(raw: str | None) -> str | None:
            if raw is None:
                return None
            current = Job.model_validate_json(raw)
            if current.poll_count != expected_poll_count or current.status != expected_status:
                return None
            return job.model_dump_json(by_alias=True)

        return self._compare_and_set(self._key(job.job_id), mutate) is not None


class RedisTokenStore(_RedisDocuments):
    """ITokenStore backed by Redis optimistic transactions."""

    def _key(self, job_id: str) -> str:
        return f"{self._prefix}token:{job_id}"

    def put_token(self, record: TaskTokenRecord) -> None:
        try:
            created = self._client.set(
                self._key(record.job_id), record.model_dump_json(by_alias=True), nx=True,
            )
        except redis.RedisError as exc:
            raise StoreError(f"Redis SET failed for token {record.job_id!r}: {exc}") from exc
        if not created:
            raise TokenAlreadyExistsError(record.job_id)

    def get_token(self, job_id: str) -> TaskTokenRecord | None:
        raw = self._read(self._key(job_id))
        return TaskTokenRecord.model_validate_json(raw) if raw else None

    def increment_attempt(self, job_id: str, expected_attempts: int) -> TaskTokenRecord | None:
        def mutate(raw: str | None) -> str | None:
            if raw is None:
                return None
            record = TaskTokenRecord.model_validate_json(raw)
            if record.status != TokenStatus.POLLING or record.attempt_count != expected_attempts:
                return None
            record.attempt_count += 1
            return record.model_dump_json(by_alias=True)

        new_value = self._compare_and_set(self._key(job_id), mutate)
        return TaskTokenRecord.model_validate_json(new_value) if new_value else None

    def mark_terminal(self, job_id: str, status: TokenStatus, completed_at: datetime) -> bool:
        def mutate(raw: str | None) -> str | None:
            if raw is None:
                return None
            record = TaskTokenRecord.model_validate_json(raw)
            if record.status != TokenStatus.POLLING:
                return None
            record.status = status
            record.completed_at = completed_at
            return record.model_dump_json(by_alias=True)

        return self._compare_and_set(self._key(job_id), mutate) is not None

    def list_polling(self) -> list[TaskTokenRecord]:
        records: list[TaskTokenRecord] = []
        try:
            for key in self._client.scan_iter(match=f"{self._prefix}token:*"):
                raw = self._client.get(key)
                if raw is None:
                    continue
                record = TaskTokenRecord.model_validate_json(raw)
                if record.status == TokenStatus.POLLING:
                    records.append(record)
        except redis.RedisError as exc:
            raise StoreError(f"Redis SCAN failed for prefix={self._prefix!r}: {exc}") from exc
        return records
