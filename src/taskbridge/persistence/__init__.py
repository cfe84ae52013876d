"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from taskbridge.core.config import AppSettings
from taskbridge.core.protocols import IJobStore, ITokenStore
from taskbridge.persistence.dynamodb_backend import DynamoDBJobStore, DynamoDBTokenStore
from taskbridge.persistence.memory_backend import MemoryJobStore, MemoryTokenStore
from taskbridge.persistence.redis_backend import RedisJobStore, RedisTokenStore


def create_persistence(settings: AppSettings | None = None) -> tuple[IJobStore, ITokenStore]:
    """Create the job and token stores selected by ``settings.store_backend``.

    Returns:
        Tuple of (job_store, token_store).
    """
    if settings is None:
        settings = AppSettings()

    if settings.store_backend == "dynamodb":
        ddb = settings.dynamodb
        job_store = DynamoDBJobStore(
            table_name=f"{ddb.jobs_table}{ddb.table_suffix}",
            region=ddb.region,
            endpoint_url=ddb.endpoint_url,
        )
        token_store = DynamoDBTokenStore(
            table_name=f"{ddb.tokens_table}{ddb.table_suffix}",
            region=ddb.region,
            endpoint_url=ddb.endpoint_url,
        )
        return job_store, token_store

    if settings.store_backend == "redis":
        rc = settings.redis
        return (
            RedisJobStore(host=rc.host, port=rc.port, db=rc.db, key_prefix=rc.key_prefix),
            RedisTokenStore(host=rc.host, port=rc.port, db=rc.db, key_prefix=rc.key_prefix),
        )

    return MemoryJobStore(), MemoryTokenStore()
