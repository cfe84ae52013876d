"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "TASKBRIDGE_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override
    jobs_table: str = "taskbridge-jobs"
    tokens_table: str = "taskbridge-task-tokens"


class RedisConfig(BaseSettings):
    """Redis store configuration."""

    model_config = {"env_prefix": "TASKBRIDGE_REDIS_"}

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    key_prefix: str = "taskbridge:"


class StepFunctionsConfig(BaseSettings):
    """Step Functions (workflow engine) configuration."""

    model_config = {"env_prefix": "TASKBRIDGE_SFN_"}

    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class PollingConfig(BaseSettings):
    """Default polling limits applied when a request omits them."""

    model_config = {"env_prefix": "TASKBRIDGE_POLLING_"}

    interval_minutes: int = 5
    max_attempts: int = 10
    timeout_minutes: int = 60


class SimulatorConfig(BaseSettings):
    """Simulated external job system."""

    model_config = {"env_prefix": "TASKBRIDGE_SIMULATOR_"}

    min_completion_polls: int = 2
    max_completion_polls: int = 3


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "TASKBRIDGE_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    store_backend: Literal["memory", "dynamodb", "redis"] = "memory"
    resumer: Literal["memory", "stepfunctions"] = "memory"

    dynamodb: DynamoDBConfig = DynamoDBConfig()
    redis: RedisConfig = RedisConfig()
    stepfunctions: StepFunctionsConfig = StepFunctionsConfig()
    polling: PollingConfig = PollingConfig()
    simulator: SimulatorConfig = SimulatorConfig()
