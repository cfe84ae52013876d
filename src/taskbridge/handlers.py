"""AWS Lambda entry points for the create-job and poller functions.

Deploy with handler ``taskbridge.handlers.create_job_handler`` or
``taskbridge.handlers.poller_handler``. The service is built once per
container from ``TASKBRIDGE_*`` environment settings.
"""

from __future__ import annotations

import logging
from typing import Any

from taskbridge.core.config import AppSettings
from taskbridge.core.exceptions import TokenNotFoundError
from taskbridge.core.logging import configure_logging
from taskbridge.models.callbacks import CreateJobRequest, PollResult
from taskbridge.service import TaskBridgeService, create_service

logger = logging.getLogger(__name__)

_service: TaskBridgeService | None = None


def get_service() -> TaskBridgeService:
    global _service
    if _service is None:
        settings = AppSettings()
        configure_logging(settings.log_level)
        _service = create_service(settings)
    return _service


def set_service(service: TaskBridgeService | None) -> None:
    """Replace the cached service (tests, local runners)."""
    global _service
    _service = service


def create_job_handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """``{record, taskToken, executionId, pollingConfig}`` -> ``{jobId, status}``."""
    request = CreateJobRequest.model_validate(event)
    logger.info("CreateJob for execution %s, record %s", request.execution_id, request.record.id)
    response = get_service().creator.handle(request)
    return response.model_dump(by_alias=True, mode="json")


def poller_handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """``{jobId}`` -> poll result. Store and resume errors propagate to the trigger."""
    job_id = event["jobId"]
    try:
        result = get_service().poller.poll(job_id)
    except TokenNotFoundError:
        logger.error("No token found for job %s", job_id)
        result = PollResult(status="ERROR", error="Token not found")
    return result.to_response()
