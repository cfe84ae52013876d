"""Step Functions resumer implementing IWorkflowResumer."""

from __future__ import annotations

import json
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from taskbridge.core.exceptions import ResumeError

logger = logging.getLogger(__name__)


class StepFunctionsResumer:
    """Production IWorkflowResumer: SendTaskSuccess / SendTaskFailure."""

    def __init__(self, region: str = "us-east-1", endpoint_url: str | None = None) -> None:
        self._region = region
        self._endpoint_url = endpoint_url
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._client = boto3.client("stepfunctions", **kwargs)

    def send_task_success(self, task_token: str, output: dict[str, Any]) -> None:
        try:
            self._client.send_task_success(taskToken=task_token, output=json.dumps(output, default=str))
        except (ClientError, BotoCoreError) as exc:
            raise ResumeError("SendTaskSuccess", str(exc)) from exc
        logger.info("SendTaskSuccess delivered")

    def send_task_failure(self, task_token: str, error: str, cause: str) -> None:
        try:
            self._client.send_task_failure(taskToken=task_token, error=error, cause=cause)
        except (ClientError, BotoCoreError) as exc:
            raise ResumeError("SendTaskFailure", str(exc)) from exc
        logger.info("SendTaskFailure delivered: %s", error)
