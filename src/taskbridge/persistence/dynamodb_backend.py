"""DynamoDB backends implementing IJobStore and ITokenStore."""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from typing import Any

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import BotoCoreError, ClientError

from taskbridge.core.exceptions import StoreError, TokenAlreadyExistsError
from taskbridge.models.job import Job, JobStatus
from taskbridge.models.task_token import TaskTokenRecord, TokenStatus


def _decode_decimals(item: dict[str, Any]) -> dict[str, Any]:
    """Convert Decimal values in a DynamoDB item to int/float."""
    out: dict[str, Any] = {}
    for k, v in item.items():
        if isinstance(v, Decimal):
            out[k] = int(v) if v == int(v) else float(v)
        elif isinstance(v, dict):
            out[k] = _decode_decimals(v)
        else:
            out[k] = v
    return out


def _is_conditional_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class _DynamoDBTable:
    """Shared boto3 resource wiring for a single-table store keyed by ``jobId``."""

    def __init__(self, table_name: str, region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._table_name = table_name
        self._region = region
        self._endpoint_url = endpoint_url
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)
        self._tbl = self._ddb.Table(table_name)

    def _get_item(self, job_id: str) -> dict[str, Any] | None:
        try:
            resp = self._tbl.get_item(Key={"jobId": job_id}, ConsistentRead=True)
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"DynamoDB get_item on {self._table_name} failed for {job_id!r}: {exc}") from exc
        item = resp.get("Item")
        return _decode_decimals(item) if item else None


class DynamoDBJobStore(_DynamoDBTable):
    """Production IJobStore backed by DynamoDB."""

    @staticmethod
    def _to_item(job: Job) -> dict[str, Any]:
        item = job.model_dump(by_alias=True, mode="json", exclude_none=True)
        item["payload"] = json.dumps(job.payload)
        return item

    @staticmethod
    def _from_item(item: dict[str, Any]) -> Job:
        item = dict(item)
        item["payload"] = json.loads(item.get("payload") or "{}")
        return Job.model_validate(item)

    def put_job(self, job: Job) -> None:
        try:
            self._tbl.put_item(Item=self._to_item(job))
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"DynamoDB put_item failed for job {job.job_id!r}: {exc}") from exc

    def get_job(self, job_id: str) -> Job | None:
        item = self._get_item(job_id)
        return self._from_item(item) if item else None

    def replace_job(self, job: Job, expected_poll_count: int, expected_status: JobStatus) -> bool:
        try:
            self._tbl.put_item(
                Item=self._to_item(job),
                ConditionExpression="pollCount = :count AND #s = :status",
                ExpressionAttributeNames={"#s": "status"},
                ExpressionAttributeValues={
                    ":count": expected_poll_count,
                    ":status": str(expected_status),
                },
            )
            return True
        except ClientError as exc:
            if _is_conditional_failure(exc):
                return False
            raise StoreError(f"DynamoDB conditional put failed for job {job.job_id!r}: {exc}") from exc
        except BotoCoreError as exc:
            raise StoreError(f"DynamoDB conditional put failed for job {job.job_id!r}: {exc}") from exc


class DynamoDBTokenStore(_DynamoDBTable):
    """Production ITokenStore backed by DynamoDB conditional writes."""

    def put_token(self, record: TaskTokenRecord) -> None:
        item = record.model_dump(by_alias=True, mode="json", exclude_none=True)
        try:
            self._tbl.put_item(Item=item, ConditionExpression="attribute_not_exists(jobId)")
        except ClientError as exc:
            if _is_conditional_failure(exc):
                raise TokenAlreadyExistsError(record.job_id) from exc
            raise StoreError(f"DynamoDB put_item failed for token {record.job_id!r}: {exc}") from exc
        except BotoCoreError as exc:
            raise StoreError(f"DynamoDB put_item failed for token {record.job_id!r}: {exc}") from exc

    def get_token(self, job_id: str) -> TaskTokenRecord | None:
        item = self._get_item(job_id)
        return TaskTokenRecord.model_validate(item) if item else None

    def increment_attempt(self, job_id: str, expected_attempts: int) -> TaskTokenRecord | None:
        try:
            resp = self._tbl.update_item(
                Key={"jobId": job_id},
                UpdateExpression="ADD attemptCount :one",
                ConditionExpression="#s = :polling AND attemptCount = :seen",
                ExpressionAttributeNames={"#s": "status"},
                ExpressionAttributeValues={
                    ":one": 1,
                    ":seen": expected_attempts,
                    ":polling": str(TokenStatus.POLLING),
                },
                ReturnValues="ALL_NEW",
            )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                return None
            raise StoreError(f"DynamoDB attempt increment failed for {job_id!r}: {exc}") from exc
        except BotoCoreError as exc:
            raise StoreError(f"DynamoDB attempt increment failed for {job_id!r}: {exc}") from exc
        return TaskTokenRecord.model_validate(_decode_decimals(resp["Attributes"]))

    def mark_terminal(self, job_id: str, status: TokenStatus, completed_at: datetime) -> bool:
        try:
            self._tbl.update_item(
                Key={"jobId": job_id},
                UpdateExpression="SET #s = :status, completedAt = :time",
                ConditionExpression="#s = :polling",
                ExpressionAttributeNames={"#s": "status"},
                ExpressionAttributeValues={
                    ":status": str(status),
                    ":time": completed_at.isoformat(),
                    ":polling": str(TokenStatus.POLLING),
                },
            )
            return True
        except ClientError as exc:
            if _is_conditional_failure(exc):
                return False
            raise StoreError(f"DynamoDB status update failed for {job_id!r}: {exc}") from exc
        except BotoCoreError as exc:
            raise StoreError(f"DynamoDB status update failed for {job_id!r}: {exc}") from exc

    def list_polling(self) -> list[TaskTokenRecord]:
        """Scan for tokens still waiting on their job."""
        records: list[TaskTokenRecord] = []
        kwargs: dict[str, Any] = {"FilterExpression": Attr("status").eq(str(TokenStatus.POLLING))}
        try:
            while True:
                resp = self._tbl.scan(**kwargs)
                for item in resp.get("Items", []):
                    records.append(TaskTokenRecord.model_validate(_decode_decimals(item)))
                if "LastEvaluatedKey" not in resp:
                    break
                kwargs["ExclusiveStartKey"] = resp["LastEvaluatedKey"]
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"DynamoDB scan on {self._table_name} failed: {exc}") from exc
        return records
