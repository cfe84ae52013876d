"""Job creation, polling and token status endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from taskbridge.api.routes.deps import get_service
from taskbridge.models.callbacks import CreateJobRequest, CreateJobResponse
from taskbridge.models.task_token import TaskTokenRecord
from taskbridge.service import TaskBridgeService

router = APIRouter(tags=["jobs"])


@router.post("", status_code=201, response_model=CreateJobResponse)
def create_job(
    request: CreateJobRequest, service: TaskBridgeService = Depends(get_service),
) -> CreateJobResponse:
    """Start the external job and park the workflow's task token."""
    return service.creator.handle(request)


@router.post("/{job_id}/poll")
def poll_job(job_id: str, service: TaskBridgeService = Depends(get_service)) -> dict[str, Any]:
    return service.poller.poll(job_id).to_response()


@router.get("/{job_id}", response_model=TaskTokenRecord)
def get_token(job_id: str, service: TaskBridgeService = Depends(get_service)) -> TaskTokenRecord:
    return service.poller.status(job_id)


@router.post("/{job_id}/expire")
def expire_job(job_id: str, service: TaskBridgeService = Depends(get_service)) -> dict[str, Any]:
    """Time out the token if it is past ``expiresAt``."""
    return service.poller.expire(job_id).to_response()
