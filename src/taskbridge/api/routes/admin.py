"""Admin endpoints: timeout reaping and simulated job failure."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from taskbridge.api.routes.deps import get_service
from taskbridge.models.job import JobSnapshot
from taskbridge.service import TaskBridgeService

router = APIRouter(tags=["admin"])


class FailJobRequest(BaseModel):
    reason: str = "External job failed"


@router.post("/reap")
def reap_expired(service: TaskBridgeService = Depends(get_service)) -> dict[str, list[str]]:
    """Time out every POLLING token past its deadline."""
    return {"expired": service.poller.reap_expired()}


@router.post("/jobs/{job_id}/fail", response_model=JobSnapshot)
def fail_job(
    job_id: str,
    request: FailJobRequest | None = None,
    service: TaskBridgeService = Depends(get_service),
) -> JobSnapshot:
    reason = request.reason if request else FailJobRequest().reason
    return service.simulator.fail_job(job_id, reason)
