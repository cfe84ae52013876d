"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from taskbridge.api.routes.deps import get_service
from taskbridge.core.exceptions import StoreError
from taskbridge.service import TaskBridgeService

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready", response_model=None)
def ready(service: TaskBridgeService = Depends(get_service)) -> dict[str, str] | JSONResponse:
    """Ready once the token store answers a read."""
    try:
        service.token_store.get_token("__readiness_probe__")
    except StoreError as exc:
        return JSONResponse(status_code=503, content={"status": "unavailable", "error": str(exc)})
    return {"status": "ready"}
