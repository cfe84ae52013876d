"""Request-scoped access to the wired service."""

from __future__ import annotations

from fastapi import Request

from taskbridge.service import TaskBridgeService


def get_service(request: Request) -> TaskBridgeService:
    return request.app.state.service
