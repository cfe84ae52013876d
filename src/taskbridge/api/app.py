"""FastAPI application with lifespan, error mapping and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from taskbridge.api.routes import admin, health, jobs
from taskbridge.core.config import AppSettings
from taskbridge.core.exceptions import (
    JobNotFoundError,
    ResumeError,
    StoreError,
    TokenAlreadyExistsError,
    TokenNotFoundError,
)
from taskbridge.core.logging import configure_logging
from taskbridge.service import TaskBridgeService, create_service


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "ERROR", "error": message})


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(TokenNotFoundError)
    async def token_not_found(request: Request, exc: TokenNotFoundError) -> JSONResponse:
        return _error(404, "Token not found")

    @app.exception_handler(JobNotFoundError)
    async def job_not_found(request: Request, exc: JobNotFoundError) -> JSONResponse:
        return _error(404, "Job not found")

    @app.exception_handler(TokenAlreadyExistsError)
    async def token_exists(request: Request, exc: TokenAlreadyExistsError) -> JSONResponse:
        return _error(409, str(exc))

    @app.exception_handler(StoreError)
    async def store_error(request: Request, exc: StoreError) -> JSONResponse:
        return _error(503, str(exc))

    @app.exception_handler(ResumeError)
    async def resume_error(request: Request, exc: ResumeError) -> JSONResponse:
        return _error(502, str(exc))


def create_app(service: TaskBridgeService | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``service`` replaces the settings-built wiring (tests, embedding).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        svc = service or create_service(AppSettings())
        configure_logging(svc.settings.log_level)
        app.state.service = svc
        yield

    app = FastAPI(
        title="TaskBridge Callback Service",
        version="0.1.0",
        lifespan=lifespan,
    )
    _register_error_handlers(app)
    app.include_router(health.router)
    app.include_router(jobs.router, prefix="/jobs")
    app.include_router(admin.router, prefix="/admin")
    return app
