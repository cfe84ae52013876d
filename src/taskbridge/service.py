"""Wires stores, job backend, resumer, creator and poller from settings."""

from __future__ import annotations

import random
from dataclasses import dataclass

from taskbridge.core.config import AppSettings
from taskbridge.core.protocols import IJobStore, ITokenStore, IWorkflowResumer
from taskbridge.jobs.creator import JobCreator
from taskbridge.jobs.poller import Poller
from taskbridge.jobs.simulator import JobSimulator
from taskbridge.models.callbacks import PollingOptions
from taskbridge.orchestration.memory import RecordingResumer
from taskbridge.orchestration.stepfunctions import StepFunctionsResumer
from taskbridge.persistence import create_persistence


@dataclass
class TaskBridgeService:
    """The wired components, shared by the API and the Lambda handlers."""

    settings: AppSettings
    job_store: IJobStore
    token_store: ITokenStore
    resumer: IWorkflowResumer
    simulator: JobSimulator
    creator: JobCreator
    poller: Poller


def create_resumer(settings: AppSettings) -> IWorkflowResumer:
    if settings.resumer == "stepfunctions":
        return StepFunctionsResumer(
            region=settings.stepfunctions.region,
            endpoint_url=settings.stepfunctions.endpoint_url,
        )
    return RecordingResumer()


def create_service(
    settings: AppSettings | None = None,
    *,
    job_store: IJobStore | None = None,
    token_store: ITokenStore | None = None,
    resumer: IWorkflowResumer | None = None,
    rng: random.Random | None = None,
) -> TaskBridgeService:
    """Build a service; explicit collaborators override what settings select."""
    if settings is None:
        settings = AppSettings()

    if job_store is None or token_store is None:
        default_jobs, default_tokens = create_persistence(settings)
        job_store = job_store or default_jobs
        token_store = token_store or default_tokens
    if resumer is None:
        resumer = create_resumer(settings)

    simulator = JobSimulator(
        job_store,
        min_completion_polls=settings.simulator.min_completion_polls,
        max_completion_polls=settings.simulator.max_completion_polls,
        rng=rng,
    )
    creator = JobCreator(
        backend=simulator,
        token_store=token_store,
        default_polling=PollingOptions(
            interval_minutes=settings.polling.interval_minutes,
            max_attempts=settings.polling.max_attempts,
            timeout_minutes=settings.polling.timeout_minutes,
        ),
    )
    poller = Poller(token_store=token_store, backend=simulator, resumer=resumer)

    return TaskBridgeService(
        settings=settings,
        job_store=job_store,
        token_store=token_store,
        resumer=resumer,
        simulator=simulator,
        creator=creator,
        poller=poller,
    )
