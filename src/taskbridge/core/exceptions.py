"""TaskBridge exception hierarchy."""

from __future__ import annotations


class TaskBridgeError(Exception):
    """Base exception for all TaskBridge errors."""


class TokenNotFoundError(TaskBridgeError):
    """No task token is stored for the job."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"No task token found for job {job_id}")


class TokenAlreadyExistsError(TaskBridgeError):
    """A task token is already stored for the job."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Task token already exists for job {job_id}")


class JobNotFoundError(TaskBridgeError):
    """The job backend does not know the job."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class StoreError(TaskBridgeError):
    """Job or token store operation failed."""


class ResumeError(TaskBridgeError):
    """The workflow engine rejected a resume call."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")
