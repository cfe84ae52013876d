"""In-memory resumer that records every resume call."""

from __future__ import annotations

import threading
from typing import Any

from pydantic import BaseModel, Field


class ResumeCall(BaseModel):
    task_token: str
    outcome: str  # "success" or "failure"
    output: dict[str, Any] = Field(default_factory=dict)
    error: str = ""
    cause: str = ""


class RecordingResumer:
    """IWorkflowResumer for local runs and unit tests."""

    def __init__(self) -> None:
        self.calls: list[ResumeCall] = []
        self._lock = threading.Lock()

    def send_task_success(self, task_token: str, output: dict[str, Any]) -> None:
        with self._lock:
            self.calls.append(ResumeCall(task_token=task_token, outcome="success", output=output))

    def send_task_failure(self, task_token: str, error: str, cause: str) -> None:
        with self._lock:
            self.calls.append(
                ResumeCall(task_token=task_token, outcome="failure", error=error, cause=cause)
            )

    def calls_for(self, task_token: str) -> list[ResumeCall]:
        with self._lock:
            return [c for c in self.calls if c.task_token == task_token]
