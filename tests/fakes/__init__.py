"""Shared test doubles: memory backends, recording resumer and a settable clock."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from taskbridge.orchestration.memory import RecordingResumer
from taskbridge.persistence.memory_backend import MemoryJobStore, MemoryTokenStore


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


__all__ = ["FakeClock", "MemoryJobStore", "MemoryTokenStore", "RecordingResumer"]
