"""Tests for the Poller state machine."""

from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from taskbridge.core.exceptions import JobNotFoundError, ResumeError, TokenNotFoundError
from taskbridge.jobs.creator import JobCreator
from taskbridge.jobs.poller import Poller
from taskbridge.jobs.simulator import JobSimulator
from taskbridge.models.callbacks import PollingOptions, RecordData
from taskbridge.models.task_token import TokenStatus
from tests.fakes import FakeClock, MemoryJobStore, MemoryTokenStore, RecordingResumer


class Harness:
    """Creator + poller over memory stores with a fixed completion threshold."""

    def __init__(
        self,
        completion_polls: int = 3,
        clock: FakeClock | None = None,
        tokens: MemoryTokenStore | None = None,
    ) -> None:
        self.clock = clock or FakeClock()
        self.jobs = MemoryJobStore()
        self.tokens = tokens or MemoryTokenStore()
        self.resumer = RecordingResumer()
        self.simulator = JobSimulator(
            self.jobs,
            min_completion_polls=completion_polls,
            max_completion_polls=completion_polls,
            clock=self.clock,
        )
        self.creator = JobCreator(backend=self.simulator, token_store=self.tokens, clock=self.clock)
        self.poller = Poller(
            token_store=self.tokens, backend=self.simulator, resumer=self.resumer, clock=self.clock,
        )

    def start(self, max_attempts: int = 10, timeout_minutes: int = 60, token: str = "tok-1") -> str:
        return self.creator.create(
            token,
            "exec-1",
            PollingOptions(interval_minutes=5, max_attempts=max_attempts, timeout_minutes=timeout_minutes),
            RecordData(id="r1", data={}),
        ).job_id


class _LockstepReads(MemoryTokenStore):
    """Holds each thread's first read until every party has read, once armed."""

    def __init__(self) -> None:
        super().__init__()
        self.barrier: threading.Barrier | None = None
        self._seen = threading.local()

    def get_token(self, job_id):
        record = super().get_token(job_id)
        if self.barrier is not None and not getattr(self._seen, "waited", False):
            self._seen.waited = True
            self.barrier.wait(timeout=5)
        return record


class _ResumerDown(RecordingResumer):
    def send_task_success(self, task_token, output):
        raise ResumeError("SendTaskSuccess", "TaskTimedOut")


# ---------- end-to-end ----------

class TestEndToEnd:
    def test_completes_on_third_poll_and_then_noops(self):
        h = Harness(completion_polls=3)
        job_id = h.start()

        first = h.poller.poll(job_id)
        second = h.poller.poll(job_id)
        third = h.poller.poll(job_id)

        assert first.to_response() == {"status": "IN_PROGRESS", "attempt": 1, "maxAttempts": 10}
        assert second.to_response() == {"status": "IN_PROGRESS", "attempt": 2, "maxAttempts": 10}
        assert third.to_response() == {"status": "COMPLETED", "reconnected": True}

        record = h.tokens.get_token(job_id)
        assert record.status == TokenStatus.COMPLETED
        assert record.completed_at == h.clock.now

        fourth = h.poller.poll(job_id)
        assert fourth.to_response() == {"status": "COMPLETED"}
        assert h.tokens.get_token(job_id).attempt_count == 3
        assert h.jobs.get_job(job_id).poll_count == 3

    def test_success_output_bundles_job_snapshot(self):
        h = Harness(completion_polls=1)
        job_id = h.start()
        h.poller.poll(job_id)

        [call] = h.resumer.calls
        assert call.outcome == "success"
        assert call.task_token == "tok-1"
        assert call.output["jobId"] == job_id
        assert call.output["status"] == "COMPLETED"
        assert call.output["attempts"] == 1
        assert call.output["completedAt"]
        assert call.output["result"] == {
            "jobId": job_id, "status": "COMPLETED", "pollCount": 1, "completionPolls": 1,
        }


# ---------- idempotency gate ----------

class TestIdempotency:
    @pytest.mark.parametrize("status", [
        TokenStatus.COMPLETED, TokenStatus.FAILED, TokenStatus.MAX_ATTEMPTS, TokenStatus.TIMEOUT,
    ])
    def test_terminal_token_is_noop(self, status):
        h = Harness()
        job_id = h.start()
        h.tokens.mark_terminal(job_id, status, h.clock.now)

        result = h.poller.poll(job_id)

        assert result.status == status
        assert h.tokens.get_token(job_id).attempt_count == 0
        assert h.jobs.get_job(job_id).poll_count == 0
        assert h.resumer.calls == []

    def test_unknown_job_raises_without_mutation(self):
        h = Harness()
        with pytest.raises(TokenNotFoundError):
            h.poller.poll("job-unknown")
        assert h.resumer.calls == []

    def test_attempts_increase_by_one_per_polling_poll(self):
        h = Harness(completion_polls=5)
        job_id = h.start()
        seen = [h.poller.poll(job_id).attempt for _ in range(4)]
        assert seen == [1, 2, 3, 4]


# ---------- max attempts ----------

class TestMaxAttempts:
    def test_fourth_poll_exhausts_three_attempts(self):
        h = Harness(completion_polls=10)
        job_id = h.start(max_attempts=3)

        results = [h.poller.poll(job_id) for _ in range(3)]
        assert [r.status for r in results] == ["IN_PROGRESS"] * 3
        assert h.resumer.calls == []

        fourth = h.poller.poll(job_id)

        assert fourth.status == TokenStatus.MAX_ATTEMPTS
        record = h.tokens.get_token(job_id)
        assert record.status == TokenStatus.MAX_ATTEMPTS
        assert record.attempt_count == 4
        # the exhausted attempt never reaches the job
        assert h.jobs.get_job(job_id).poll_count == 3

        [call] = h.resumer.calls
        assert call.outcome == "failure"
        assert call.error == "MaxAttemptsExceeded"
        assert call.cause == "Exceeded 3 polling attempts"

    def test_completion_on_last_allowed_attempt(self):
        h = Harness(completion_polls=3)
        job_id = h.start(max_attempts=3)
        statuses = [h.poller.poll(job_id).status for _ in range(3)]
        assert statuses == ["IN_PROGRESS", "IN_PROGRESS", "COMPLETED"]
        assert h.resumer.calls[0].outcome == "success"


# ---------- failed jobs ----------

class TestJobFailed:
    def test_failed_job_resumes_with_failure(self):
        h = Harness(completion_polls=3)
        job_id = h.start()
        h.poller.poll(job_id)
        h.simulator.fail_job(job_id)

        result = h.poller.poll(job_id)

        assert result.status == TokenStatus.FAILED
        assert h.tokens.get_token(job_id).status == TokenStatus.FAILED
        [call] = h.resumer.calls
        assert (call.error, call.cause) == ("JobFailed", "External job failed")

        assert h.poller.poll(job_id).status == TokenStatus.FAILED
        assert len(h.resumer.calls) == 1


# ---------- ordering and propagation ----------

class TestOrdering:
    def test_token_is_terminal_before_resume_is_sent(self):
        h = Harness(completion_polls=1)
        job_id = h.start()
        observed = []

        class _Inspecting(RecordingResumer):
            def send_task_success(self, task_token, output):
                observed.append(h.tokens.get_token(job_id).status)
                super().send_task_success(task_token, output)

        h.poller = Poller(
            token_store=h.tokens, backend=h.simulator, resumer=_Inspecting(), clock=h.clock,
        )
        h.poller.poll(job_id)
        assert observed == [TokenStatus.COMPLETED]

    def test_resume_error_leaves_token_terminal(self):
        h = Harness(completion_polls=1)
        job_id = h.start()
        h.poller = Poller(
            token_store=h.tokens, backend=h.simulator, resumer=_ResumerDown(), clock=h.clock,
        )

        with pytest.raises(ResumeError):
            h.poller.poll(job_id)

        assert h.tokens.get_token(job_id).status == TokenStatus.COMPLETED
        # a retry does not fire the resume again
        assert h.poller.poll(job_id).status == TokenStatus.COMPLETED

    def test_missing_job_propagates_after_attempt_recorded(self):
        h = Harness()
        job_id = h.start()
        h.jobs._jobs.clear()

        with pytest.raises(JobNotFoundError):
            h.poller.poll(job_id)
        assert h.tokens.get_token(job_id).attempt_count == 1


# ---------- concurrency ----------

class TestConcurrentPolls:
    def test_racing_poll_resolves_first(self):
        h = Harness(completion_polls=1)
        job_id = h.start()
        real_check = h.simulator.check_status
        state = {"nested": False}

        class _RacingBackend:
            def create_job(self, payload):
                return h.simulator.create_job(payload)

            def check_status(self, jid):
                if not state["nested"]:
                    state["nested"] = True
                    inner.poll(jid)  # another poller overtakes this one
                return real_check(jid)

        inner = Poller(token_store=h.tokens, backend=_RacingBackend(), resumer=h.resumer, clock=h.clock)
        outer = Poller(token_store=h.tokens, backend=_RacingBackend(), resumer=h.resumer, clock=h.clock)

        result = outer.poll(job_id)

        assert result.status == TokenStatus.COMPLETED
        assert result.reconnected is None
        assert len(h.resumer.calls) == 1
        assert h.tokens.get_token(job_id).attempt_count == 2

    def test_many_threads_resume_once(self):
        h = Harness(completion_polls=2)
        job_id = h.start(max_attempts=50)
        barrier = threading.Barrier(8)
        results = []
        errors = []

        def worker():
            barrier.wait()
            try:
                for _ in range(3):
                    results.append(h.poller.poll(job_id).status)
            except Exception as exc:  # surfaced below
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(h.resumer.calls) == 1
        assert h.resumer.calls[0].outcome == "success"
        assert h.tokens.get_token(job_id).status == TokenStatus.COMPLETED
        assert "COMPLETED" in results


# ---------- timeout ----------

class TestExpire:
    def test_not_expired_is_untouched(self):
        h = Harness()
        job_id = h.start(timeout_minutes=30)
        h.clock.advance(minutes=29)

        result = h.poller.expire(job_id)

        assert result.status == TokenStatus.POLLING
        assert h.resumer.calls == []

    def test_expired_token_times_out_once(self):
        h = Harness()
        job_id = h.start(timeout_minutes=30)
        h.clock.advance(minutes=31)

        assert h.poller.expire(job_id).status == TokenStatus.TIMEOUT
        assert h.poller.expire(job_id).status == TokenStatus.TIMEOUT
        assert h.poller.poll(job_id).status == TokenStatus.TIMEOUT

        [call] = h.resumer.calls
        assert call.error == "TimeoutExceeded"
        assert h.tokens.get_token(job_id).attempt_count == 0

    def test_poll_does_not_enforce_expiry(self):
        h = Harness(completion_polls=5)
        job_id = h.start(timeout_minutes=1)
        h.clock.advance(hours=2)
        assert h.poller.poll(job_id).status == "IN_PROGRESS"

    def test_reap_expired_only_touches_overdue_tokens(self):
        h = Harness()
        overdue = h.start(timeout_minutes=10, token="tok-a")
        fresh = h.start(timeout_minutes=120, token="tok-b")
        done = h.start(timeout_minutes=10, token="tok-c")
        h.tokens.mark_terminal(done, TokenStatus.COMPLETED, h.clock.now)
        h.clock.advance(minutes=60)

        assert h.poller.reap_expired() == [overdue]
        assert h.tokens.get_token(fresh).status == TokenStatus.POLLING
        assert h.tokens.get_token(done).status == TokenStatus.COMPLETED
        assert [c.task_token for c in h.resumer.calls] == ["tok-a"]

    def test_expire_unknown(self):
        with pytest.raises(TokenNotFoundError):
            Harness().poller.expire("nope")


def test_status_read_has_no_side_effects():
    h = Harness()
    job_id = h.start()
    record = h.poller.status(job_id)
    assert record.status == TokenStatus.POLLING
    assert record.expires_at == h.clock.now + timedelta(minutes=60)
    assert h.tokens.get_token(job_id).attempt_count == 0


class TestAttemptClaim:
    """Polls that read the same attempt count race for it; only one wins."""

    def _race(self, h: Harness, job_id: str, parties: int = 2) -> list:
        h.tokens.barrier = threading.Barrier(parties)
        results = []
        errors = []

        def worker():
            try:
                results.append(h.poller.poll(job_id))
            except Exception as exc:  # surfaced below
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(parties)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        h.tokens.barrier = None
        assert errors == []
        return results

    def test_exhausted_token_is_claimed_once(self):
        h = Harness(completion_polls=10, tokens=_LockstepReads())
        job_id = h.start(max_attempts=3)
        for _ in range(3):
            h.poller.poll(job_id)

        results = self._race(h, job_id)

        record = h.tokens.get_token(job_id)
        assert record.status == TokenStatus.MAX_ATTEMPTS
        assert record.attempt_count == record.max_attempts + 1
        assert h.jobs.get_job(job_id).poll_count == 3
        [call] = h.resumer.calls
        assert call.error == "MaxAttemptsExceeded"
        assert TokenStatus.MAX_ATTEMPTS in [r.status for r in results]

    def test_only_one_racer_checks_the_job(self):
        h = Harness(completion_polls=10, tokens=_LockstepReads())
        job_id = h.start(max_attempts=3)

        results = self._race(h, job_id, parties=4)

        assert h.tokens.get_token(job_id).attempt_count == 1
        assert h.jobs.get_job(job_id).poll_count == 1
        assert sorted(r.status for r in results) == ["IN_PROGRESS", "POLLING", "POLLING", "POLLING"]
        assert {r.attempt for r in results} == {1}
        assert h.resumer.calls == []
