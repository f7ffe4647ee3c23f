"""Job Queue & Worker — durable deferred dispatch and its consumer loop.

Tests cover:
    - enqueue persists a pending job; claim leases it once per lease window
    - Expired leases are claimable again; attempts past the cap mark the job failed
    - Worker marks jobs done after a successful invocation, failed after a failed one,
      and releases them when the invocation crashes
    - A failed outcome write is logged and leaves the job leased for redelivery
    - Concurrency cap limits claims per poll
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from toolfinder.core.domain_types import InvocationState, JobKind, JobStatus
from toolfinder.core.errors import DispatchError
from toolfinder.infrastructure.database import DatabaseSessionManager
from toolfinder.infrastructure.job_queue import MAX_ATTEMPTS_EXCEEDED, DatabaseJobQueue
from toolfinder.services.job_worker import QueueWorker
from toolfinder.services.submission_orchestrator import InvocationResult

CALLBACK = "https://hooks.slack.test/commands/T1/42/abc"


def _payload(text="Teleport my cat", response_url=CALLBACK):
    return {"text": text, "response_url": response_url, "user_id": "U1", "user_name": "ana"}


class _Clock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class _RecordingOrchestrator:
    """Stands in for SubmissionOrchestrator; returns a fixed state or raises."""

    def __init__(self, state=InvocationState.DONE, crash: bool = False):
        self.state = state
        self.crash = crash
        self.calls: list[tuple] = []

    async def _run(self, kind, text, callback_url, requester, job_id):
        self.calls.append((kind, text, callback_url, requester, job_id))
        if self.crash:
            raise RuntimeError("worker process died")
        error = None if self.state == InvocationState.DONE else "save failed"
        return InvocationResult(state=self.state, error=error)

    async def process_problem(self, description, callback_url, requester=None, job_id=None):
        return await self._run("problem", description, callback_url, requester, job_id)

    async def process_tool(self, url, callback_url, requester=None, job_id=None):
        return await self._run("tool", url, callback_url, requester, job_id)


class _CompleteFailsQueue:
    """Delegates to the real queue but cannot record a successful outcome."""

    def __init__(self, inner: DatabaseJobQueue):
        self.inner = inner

    async def claim(self, limit):
        return await self.inner.claim(limit)

    async def complete(self, job_id):
        raise ConnectionResetError("connection reset while marking done")


@pytest.fixture
def clock():
    return _Clock()


@pytest.fixture
def queue(test_db_manager, clock):
    return DatabaseJobQueue(
        test_db_manager.session, lease_seconds=60, max_attempts=2, clock=clock,
    )


# --- Queue --------------------------------------------------------------------

async def test_enqueue_creates_pending_job(job_queue):
    job_id = await job_queue.enqueue(JobKind.PROBLEM, _payload())

    job = await job_queue.get(job_id)

    assert job.status == JobStatus.PENDING.value
    assert job.attempts == 0
    assert job.payload["text"] == "Teleport my cat"


async def test_claim_leases_each_job_once(queue):
    await queue.enqueue(JobKind.PROBLEM, _payload())
    await queue.enqueue(JobKind.TOOL, _payload(text="https://www.locofy.ai/"))

    first = await queue.claim(5)
    second = await queue.claim(5)

    assert [j.kind for j in first] == [JobKind.PROBLEM, JobKind.TOOL]
    assert all(j.attempts == 1 for j in first)
    assert second == []


async def test_expired_lease_is_redelivered(queue, clock):
    job_id = await queue.enqueue(JobKind.PROBLEM, _payload())
    await queue.claim(1)

    clock.advance(61)
    again = await queue.claim(1)

    assert [j.id for j in again] == [job_id]
    assert again[0].attempts == 2


async def test_attempt_cap_marks_job_failed(queue, clock):
    job_id = await queue.enqueue(JobKind.PROBLEM, _payload())
    await queue.claim(1)
    clock.advance(61)
    await queue.claim(1)
    clock.advance(61)

    assert await queue.claim(1) == []
    job = await queue.get(job_id)
    assert job.status == JobStatus.FAILED.value
    assert job.last_error == MAX_ATTEMPTS_EXCEEDED


async def test_release_returns_job_to_pending(queue):
    job_id = await queue.enqueue(JobKind.PROBLEM, _payload())
    await queue.claim(1)

    await queue.release(job_id, "crashed")

    job = await queue.get(job_id)
    assert job.status == JobStatus.PENDING.value
    assert job.last_error == "crashed"
    assert len(await queue.claim(1)) == 1


async def test_enqueue_without_schema_raises_dispatch_error():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    manager.engine = engine
    manager._session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )
    try:
        with pytest.raises(DispatchError):
            await DatabaseJobQueue(manager.session).enqueue(JobKind.PROBLEM, _payload())
    finally:
        await engine.dispose()


# --- Worker -------------------------------------------------------------------

async def test_worker_completes_successful_jobs(queue):
    orchestrator = _RecordingOrchestrator()
    worker = QueueWorker(queue, orchestrator, poll_interval=0.01, max_concurrent=4)
    problem_id = await queue.enqueue(JobKind.PROBLEM, _payload())
    tool_id = await queue.enqueue(JobKind.TOOL, _payload(text="https://www.locofy.ai/"))

    assert await worker.run_once() == 2
    await worker.drain()

    assert (await queue.get(problem_id)).status == JobStatus.DONE.value
    assert (await queue.get(tool_id)).status == JobStatus.DONE.value
    kinds = sorted(call[0] for call in orchestrator.calls)
    assert kinds == ["problem", "tool"]
    problem_call = next(c for c in orchestrator.calls if c[0] == "problem")
    assert problem_call[1] == "Teleport my cat"
    assert problem_call[2] == CALLBACK
    assert problem_call[3].user_id == "U1"
    assert problem_call[4] == str(problem_id)
    assert worker.in_flight == 0


async def test_worker_fails_job_after_failed_invocation(queue):
    worker = QueueWorker(queue, _RecordingOrchestrator(state=InvocationState.FAILED))
    job_id = await queue.enqueue(JobKind.PROBLEM, _payload())

    await worker.run_once()
    await worker.drain()

    job = await queue.get(job_id)
    assert job.status == JobStatus.FAILED.value
    assert job.last_error == "save failed"


async def test_worker_releases_job_when_invocation_crashes(queue):
    worker = QueueWorker(queue, _RecordingOrchestrator(crash=True))
    job_id = await queue.enqueue(JobKind.PROBLEM, _payload())

    await worker.run_once()
    await worker.drain()

    job = await queue.get(job_id)
    assert job.status == JobStatus.PENDING.value
    assert "worker process died" in job.last_error


async def test_worker_survives_outcome_write_failure(queue, clock, caplog):
    worker = QueueWorker(_CompleteFailsQueue(queue), _RecordingOrchestrator())
    job_id = await queue.enqueue(JobKind.PROBLEM, _payload())

    await worker.run_once()
    await worker.drain()

    assert worker.in_flight == 0
    assert (await queue.get(job_id)).status == JobStatus.PROCESSING.value
    assert any("Could not record job outcome" in r.message for r in caplog.records)

    clock.advance(61)
    assert [job.id for job in await queue.claim(1)] == [job_id]


async def test_worker_respects_concurrency_cap(queue):
    worker = QueueWorker(queue, _RecordingOrchestrator(), max_concurrent=1)
    for _ in range(3):
        await queue.enqueue(JobKind.PROBLEM, _payload())

    assert await worker.run_once() == 1
    await worker.drain()
    assert await worker.run_once() == 1
    await worker.drain()


async def test_run_loop_stops_and_drains(queue):
    orchestrator = _RecordingOrchestrator()
    worker = QueueWorker(queue, orchestrator, poll_interval=0.01)
    await queue.enqueue(JobKind.PROBLEM, _payload())

    task = asyncio.create_task(worker.run())
    for _ in range(100):
        if orchestrator.calls:
            break
        await asyncio.sleep(0.01)
    worker.stop()
    await asyncio.wait_for(task, timeout=2)

    assert len(orchestrator.calls) == 1
    assert worker.in_flight == 0
