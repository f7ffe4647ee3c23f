"""Queue Worker — polls the job queue and runs the orchestrator per claimed job.

Invariants:
    - At most `max_concurrent` jobs in flight per worker
    - A claimed job ends done or failed after its invocation; if the invocation
      itself crashes the job is released for redelivery (attempt cap still applies)
    - One failing poll never stops the loop
    - A failure to record the outcome is logged; the job stays leased until expiry

Design Decisions:
    - Poll → claim up to free slots → one asyncio task per job, same shape as a
      DB queue guard loop
    - run_once() exposed separately so tests drive the loop deterministically
"""

import asyncio
import logging
from collections.abc import Awaitable

from toolfinder.core.domain_types import JobKind
from toolfinder.infrastructure.job_queue import ClaimedJob, DatabaseJobQueue
from toolfinder.services.submission_orchestrator import (
    InvocationResult, Requester, SubmissionOrchestrator,
)

logger = logging.getLogger(__name__)


class QueueWorker:
    def __init__(
        self,
        queue: DatabaseJobQueue,
        orchestrator: SubmissionOrchestrator,
        poll_interval: float = 1.0,
        max_concurrent: int = 4,
    ):
        self.queue = queue
        self.orchestrator = orchestrator
        self.poll_interval = poll_interval
        self.max_concurrent = max_concurrent
        self._in_flight: dict = {}
        self._stopping = asyncio.Event()

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def run(self) -> None:
        logger.info(f"Queue worker running (max_concurrent={self.max_concurrent})")
        while not self._stopping.is_set():
            try:
                started = await self.run_once()
            except Exception as e:
                logger.error(f"Queue poll failed: {e}", exc_info=True)
                started = 0
            if not started:
                try:
                    await asyncio.wait_for(
                        self._stopping.wait(), timeout=self.poll_interval,
                    )
                except asyncio.TimeoutError:
                    pass
        await self.drain()
        logger.info("Queue worker stopped")

    async def run_once(self) -> int:
        """Claim up to the free slot count and start one task per job."""
        available = self.max_concurrent - len(self._in_flight)
        if available <= 0:
            return 0
        jobs = await self.queue.claim(available)
        for job in jobs:
            if job.id in self._in_flight:
                continue
            task = asyncio.create_task(self._execute(job))
            self._in_flight[job.id] = task
            task.add_done_callback(lambda _t, job_id=job.id: self._in_flight.pop(job_id, None))
        return len(jobs)

    async def drain(self) -> None:
        """Wait for every in-flight job to finish."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight.values(), return_exceptions=True)

    def stop(self) -> None:
        self._stopping.set()

    async def _execute(self, job: ClaimedJob) -> None:
        logger.info(
            f"Processing {job.kind.value} job",
            extra={"job_id": job.id, "attempt": job.attempts},
        )
        try:
            result = await self._dispatch(job)
        except Exception as e:
            logger.error(
                f"Job crashed, releasing for redelivery: {e}", exc_info=True,
                extra={"job_id": job.id},
            )
            await self._finish(job, self.queue.release(job.id, str(e)))
            return
        if result.succeeded:
            await self._finish(job, self.queue.complete(job.id))
        else:
            error = result.error or result.state.value
            await self._finish(job, self.queue.fail(job.id, error))

    async def _finish(self, job: ClaimedJob, outcome: Awaitable[None]) -> None:
        try:
            await outcome
        except Exception as e:
            logger.error(
                f"Could not record job outcome, lease will expire: {e}", exc_info=True,
                extra={"job_id": job.id},
            )

    async def _dispatch(self, job: ClaimedJob) -> InvocationResult:
        payload = job.payload
        requester = Requester(
            user_id=payload.get("user_id"), user_name=payload.get("user_name"),
        )
        if job.kind == JobKind.TOOL:
            return await self.orchestrator.process_tool(
                payload.get("text"), payload.get("response_url"),
                requester, job_id=str(job.id),
            )
        return await self.orchestrator.process_problem(
            payload.get("text"), payload.get("response_url"),
            requester, job_id=str(job.id),
        )
