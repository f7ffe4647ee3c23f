"""Database Job Queue — durable deferred dispatch over the queued_jobs table.

Invariants:
    - enqueue() returns only after the row is committed; any failure raises DispatchError
    - claim() hands a job to at most one worker per lease window
      (FOR UPDATE SKIP LOCKED on PostgreSQL)
    - A processing job whose lease expired is claimable again: at-least-once delivery
    - attempts is incremented on every claim; claims past max_attempts mark the job
      failed instead of returning it
    - No ordering guarantee beyond "oldest first" per poll

Design Decisions:
    - Poll-and-claim over LISTEN/NOTIFY: works on every engine the catalog supports
    - Lease instead of delete-on-claim: a crashed worker does not lose the job
"""

import logging
import uuid
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from toolfinder.core.domain_types import JobId, JobKind, JobStatus
from toolfinder.core.errors import DispatchError, ToolfinderError
from toolfinder.models.queued_job import QueuedJob

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]

MAX_ATTEMPTS_EXCEEDED = "max attempts exceeded"


@dataclass(frozen=True)
class ClaimedJob:
    """A job leased to this worker."""
    id: JobId
    kind: JobKind
    payload: dict
    attempts: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DatabaseJobQueue:
    """DeferredDispatch backed by a relational table."""

    def __init__(
        self,
        session_scope: SessionScope,
        lease_seconds: int = 120,
        max_attempts: int = 3,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._session_scope = session_scope
        self.lease = timedelta(seconds=lease_seconds)
        self.max_attempts = max_attempts
        self._clock = clock

    async def enqueue(self, kind: JobKind, payload: dict) -> JobId:
        job = QueuedJob(
            id=uuid.uuid4(),
            kind=JobKind(kind).value,
            payload=dict(payload),
            status=JobStatus.PENDING.value,
            attempts=0,
        )
        try:
            async with self._session_scope() as db:
                db.add(job)
                await db.commit()
        except ToolfinderError as e:
            raise DispatchError(e.message)
        logger.info(f"Job enqueued: {job.kind}", extra={"job_id": job.id})
        return JobId(job.id)

    async def claim(self, limit: int) -> list[ClaimedJob]:
        """Lease up to `limit` claimable jobs, oldest first."""
        if limit <= 0:
            return []
        now = self._clock()
        async with self._session_scope() as db:
            result = await db.execute(
                select(QueuedJob)
                .where(or_(
                    QueuedJob.status == JobStatus.PENDING.value,
                    and_(
                        QueuedJob.status == JobStatus.PROCESSING.value,
                        QueuedJob.locked_until < now,
                    ),
                ))
                .order_by(QueuedJob.created_at.asc())
                .with_for_update(skip_locked=True)
                .limit(limit),
            )
            claimed = []
            for job in result.scalars().all():
                job.attempts += 1
                if job.attempts > self.max_attempts:
                    job.status = JobStatus.FAILED.value
                    job.locked_until = None
                    job.last_error = MAX_ATTEMPTS_EXCEEDED
                    logger.error(
                        "Job exceeded max attempts",
                        extra={"job_id": job.id, "attempt": job.attempts},
                    )
                    continue
                job.status = JobStatus.PROCESSING.value
                job.locked_until = now + self.lease
                claimed.append(ClaimedJob(
                    id=JobId(job.id),
                    kind=JobKind(job.kind),
                    payload=dict(job.payload or {}),
                    attempts=job.attempts,
                ))
            await db.commit()
            return claimed

    async def complete(self, job_id: JobId) -> None:
        await self._finish(job_id, JobStatus.DONE, None)

    async def fail(self, job_id: JobId, error: str) -> None:
        """Terminal failure: the invocation ran and already told the requester."""
        await self._finish(job_id, JobStatus.FAILED, error)

    async def release(self, job_id: JobId, error: str) -> None:
        """Return a job to pending for redelivery (attempt cap still applies)."""
        await self._finish(job_id, JobStatus.PENDING, error)

    async def get(self, job_id: JobId) -> QueuedJob | None:
        async with self._session_scope() as db:
            return await db.get(QueuedJob, job_id)

    async def _finish(
        self, job_id: JobId, status: JobStatus, error: str | None,
    ) -> None:
        async with self._session_scope() as db:
            await db.execute(
                update(QueuedJob)
                .where(QueuedJob.id == job_id)
                .values(
                    status=status.value,
                    locked_until=None,
                    last_error=error,
                    updated_at=self._clock(),
                ),
            )
            await db.commit()
