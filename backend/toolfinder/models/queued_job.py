"""QueuedJob ORM — durable storage for deferred submissions.

Invariants:
    - A job is claimable when status=pending, or status=processing with an expired lease
    - attempts increments on every claim (at-least-once redelivery is visible)
    - done/failed are terminal

Design Decisions:
    - DB table as the queue: the catalog store is already required, no extra broker
      to operate (ADR: one durable deferred-dispatch strategy)
    - JSON payload: problem and tool jobs share one table, `kind` routes them
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from toolfinder.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QueuedJob(Base):
    """One deferred submission awaiting (or finished by) the queue worker."""
    __tablename__ = "queued_jobs"
    __table_args__ = (
        Index("idx_queued_jobs_status_created", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    locked_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )
