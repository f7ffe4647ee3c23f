"""Tool ORM — a cataloged solution, keyed by its source URL.

Invariants:
    - id is UUID primary key
    - url is globally unique (natural dedup key); insert conflicts surface as
      DuplicateToolError in the catalog gateway
    - problem_solves is the primary matching field (GIN full-text index created by migration 001)
    - updated_at refreshed on every ORM update

Design Decisions:
    - Tools are never deleted by the pipeline, only through the admin route
    - to_dict() is the boundary shape: services never hand ORM objects across a
      session boundary
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Text, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from toolfinder.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Tool(Base):
    """Cataloged tool — what a submitted problem can be matched against."""
    __tablename__ = "tools"
    __table_args__ = (Index("idx_tools_category", "category"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    url: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    tag: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    problem_solves: Mapped[str] = mapped_column(Text, nullable=False)
    who_can_use: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "tag": self.tag,
            "category": self.category,
            "problem_solves": self.problem_solves,
            "who_can_use": self.who_can_use,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
