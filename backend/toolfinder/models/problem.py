"""Problem ORM — one user-submitted problem statement and its verdict.

Invariants:
    - status ∈ {pending, solved, opportunity}, fixed at creation from the funnel outcome
    - matched_tool_id is a weak reference: ON DELETE SET NULL, never ownership
    - Created exactly once per submission

Design Decisions:
    - matched_tool relationship loaded with selectin: list endpoint embeds the tool
      summary without N+1 queries
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from toolfinder.db.base import Base
from toolfinder.models.tool import Tool


class Problem(Base):
    """Problem entity — the record of one submission."""
    __tablename__ = "problems"
    __table_args__ = (
        CheckConstraint(
            "status IN ('solved', 'pending', 'opportunity')",
            name="ck_problems_status",
        ),
        Index("idx_problems_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )
    matched_tool_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("tools.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    matched_tool: Mapped[Tool | None] = relationship(
        Tool, lazy="selectin",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "status": self.status,
            "matched_tool_id": self.matched_tool_id,
            "created_at": self.created_at,
        }
