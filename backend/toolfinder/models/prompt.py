"""Prompt ORM — editable system/user template pair per generative function.

Invariants:
    - function_name is unique
    - version starts at 1 and increments on every update
    - Only rows with is_active=True are served; absence falls back to static defaults
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from toolfinder.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Prompt(Base):
    """Versioned prompt configuration row."""
    __tablename__ = "prompts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    function_name: Mapped[str] = mapped_column(
        String(100), nullable=False, unique=True,
    )
    system_prompt: Mapped[str] = mapped_column(Text, nullable=False)
    user_prompt_template: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )
