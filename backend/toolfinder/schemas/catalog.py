"""Catalog Schemas — tool and problem payloads at the JSON API boundary.

Invariants:
    - ProblemSubmit.description: stripped, non-empty (empty → 400 via validation handler)
    - ToolAdd.url: stripped, non-empty; URL syntax is checked by tool extraction so
      an invalid URL gets the domain "Invalid URL format" reply
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from toolfinder.core.domain_types import ProblemStatus


def _strip_required(v: str, name: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{name} cannot be empty or whitespace")
    return v


class ProblemSubmit(BaseModel):
    description: str = Field(max_length=10_000)

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        return _strip_required(v, "description")


class ToolAdd(BaseModel):
    url: str = Field(max_length=2_000)

    @field_validator("url")
    @classmethod
    def strip_url(cls, v: str) -> str:
        return _strip_required(v, "url")


class ToolResponse(BaseModel):
    """Cataloged tool as returned by the API."""
    id: UUID
    url: str
    title: str
    description: str
    tag: str
    category: str
    problem_solves: str
    who_can_use: str
    created_at: datetime
    updated_at: datetime | None = None


class ToolSummary(BaseModel):
    id: UUID
    title: str
    url: str
    category: str


class ProblemResponse(BaseModel):
    id: UUID
    description: str
    status: ProblemStatus
    matched_tool_id: UUID | None = None
    created_at: datetime
    tool: ToolSummary | None = None
