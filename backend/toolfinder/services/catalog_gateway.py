"""Catalog Gateway — SQL persistence for tools and problems.

Invariants:
    - Every operation opens its own session: an abandoned funnel call never shares a
      session with the orchestrator that outlived it
    - insert_tool on an existing url raises DuplicateToolError carrying the first row
    - Records leave this module as dicts (Tool.to_dict / Problem.to_dict)
    - delete_tool nulls problems.matched_tool_id before removing the tool

Design Decisions:
    - Full-text match in both directions on PostgreSQL (tsvector @@ plainto_tsquery),
      lexeme containment in Python elsewhere (core/match_text.py)
    - Unique-violation detection by re-reading the url after the IntegrityError:
      other integrity failures still surface as DatabaseError
"""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from sqlalchemy import select, delete, update, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from toolfinder.core.domain_types import ProblemStatus, ToolId
from toolfinder.core.errors import DuplicateToolError, ResourceNotFoundError
from toolfinder.core.match_text import texts_match
from toolfinder.models.problem import Problem
from toolfinder.models.tool import Tool

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]

_TOOL_FIELDS = (
    "url", "title", "description", "tag", "category",
    "problem_solves", "who_can_use",
)


def _dialect(db: AsyncSession) -> str:
    return db.get_bind().dialect.name


def _fulltext_match(query: str):
    """Either side's lexemes contained in the other (PostgreSQL only)."""
    tool_vector = func.to_tsvector("english", Tool.problem_solves)
    query_vector = func.to_tsvector("english", query)
    return or_(
        tool_vector.op("@@")(func.plainto_tsquery("english", query)),
        query_vector.op("@@")(
            func.plainto_tsquery("english", Tool.problem_solves),
        ),
    )


class SqlCatalogGateway:
    """CatalogGateway backed by SQLAlchemy async sessions."""

    def __init__(self, session_scope: SessionScope):
        self._session_scope = session_scope

    # ─── Tools ───────────────────────────────────────────────────

    async def insert_tool(self, fields: dict) -> dict:
        values = {name: fields.get(name) for name in _TOOL_FIELDS}
        async with self._session_scope() as db:
            tool = Tool(**values)
            db.add(tool)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                existing = await self._find_by_url(db, values["url"])
                if existing is None:
                    raise
                raise DuplicateToolError(values["url"], existing.to_dict())
            await db.refresh(tool)
            logger.info(
                f"Tool cataloged: {tool.title}", extra={"tool_id": tool.id},
            )
            return tool.to_dict()

    async def find_tool_by_url(self, url: str) -> dict | None:
        async with self._session_scope() as db:
            tool = await self._find_by_url(db, url)
            return tool.to_dict() if tool else None

    async def get_tool_by_id(self, tool_id: ToolId) -> dict | None:
        async with self._session_scope() as db:
            tool = await db.get(Tool, tool_id)
            return tool.to_dict() if tool else None

    async def list_tools(self, limit: int) -> list[dict]:
        async with self._session_scope() as db:
            result = await db.execute(
                select(Tool).order_by(Tool.created_at.desc()).limit(limit),
            )
            return [t.to_dict() for t in result.scalars().all()]

    async def search_tools_by_problem_text(
        self, query: str, limit: int,
    ) -> list[dict]:
        """Plain-text match on problem_solves, best first."""
        if not query.strip():
            return []
        async with self._session_scope() as db:
            if _dialect(db) == "postgresql":
                rank = func.ts_rank(
                    func.to_tsvector("english", Tool.problem_solves),
                    func.plainto_tsquery("english", query),
                )
                result = await db.execute(
                    select(Tool).where(_fulltext_match(query))
                    .order_by(rank.desc(), Tool.created_at.desc())
                    .limit(limit),
                )
                return [t.to_dict() for t in result.scalars().all()]
            result = await db.execute(
                select(Tool).order_by(Tool.created_at.desc()),
            )
            hits = [
                t.to_dict() for t in result.scalars().all()
                if texts_match(query, t.problem_solves)
            ]
            return hits[:limit]

    async def search_tools(self, query: str | None, limit: int) -> list[dict]:
        """Admin listing: newest first, filtered by problem text when given."""
        if query and query.strip():
            hits = await self.search_tools_by_problem_text(query.strip(), limit)
            return sorted(hits, key=lambda t: t["created_at"], reverse=True)
        return await self.list_tools(limit)

    async def delete_tool(self, tool_id: ToolId) -> None:
        async with self._session_scope() as db:
            tool = await db.get(Tool, tool_id)
            if tool is None:
                raise ResourceNotFoundError("Tool", str(tool_id))
            await db.execute(
                update(Problem)
                .where(Problem.matched_tool_id == tool_id)
                .values(matched_tool_id=None),
            )
            await db.execute(delete(Tool).where(Tool.id == tool_id))
            await db.commit()
            logger.info("Tool deleted", extra={"tool_id": tool_id})

    # ─── Problems ────────────────────────────────────────────────

    async def insert_problem(
        self,
        description: str,
        status: ProblemStatus,
        matched_tool_id: ToolId | None,
    ) -> dict:
        async with self._session_scope() as db:
            problem = Problem(
                description=description,
                status=ProblemStatus(status).value,
                matched_tool_id=matched_tool_id,
            )
            db.add(problem)
            await db.commit()
            await db.refresh(problem)
            logger.info(
                f"Problem saved with status {problem.status}",
                extra={"problem_id": problem.id, "tool_id": matched_tool_id},
            )
            return problem.to_dict()

    async def list_problems(
        self, status: ProblemStatus | None = None, limit: int = 50,
    ) -> list[dict]:
        """Newest first; each record embeds its matched tool summary (or None)."""
        async with self._session_scope() as db:
            stmt = select(Problem).order_by(Problem.created_at.desc()).limit(limit)
            if status is not None:
                stmt = stmt.where(Problem.status == ProblemStatus(status).value)
            result = await db.execute(stmt)
            problems = []
            for problem in result.scalars().all():
                record = problem.to_dict()
                tool = problem.matched_tool
                record["tool"] = (
                    {
                        "id": tool.id,
                        "title": tool.title,
                        "url": tool.url,
                        "category": tool.category,
                    }
                    if tool else None
                )
                problems.append(record)
            return problems

    async def _find_by_url(self, db: AsyncSession, url: str) -> Tool | None:
        result = await db.execute(select(Tool).where(Tool.url == url))
        return result.scalar_one_or_none()
