"""Boundary Protocols — contracts between core logic and the IO shell.

Invariants:
    - Funnel, extraction and orchestrator depend only on these Protocols
    - Catalog records cross the boundary as plain dicts (no ORM objects leak out
      of a DB session)
    - Notifier.send never raises

Design Decisions:
    - Protocol over ABC: structural subtyping, test doubles need no inheritance
    - Async in Protocol: every implementation does IO
"""

from typing import Protocol

from toolfinder.core.domain_types import JobId, JobKind, ProblemStatus, ToolId
from toolfinder.core.prompt_defaults import PromptConfig


class CatalogGateway(Protocol):
    """Tool/problem persistence — implemented by services/catalog_gateway.py."""
    async def insert_tool(self, fields: dict) -> dict: ...
    async def find_tool_by_url(self, url: str) -> dict | None: ...
    async def search_tools_by_problem_text(
        self, query: str, limit: int,
    ) -> list[dict]: ...
    async def list_tools(self, limit: int) -> list[dict]: ...
    async def get_tool_by_id(self, tool_id: ToolId) -> dict | None: ...
    async def insert_problem(
        self, description: str, status: ProblemStatus,
        matched_tool_id: ToolId | None,
    ) -> dict: ...


class TextCompletion(Protocol):
    """Generative backend: prompt in, text out."""
    async def complete(
        self, system_instruction: str, user_prompt: str, *, strict_json: bool = True,
    ) -> str: ...


class Notifier(Protocol):
    """Single-shot delivery to a callback address."""
    async def send(self, callback_url: str, payload: dict) -> bool: ...


class DeferredDispatch(Protocol):
    """At-least-once deferred execution of a submission."""
    async def enqueue(self, kind: JobKind, payload: dict) -> JobId: ...


class PromptSource(Protocol):
    """Versioned prompt configuration with a non-failing default."""
    async def get_prompt(self, function_name: str) -> PromptConfig: ...


class PageFetcher(Protocol):
    """Landing page → visible text (raises PageFetchError)."""
    async def fetch_text(self, url: str) -> str: ...
