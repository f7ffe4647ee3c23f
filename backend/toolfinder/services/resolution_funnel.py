"""Resolution Funnel — keyword search → semantic re-rank → generative suggestion → opportunity.

Invariants:
    - resolve() returns exactly one ResolutionOutcome and never raises
    - A later stage runs only when every earlier stage produced nothing
      (a keyword hit means zero generative calls)
    - Semantic indices are 1-based; out-of-range or non-integer entries are dropped
    - Only complete drafts (six required fields) survive; only those with a url
      are inserted, and a failed insert skips that draft alone
    - Catalog unreachable for both search and listing → opportunity

Design Decisions:
    - Stage failures degrade to "no result" instead of aborting: the orchestrator
      owns the deadline, the funnel owns best effort
    - Tolerant decoding centralized in core/decode_llm_json.py
"""

import logging

from toolfinder.core.decode_llm_json import Decoded, decode_list
from toolfinder.core.domain_types import PromptFunction, ToolId
from toolfinder.core.errors import ToolfinderError
from toolfinder.core.prompt_defaults import interpolate
from toolfinder.core.repository_protocols import (
    CatalogGateway, PromptSource, TextCompletion,
)
from toolfinder.core.resolution import (
    ResolutionOutcome, ToolDraft, opportunity_outcome, solved_outcome,
    suggested_outcome, validate_drafts,
)

logger = logging.getLogger(__name__)

KEYWORD_HIT_LIMIT = 5
SEMANTIC_CANDIDATE_LIMIT = 50
MAX_SUGGESTIONS = 3


def format_tools_list(tools: list[dict]) -> str:
    """Enumerated candidate list: `N. title: problem_solves` (1-based)."""
    return "\n".join(
        f"{i}. {tool['title']}: {tool['problem_solves']}"
        for i, tool in enumerate(tools, start=1)
    )


def select_by_indices(indices: list, tools: list[dict]) -> list[dict]:
    """Map 1-based indices onto tools; anything out of range is dropped."""
    selected = []
    for index in indices:
        if isinstance(index, bool) or not isinstance(index, int):
            logger.debug(f"Ignoring non-integer match index: {index!r}")
            continue
        if not 1 <= index <= len(tools):
            logger.debug(
                f"Ignoring out-of-range match index {index} "
                f"(candidates: {len(tools)})",
            )
            continue
        selected.append(tools[index - 1])
    return selected


class ResolutionFunnel:
    def __init__(
        self,
        catalog: CatalogGateway,
        completion: TextCompletion,
        prompts: PromptSource,
        keyword_hit_limit: int = KEYWORD_HIT_LIMIT,
        semantic_candidate_limit: int = SEMANTIC_CANDIDATE_LIMIT,
        max_suggestions: int = MAX_SUGGESTIONS,
    ):
        self.catalog = catalog
        self.completion = completion
        self.prompts = prompts
        self.keyword_hit_limit = keyword_hit_limit
        self.semantic_candidate_limit = semantic_candidate_limit
        self.max_suggestions = max_suggestions

    async def resolve(self, description: str) -> ResolutionOutcome:
        hits, search_ok = await self._keyword_search(description)
        if hits:
            top = hits[0]
            logger.info(
                f"Keyword match: {top['title']}",
                extra={"stage": "keyword", "tool_id": top["id"]},
            )
            return solved_outcome(ToolId(top["id"]), top["title"])

        candidates, listing_ok = await self._list_candidates()
        if not search_ok and not listing_ok:
            logger.error("Catalog unreachable, resolving as opportunity")
            return opportunity_outcome()

        if candidates:
            matches = await self._semantic_rerank(description, candidates)
            if matches:
                top = matches[0]
                logger.info(
                    f"Semantic match: {top['title']}",
                    extra={"stage": "semantic", "tool_id": top["id"]},
                )
                return solved_outcome(ToolId(top["id"]), top["title"])

        drafts = await self._suggest(description)
        if drafts:
            inserted = await self._catalog_drafts(drafts)
            if inserted:
                return solved_outcome(
                    ToolId(inserted[0]["id"]), inserted[0]["title"], drafts,
                )
            return suggested_outcome(drafts)

        logger.info("No match, recording opportunity", extra={"stage": "opportunity"})
        return opportunity_outcome()

    # ─── Stage 1 ─────────────────────────────────────────────────

    async def _keyword_search(self, description: str) -> tuple[list[dict], bool]:
        try:
            hits = await self.catalog.search_tools_by_problem_text(
                description, self.keyword_hit_limit,
            )
            return hits, True
        except ToolfinderError as e:
            logger.error(
                f"Keyword search failed: {e.message}",
                extra={"stage": "keyword", "error_code": e.code},
            )
            return [], False

    # ─── Stage 2 ─────────────────────────────────────────────────

    async def _list_candidates(self) -> tuple[list[dict], bool]:
        try:
            return await self.catalog.list_tools(self.semantic_candidate_limit), True
        except ToolfinderError as e:
            logger.error(
                f"Listing tools failed: {e.message}",
                extra={"stage": "semantic", "error_code": e.code},
            )
            return [], False

    async def _semantic_rerank(
        self, description: str, candidates: list[dict],
    ) -> list[dict]:
        prompt = await self.prompts.get_prompt(PromptFunction.MATCH_PROBLEM.value)
        user_prompt = interpolate(prompt.user_prompt_template, {
            "problemDescription": description,
            "toolsList": format_tools_list(candidates),
        })
        try:
            text = await self.completion.complete(prompt.system_prompt, user_prompt)
        except ToolfinderError as e:
            logger.warning(
                f"Semantic re-rank unavailable: {e.message}",
                extra={"stage": "semantic", "error_code": e.code},
            )
            return []
        decoded = decode_list(text, keys=("matches", "indices"))
        if not isinstance(decoded, Decoded):
            return []
        return select_by_indices(decoded.value, candidates)

    # ─── Stage 3 ─────────────────────────────────────────────────

    async def _suggest(self, description: str) -> list[ToolDraft]:
        prompt = await self.prompts.get_prompt(PromptFunction.SUGGEST_TOOLS.value)
        user_prompt = interpolate(prompt.user_prompt_template, {
            "problemDescription": description,
            "maxSuggestions": self.max_suggestions,
        })
        try:
            text = await self.completion.complete(prompt.system_prompt, user_prompt)
        except ToolfinderError as e:
            logger.warning(
                f"Tool suggestion unavailable: {e.message}",
                extra={"stage": "suggest", "error_code": e.code},
            )
            return []
        decoded = decode_list(
            text, keys=("tools", "suggestions"), null_keys=("tools", "result"),
        )
        if not isinstance(decoded, Decoded):
            return []
        drafts = validate_drafts(decoded.value)
        dropped = len(decoded.value) - len(drafts)
        if dropped:
            logger.info(
                f"Dropped {dropped} incomplete suggestion(s)",
                extra={"stage": "suggest"},
            )
        return drafts

    async def _catalog_drafts(self, drafts: list[ToolDraft]) -> list[dict]:
        inserted = []
        for draft in drafts:
            if not draft.url:
                continue
            try:
                inserted.append(await self.catalog.insert_tool(draft.to_fields()))
            except ToolfinderError as e:
                logger.info(
                    f"Skipping suggested tool {draft.url}: {e.message}",
                    extra={"stage": "suggest", "error_code": e.code},
                )
        return inserted
