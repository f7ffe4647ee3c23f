"""Tool Extraction — admits a candidate URL into the catalog.

Invariants:
    - Steps run in order: URL check → duplicate check → fetch → relevance gate →
      field extraction → insert; the first failing step decides the result
    - An invalid URL never triggers network access
    - Relevance verdict must be a JSON boolean `isRelevant`; anything else rejects
    - The classifier's reason is passed through verbatim
    - A unique violation at insert time is reported exactly like the upfront duplicate check
    - SchemaMissingError propagates: it is a deployment fault, not a rejection

Design Decisions:
    - ExtractionResult instead of exceptions for rejections: every rejection is a
      normal terminal outcome the caller renders (chat reply or HTTP status)
"""

import logging
from dataclasses import dataclass

from toolfinder.core.decode_llm_json import Decoded, decode_object
from toolfinder.core.domain_types import ExtractionStatus, PromptFunction
from toolfinder.core.errors import (
    DuplicateToolError, GenerativeBackendError, PageFetchError, SchemaMissingError,
    ToolfinderError,
)
from toolfinder.core.extract_page_text import is_valid_url
from toolfinder.core.prompt_defaults import interpolate
from toolfinder.core.repository_protocols import (
    CatalogGateway, PageFetcher, PromptSource, TextCompletion,
)
from toolfinder.core.resolution import REQUIRED_DRAFT_FIELDS, draft_from_dict

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = (
    "This website is not a B2B SaaS, B2C SaaS, or AI tool"
)
INVALID_VERDICT_REASON = "Invalid validation response"


@dataclass(frozen=True)
class ExtractionResult:
    status: ExtractionStatus
    message: str
    tool: dict | None = None
    reason: str | None = None

    @property
    def added(self) -> bool:
        return self.status == ExtractionStatus.ADDED

    def to_dict(self) -> dict:
        return {
            "success": self.added,
            "status": self.status.value,
            "message": self.message,
            "reason": self.reason,
            "tool": self.tool,
        }


def _duplicate(existing: dict | None) -> ExtractionResult:
    return ExtractionResult(
        ExtractionStatus.DUPLICATE, "Tool with this URL already exists", tool=existing,
    )


def parse_relevance(text: str | None) -> tuple[bool, str]:
    """(is_relevant, reason) from the classifier's JSON verdict."""
    decoded = decode_object(text)
    if not isinstance(decoded, Decoded):
        return False, "Failed to parse validation response"
    verdict = decoded.value.get("isRelevant")
    if not isinstance(verdict, bool):
        return False, INVALID_VERDICT_REASON
    reason = decoded.value.get("reason")
    if not isinstance(reason, str) or not reason.strip():
        reason = DEFAULT_REJECTION_REASON if not verdict else ""
    return verdict, reason


class ToolExtraction:
    def __init__(
        self,
        catalog: CatalogGateway,
        completion: TextCompletion,
        prompts: PromptSource,
        fetcher: PageFetcher,
    ):
        self.catalog = catalog
        self.completion = completion
        self.prompts = prompts
        self.fetcher = fetcher

    async def add_tool(self, url: str) -> ExtractionResult:
        url = (url or "").strip()
        if not is_valid_url(url):
            return ExtractionResult(ExtractionStatus.INVALID_URL, "Invalid URL format")

        existing = await self.catalog.find_tool_by_url(url)
        if existing:
            return _duplicate(existing)

        try:
            page_text = await self.fetcher.fetch_text(url)
        except PageFetchError:
            return ExtractionResult(
                ExtractionStatus.UNREACHABLE,
                "Could not access the website. Please check the URL is accessible.",
            )

        try:
            relevant, reason = await self._check_relevance(url, page_text)
            if not relevant:
                logger.info(f"Tool rejected by relevance gate: {url}")
                return ExtractionResult(
                    ExtractionStatus.REJECTED,
                    "Tool rejected - not a relevant SaaS or AI tool",
                    reason=reason,
                )
            fields = await self._extract_fields(url, page_text)
        except GenerativeBackendError as e:
            logger.error(f"Generative backend failed for {url}: {e.message}")
            return ExtractionResult(
                ExtractionStatus.EXTRACTION_FAILED, "Failed to process tool",
                reason=e.message,
            )
        if fields is None:
            return ExtractionResult(
                ExtractionStatus.EXTRACTION_FAILED,
                "Failed to extract tool information",
                reason=f"Missing required fields (need {', '.join(REQUIRED_DRAFT_FIELDS)})",
            )

        try:
            tool = await self.catalog.insert_tool({**fields, "url": url})
        except DuplicateToolError as e:
            return _duplicate(e.existing)
        except SchemaMissingError:
            raise
        except ToolfinderError as e:
            logger.error(f"Insert failed for {url}: {e.message}")
            return ExtractionResult(
                ExtractionStatus.EXTRACTION_FAILED,
                "Failed to add tool to database", reason=e.message,
            )
        return ExtractionResult(ExtractionStatus.ADDED, "Tool added", tool=tool)

    async def _check_relevance(self, url: str, page_text: str) -> tuple[bool, str]:
        prompt = await self.prompts.get_prompt(PromptFunction.VALIDATE_RELEVANCE.value)
        user_prompt = interpolate(prompt.user_prompt_template, {
            "url": url, "websiteContent": page_text,
        })
        text = await self.completion.complete(prompt.system_prompt, user_prompt)
        return parse_relevance(text)

    async def _extract_fields(self, url: str, page_text: str) -> dict | None:
        prompt = await self.prompts.get_prompt(PromptFunction.EXTRACT_TOOL_INFO.value)
        user_prompt = interpolate(prompt.user_prompt_template, {
            "url": url, "textContent": page_text,
        })
        text = await self.completion.complete(prompt.system_prompt, user_prompt)
        decoded = decode_object(text)
        if not isinstance(decoded, Decoded):
            return None
        draft = draft_from_dict(decoded.value)
        if draft is None:
            return None
        fields = draft.to_fields()
        fields.pop("url", None)
        return fields
