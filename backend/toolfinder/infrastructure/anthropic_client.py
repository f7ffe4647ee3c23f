"""Resilient Anthropic Client — wraps AsyncAnthropic with retry, backoff, and error mapping.

Invariants:
    - Rate limits (429): exponential backoff with jitter, respects Retry-After header
    - Transient errors (5xx, 529, connection): retried up to max_retries with backoff
    - Client errors (4xx except 429): immediate failure, no retry
    - All failures mapped to GenerativeBackendError (core/errors.py)
    - complete() returns the concatenated text blocks, never an SDK object

Design Decisions:
    - Wrapper over raw client: funnel and extraction only see TextCompletion
      (ADR: single responsibility)
    - ±25% jitter on backoff: prevents thundering herd on shared rate limits
    - Low default retry count: every call sits inside a 25 s matching deadline
    - strict_json appends an output instruction to the system prompt instead of
      prefilling: the tolerant decoder strips fences and prose anyway
"""

import asyncio
import random
import logging

import anthropic
from anthropic import (
    APIError,
    APIConnectionError,
    APIStatusError,
    RateLimitError,
    APITimeoutError,
    InternalServerError,
)

from toolfinder.core.errors import GenerativeBackendError, ErrorContext

logger = logging.getLogger(__name__)

# ADR: OverloadedError (HTTP 529) is not re-exported by every SDK release.
# Detect via status code on APIStatusError instead of relying on private import.
_OVERLOADED_STATUS = 529

JSON_INSTRUCTION = (
    "Respond with valid JSON only. Do not wrap it in markdown or add commentary."
)


def _is_overloaded(e: APIError) -> bool:
    """Check if error is Anthropic 529 Overloaded."""
    return isinstance(e, APIStatusError) and e.status_code == _OVERLOADED_STATUS


def extract_text(response) -> str:
    """Concatenate text blocks of a Messages API response."""
    parts = [
        block.text for block in getattr(response, "content", None) or []
        if getattr(block, "type", None) == "text"
    ]
    return "".join(parts)


class ResilientAnthropicClient:
    """TextCompletion over the Anthropic Messages API with retry and error mapping."""

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 2048,
        max_retries: int = 1,
        base_delay_ms: int = 500,
        max_delay_ms: int = 4_000,
        timeout_seconds: int = 30,
    ):
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key,
            timeout=timeout_seconds,
            max_retries=0,
        )
        self.model = model
        self.max_tokens = max_tokens
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def complete(
        self,
        system_instruction: str,
        user_prompt: str,
        *,
        strict_json: bool = True,
        context: ErrorContext | None = None,
    ) -> str:
        """Single-turn completion with automatic retry on transient failures."""
        system = system_instruction
        if strict_json:
            system = f"{system_instruction}\n\n{JSON_INSTRUCTION}"
        response = await self.create_message(
            system=system,
            messages=[{"role": "user", "content": user_prompt}],
            context=context,
        )
        return extract_text(response)

    async def create_message(
        self,
        *,
        system: str,
        messages: list,
        context: ErrorContext | None = None,
    ):
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.messages.create(
                    model=self.model,
                    max_tokens=self.max_tokens,
                    system=system,
                    messages=messages,
                )
                self._log_success(response, attempt)
                return response

            except RateLimitError as e:
                await self._handle_rate_limit(e, attempt, context)

            except (APIConnectionError, InternalServerError) as e:
                if isinstance(e, APITimeoutError):
                    raise GenerativeBackendError(
                        "API timeout", "timeout", context=context,
                    )
                await self._handle_transient_error(e, attempt, context)

            except APIError as e:
                if _is_overloaded(e):
                    await self._handle_transient_error(e, attempt, context)
                    continue
                raise GenerativeBackendError(
                    str(e), "client_error", context=context,
                )

            except Exception as e:
                logger.error(
                    f"Unexpected Anthropic error: {e}", exc_info=True,
                )
                raise GenerativeBackendError(
                    str(e), "unknown", context=context,
                )

    def _log_success(self, response, attempt: int) -> None:
        usage = getattr(response, "usage", None)
        logger.info(
            "Anthropic API success",
            extra={
                "attempt": attempt + 1,
                "input_tokens": getattr(usage, "input_tokens", None),
                "output_tokens": getattr(usage, "output_tokens", None),
            },
        )

    async def _handle_rate_limit(
        self, e: RateLimitError, attempt: int, context: ErrorContext | None,
    ) -> None:
        """Handle rate limit error with retry or raise."""
        retry_after_ms = self._extract_retry_after(e)
        if attempt >= self.max_retries:
            raise GenerativeBackendError(
                "Rate limit exceeded after retries",
                "rate_limit",
                retry_after_ms=retry_after_ms,
                context=context,
            )
        delay = min(retry_after_ms or self._backoff(attempt), self.max_delay_ms)
        logger.warning(
            f"Rate limit hit, retry after {delay}ms (attempt {attempt + 1})",
        )
        await asyncio.sleep(delay / 1000)

    async def _handle_transient_error(
        self, e: Exception, attempt: int, context: ErrorContext | None,
    ) -> None:
        """Handle transient errors with retry or raise."""
        if attempt >= self.max_retries:
            raise GenerativeBackendError(
                f"Transient failure after {self.max_retries} retries: {e}",
                "connection_error",
                context=context,
            )
        delay = self._backoff(attempt)
        logger.warning(f"Transient error, retry after {delay}ms: {e}")
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, error: RateLimitError) -> int | None:
        """Extract Retry-After header (returns milliseconds)."""
        response = getattr(error, "response", None)
        if response is None:
            return None
        val = response.headers.get("retry-after")
        if val and val.isdigit():
            return int(val) * 1000
        return None
