"""Prompt Provider — active prompt per generative function, stored override over static default.

Invariants:
    - get_prompt() never raises: any lookup failure falls back to core/prompt_defaults.py
    - update_prompt() bumps version on an existing active row, or creates one at version 1
    - list_prompts() covers every PromptFunction exactly once

Design Decisions:
    - Fallback inside the provider, not at call sites (funnel and extraction never
      see a missing prompt)
    - test_prompt() renders and runs a candidate without persisting it
"""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from toolfinder.core.domain_types import PromptFunction
from toolfinder.core.errors import InputRejectedError
from toolfinder.core.prompt_defaults import PromptConfig, default_prompt, interpolate
from toolfinder.core.repository_protocols import TextCompletion
from toolfinder.models.prompt import Prompt

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def _prompt_record(function_name: str, prompt: Prompt | None) -> dict:
    if prompt is None:
        config = default_prompt(function_name)
        return {
            "function_name": function_name,
            "system_prompt": config.system_prompt,
            "user_prompt_template": config.user_prompt_template,
            "version": config.version,
            "updated_at": None,
            "is_default": True,
        }
    return {
        "function_name": prompt.function_name,
        "system_prompt": prompt.system_prompt,
        "user_prompt_template": prompt.user_prompt_template,
        "version": prompt.version,
        "updated_at": prompt.updated_at,
        "is_default": False,
    }


def _require_templates(system_prompt: str, user_prompt_template: str) -> None:
    if not system_prompt or not system_prompt.strip():
        raise InputRejectedError("system_prompt is required", "system_prompt")
    if not user_prompt_template or not user_prompt_template.strip():
        raise InputRejectedError(
            "user_prompt_template is required", "user_prompt_template",
        )


class DbPromptProvider:
    """PromptSource reading the prompts table."""

    def __init__(self, session_scope: SessionScope):
        self._session_scope = session_scope

    async def get_prompt(self, function_name: str) -> PromptConfig:
        try:
            async with self._session_scope() as db:
                stored = await self._active(db, function_name)
        except Exception as e:
            logger.warning(
                f"Prompt lookup failed for {function_name}, using default: {e}",
            )
            return default_prompt(function_name)
        if stored is None:
            return default_prompt(function_name)
        return PromptConfig(
            system_prompt=stored.system_prompt,
            user_prompt_template=stored.user_prompt_template,
            version=stored.version,
        )

    async def get_prompt_record(self, function_name: str) -> dict:
        try:
            async with self._session_scope() as db:
                stored = await self._active(db, function_name)
        except Exception as e:
            logger.warning(
                f"Prompt lookup failed for {function_name}, using default: {e}",
            )
            stored = None
        return _prompt_record(function_name, stored)

    async def list_prompts(self) -> list[dict]:
        names = [f.value for f in PromptFunction]
        try:
            async with self._session_scope() as db:
                result = await db.execute(
                    select(Prompt).where(Prompt.is_active.is_(True)),
                )
                stored = {p.function_name: p for p in result.scalars().all()}
        except Exception as e:
            logger.warning(f"Prompt listing failed, returning defaults: {e}")
            stored = {}
        return [_prompt_record(name, stored.get(name)) for name in names]

    async def update_prompt(
        self, function_name: str, system_prompt: str, user_prompt_template: str,
    ) -> tuple[dict, bool]:
        """Store a new active version. Returns (record, created)."""
        _require_templates(system_prompt, user_prompt_template)
        async with self._session_scope() as db:
            existing = await self._active(db, function_name)
            created = existing is None
            if created:
                existing = Prompt(
                    function_name=function_name,
                    system_prompt=system_prompt,
                    user_prompt_template=user_prompt_template,
                    version=1,
                    is_active=True,
                )
                db.add(existing)
            else:
                existing.system_prompt = system_prompt
                existing.user_prompt_template = user_prompt_template
                existing.version += 1
            await db.commit()
            await db.refresh(existing)
            logger.info(
                f"Prompt {function_name} stored at version {existing.version}",
            )
            return _prompt_record(function_name, existing), created

    async def test_prompt(
        self,
        completion: TextCompletion,
        system_prompt: str,
        user_prompt_template: str,
        test_variables: dict | None = None,
    ) -> dict:
        """Render a candidate prompt and run it once against the backend."""
        _require_templates(system_prompt, user_prompt_template)
        user_prompt = interpolate(user_prompt_template, test_variables or {})
        response = await completion.complete(system_prompt, user_prompt)
        return {"user_prompt": user_prompt, "response": response}

    async def _active(self, db: AsyncSession, function_name: str) -> Prompt | None:
        result = await db.execute(
            select(Prompt).where(
                Prompt.function_name == function_name,
                Prompt.is_active.is_(True),
            ),
        )
        return result.scalar_one_or_none()
