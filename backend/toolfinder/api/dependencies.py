"""API Dependencies — FastAPI providers for shared clients and per-request services.

Invariants:
    - One generative client, notifier and page fetcher per process (lazy singletons)
    - Services are rebuilt per request around the current db_manager session scope
    - Tests replace clients through app.dependency_overrides, never by patching services

Design Decisions:
    - Module-level lazy singletons: same pattern as the API's Anthropic client
      (ADR: single-process uvicorn, clients hold connection pools)
"""

from fastapi import Depends

from toolfinder.config import get_settings
from toolfinder.core.repository_protocols import Notifier, PageFetcher, TextCompletion
from toolfinder.infrastructure.database import get_db_manager
from toolfinder.infrastructure.job_queue import DatabaseJobQueue, SessionScope
from toolfinder.infrastructure.page_fetcher import HttpPageFetcher
from toolfinder.infrastructure.anthropic_client import ResilientAnthropicClient
from toolfinder.infrastructure.slack_notifier import SlackNotifier
from toolfinder.services import service_factory
from toolfinder.services.catalog_gateway import SqlCatalogGateway
from toolfinder.services.command_front_door import CommandFrontDoor
from toolfinder.services.prompt_provider import DbPromptProvider
from toolfinder.services.resolution_funnel import ResolutionFunnel
from toolfinder.services.tool_extraction import ToolExtraction

_completion: ResilientAnthropicClient | None = None
_notifier: SlackNotifier | None = None
_fetcher: HttpPageFetcher | None = None


def get_completion() -> TextCompletion:
    global _completion
    if _completion is None:
        _completion = service_factory.build_completion(get_settings())
    return _completion


def get_notifier() -> Notifier:
    global _notifier
    if _notifier is None:
        _notifier = service_factory.build_notifier(get_settings())
    return _notifier


def get_page_fetcher() -> PageFetcher:
    global _fetcher
    if _fetcher is None:
        _fetcher = service_factory.build_page_fetcher(get_settings())
    return _fetcher


async def close_clients() -> None:
    """Release pooled HTTP connections on shutdown."""
    global _notifier, _fetcher
    if _notifier is not None:
        await _notifier.aclose()
        _notifier = None
    if _fetcher is not None:
        await _fetcher.aclose()
        _fetcher = None


def get_session_scope() -> SessionScope:
    return get_db_manager().session


def get_catalog(
    scope: SessionScope = Depends(get_session_scope),
) -> SqlCatalogGateway:
    return SqlCatalogGateway(scope)


def get_prompt_provider(
    scope: SessionScope = Depends(get_session_scope),
) -> DbPromptProvider:
    return DbPromptProvider(scope)


def get_job_queue(
    scope: SessionScope = Depends(get_session_scope),
) -> DatabaseJobQueue:
    return service_factory.build_job_queue(get_settings(), scope)


def get_funnel(
    catalog: SqlCatalogGateway = Depends(get_catalog),
    completion: TextCompletion = Depends(get_completion),
    prompts: DbPromptProvider = Depends(get_prompt_provider),
) -> ResolutionFunnel:
    return service_factory.build_funnel(get_settings(), catalog, completion, prompts)


def get_tool_extraction(
    catalog: SqlCatalogGateway = Depends(get_catalog),
    completion: TextCompletion = Depends(get_completion),
    prompts: DbPromptProvider = Depends(get_prompt_provider),
    fetcher: PageFetcher = Depends(get_page_fetcher),
) -> ToolExtraction:
    return ToolExtraction(catalog, completion, prompts, fetcher)


def get_front_door(
    queue: DatabaseJobQueue = Depends(get_job_queue),
    notifier: Notifier = Depends(get_notifier),
) -> CommandFrontDoor:
    settings = get_settings()
    return CommandFrontDoor(
        queue, notifier, settings.slack_signing_secret,
        max_age_seconds=settings.signature_max_age_seconds,
    )
