"""Service Factory — assembles the pipeline from settings and shared clients.

Invariants:
    - API dependencies and the standalone worker build services the same way
    - Session scope is the only database handle passed down (one session per operation)
"""

from toolfinder.config import Settings
from toolfinder.core.repository_protocols import Notifier, PageFetcher, TextCompletion
from toolfinder.infrastructure.anthropic_client import ResilientAnthropicClient
from toolfinder.infrastructure.job_queue import DatabaseJobQueue, SessionScope
from toolfinder.infrastructure.page_fetcher import HttpPageFetcher
from toolfinder.infrastructure.slack_notifier import SlackNotifier
from toolfinder.services.catalog_gateway import SqlCatalogGateway
from toolfinder.services.job_worker import QueueWorker
from toolfinder.services.prompt_provider import DbPromptProvider
from toolfinder.services.resolution_funnel import ResolutionFunnel
from toolfinder.services.submission_orchestrator import SubmissionOrchestrator
from toolfinder.services.tool_extraction import ToolExtraction


def build_completion(settings: Settings) -> ResilientAnthropicClient:
    return ResilientAnthropicClient(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        max_tokens=settings.anthropic_max_tokens,
        max_retries=settings.anthropic_max_retries,
        base_delay_ms=settings.anthropic_base_delay_ms,
        max_delay_ms=settings.anthropic_max_delay_ms,
        timeout_seconds=settings.anthropic_timeout_seconds,
    )


def build_notifier(settings: Settings) -> SlackNotifier:
    return SlackNotifier(timeout_seconds=settings.notifier_timeout_seconds)


def build_page_fetcher(settings: Settings) -> HttpPageFetcher:
    return HttpPageFetcher(
        timeout_seconds=settings.page_fetch_timeout_seconds,
        text_limit=settings.page_text_limit,
        max_bytes=settings.page_max_bytes,
    )


def build_job_queue(settings: Settings, scope: SessionScope) -> DatabaseJobQueue:
    return DatabaseJobQueue(
        scope,
        lease_seconds=settings.job_lease_seconds,
        max_attempts=settings.job_max_attempts,
    )


def build_funnel(
    settings: Settings,
    catalog: SqlCatalogGateway,
    completion: TextCompletion,
    prompts: DbPromptProvider,
) -> ResolutionFunnel:
    return ResolutionFunnel(
        catalog, completion, prompts,
        keyword_hit_limit=settings.keyword_hit_limit,
        semantic_candidate_limit=settings.semantic_candidate_limit,
        max_suggestions=settings.max_suggestions,
    )


def build_orchestrator(
    settings: Settings,
    scope: SessionScope,
    completion: TextCompletion,
    notifier: Notifier,
    fetcher: PageFetcher,
) -> SubmissionOrchestrator:
    catalog = SqlCatalogGateway(scope)
    prompts = DbPromptProvider(scope)
    return SubmissionOrchestrator(
        funnel=build_funnel(settings, catalog, completion, prompts),
        extraction=ToolExtraction(catalog, completion, prompts, fetcher),
        catalog=catalog,
        notifier=notifier,
        problems_page_url=settings.problems_page_url,
        progress_delay=settings.progress_delay_seconds,
        matching_timeout=settings.matching_timeout_seconds,
    )


def build_worker(
    settings: Settings,
    scope: SessionScope,
    completion: TextCompletion,
    notifier: Notifier,
    fetcher: PageFetcher,
) -> QueueWorker:
    return QueueWorker(
        build_job_queue(settings, scope),
        build_orchestrator(settings, scope, completion, notifier, fetcher),
        poll_interval=settings.queue_poll_interval_seconds,
        max_concurrent=settings.worker_concurrency,
    )
