"""Submission Orchestrator — lifecycle of one problem or tool submission.

Invariants:
    - Problem path: received → resolving → {resolved | timed_out} → persisted →
      notified → done; failed is reachable from resolving, persist and notify
    - Every failed exit attempts exactly one notification (when a callback exists)
    - The progress ping fires at most once, and never after the outcome is ready
    - An in-flight progress ping is awaited before the final notification
    - Deadline expiry on the problem path degrades to a timed-out opportunity and
      still ends done; on the tool path it ends failed with a "took too long" notice
    - The abandoned computation is never awaited

Design Decisions:
    - asyncio.wait(timeout) instead of wait_for: the loser is left running, not
      cancelled, so a late catalog insert is not torn mid-transaction
    - Single attempt per invocation: redelivery belongs to the job queue
"""

import asyncio
import logging
import random
from collections.abc import Awaitable
from dataclasses import dataclass, field

from toolfinder.core import format_messages as messages
from toolfinder.core.domain_types import (
    ExtractionStatus, InvocationState, OutcomeStatus, problem_status_for,
)
from toolfinder.core.errors import ToolfinderError
from toolfinder.core.repository_protocols import CatalogGateway, Notifier
from toolfinder.core.resolution import ResolutionOutcome, timeout_outcome
from toolfinder.services.resolution_funnel import ResolutionFunnel
from toolfinder.services.tool_extraction import ExtractionResult, ToolExtraction

logger = logging.getLogger(__name__)

PROGRESS_DELAY_SECONDS = 8.0
MATCHING_TIMEOUT_SECONDS = 25.0

# Abandoned computations stay referenced until they finish.
_abandoned: set[asyncio.Task] = set()


@dataclass(frozen=True)
class Requester:
    user_id: str | None = None
    user_name: str | None = None


@dataclass
class InvocationResult:
    state: InvocationState
    history: list[InvocationState] = field(default_factory=list)
    outcome: ResolutionOutcome | None = None
    problem: dict | None = None
    extraction: ExtractionResult | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == InvocationState.DONE


def _reap(task: asyncio.Task) -> None:
    _abandoned.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning(f"Abandoned computation failed late: {error}")


class _Progress:
    """One delayed "still working" notice, cancellable until it starts sending."""

    def __init__(self, notifier: Notifier, callback_url: str, payload: dict, delay: float):
        self.fired = False
        self._notifier = notifier
        self._callback_url = callback_url
        self._payload = payload
        self._task = asyncio.create_task(self._run(delay))

    async def _run(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self.fired = True
        await self._notifier.send(self._callback_url, self._payload)

    async def stop(self) -> None:
        if self.fired:
            await asyncio.gather(self._task, return_exceptions=True)
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)


class _Invocation:
    """State tracker for one run; logs each transition."""

    def __init__(self, kind: str, job_id: str | None):
        self.kind = kind
        self.job_id = job_id
        self.history = [InvocationState.RECEIVED]

    @property
    def state(self) -> InvocationState:
        return self.history[-1]

    def advance(self, state: InvocationState) -> None:
        self.history.append(state)
        logger.debug(
            f"{self.kind} invocation → {state.value}",
            extra={"job_id": self.job_id, "stage": state.value},
        )

    def result(self, state: InvocationState, **kwargs) -> InvocationResult:
        if state != self.state:
            self.advance(state)
        return InvocationResult(state=state, history=list(self.history), **kwargs)


class SubmissionOrchestrator:
    def __init__(
        self,
        funnel: ResolutionFunnel,
        extraction: ToolExtraction,
        catalog: CatalogGateway,
        notifier: Notifier,
        problems_page_url: str,
        progress_delay: float = PROGRESS_DELAY_SECONDS,
        matching_timeout: float = MATCHING_TIMEOUT_SECONDS,
        rng: random.Random | None = None,
    ):
        self.funnel = funnel
        self.extraction = extraction
        self.catalog = catalog
        self.notifier = notifier
        self.problems_page_url = problems_page_url
        self.progress_delay = progress_delay
        self.matching_timeout = matching_timeout
        self.rng = rng

    # ─── Problem path ────────────────────────────────────────────

    async def process_problem(
        self,
        description: str | None,
        callback_url: str | None,
        requester: Requester | None = None,
        job_id: str | None = None,
    ) -> InvocationResult:
        run = _Invocation("problem", job_id)
        if not description or not description.strip() or not callback_url:
            return await self._missing_information(run, callback_url)
        description = description.strip()
        requester = requester or Requester()

        saved = False
        outcome = None
        problem = None
        run.advance(InvocationState.RESOLVING)
        progress = _Progress(
            self.notifier, callback_url,
            messages.progress_notice("problem"), self.progress_delay,
        )
        try:
            outcome = await self._race(self.funnel.resolve(description))
            await progress.stop()
            if outcome is None:
                logger.warning(
                    f"Matching exceeded {self.matching_timeout}s, degrading",
                    extra={"job_id": job_id, "stage": "resolving"},
                )
                outcome = timeout_outcome()
                run.advance(InvocationState.TIMED_OUT)
            else:
                run.advance(InvocationState.RESOLVED)

            try:
                problem = await self.catalog.insert_problem(
                    description,
                    problem_status_for(outcome.status),
                    outcome.matched_tool_id,
                )
            except ToolfinderError as e:
                logger.error(
                    f"Failed to save problem: {e.message}",
                    extra={"job_id": job_id, "error_code": e.code},
                )
                await self.notifier.send(callback_url, messages.save_failed(e.message))
                return run.result(
                    InvocationState.FAILED, outcome=outcome, error=e.message,
                )
            saved = True
            run.advance(InvocationState.PERSISTED)

            matched_tool = None
            if outcome.status == OutcomeStatus.SOLVED and outcome.matched_tool_id:
                matched_tool = await self.catalog.get_tool_by_id(outcome.matched_tool_id)
            payload = messages.problem_result(
                description, outcome, self.problems_page_url,
                matched_tool=matched_tool,
                user_id=requester.user_id, user_name=requester.user_name,
            )
            delivered = await self.notifier.send(callback_url, payload)
            if not delivered:
                logger.warning(
                    "Result notification not delivered",
                    extra={"job_id": job_id, "problem_id": problem["id"]},
                )
            run.advance(InvocationState.NOTIFIED)
            return run.result(InvocationState.DONE, outcome=outcome, problem=problem)
        except Exception as e:
            logger.error(
                f"Problem invocation failed: {e}", exc_info=True,
                extra={"job_id": job_id},
            )
            await progress.stop()
            await self.notifier.send(
                callback_url, messages.unexpected_failure("problem", saved),
            )
            return run.result(
                InvocationState.FAILED, outcome=outcome, problem=problem, error=str(e),
            )

    # ─── Tool path ───────────────────────────────────────────────

    async def process_tool(
        self,
        url: str | None,
        callback_url: str | None,
        requester: Requester | None = None,
        job_id: str | None = None,
    ) -> InvocationResult:
        run = _Invocation("tool", job_id)
        if not url or not url.strip() or not callback_url:
            return await self._missing_information(run, callback_url)

        run.advance(InvocationState.RESOLVING)
        progress = _Progress(
            self.notifier, callback_url,
            messages.progress_notice("tool"), self.progress_delay,
        )
        try:
            result = await self._race(self.extraction.add_tool(url.strip()))
            await progress.stop()
            if result is None:
                logger.warning(
                    f"Tool extraction exceeded {self.matching_timeout}s",
                    extra={"job_id": job_id, "stage": "resolving"},
                )
                run.advance(InvocationState.TIMED_OUT)
                await self.notifier.send(callback_url, messages.tool_timed_out())
                return run.result(InvocationState.FAILED, error="timed out")

            run.advance(InvocationState.RESOLVED)
            if result.added:
                run.advance(InvocationState.PERSISTED)
            await self.notifier.send(callback_url, self._tool_payload(result))
            run.advance(InvocationState.NOTIFIED)
            return run.result(InvocationState.DONE, extraction=result)
        except ToolfinderError as e:
            logger.error(
                f"Tool invocation failed: {e.message}",
                extra={"job_id": job_id, "error_code": e.code},
            )
            await progress.stop()
            await self.notifier.send(callback_url, messages.tool_error(e.message))
            return run.result(InvocationState.FAILED, error=e.message)
        except Exception as e:
            logger.error(
                f"Tool invocation failed: {e}", exc_info=True, extra={"job_id": job_id},
            )
            await progress.stop()
            await self.notifier.send(
                callback_url, messages.unexpected_failure("tool", False),
            )
            return run.result(InvocationState.FAILED, error=str(e))

    def _tool_payload(self, result: ExtractionResult) -> dict:
        match result.status:
            case ExtractionStatus.ADDED:
                return messages.tool_added(result.tool)
            case ExtractionStatus.DUPLICATE:
                return messages.duplicate_tool(result.tool, self.rng)
            case ExtractionStatus.REJECTED:
                return messages.tool_rejected(result.reason or result.message)
            case ExtractionStatus.EXTRACTION_FAILED if result.reason:
                return messages.tool_error(f"{result.message}: {result.reason}")
            case _:
                return messages.tool_error(result.message)

    # ─── Shared ──────────────────────────────────────────────────

    async def _race(self, computation: Awaitable):
        """Result of `computation`, or None when the deadline wins."""
        task = asyncio.ensure_future(computation)
        done, _ = await asyncio.wait({task}, timeout=self.matching_timeout)
        if task in done:
            return task.result()
        _abandoned.add(task)
        task.add_done_callback(_reap)
        return None

    async def _missing_information(
        self, run: _Invocation, callback_url: str | None,
    ) -> InvocationResult:
        logger.warning(
            f"{run.kind} job missing payload or callback",
            extra={"job_id": run.job_id},
        )
        if callback_url:
            await self.notifier.send(callback_url, messages.missing_information())
        return run.result(
            InvocationState.FAILED, error="missing required information",
        )
