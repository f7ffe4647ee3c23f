"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - ToolId, ProblemId, JobId wrap UUIDs — never use bare UUID in domain logic
    - All valid states encoded as Enums — no raw string matching
    - problem_status_for() is total over OutcomeStatus: solved→solved,
      suggested→pending, opportunity→opportunity

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and to DB string columns without custom encoders
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

ToolId = NewType("ToolId", UUID)
ProblemId = NewType("ProblemId", UUID)
JobId = NewType("JobId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class OutcomeStatus(str, Enum):
    """Resolution funnel verdict."""
    SOLVED = "solved"
    SUGGESTED = "suggested"
    OPPORTUNITY = "opportunity"


class ProblemStatus(str, Enum):
    """Persisted problem state — maps to DB `status` column."""
    PENDING = "pending"
    SOLVED = "solved"
    OPPORTUNITY = "opportunity"


class JobKind(str, Enum):
    """Work types the deferred dispatch queue carries."""
    PROBLEM = "problem"
    TOOL = "tool"


class JobStatus(str, Enum):
    """Queued job lifecycle — maps to DB `status` column."""
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"


class InvocationState(str, Enum):
    """Per-invocation orchestrator states."""
    RECEIVED = "received"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"
    PERSISTED = "persisted"
    NOTIFIED = "notified"
    DONE = "done"
    FAILED = "failed"


class Visibility(str, Enum):
    """Chat reply visibility — private to requester or broadcast."""
    EPHEMERAL = "ephemeral"
    IN_CHANNEL = "in_channel"


class PromptFunction(str, Enum):
    """Generative calls whose prompts are configurable."""
    MATCH_PROBLEM = "match-problem"
    SUGGEST_TOOLS = "suggest-tools"
    VALIDATE_RELEVANCE = "validate-relevance"
    EXTRACT_TOOL_INFO = "extract-tool-info"


_PROBLEM_STATUS_BY_OUTCOME = {
    OutcomeStatus.SOLVED: ProblemStatus.SOLVED,
    OutcomeStatus.SUGGESTED: ProblemStatus.PENDING,
    OutcomeStatus.OPPORTUNITY: ProblemStatus.OPPORTUNITY,
}


def problem_status_for(outcome: OutcomeStatus) -> ProblemStatus:
    """Fixed outcome → persisted status mapping."""
    return _PROBLEM_STATUS_BY_OUTCOME[OutcomeStatus(outcome)]


class ExtractionStatus(str, Enum):
    """Terminal outcomes of a tool submission."""
    ADDED = "added"
    INVALID_URL = "invalid_url"
    DUPLICATE = "duplicate"
    UNREACHABLE = "unreachable"
    REJECTED = "rejected"
    EXTRACTION_FAILED = "extraction_failed"
