"""Resolution Outcome — the funnel's verdict and the drafts it may carry.

Invariants:
    - A ToolDraft is valid only when all six required fields are non-empty strings
    - url is optional; blank urls normalize to None
    - timed_out is True only on the degraded outcome synthesized by the orchestrator

Design Decisions:
    - Frozen dataclasses: the outcome is the contract between the funnel and everything
      downstream, nothing mutates it after creation
    - Pure module (no IO): validation is tested without fakes
"""

from dataclasses import dataclass, field, asdict

from toolfinder.core.domain_types import OutcomeStatus, ToolId

REQUIRED_DRAFT_FIELDS = (
    "title", "description", "tag", "category", "problem_solves", "who_can_use",
)

OPPORTUNITY_MESSAGE = (
    "No existing tool solves this exact problem. "
    "This is an opportunity - we will work on this!"
)
TIMEOUT_MESSAGE = (
    "Processing timed out while searching for solutions. "
    "Your problem has been saved and will be reviewed manually."
)


@dataclass(frozen=True)
class ToolDraft:
    """Candidate tool proposed by the generative backend."""
    title: str
    description: str
    tag: str
    category: str
    problem_solves: str
    who_can_use: str
    url: str | None = None

    def to_fields(self) -> dict:
        """Catalog insert fields (url included)."""
        return asdict(self)


@dataclass(frozen=True)
class ResolutionOutcome:
    """Funnel verdict consumed by persistence and notification."""
    status: OutcomeStatus
    message: str
    matched_tool_id: ToolId | None = None
    suggested_tools: list[ToolDraft] = field(default_factory=list)
    timed_out: bool = False

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "message": self.message,
            "matched_tool_id": (
                str(self.matched_tool_id) if self.matched_tool_id else None
            ),
            "suggested_tools": [d.to_fields() for d in self.suggested_tools],
            "timed_out": self.timed_out,
        }


def draft_from_dict(raw: object) -> ToolDraft | None:
    """Build a ToolDraft if every required field is a non-empty string."""
    if not isinstance(raw, dict):
        return None
    values = {}
    for name in REQUIRED_DRAFT_FIELDS:
        value = raw.get(name)
        if not isinstance(value, str) or not value.strip():
            return None
        values[name] = value.strip()
    url = raw.get("url")
    if isinstance(url, str) and url.strip():
        values["url"] = url.strip()
    return ToolDraft(**values)


def validate_drafts(raw_items: list) -> list[ToolDraft]:
    """Keep only complete drafts, preserving order."""
    drafts = [draft_from_dict(item) for item in raw_items]
    return [d for d in drafts if d is not None]


def solved_outcome(
    tool_id: ToolId, title: str, suggestions: list[ToolDraft] | None = None,
) -> ResolutionOutcome:
    if suggestions:
        message = (
            f"Found {len(suggestions)} tool(s) that can solve this problem. "
            "Added to database."
        )
    else:
        message = f"Found a matching tool: {title}"
    return ResolutionOutcome(
        status=OutcomeStatus.SOLVED,
        message=message,
        matched_tool_id=tool_id,
        suggested_tools=list(suggestions or []),
    )


def suggested_outcome(suggestions: list[ToolDraft]) -> ResolutionOutcome:
    return ResolutionOutcome(
        status=OutcomeStatus.SUGGESTED,
        message=(
            f"Found {len(suggestions)} tool(s) that might solve this problem, "
            "but they need URLs to be added."
        ),
        suggested_tools=list(suggestions),
    )


def opportunity_outcome() -> ResolutionOutcome:
    return ResolutionOutcome(
        status=OutcomeStatus.OPPORTUNITY, message=OPPORTUNITY_MESSAGE,
    )


def timeout_outcome() -> ResolutionOutcome:
    """Degraded outcome used when the funnel misses its deadline."""
    return ResolutionOutcome(
        status=OutcomeStatus.OPPORTUNITY, message=TIMEOUT_MESSAGE, timed_out=True,
    )
