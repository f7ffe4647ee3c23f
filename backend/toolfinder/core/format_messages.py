"""Chat Message Builders — pure composition of chat replies and callback payloads.

Invariants:
    - Every builder returns a dict with response_type ("ephemeral" | "in_channel")
      and either "text" or "blocks"
    - Problem result payloads always end with the constant footer (problems page link + status)
    - Timeout-degraded opportunities use different wording than ordinary opportunities
    - At most 3 suggestions are rendered
    - Pure: no IO, randomness injected via `rng`

Design Decisions:
    - All user-facing chat text lives here, call sites pick a builder (ADR: one place to edit copy)
    - Duplicate-tool replies pick from a small set of friendly variants
"""

import random
from datetime import datetime

from toolfinder.core.domain_types import OutcomeStatus, Visibility
from toolfinder.core.resolution import ResolutionOutcome

MAX_RENDERED_SUGGESTIONS = 3

_STATUS_LABELS = {
    OutcomeStatus.SOLVED: "✅ Solved",
    OutcomeStatus.SUGGESTED: "⏳ Pending",
    OutcomeStatus.OPPORTUNITY: "🚀 Opportunity",
}

_DUPLICATE_TEMPLATES = (
    "🎯 *Nice try!* Someone else already added {title} on {date}. Great minds think alike! 🧠✨",
    "🔄 *Oops!* {title} was already added on {date}. You're not the first to discover this gem! 💎",
    "👀 *Already in the collection!* Someone beat you to adding {title} on {date}. But hey, you've got great taste! 👏",
    "🎪 *Plot twist!* {title} is already in our database (added {date}). You're clearly on the right track! 🚀",
    "🎨 *Duplicate detected!* {title} was added on {date}. No worries - you're still awesome for trying! 🌟",
)


def _text(text: str, visibility: Visibility = Visibility.EPHEMERAL) -> dict:
    return {"response_type": visibility.value, "text": text}


def _section(text: str) -> dict:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _fields(*texts: str) -> dict:
    return {
        "type": "section",
        "fields": [{"type": "mrkdwn", "text": t} for t in texts],
    }


_DIVIDER = {"type": "divider"}


# ─── Front door acknowledgements ────────────────────────────────

def problem_ack() -> dict:
    return _text(
        "Got it! I'm searching for tools that solve your problem. "
        "This may take a few moments...",
    )


def tool_ack() -> dict:
    return _text(
        "Got it! I'm analyzing the URL and adding it to the database. "
        "This may take a few moments...",
    )


def problem_usage_hint() -> dict:
    return _text(
        "Please describe your problem. Usage: "
        "`/problem I need a tool to convert Figma designs to React components`",
    )


def tool_usage_hint() -> dict:
    return _text("Please provide a URL. Usage: `/addtool https://example.com/tool`")


def invalid_url_hint() -> dict:
    return _text("Invalid URL format. Please provide a valid URL.")


def unknown_command(command: str | None) -> dict:
    return _text(f"Unknown command: {command}")


def missing_response_url() -> dict:
    return _text("Error: Missing response URL")


def generic_error() -> dict:
    return _text(
        "An error occurred while processing your request. Please try again later.",
    )


def dispatch_failed(kind: str) -> dict:
    return _text(
        f"❌ We couldn't queue your {kind} for processing. Please try again in a minute.",
    )


# ─── Orchestrator notifications ─────────────────────────────────

def progress_notice(kind: str = "problem") -> dict:
    if kind == "tool":
        return _text("⏳ Still analyzing the tool... Fetching and reviewing the site takes a moment.")
    return _text(
        "⏳ Still processing your problem... This may take a bit longer "
        "as we search for the best solutions.",
    )


def missing_information() -> dict:
    return _text("❌ Error: Missing required information. Please try again.")


def save_failed(error: str) -> dict:
    return {
        "response_type": Visibility.EPHEMERAL.value,
        "blocks": [
            _section(f"❌ *Error Processing Problem*\n\nFailed to save problem: {error}"),
        ],
    }


def unexpected_failure(kind: str, saved: bool) -> dict:
    if saved:
        return _text(
            f"⚠️ Your {kind} was saved, but something went wrong while "
            "preparing the result. Check the web app for details.",
        )
    return _text(
        f"❌ An error occurred while processing your {kind}. "
        "It may not have been saved - please try submitting again.",
    )


def _problem_header(description: str, user_id: str | None, user_name: str | None) -> str:
    if user_id:
        who = f"<@{user_id}>" + (f" ({user_name})" if user_name else "")
        return f"*🔍 Problem Flagged by {who}*\n\n*Problem:*\n{description}"
    return f"*🔍 Problem Flagged*\n\n*Problem:*\n{description}"


def _solved_blocks(tool: dict) -> list[dict]:
    return [
        _DIVIDER,
        _section("✅ *Solution Found!*\n\nWe found a tool that solves this problem:"),
        _fields(f"*Tool:*\n<{tool['url']}|{tool['title']}>", "*Status:*\n✅ Solved"),
        _section(f"*Description:*\n{tool['description']}"),
        _fields(f"*Solves:*\n{tool['problem_solves']}", f"*For:*\n{tool['who_can_use']}"),
    ]


def _suggested_blocks(outcome: ResolutionOutcome) -> list[dict]:
    blocks = [
        _DIVIDER,
        _section(
            "💡 *Potential Solutions Found*\n\n"
            f"Found {len(outcome.suggested_tools)} tool(s) that might solve this "
            "problem, but they need URLs to be added:",
        ),
    ]
    for draft in outcome.suggested_tools[:MAX_RENDERED_SUGGESTIONS]:
        blocks.append(_section(
            f"*{draft.title}*\n{draft.description}\n\n*Solves:* {draft.problem_solves}",
        ))
    return blocks


def _opportunity_blocks(outcome: ResolutionOutcome) -> list[dict]:
    if outcome.timed_out:
        return [
            _DIVIDER,
            _section(
                "⏱️ *Processing Timeout*\n\nYour problem has been saved, but the AI "
                "search timed out. We'll review it manually and get back to you!",
            ),
            _section(
                "💡 *What happened:*\nThe search for solutions took longer than "
                "expected. Your problem is safely stored and will be reviewed by our team.",
            ),
        ]
    return [
        _DIVIDER,
        _section(
            "🚀 *New Opportunity Identified!*\n\nNo existing tool solves this exact "
            "problem. This is a great opportunity for a new solution!",
        ),
        _section(
            "💡 *Next Steps:*\n• Research potential solutions\n"
            "• Evaluate feasibility\n• Add to development pipeline",
        ),
    ]


def problem_result(
    description: str,
    outcome: ResolutionOutcome,
    problems_page_url: str,
    matched_tool: dict | None = None,
    user_id: str | None = None,
    user_name: str | None = None,
) -> dict:
    """Final broadcast for a processed problem."""
    blocks: list[dict] = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": "🚩 New Problem Submitted", "emoji": True},
        },
        _section(_problem_header(description, user_id, user_name)),
    ]
    if outcome.status == OutcomeStatus.SOLVED and matched_tool:
        blocks.extend(_solved_blocks(matched_tool))
    elif outcome.status == OutcomeStatus.SUGGESTED and outcome.suggested_tools:
        blocks.extend(_suggested_blocks(outcome))
    elif outcome.status == OutcomeStatus.OPPORTUNITY:
        blocks.extend(_opportunity_blocks(outcome))

    blocks.append(_DIVIDER)
    blocks.append({
        "type": "context",
        "elements": [{
            "type": "mrkdwn",
            "text": (
                f"📋 <{problems_page_url}|View all problems> • "
                f"Status: {_STATUS_LABELS[outcome.status]}"
            ),
        }],
    })
    return {"response_type": Visibility.IN_CHANNEL.value, "blocks": blocks}


# ─── Tool path ──────────────────────────────────────────────────

def tool_added(tool: dict) -> dict:
    return {
        "response_type": Visibility.IN_CHANNEL.value,
        "blocks": [_section(
            "🎉 *You are awesome! Thanks for adding this tool!* Looks pretty cool! ✨\n\n"
            f"*{tool['title']}*\n{tool['description']}\n\n"
            f"*Category:* {tool['category']}\n*Solves:* {tool['problem_solves']}\n"
            f"*For:* {tool['who_can_use']}\n\n<{tool['url']}|Visit Tool →>",
        )],
    }


def _format_date(value: object) -> str:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return "previously"
    if isinstance(value, datetime):
        return f"{value.strftime('%B')} {value.day}, {value.year}"
    return "previously"


def duplicate_tool(existing: dict | None, rng: random.Random | None = None) -> dict:
    existing = existing or {}
    title = existing.get("title") or "this tool"
    date = _format_date(existing.get("created_at"))
    template = (rng or random).choice(_DUPLICATE_TEMPLATES)
    return {
        "response_type": Visibility.EPHEMERAL.value,
        "blocks": [_section(template.format(title=title, date=date))],
    }


def tool_rejected(reason: str) -> dict:
    return _text(f"❌ Tool rejected: {reason}")


def tool_error(message: str) -> dict:
    return _text(f"❌ Error: {message}")


def tool_timed_out() -> dict:
    return _text(
        "⏱️ Analyzing this site took too long. It was not added - please try again later.",
    )
