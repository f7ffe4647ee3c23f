"""Mock Clients — test doubles for the generative backend, notifier, page fetcher, dispatch.

Invariants:
    - Every fake records its calls in `.calls` for call-count assertions
    - FakeCompletion answers by prompt function (matched on system prompt text),
      so one fake serves every funnel/extraction stage
    - FakeCompletion can block on an asyncio.Event to force deadline expiry

Design Decisions:
    - Flat classes, no mocking library: explicit, easy to debug
"""

import asyncio
from uuid import uuid4

from toolfinder.core.domain_types import JobId, PromptFunction
from toolfinder.core.errors import DispatchError, GenerativeBackendError, PageFetchError
from toolfinder.core.prompt_defaults import DEFAULT_PROMPTS

_SYSTEM_TO_FUNCTION = {
    config.system_prompt: fn for fn, config in DEFAULT_PROMPTS.items()
}


class FakeCompletion:
    """TextCompletion returning canned text per prompt function."""

    def __init__(self, responses: dict | None = None, delay: float = 0.0):
        self.responses = dict(responses or {})
        self.delay = delay
        self.calls: list[dict] = []
        self.gate: asyncio.Event | None = None

    def calls_for(self, function: PromptFunction) -> list[dict]:
        return [c for c in self.calls if c["function"] == function]

    async def complete(self, system_instruction, user_prompt, *, strict_json=True):
        function = _SYSTEM_TO_FUNCTION.get(system_instruction)
        self.calls.append({
            "function": function,
            "system": system_instruction,
            "user": user_prompt,
        })
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responses.get(function, "null")
        if isinstance(response, Exception):
            raise response
        return response


def backend_down() -> GenerativeBackendError:
    return GenerativeBackendError("connection refused", "connection_error")


class FakeNotifier:
    """Notifier recording (callback_url, payload) pairs."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.calls: list[tuple[str, dict]] = []

    @property
    def payloads(self) -> list[dict]:
        return [payload for _, payload in self.calls]

    def texts(self) -> list[str]:
        """Flattened text of every payload (text field or section blocks)."""
        out = []
        for payload in self.payloads:
            if "text" in payload:
                out.append(payload["text"])
            for block in payload.get("blocks", []):
                if "text" in block and isinstance(block["text"], dict):
                    out.append(block["text"]["text"])
                for f in block.get("fields", []):
                    out.append(f["text"])
                for e in block.get("elements", []):
                    out.append(e.get("text", ""))
        return out

    async def send(self, callback_url, payload):
        self.calls.append((callback_url, payload))
        return self.succeed


class FakePageFetcher:
    def __init__(self, text: str = "", fail: bool = False):
        self.text = text
        self.fail = fail
        self.calls: list[str] = []

    async def fetch_text(self, url):
        self.calls.append(url)
        if self.fail:
            raise PageFetchError(url, "ConnectError")
        return self.text


class FakeDispatch:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[tuple] = []

    async def enqueue(self, kind, payload):
        self.calls.append((kind, payload))
        if self.fail:
            raise DispatchError("queue unavailable")
        return JobId(uuid4())


TOOL_FIELDS = {
    "title": "Locofy",
    "description": "Turns Figma designs into production-ready React code.",
    "tag": "design",
    "category": "Development Tools",
    "problem_solves": "Convert Figma designs to React components",
    "who_can_use": "Frontend developers working with Figma",
}


def tool_fields(**overrides) -> dict:
    fields = dict(TOOL_FIELDS)
    fields.setdefault("url", "https://www.locofy.ai/")
    fields.update(overrides)
    return fields
