"""Command Front Door — verifies and admits slash commands, then acknowledges at once.

Invariants:
    - No signing secret configured → ConfigurationError (500), nothing is parsed
    - Bad or stale signature → SignatureVerificationError (401)
    - After verification every reply is HTTP 200 with an ephemeral chat payload,
      including unexpected internal errors
    - Work is only ever handed to deferred dispatch; nothing slow runs before the reply
    - Any enqueue failure (DispatchError or otherwise) → one best-effort notice to
      response_url, acknowledgement still returned

Design Decisions:
    - Raw body in, signature checked before form parsing: the HMAC covers exact bytes
    - One class for both routes, parameterized by the command the route accepts
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import parse_qs

from toolfinder.core import format_messages as messages
from toolfinder.core.domain_types import JobKind
from toolfinder.core.errors import ConfigurationError, DispatchError
from toolfinder.core.extract_page_text import is_valid_url
from toolfinder.core.repository_protocols import DeferredDispatch, Notifier
from toolfinder.core.verify_signature import DEFAULT_MAX_AGE_SECONDS, verify_signature

logger = logging.getLogger(__name__)

COMMAND_KINDS = {
    "/problem": JobKind.PROBLEM,
    "/addtool": JobKind.TOOL,
}


@dataclass(frozen=True)
class SlashCommand:
    command: str | None
    text: str
    response_url: str | None
    user_id: str | None
    user_name: str | None


def parse_command_form(raw_body: str) -> SlashCommand:
    form = {k: v[0] for k, v in parse_qs(raw_body, keep_blank_values=True).items()}
    return SlashCommand(
        command=form.get("command"),
        text=(form.get("text") or "").strip(),
        response_url=form.get("response_url") or None,
        user_id=form.get("user_id") or None,
        user_name=form.get("user_name") or None,
    )


class CommandFrontDoor:
    def __init__(
        self,
        dispatch: DeferredDispatch,
        notifier: Notifier,
        signing_secret: str | None,
        max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.dispatch = dispatch
        self.notifier = notifier
        self.signing_secret = signing_secret
        self.max_age_seconds = max_age_seconds
        self._clock = clock

    async def handle(
        self,
        accepted_command: str,
        raw_body: bytes | str,
        timestamp: str | None,
        signature: str | None,
    ) -> dict:
        """Reply payload for one inbound command (HTTP 200 unless it raises)."""
        if not self.signing_secret:
            logger.error("SLACK_SIGNING_SECRET is not set")
            raise ConfigurationError("SLACK_SIGNING_SECRET")
        verify_signature(
            self.signing_secret, raw_body, timestamp, signature,
            now=self._clock(), max_age_seconds=self.max_age_seconds,
        )
        try:
            if isinstance(raw_body, bytes):
                raw_body = raw_body.decode("utf-8")
            return await self._admit(accepted_command, parse_command_form(raw_body))
        except Exception as e:
            logger.error(f"Slash command handling failed: {e}", exc_info=True)
            return messages.generic_error()

    async def _admit(self, accepted_command: str, cmd: SlashCommand) -> dict:
        if cmd.command != accepted_command:
            return messages.unknown_command(cmd.command)
        kind = COMMAND_KINDS[accepted_command]

        if not cmd.text:
            if kind == JobKind.TOOL:
                return messages.tool_usage_hint()
            return messages.problem_usage_hint()
        if kind == JobKind.TOOL and not is_valid_url(cmd.text):
            return messages.invalid_url_hint()
        if not cmd.response_url:
            return messages.missing_response_url()

        try:
            job_id = await self.dispatch.enqueue(kind, {
                "text": cmd.text,
                "response_url": cmd.response_url,
                "user_id": cmd.user_id,
                "user_name": cmd.user_name,
            })
            logger.info(f"{accepted_command} accepted", extra={"job_id": job_id})
        except DispatchError as e:
            logger.error(f"Enqueue failed for {accepted_command}: {e.message}")
            await self.notifier.send(
                cmd.response_url, messages.dispatch_failed(kind.value),
            )
        except Exception as e:
            logger.error(f"Enqueue failed for {accepted_command}: {e}", exc_info=True)
            await self.notifier.send(
                cmd.response_url, messages.dispatch_failed(kind.value),
            )

        if kind == JobKind.TOOL:
            return messages.tool_ack()
        return messages.problem_ack()
