"""Command Front Door — verification, admission and immediate acknowledgement.

Tests cover:
    - Missing signing secret → ConfigurationError before anything is parsed
    - Bad signature → SignatureVerificationError, nothing enqueued
    - Valid /problem and /addtool → one enqueue, ephemeral ack
    - Empty text, invalid URL, missing response_url, wrong command → hint, no enqueue
    - Enqueue failure (DispatchError or a raw driver error) → one best-effort notice,
      ack still returned
    - Unexpected internal error → generic ephemeral error (still a reply)
    - Raw bytes bodies are verified as-is; undecodable unsigned bytes are rejected
"""

from urllib.parse import urlencode

import pytest

from toolfinder.core.domain_types import JobKind
from toolfinder.core.errors import ConfigurationError, SignatureVerificationError
from toolfinder.core.verify_signature import compute_signature
from toolfinder.services.command_front_door import CommandFrontDoor, parse_command_form
from tests.services.mock_clients import FakeDispatch, FakeNotifier

SECRET = "test-signing-secret"
NOW = 1_700_000_000
CALLBACK = "https://hooks.slack.test/commands/T1/42/abc"


def _form(command="/problem", text="Teleport my cat", response_url=CALLBACK, **extra) -> str:
    fields = {
        "command": command, "text": text, "user_id": "U123", "user_name": "ana",
        "channel_id": "C1", "team_id": "T1",
    }
    if response_url is not None:
        fields["response_url"] = response_url
    fields.update(extra)
    return urlencode(fields)


def _signed(body: str) -> tuple[str, str]:
    return str(NOW), compute_signature(SECRET, str(NOW), body)


class _ExplodingDispatch:
    async def enqueue(self, kind, payload):
        raise OSError("connection refused")


class _RaisingNotifier:
    async def send(self, callback_url, payload):
        raise RuntimeError("notifier bug")


@pytest.fixture
def dispatch():
    return FakeDispatch()


@pytest.fixture
def front_door(dispatch, notifier):
    return CommandFrontDoor(dispatch, notifier, SECRET, clock=lambda: NOW)


async def _handle(front_door, command, body):
    return await front_door.handle(command, body, *_signed(body))


# --- Verification -------------------------------------------------------------

async def test_missing_secret_is_configuration_error(dispatch, notifier):
    door = CommandFrontDoor(dispatch, notifier, "", clock=lambda: NOW)
    with pytest.raises(ConfigurationError):
        await _handle(door, "/problem", _form())
    assert dispatch.calls == []


async def test_bad_signature_is_rejected(front_door, dispatch):
    body = _form()
    with pytest.raises(SignatureVerificationError):
        await front_door.handle("/problem", body, str(NOW), "v0=deadbeef")
    assert dispatch.calls == []


async def test_stale_request_is_rejected(dispatch, notifier):
    door = CommandFrontDoor(dispatch, notifier, SECRET, clock=lambda: NOW + 600)
    with pytest.raises(SignatureVerificationError):
        await _handle(door, "/problem", _form())


# --- Admission ----------------------------------------------------------------

async def test_problem_is_enqueued_and_acknowledged(front_door, dispatch, notifier):
    reply = await _handle(front_door, "/problem", _form(text="  Teleport my cat  "))

    assert reply["response_type"] == "ephemeral"
    assert "searching for tools" in reply["text"]
    assert dispatch.calls == [(JobKind.PROBLEM, {
        "text": "Teleport my cat", "response_url": CALLBACK,
        "user_id": "U123", "user_name": "ana",
    })]
    assert notifier.calls == []


async def test_addtool_is_enqueued_and_acknowledged(front_door, dispatch):
    reply = await _handle(
        front_door, "/addtool", _form(command="/addtool", text="https://www.locofy.ai/"),
    )

    assert "analyzing the URL" in reply["text"]
    assert dispatch.calls[0][0] == JobKind.TOOL
    assert dispatch.calls[0][1]["text"] == "https://www.locofy.ai/"


async def test_empty_problem_gets_usage_hint(front_door, dispatch):
    reply = await _handle(front_door, "/problem", _form(text="   "))
    assert "Usage: `/problem" in reply["text"]
    assert dispatch.calls == []


async def test_empty_addtool_gets_usage_hint(front_door, dispatch):
    reply = await _handle(front_door, "/addtool", _form(command="/addtool", text=""))
    assert "Usage: `/addtool" in reply["text"]
    assert dispatch.calls == []


async def test_invalid_url_is_refused_without_enqueue(front_door, dispatch):
    reply = await _handle(front_door, "/addtool", _form(command="/addtool", text="locofy"))
    assert reply["text"] == "Invalid URL format. Please provide a valid URL."
    assert dispatch.calls == []


async def test_missing_response_url(front_door, dispatch):
    reply = await _handle(front_door, "/problem", _form(response_url=None))
    assert "Missing response URL" in reply["text"]
    assert dispatch.calls == []


async def test_wrong_command_for_route(front_door, dispatch):
    reply = await _handle(front_door, "/problem", _form(command="/addtool"))
    assert reply["text"] == "Unknown command: /addtool"
    assert dispatch.calls == []


async def test_enqueue_failure_notifies_and_still_acks(notifier):
    dispatch = FakeDispatch(fail=True)
    door = CommandFrontDoor(dispatch, notifier, SECRET, clock=lambda: NOW)

    reply = await _handle(door, "/problem", _form())

    assert "searching for tools" in reply["text"]
    assert len(notifier.calls) == 1
    assert notifier.calls[0][0] == CALLBACK
    assert "couldn't queue your problem" in notifier.payloads[0]["text"]


async def test_unexpected_enqueue_error_notifies_and_still_acks(notifier):
    door = CommandFrontDoor(_ExplodingDispatch(), notifier, SECRET, clock=lambda: NOW)

    reply = await _handle(door, "/problem", _form())

    assert reply["response_type"] == "ephemeral"
    assert "searching for tools" in reply["text"]
    assert [url for url, _ in notifier.calls] == [CALLBACK]
    assert "couldn't queue your problem" in notifier.payloads[0]["text"]


async def test_unexpected_error_is_still_a_reply():
    door = CommandFrontDoor(
        FakeDispatch(fail=True), _RaisingNotifier(), SECRET, clock=lambda: NOW,
    )

    reply = await _handle(door, "/problem", _form())

    assert reply["response_type"] == "ephemeral"
    assert "error occurred" in reply["text"]


async def test_raw_bytes_body_is_verified_and_admitted(front_door, dispatch):
    body = _form().encode()

    reply = await _handle(front_door, "/problem", body)

    assert "searching for tools" in reply["text"]
    assert len(dispatch.calls) == 1


async def test_undecodable_body_with_bad_signature_is_rejected(front_door, dispatch):
    with pytest.raises(SignatureVerificationError):
        await front_door.handle("/problem", b"\xff\xfe", str(NOW), "v0=deadbeef")
    assert dispatch.calls == []


# --- Form parsing -------------------------------------------------------------

def test_parse_command_form_decodes_fields():
    cmd = parse_command_form(_form(text="Figma → React & more"))
    assert cmd.command == "/problem"
    assert cmd.text == "Figma → React & more"
    assert cmd.response_url == CALLBACK
    assert cmd.user_name == "ana"


def test_parse_command_form_tolerates_missing_fields():
    cmd = parse_command_form("command=%2Fproblem")
    assert cmd.text == ""
    assert cmd.response_url is None
    assert cmd.user_id is None
