"""Tolerant Decoder — turns generative-backend text into a closed result type.

Invariants:
    - Every call returns exactly one of Decoded | NoMatch | ParseFailure (never raises)
    - An explicit JSON null (top-level, or under a caller-named null key) is NoMatch
    - A list is accepted bare or nested under one of the caller's conventional keys
    - Decoded.value is a list for decode_list() and a dict for decode_object()

Design Decisions:
    - One decoder for every call site: shape-sniffing lives here, not in the funnel
      or extraction code (ADR: single responsibility)
    - Fallback levels borrowed from the research JSON parser: direct parse, then the
      first fenced/embedded JSON block, then failure
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Union

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_BLOCK_RES = (re.compile(r"\[[\s\S]*\]"), re.compile(r"\{[\s\S]*\}"))


@dataclass(frozen=True)
class Decoded:
    value: Any


@dataclass(frozen=True)
class NoMatch:
    pass


@dataclass(frozen=True)
class ParseFailure:
    reason: str


DecodeResult = Union[Decoded, NoMatch, ParseFailure]

_UNPARSEABLE = object()


def _load(text: str) -> Any:
    """Parse JSON with fallbacks. Returns _UNPARSEABLE when nothing works.

    Fallback levels:
    1. Direct json.loads
    2. Contents of a ```json fence
    3. First embedded [...] or {...} block (earliest start wins)
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    fence = _FENCE_RE.search(text)
    if fence:
        try:
            return json.loads(fence.group(1).strip())
        except json.JSONDecodeError:
            pass

    candidates = [m for m in (r.search(text) for r in _BLOCK_RES) if m]
    for match in sorted(candidates, key=lambda m: m.start()):
        try:
            return json.loads(match.group())
        except json.JSONDecodeError:
            continue
    return _UNPARSEABLE


def _parse(text: str | None) -> Any:
    if text is None or not text.strip():
        return _UNPARSEABLE
    return _load(text.strip())


def decode_list(
    text: str | None,
    keys: tuple[str, ...] = (),
    null_keys: tuple[str, ...] = (),
) -> DecodeResult:
    """Decode an array answer: bare list, or a list under one of `keys`.

    `null_keys` name object fields whose explicit null means "no match".
    """
    parsed = _parse(text)
    if parsed is _UNPARSEABLE:
        logger.warning("Generative response is not JSON")
        return ParseFailure("response is not valid JSON")
    if parsed is None:
        return NoMatch()
    if isinstance(parsed, list):
        return Decoded(parsed)
    if isinstance(parsed, dict):
        for key in null_keys:
            if key in parsed and parsed[key] is None:
                return NoMatch()
        for key in keys:
            if isinstance(parsed.get(key), list):
                return Decoded(parsed[key])
        return ParseFailure(
            f"no list under expected keys {list(keys)}: got {sorted(parsed)}",
        )
    return ParseFailure(f"unexpected JSON type {type(parsed).__name__}")


def decode_object(text: str | None) -> DecodeResult:
    """Decode an object answer. Null → NoMatch, non-object → ParseFailure."""
    parsed = _parse(text)
    if parsed is _UNPARSEABLE:
        logger.warning("Generative response is not JSON")
        return ParseFailure("response is not valid JSON")
    if parsed is None:
        return NoMatch()
    if isinstance(parsed, dict):
        return Decoded(parsed)
    return ParseFailure(f"expected a JSON object, got {type(parsed).__name__}")
