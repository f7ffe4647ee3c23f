"""Request Signature Verification — HMAC check for inbound chat commands.

Invariants:
    - Canonical string is "v0:{timestamp}:{raw_body}", signed with HMAC-SHA256
    - Signature header format is "v0=" + hex digest
    - The HMAC covers the raw body bytes; nothing is decoded before verification
    - Comparison is constant-time (hmac.compare_digest)
    - |now - timestamp| > max_age_seconds is rejected (replay window)
    - Pure: `now` is injected, nothing reads the clock here
"""

import hashlib
import hmac

from toolfinder.core.errors import SignatureVerificationError

SIGNATURE_VERSION = "v0"
DEFAULT_MAX_AGE_SECONDS = 300


def compute_signature(signing_secret: str, timestamp: str, body: str | bytes) -> str:
    if isinstance(body, str):
        body = body.encode()
    base = f"{SIGNATURE_VERSION}:{timestamp}:".encode() + body
    digest = hmac.new(signing_secret.encode(), base, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_VERSION}={digest}"


def verify_signature(
    signing_secret: str,
    body: str | bytes,
    timestamp: str | None,
    signature: str | None,
    now: float,
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
) -> None:
    """Raise SignatureVerificationError unless the request is authentic and fresh."""
    if not timestamp or not signature:
        raise SignatureVerificationError("missing timestamp or signature")
    try:
        ts = int(timestamp)
    except ValueError:
        raise SignatureVerificationError("timestamp is not an integer")
    if abs(int(now) - ts) > max_age_seconds:
        raise SignatureVerificationError("timestamp outside replay window")

    expected = compute_signature(signing_secret, timestamp, body)
    if not hmac.compare_digest(expected.encode(), signature.encode()):
        raise SignatureVerificationError("signature mismatch")
