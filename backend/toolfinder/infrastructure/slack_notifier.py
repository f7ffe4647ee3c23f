"""Slack Notifier — single-shot POST of a message payload to a response_url.

Invariants:
    - send() never raises: transport errors and non-2xx replies are logged, return False
    - Exactly one attempt per call (redelivery belongs to the job queue)

Design Decisions:
    - httpx.AsyncClient shared per notifier: connection reuse across invocations
    - Client injectable: tests pass an httpx.MockTransport-backed client
"""

import logging

import httpx

logger = logging.getLogger(__name__)


class SlackNotifier:
    """Notifier that delivers JSON payloads to Slack response URLs."""

    def __init__(
        self,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def send(self, callback_url: str, payload: dict) -> bool:
        try:
            response = await self._client.post(callback_url, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Slack response_url delivery failed: {e}")
            return False
        if response.is_success:
            return True
        logger.error(
            f"Slack response_url returned {response.status_code}: "
            f"{response.text[:200]}",
        )
        return False

    async def aclose(self) -> None:
        await self._client.aclose()
