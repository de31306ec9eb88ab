"""
Vision analysis client.

Posts {image, prompt} to the vision proxy and always comes back with a
sentence that can be spoken: the description, or one of the fixed calm
failure messages. Never raises for network or service failures.

Retry rules (VisionRetryPolicy):
- up to 2 additional attempts, linear backoff 1 s, 2 s
- 401 is returned immediately
- a server-supplied {"error": ...} message wins over the status mapping
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import httpx

from orchestrator.retry import RetryAttempt, VisionRetryPolicy, next_attempt, reset_attempt
from observability.logger import log_event
from observability.metrics import timed

from spec import (
    VISION_MSG_EMPTY,
    VISION_MSG_INVALID_KEY,
    VISION_MSG_NETWORK,
    VISION_MSG_RATE_LIMIT,
    VISION_MSG_TIMEOUT,
    VISION_MSG_UNAVAILABLE,
    VISION_REQUEST_TIMEOUT_S,
)

_STATUS_MESSAGES: dict[int, str] = {
    401: VISION_MSG_INVALID_KEY,
    429: VISION_MSG_RATE_LIMIT,
    500: VISION_MSG_UNAVAILABLE,
}


def strip_data_url(image: str) -> str:
    """Bare base64 payload of a data URL (unchanged if already bare)."""
    if image.startswith("data:") and "," in image:
        return image.split(",", 1)[1]
    return image


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and isinstance(data.get("error"), str) and data["error"]:
        return data["error"]
    return _STATUS_MESSAGES.get(response.status_code, VISION_MSG_UNAVAILABLE)


class VisionClient:
    """
    Client for POST /api/vision.

    transport and sleep are injectable so tests can fake the server and
    observe backoff without waiting.
    """

    def __init__(
        self,
        *,
        url: str,
        policy: VisionRetryPolicy | None = None,
        timeout_s: float = VISION_REQUEST_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        session_id: str | None = None,
    ) -> None:
        self._url = url
        self._policy = policy or VisionRetryPolicy()
        self._timeout_s = timeout_s
        self._transport = transport
        self._sleep = sleep
        self._session_id = session_id

    async def analyze_scene(self, image: str, prompt: str) -> str:
        """Text for the listener; see module docstring for failure strings."""
        payload = {"image": strip_data_url(image), "prompt": prompt}
        attempt = reset_attempt()

        async with httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport) as client:
            while True:
                try:
                    with timed("vision_request", session_id=self._session_id,
                               details={"attempt": attempt.attempt}):
                        response = await client.post(self._url, json=payload)
                except httpx.TransportError as exc:
                    message = VISION_MSG_TIMEOUT if isinstance(exc, httpx.TimeoutException) else VISION_MSG_NETWORK
                    self._log_failure(attempt, status=None, error=f"{type(exc).__name__}: {exc}")
                    if not await self._backoff(status=None, attempt=attempt):
                        return message
                    attempt = next_attempt(attempt)
                    continue

                if response.is_success:
                    try:
                        text = response.json().get("text")
                    except (ValueError, AttributeError):
                        text = None
                    return text or VISION_MSG_EMPTY

                message = _error_message(response)
                self._log_failure(attempt, status=response.status_code, error=message)
                if not await self._backoff(status=response.status_code, attempt=attempt):
                    return message
                attempt = next_attempt(attempt)

    async def _backoff(self, *, status: int | None, attempt: RetryAttempt) -> bool:
        """Sleep before the next attempt; False when the policy says stop."""
        if not self._policy.should_retry(status=status, attempt=attempt):
            return False
        await self._sleep(self._policy.delay_s(attempt))
        return True

    def _log_failure(self, attempt: RetryAttempt, *, status: int | None, error: str) -> None:
        log_event({
            "event_type": "VISION_REQUEST_FAILED",
            "session_id": self._session_id,
            "attempt": attempt.attempt,
            "status": status,
            "error": error,
        })
