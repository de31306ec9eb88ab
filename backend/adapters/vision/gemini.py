"""
Gemini vision provider.

Reached through Gemini's OpenAI-compatible endpoint with the openai SDK,
so the provider is one AsyncOpenAI client with a different base_url.

Failures are mapped to an HTTP status and a fixed user-facing sentence;
the proxy route passes both through unchanged.
"""

from __future__ import annotations

import openai
from openai import AsyncOpenAI

from observability.logger import log_event

from spec import (
    VISION_MSG_EMPTY,
    VISION_MSG_INVALID_KEY,
    VISION_MSG_RATE_LIMIT,
    VISION_MSG_UNAVAILABLE,
    VISION_SYSTEM_INSTRUCTION,
    VISION_TEMPERATURE,
)


class VisionProviderError(Exception):
    """Provider failure with the status the proxy should answer with."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message

    def __str__(self) -> str:
        return f"{self.status}: {self.message}"


def build_vision_client(*, api_key: str, base_url: str) -> AsyncOpenAI:
    """OpenAI SDK client pointed at the Gemini-compatible endpoint."""
    return AsyncOpenAI(api_key=api_key, base_url=base_url)


def as_data_url(image: str, mime_type: str = "image/jpeg") -> str:
    """Accept either a data URL or bare base64 (what the browser sends)."""
    if image.startswith("data:"):
        return image
    return f"data:{mime_type};base64,{image}"


class GeminiVisionProvider:
    """Single-shot image + prompt analysis."""

    def __init__(self, *, client: AsyncOpenAI, model: str) -> None:
        self._client = client
        self._model = model

    async def analyze(self, *, image: str, prompt: str) -> str:
        """
        Describe `image` following `prompt`.

        Raises:
            VisionProviderError: 401 bad credential, 429 rate limit, 500 otherwise.
        """
        try:
            completion = await self._client.chat.completions.create(
                model=self._model,
                temperature=VISION_TEMPERATURE,
                messages=[
                    {"role": "system", "content": VISION_SYSTEM_INSTRUCTION},
                    {
                        "role": "user",
                        "content": [
                            {"type": "image_url", "image_url": {"url": as_data_url(image)}},
                            {"type": "text", "text": prompt},
                        ],
                    },
                ],
            )
        except openai.AuthenticationError as exc:
            raise VisionProviderError(401, VISION_MSG_INVALID_KEY) from exc
        except openai.RateLimitError as exc:
            raise VisionProviderError(429, VISION_MSG_RATE_LIMIT) from exc
        except openai.OpenAIError as exc:
            log_event({
                "event_type": "VISION_PROVIDER_ERROR",
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            raise VisionProviderError(500, VISION_MSG_UNAVAILABLE) from exc

        if not completion.choices:
            return VISION_MSG_EMPTY
        text = (completion.choices[0].message.content or "").strip()
        return text or VISION_MSG_EMPTY
