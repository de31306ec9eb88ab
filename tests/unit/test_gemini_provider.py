# pylint: disable=missing-module-docstring,missing-function-docstring
from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import httpx
import pytest
from openai import AsyncOpenAI

from adapters.vision.gemini import GeminiVisionProvider, VisionProviderError, as_data_url
from observability import logger

from spec import (
    VISION_MSG_EMPTY,
    VISION_MSG_INVALID_KEY,
    VISION_MSG_RATE_LIMIT,
    VISION_MSG_UNAVAILABLE,
    VISION_SYSTEM_INSTRUCTION,
)

BASE_URL = "https://generativelanguage.example/v1beta/openai/"


@pytest.fixture(autouse=True)
def _quiet_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logger, "_print", lambda line: None)


def completion(content: str | None) -> dict[str, Any]:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "gemini-2.0-flash",
        "choices": [{
            "index": 0,
            "message": {"role": "assistant", "content": content},
            "finish_reason": "stop",
        }],
    }


def provider(handler: Callable[[httpx.Request], httpx.Response]) -> GeminiVisionProvider:
    client = AsyncOpenAI(
        api_key="test-key",
        base_url=BASE_URL,
        max_retries=0,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    return GeminiVisionProvider(client=client, model="gemini-2.0-flash")


def failing(status: int) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"error": {"message": "nope", "code": status}})
    return handler


def test_success_sends_image_and_prompt() -> None:
    seen: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/chat/completions")
        assert request.headers["Authorization"] == "Bearer test-key"
        seen.append(json.loads(request.content))
        return httpx.Response(200, json=completion("  A door on your right.  "))

    text = asyncio.run(provider(handler).analyze(image="QUJD", prompt="Describe"))

    assert text == "A door on your right."
    body = seen[0]
    assert body["model"] == "gemini-2.0-flash"
    assert body["messages"][0] == {"role": "system", "content": VISION_SYSTEM_INSTRUCTION}
    assert body["messages"][1]["content"] == [
        {"type": "image_url", "image_url": {"url": "data:image/jpeg;base64,QUJD"}},
        {"type": "text", "text": "Describe"},
    ]


def test_blank_answer_becomes_fixed_sentence() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=completion(None))

    assert asyncio.run(provider(handler).analyze(image="QUJD", prompt="Describe")) == VISION_MSG_EMPTY


@pytest.mark.parametrize("status, expected", [
    (401, (401, VISION_MSG_INVALID_KEY)),
    (429, (429, VISION_MSG_RATE_LIMIT)),
    (503, (500, VISION_MSG_UNAVAILABLE)),
])
def test_provider_failures_map_to_status_and_sentence(status: int, expected: tuple[int, str]) -> None:
    with pytest.raises(VisionProviderError) as excinfo:
        asyncio.run(provider(failing(status)).analyze(image="QUJD", prompt="Describe"))

    assert (excinfo.value.status, excinfo.value.message) == expected


def test_data_urls_pass_through() -> None:
    assert as_data_url("data:image/png;base64,QUJD") == "data:image/png;base64,QUJD"
    assert as_data_url("QUJD") == "data:image/jpeg;base64,QUJD"
