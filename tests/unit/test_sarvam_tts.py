# pylint: disable=missing-module-docstring,missing-function-docstring
from __future__ import annotations

import asyncio
import base64
import io
import json
import wave
from typing import Any, Callable

import httpx
import numpy as np
import pytest

from adapters.tts.base import TTSProviderError
from adapters.tts.sarvam import SARVAM_TTS_URL, SarvamTTSAdapter

from spec import AUDIO_SAMPLE_RATE_HZ


def make_wav(pcm: bytes, *, rate: int = AUDIO_SAMPLE_RATE_HZ, channels: int = 1) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(2)
        wav.setframerate(rate)
        wav.writeframes(pcm)
    return buf.getvalue()


def tone(samples: int) -> bytes:
    return (np.arange(samples, dtype=np.int16) * 7).astype("<i2").tobytes()


def adapter(handler: Callable[[httpx.Request], httpx.Response], api_key: str | None = "sk-test") -> SarvamTTSAdapter:
    return SarvamTTSAdapter(api_key=api_key, transport=httpx.MockTransport(handler))


def render(tts: SarvamTTSAdapter, text: str = "Namaste", language_code: str = "hi-IN") -> bytes:
    async def scenario() -> bytes:
        try:
            return await tts.render(text=text, language_code=language_code)
        finally:
            await tts.aclose()

    return asyncio.run(scenario())


def test_base64_wav_is_unpacked_to_pcm() -> None:
    seen: list[dict[str, Any]] = []
    first, second = tone(320), tone(160)

    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == SARVAM_TTS_URL
        assert request.headers["api-subscription-key"] == "sk-test"
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"audios": [
            base64.b64encode(make_wav(first)).decode(),
            base64.b64encode(make_wav(second)).decode(),
        ]})

    assert render(adapter(handler)) == first + second
    assert seen[0]["text"] == "Namaste"
    assert seen[0]["target_language_code"] == "hi-IN"
    assert seen[0]["speech_sample_rate"] == AUDIO_SAMPLE_RATE_HZ


def test_stereo_wav_is_mixed_to_mono() -> None:
    # Left and right identical, so the mix is the same signal
    mono = tone(100)
    left_right = np.repeat(np.frombuffer(mono, dtype="<i2"), 2).astype("<i2").tobytes()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"audios": [base64.b64encode(make_wav(left_right, channels=2)).decode()]})

    assert render(adapter(handler)) == mono


def test_http_error_raises_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, text="invalid subscription key")

    with pytest.raises(TTSProviderError, match="sarvam HTTP 403"):
        render(adapter(handler))


@pytest.mark.parametrize("body", [
    {"audios": []},
    {},
    {"audios": ["not base64!"]},
    {"audios": [base64.b64encode(b"RIFF....garbage").decode()]},
])
def test_missing_or_undecodable_audio_raises(body: dict[str, Any]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    with pytest.raises(TTSProviderError):
        render(adapter(handler))


def test_unconfigured_or_unsupported_language_never_calls_out() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500)

    with pytest.raises(TTSProviderError, match="SARVAM_API_KEY"):
        render(adapter(handler, api_key=None))
    with pytest.raises(TTSProviderError, match="unsupported language"):
        render(adapter(handler), language_code="fr-FR")
    assert calls == []
