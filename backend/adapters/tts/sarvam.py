"""
Sarvam AI text-to-speech provider.

Primary voice for Indian languages. One REST call per utterance; the
response carries base64 WAV which is unpacked to PCM16 16 kHz mono.
"""

from __future__ import annotations

import base64
import binascii

import httpx

from adapters.tts.base import TTSProvider, TTSProviderError
from audio.pcm import WavDecodeError, wav_to_pcm16

from spec import AUDIO_SAMPLE_RATE_HZ, TTS_SPEAKING_RATE

SARVAM_TTS_URL = "https://api.sarvam.ai/text-to-speech"

# Locales the Sarvam voices cover; anything else goes straight to fallback.
SARVAM_LANGUAGE_CODES = frozenset({
    "en-IN", "hi-IN", "mr-IN", "ta-IN", "te-IN", "bn-IN",
    "gu-IN", "kn-IN", "ml-IN", "pa-IN", "od-IN",
})


class SarvamTTSAdapter(TTSProvider):
    """Sarvam REST provider. The httpx client is created lazily and reused."""

    name = "sarvam"

    def __init__(
        self,
        *,
        api_key: str | None,
        speaker: str = "anushka",
        model: str = "bulbul:v2",
        pace: float = TTS_SPEAKING_RATE,
        timeout_s: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._speaker = speaker
        self._model = model
        self._pace = pace
        self._timeout_s = timeout_s
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def render(self, *, text: str, language_code: str) -> bytes:
        if not self._api_key:
            raise TTSProviderError("SARVAM_API_KEY not configured")
        if language_code not in SARVAM_LANGUAGE_CODES:
            raise TTSProviderError(f"unsupported language: {language_code}")

        response = await self._http().post(
            SARVAM_TTS_URL,
            headers={"api-subscription-key": self._api_key},
            json={
                "text": text,
                "target_language_code": language_code,
                "speaker": self._speaker,
                "model": self._model,
                "pace": self._pace,
                "speech_sample_rate": AUDIO_SAMPLE_RATE_HZ,
            },
        )
        if response.status_code != 200:
            raise TTSProviderError(f"sarvam HTTP {response.status_code}: {response.text[:200]}")

        audios = response.json().get("audios") or []
        if not audios:
            raise TTSProviderError("sarvam returned no audio")

        try:
            return b"".join(wav_to_pcm16(base64.b64decode(audio)) for audio in audios)
        except (binascii.Error, WavDecodeError) as exc:
            raise TTSProviderError(f"sarvam audio undecodable: {exc}") from exc

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport)
        return self._client
