"""
ElevenLabs text-to-speech provider.

Multilingual fallback path (TTS_FALLBACK_PROVIDER=elevenlabs). Requests
pcm_16000 output so no decoding is needed.
"""

from __future__ import annotations

from elevenlabs.client import AsyncElevenLabs

from adapters.tts.base import TTSProvider, TTSProviderError


class ElevenLabsTTSAdapter(TTSProvider):
    """ElevenLabs streaming provider, collected into one buffer."""

    name = "elevenlabs"

    def __init__(
        self,
        *,
        api_key: str | None,
        voice_id: str = "21m00Tcm4TlvDq8ikWAM",
        model_id: str = "eleven_multilingual_v2",
    ) -> None:
        self._voice_id = voice_id
        self._model_id = model_id
        self._client = AsyncElevenLabs(api_key=api_key) if api_key else None

    async def render(self, *, text: str, language_code: str) -> bytes:
        if self._client is None:
            raise TTSProviderError("ELEVENLABS_API_KEY not configured")

        pcm = bytearray()
        async for chunk in self._client.text_to_speech.stream(
            voice_id=self._voice_id,
            model_id=self._model_id,
            text=text,
            language_code=language_code.split("-")[0],
            output_format="pcm_16000",
        ):
            if chunk:
                pcm += chunk

        if len(pcm) % 2 == 1:
            pcm = pcm[:-1]
        if not pcm:
            raise TTSProviderError("elevenlabs returned no audio")
        return bytes(pcm)
