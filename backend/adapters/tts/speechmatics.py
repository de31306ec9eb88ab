"""
Speechmatics text-to-speech provider.

English voices only; used as the fallback path when
TTS_FALLBACK_PROVIDER=speechmatics. Streams raw PCM16 16 kHz from the
provider and returns it as one buffer.
"""
from __future__ import annotations

from speechmatics.tts import AsyncClient, OutputFormat, Voice # pyright: ignore[reportMissingTypeStubs] # pylint: disable=no-name-in-module, import-error

from adapters.tts.base import TTSProvider, TTSProviderError

from spec import PROVIDER_CHUNK_SIZE


class SpeechmaticsTTSAdapter(TTSProvider):
    """Speechmatics async TTS provider."""

    name = "speechmatics"

    _VOICE_MAP: dict[str, Voice] = {
        "sarah": Voice.SARAH,
        "theo": Voice.THEO,
        "megan": Voice.MEGAN,
    }

    def __init__(self, *, api_key: str | None, voice: str = "sarah") -> None:
        self._api_key = api_key
        self._voice = self._resolve_voice(voice)

    async def render(self, *, text: str, language_code: str) -> bytes:
        if not self._api_key:
            raise TTSProviderError("SPEECHMATICS_API_KEY not configured")

        carry = b""
        pcm = bytearray()
        async with AsyncClient(api_key=self._api_key) as client:
            async with await client.generate(
                text=text,
                voice=self._voice,
                output_format=OutputFormat.RAW_PCM_16000,
            ) as response:
                async for chunk in response.content.iter_chunked(PROVIDER_CHUNK_SIZE):
                    data = carry + chunk
                    # keep sample alignment across chunk boundaries
                    if len(data) % 2 == 1:
                        carry, data = data[-1:], data[:-1]
                    else:
                        carry = b""
                    pcm += data

        if not pcm:
            raise TTSProviderError("speechmatics returned no audio")
        return bytes(pcm)

    @classmethod
    def _resolve_voice(cls, voice: str) -> Voice:
        """Unknown names fall back to SARAH."""
        return cls._VOICE_MAP.get(voice.lower(), Voice.SARAH)
