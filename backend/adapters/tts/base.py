"""
TTS contracts.

Two layers:

- TTSProvider renders one utterance to PCM16 16 kHz mono and raises on
  failure. Providers know nothing about generations, events or playback.
- TTSAdapter is what the coordinator drives. It owns one task per
  generation, plays the rendered audio through an AudioSink and reports
  exactly one terminal event per generation.

Key invariants:
- Generations are owned by the coordinator. Adapters never create them.
- Adapters emit events; they never call the reducer or change state.
- cancel(generation) is synchronous: once it returns, no further audio for
  that generation is sent and no terminal event is emitted.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol


class TTSProviderError(Exception):
    """A provider could not render the utterance."""


class TTSProvider(ABC):
    """One text-to-speech backend."""

    name: str = "tts"

    @abstractmethod
    async def render(self, *, text: str, language_code: str) -> bytes:
        """
        Render `text` spoken in `language_code`.

        Returns:
            PCM16 little-endian mono at spec.AUDIO_SAMPLE_RATE_HZ.

        Raises:
            TTSProviderError (or any transport exception) on failure.
            The caller decides whether to fall back.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network clients. Default: nothing to release."""


class AudioSink(Protocol):
    """
    Where rendered speech is played.

    play() returns once the listener has heard the audio (or raises);
    stop() silences a generation immediately and is idempotent.
    """

    async def play(self, generation: int, pcm_bytes: bytes) -> None: ...

    def stop(self, generation: int) -> None: ...


class TTSAdapter(ABC):
    """
    Coordinator-facing synthesis adapter.

    Implementations are responsible for:
    - Scheduling synthesis for a generation and returning immediately
    - Emitting exactly one of SynthesisDone / SynthesisFailed per generation,
      unless the generation was cancelled first
    - Synchronous, idempotent cancellation

    Non-responsibilities:
    - No state machine logic
    - No retries across utterances
    - No direct WebSocket access (that is the AudioSink's job)
    """

    @abstractmethod
    async def synthesize(self, *, generation: int, text: str, language_code: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def cancel(self, generation: int) -> None:
        raise NotImplementedError
