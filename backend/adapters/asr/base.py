"""
Recognizer and microphone contracts.

Interface only: no buffering, endpointing or orchestration decisions here.

Key invariants:
- Generations are owned by the coordinator; adapters never create them.
- The recognizer emits RecognitionReady when it starts capturing and
  SpeechStarted when the user starts talking, then RecognitionResult /
  RecognitionFailed, all tagged with the generation it was started for.
  It never calls the reducer.
- cancel(generation) is synchronous and idempotent.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class RecognizerAdapter(ABC):
    """
    Single-shot speech recognizer.

    Implementations are responsible for:
    - Capturing one utterance after start()
    - Emitting exactly one terminal event per generation unless cancelled
    - Emitting RecognitionFailed(unsupported) when they cannot run at all

    Non-responsibilities:
    - No no-speech deadline (the coordinator owns that timer)
    - No retries
    """

    @abstractmethod
    async def start(self, *, generation: int, language_code: str) -> None:
        """
        Begin one recognition attempt and return immediately.

        Args:
            generation: coordinator generation to tag events with.
            language_code: BCP-47 locale, e.g. "hi-IN".
        """
        raise NotImplementedError

    @abstractmethod
    def cancel(self, generation: int) -> None:
        """
        Abandon the attempt for `generation`.

        After this returns no event for that generation is emitted.
        Unknown or finished generations are a no-op.
        """
        raise NotImplementedError


class MicrophoneAdapter(ABC):
    """Permission gate in front of the capture device."""

    @abstractmethod
    async def request_access(self) -> bool:
        """True when capture is allowed; False when the user denied it."""
        raise NotImplementedError
