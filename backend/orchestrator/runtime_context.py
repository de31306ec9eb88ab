"""
Coordinator execution context.

Provides the coordinator with live access to the imperative collaborators
it needs for command execution (synthesis, recognition, microphone).

This module contains:
- Narrow Protocols (capabilities, not implementations)
- Zero orchestration logic
- Zero state mutation
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol, runtime_checkable

from orchestrator.events import Event


EventSink = Callable[[Event], Awaitable[None]]


# ---------------------------------------------------------------------
# Adapter Protocols
# ---------------------------------------------------------------------

@runtime_checkable
class TTSAdapterProtocol(Protocol):
    """
    Utterance-oriented TTS adapter protocol.

    Contract:
    - synthesize() schedules work and returns; it never blocks until audio ends
    - Adapter must emit exactly one terminal event per generation:
        - SynthesisDone(generation)
        - OR SynthesisFailed(generation, reason)
    - cancel() is synchronous and idempotent; after it returns no audio for
      that generation reaches the listener
    """

    async def synthesize(
        self,
        *,
        generation: int,
        text: str,
        language_code: str,
    ) -> None: ...

    def cancel(self, generation: int) -> None: ...


@runtime_checkable
class RecognizerProtocol(Protocol):
    """
    Single-shot recognizer protocol.

    Contract:
    - start() schedules one recognition attempt and returns
    - Adapter emits RecognitionReady once it is capturing, SpeechStarted when
      the user starts talking, then RecognitionResult or RecognitionFailed
      for the generation
    - cancel() is synchronous and idempotent
    """

    async def start(self, *, generation: int, language_code: str) -> None: ...

    def cancel(self, generation: int) -> None: ...


@runtime_checkable
class MicrophoneProtocol(Protocol):
    """Permission-gated microphone."""

    async def request_access(self) -> bool:
        """
        Ask the platform for microphone access.

        Returns False when the user (or the platform) denies it.
        """


# ---------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------

@dataclass
class CoordinatorContext:
    """
    Live handles to the collaborators of one coordinator.

    Adapters are attached after the coordinator exists, because they emit
    events back into it.
    """

    session_id: str = "local"
    tts_adapter: TTSAdapterProtocol | None = None
    recognizer: RecognizerProtocol | None = None
    microphone: MicrophoneProtocol | None = None
