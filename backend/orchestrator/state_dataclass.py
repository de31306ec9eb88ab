"""
Authoritative coordinator state container.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
"""
from __future__ import annotations

from dataclasses import dataclass

from orchestrator.enums.state import VoiceState
from spec import LISTEN_TIMEOUT_MS


@dataclass(frozen=True)
class CoordinatorState:
    """Immutable snapshot of all coordinator-owned state."""

    # Locale used for the next synthesis / recognition (e.g. "hi-IN")
    language_code: str

    # ------------------------------------------------------------------
    # Control state
    # ------------------------------------------------------------------
    voice_state: VoiceState = VoiceState.IDLE

    # ------------------------------------------------------------------
    # Generation / epoch tracking
    # ------------------------------------------------------------------
    # 0 means "no operation started yet". Incremented on every speak/listen
    # start, never reused.
    generation: int = 0

    # True between RequestMicrophone and the MicrophoneAccess answer.
    # voice_state stays IDLE meanwhile; LISTENING is entered only once
    # access is granted.
    awaiting_microphone: bool = False

    # No-speech deadline for each recognition attempt. It starts when the
    # recognizer is capturing and stops once speech is heard.
    listen_timeout_ms: int = LISTEN_TIMEOUT_MS
    speech_detected: bool = False

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------
    last_transcript: str | None = None
    last_error: str | None = None
