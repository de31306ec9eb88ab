"""
Unified event definitions for the coordinator reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.

Adapter and timer events carry the generation they were started under,
so the reducer can discard effects of superseded operations.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from orchestrator.enums.failure import RecognitionFailure
from orchestrator.enums.service import Service


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every (state, event_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Caller requests
    # ------------------------------------------------------------------
    SPEAK_REQUESTED = "SPEAK_REQUESTED"
    LISTEN_REQUESTED = "LISTEN_REQUESTED"
    STOP_SPEAKING = "STOP_SPEAKING"
    STOP_LISTENING = "STOP_LISTENING"
    LANGUAGE_CHANGED = "LANGUAGE_CHANGED"

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------
    SYNTHESIS_DONE = "SYNTHESIS_DONE"
    SYNTHESIS_FAILED = "SYNTHESIS_FAILED"

    # ------------------------------------------------------------------
    # Microphone / recognition
    # ------------------------------------------------------------------
    MICROPHONE_ACCESS = "MICROPHONE_ACCESS"
    RECOGNITION_READY = "RECOGNITION_READY"
    SPEECH_STARTED = "SPEECH_STARTED"
    RECOGNITION_RESULT = "RECOGNITION_RESULT"
    RECOGNITION_FAILED = "RECOGNITION_FAILED"

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------
    LISTEN_TIMEOUT = "LISTEN_TIMEOUT"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


# =============================================================================
# Generation-Scoped Events
# =============================================================================

@dataclass(frozen=True)
class GenerationEvent(Event):
    """
    Base class for events produced by an asynchronous operation.

    The reducer MUST ignore events whose generation does not match the
    current generation, or whose expected state no longer holds.
    """

    service: Service
    generation: int


# =============================================================================
# Caller Requests
# =============================================================================

@dataclass(frozen=True)
class SpeakRequested(Event):
    """Caller asked for one utterance."""
    text: str


@dataclass(frozen=True)
class ListenRequested(Event):
    """Caller asked for one recognition attempt."""


@dataclass(frozen=True)
class StopSpeakingRequested(Event):
    """Caller asked to silence any in-flight utterance."""


@dataclass(frozen=True)
class StopListeningRequested(Event):
    """Caller asked to abandon any in-flight recognition."""


@dataclass(frozen=True)
class LanguageChanged(Event):
    """User selected a new language; applies to the next operation."""
    language_code: str


# =============================================================================
# Synthesis Events
# =============================================================================

@dataclass(frozen=True)
class SynthesisDone(GenerationEvent):
    """Utterance rendered to completion."""


@dataclass(frozen=True)
class SynthesisFailed(GenerationEvent):
    """Every synthesis path failed for the utterance."""
    reason: str


# =============================================================================
# Microphone / Recognition Events
# =============================================================================

@dataclass(frozen=True)
class MicrophoneAccess(GenerationEvent):
    """Outcome of a microphone permission request."""
    granted: bool


@dataclass(frozen=True)
class RecognitionReady(GenerationEvent):
    """Recognizer is capturing audio (engine loaded, stale frames dropped)."""


@dataclass(frozen=True)
class SpeechStarted(GenerationEvent):
    """Recognizer heard the user start talking."""


@dataclass(frozen=True)
class RecognitionResult(GenerationEvent):
    """Recognizer produced a final transcript."""
    transcript: str


@dataclass(frozen=True)
class RecognitionFailed(GenerationEvent):
    """Recognizer ended without a transcript."""
    reason: RecognitionFailure


# =============================================================================
# Timer Events
# =============================================================================

@dataclass(frozen=True)
class ListenTimeout(GenerationEvent):
    """No transcript arrived before the no-speech deadline."""
