"""
Side-effect command definitions for the coordinator.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the coordinator.
- No behavior, no async, no I/O, no clocks.
- Reducer logic remains pure and deterministic.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
    - Cancel commands are always emitted before start commands.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from orchestrator.enums.failure import RecognitionFailure

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    These are stable discriminants used for logging and runtime dispatch.
    """

    # Synthesis
    START_SYNTHESIS = "START_SYNTHESIS"
    CANCEL_SYNTHESIS = "CANCEL_SYNTHESIS"

    # Microphone / recognition
    REQUEST_MICROPHONE = "REQUEST_MICROPHONE"
    START_RECOGNITION = "START_RECOGNITION"
    CANCEL_RECOGNITION = "CANCEL_RECOGNITION"

    # Timers
    START_TIMER = "START_TIMER"
    CANCEL_TIMER = "CANCEL_TIMER"

    # Caller resolution
    RESOLVE_SPEAK = "RESOLVE_SPEAK"
    RESOLVE_LISTEN = "RESOLVE_LISTEN"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Synthesis Commands
# =============================================================================

@dataclass(frozen=True)
class StartSynthesis(Command):
    """Request to render one utterance."""
    generation: int
    text: str
    language_code: str
    command_type: CommandType = CommandType.START_SYNTHESIS


@dataclass(frozen=True)
class CancelSynthesis(Command):
    """Request to silence the utterance started under `generation`."""
    generation: int
    command_type: CommandType = CommandType.CANCEL_SYNTHESIS


# =============================================================================
# Microphone / Recognition Commands
# =============================================================================

@dataclass(frozen=True)
class RequestMicrophone(Command):
    """Ask the platform for microphone access."""
    generation: int
    command_type: CommandType = CommandType.REQUEST_MICROPHONE


@dataclass(frozen=True)
class StartRecognition(Command):
    """Start one recognition attempt."""
    generation: int
    language_code: str
    command_type: CommandType = CommandType.START_RECOGNITION


@dataclass(frozen=True)
class CancelRecognition(Command):
    """Release the recognition handle started under `generation`."""
    generation: int
    command_type: CommandType = CommandType.CANCEL_RECOGNITION


# =============================================================================
# Timer Commands
# =============================================================================

@dataclass(frozen=True)
class StartTimer(Command):
    """
    Start (or replace) a named timer.

    On expiry the coordinator feeds a ListenTimeout carrying `generation`
    back into the reducer.
    """
    timer_id: str
    duration_ms: int
    generation: int
    command_type: CommandType = CommandType.START_TIMER


@dataclass(frozen=True)
class CancelTimer(Command):
    """Cancel a named timer. Idempotent."""
    timer_id: str
    command_type: CommandType = CommandType.CANCEL_TIMER


# =============================================================================
# Caller Resolution Commands
# =============================================================================

@dataclass(frozen=True)
class ResolveSpeak(Command):
    """Wake the caller suspended in speak() for `generation`."""
    generation: int
    error: str | None = None
    command_type: CommandType = CommandType.RESOLVE_SPEAK


@dataclass(frozen=True)
class ResolveListen(Command):
    """
    Wake the caller suspended in listen() for `generation`.

    Exactly one of transcript / failure is set.
    """
    generation: int
    transcript: str | None = None
    failure: RecognitionFailure | None = None
    command_type: CommandType = CommandType.RESOLVE_LISTEN


# =============================================================================
# Observability
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Structured log line describing one reducer decision."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
