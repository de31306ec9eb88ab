"""
Pure coordinator reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (state, event) pair is handled or explicitly ignored (logged).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from orchestrator.commands import (
    CancelRecognition,
    CancelSynthesis,
    CancelTimer,
    Command,
    LogEvent,
    RequestMicrophone,
    ResolveListen,
    ResolveSpeak,
    StartRecognition,
    StartSynthesis,
    StartTimer,
)
from orchestrator.enums.failure import RecognitionFailure
from orchestrator.enums.state import VoiceState
from orchestrator.events import (
    Event,
    GenerationEvent,
    LanguageChanged,
    ListenRequested,
    ListenTimeout,
    MicrophoneAccess,
    RecognitionFailed,
    RecognitionReady,
    RecognitionResult,
    SpeakRequested,
    SpeechStarted,
    StopListeningRequested,
    StopSpeakingRequested,
    SynthesisDone,
    SynthesisFailed,
)
from orchestrator.state_dataclass import CoordinatorState


# =============================================================================
# Invariants
# =============================================================================
# - generation is bumped ONLY on a new speak/listen request
# - stopping never bumps generation; the state guard discards late events
# - cancel commands precede start commands in every emitted tuple
# - the listen timer runs only while the recognizer captures and nobody speaks
# - the listen timer is cancelled on every listen resolution path

# =============================================================================
# Timer IDs
# =============================================================================

TIMER_LISTEN = "listen_no_speech_timeout"


# =============================================================================
# Small helpers
# =============================================================================

def _log(
    state: CoordinatorState,
    event: Event,
    decision: str,
    extra: dict[str, Any] | None = None,
) -> LogEvent:
    payload: dict[str, Any] = {
        "ts_ms": event.ts_ms,
        "event_type": event.event_type.value,
        "decision": decision,
        "voice_state": state.voice_state.value,
        "generation": state.generation,
    }
    if extra:
        payload.update(extra)
    return LogEvent(event=payload)


def _state_changed(
    old: CoordinatorState,
    new: CoordinatorState,
    event: Event,
    source: str,
) -> LogEvent:
    return _log(
        new,
        event,
        "state_changed",
        {
            "from_state": old.voice_state.value,
            "to_state": new.voice_state.value,
            "source": source,
        },
    )


def _ignore(state: CoordinatorState, event: Event, why: str) -> tuple[CoordinatorState, tuple[Command, ...]]:
    extra: dict[str, Any] = {"reason": why}
    if isinstance(event, GenerationEvent):
        extra["event_generation"] = event.generation
    return state, (_log(state, event, "ignore", extra),)


def _is_stale(state: CoordinatorState, event: GenerationEvent) -> bool:
    return event.generation != state.generation


def _abandon_in_flight(state: CoordinatorState) -> tuple[Command, ...]:
    """
    Cancel whatever the current generation is doing and wake its caller.

    A superseded speak returns normally; a superseded listen fails with
    `aborted`.
    """
    gen = state.generation

    if state.voice_state is VoiceState.SPEAKING:
        return (
            CancelSynthesis(generation=gen),
            ResolveSpeak(generation=gen),
        )

    if state.voice_state is VoiceState.LISTENING:
        return (
            CancelTimer(timer_id=TIMER_LISTEN),
            CancelRecognition(generation=gen),
            ResolveListen(generation=gen, failure=RecognitionFailure.ABORTED),
        )

    if state.awaiting_microphone:
        return (
            ResolveListen(generation=gen, failure=RecognitionFailure.ABORTED),
        )

    return ()


# =============================================================================
# Caller requests
# =============================================================================

def _on_speak(state: CoordinatorState, event: SpeakRequested) -> tuple[CoordinatorState, tuple[Command, ...]]:
    abandon = _abandon_in_flight(state)

    new_state = replace(
        state,
        voice_state=VoiceState.SPEAKING,
        generation=state.generation + 1,
        awaiting_microphone=False,
    )

    return new_state, (
        _state_changed(state, new_state, event, "speak"),
        *abandon,
        StartSynthesis(
            generation=new_state.generation,
            text=event.text,
            language_code=state.language_code,
        ),
    )


def _on_listen(state: CoordinatorState, event: ListenRequested) -> tuple[CoordinatorState, tuple[Command, ...]]:
    abandon = _abandon_in_flight(state)

    new_state = replace(
        state,
        voice_state=VoiceState.IDLE,
        generation=state.generation + 1,
        awaiting_microphone=True,
        speech_detected=False,
    )

    return new_state, (
        _state_changed(state, new_state, event, "listen_requested"),
        *abandon,
        RequestMicrophone(generation=new_state.generation),
    )


def _on_stop(state: CoordinatorState, event: Event, source: str) -> tuple[CoordinatorState, tuple[Command, ...]]:
    if state.voice_state is VoiceState.IDLE and not state.awaiting_microphone:
        return _ignore(state, event, "already_idle")

    abandon = _abandon_in_flight(state)
    new_state = replace(
        state,
        voice_state=VoiceState.IDLE,
        awaiting_microphone=False,
    )

    return new_state, (
        _state_changed(state, new_state, event, source),
        *abandon,
    )


def _on_language(state: CoordinatorState, event: LanguageChanged) -> tuple[CoordinatorState, tuple[Command, ...]]:
    new_state = replace(state, language_code=event.language_code)
    return new_state, (
        _log(new_state, event, "language_changed", {
            "from_language": state.language_code,
            "to_language": event.language_code,
        }),
    )


# =============================================================================
# Synthesis
# =============================================================================

def _on_synthesis_done(state: CoordinatorState, event: SynthesisDone) -> tuple[CoordinatorState, tuple[Command, ...]]:
    if _is_stale(state, event) or state.voice_state is not VoiceState.SPEAKING:
        return _ignore(state, event, "stale_synthesis")

    new_state = replace(state, voice_state=VoiceState.IDLE)
    return new_state, (
        _state_changed(state, new_state, event, "synthesis_done"),
        ResolveSpeak(generation=state.generation),
    )


def _on_synthesis_failed(state: CoordinatorState, event: SynthesisFailed) -> tuple[CoordinatorState, tuple[Command, ...]]:
    if _is_stale(state, event) or state.voice_state is not VoiceState.SPEAKING:
        return _ignore(state, event, "stale_synthesis")

    new_state = replace(
        state,
        voice_state=VoiceState.IDLE,
        last_error=event.reason,
    )
    return new_state, (
        _state_changed(state, new_state, event, "synthesis_failed"),
        _log(new_state, event, "synthesis_failed", {"reason": event.reason}),
        ResolveSpeak(generation=state.generation, error=event.reason),
    )


# =============================================================================
# Microphone / recognition
# =============================================================================

def _on_microphone(state: CoordinatorState, event: MicrophoneAccess) -> tuple[CoordinatorState, tuple[Command, ...]]:
    if _is_stale(state, event) or not state.awaiting_microphone:
        return _ignore(state, event, "stale_microphone_answer")

    gen = state.generation

    if not event.granted:
        new_state = replace(
            state,
            voice_state=VoiceState.IDLE,
            awaiting_microphone=False,
            last_error=RecognitionFailure.AUDIO_CAPTURE.value,
        )
        return new_state, (
            _log(new_state, event, "microphone_denied"),
            ResolveListen(generation=gen, failure=RecognitionFailure.AUDIO_CAPTURE),
        )

    new_state = replace(
        state,
        voice_state=VoiceState.LISTENING,
        awaiting_microphone=False,
    )
    return new_state, (
        _state_changed(state, new_state, event, "microphone_granted"),
        StartRecognition(generation=gen, language_code=state.language_code),
    )


def _on_recognition_ready(state: CoordinatorState, event: RecognitionReady) -> tuple[CoordinatorState, tuple[Command, ...]]:
    if _is_stale(state, event) or state.voice_state is not VoiceState.LISTENING:
        return _ignore(state, event, "stale_recognition")
    if state.speech_detected:
        return _ignore(state, event, "speech_already_started")

    # Engine loading does not count against the user
    return state, (
        _log(state, event, "no_speech_timer_started", {"duration_ms": state.listen_timeout_ms}),
        StartTimer(
            timer_id=TIMER_LISTEN,
            duration_ms=state.listen_timeout_ms,
            generation=state.generation,
        ),
    )


def _on_speech_started(state: CoordinatorState, event: SpeechStarted) -> tuple[CoordinatorState, tuple[Command, ...]]:
    if _is_stale(state, event) or state.voice_state is not VoiceState.LISTENING:
        return _ignore(state, event, "stale_recognition")
    if state.speech_detected:
        return _ignore(state, event, "speech_already_started")

    # The user is talking; the recognizer's endpointer decides when they stop
    new_state = replace(state, speech_detected=True)
    return new_state, (
        _log(new_state, event, "speech_started"),
        CancelTimer(timer_id=TIMER_LISTEN),
    )


def _on_transcript(state: CoordinatorState, event: RecognitionResult) -> tuple[CoordinatorState, tuple[Command, ...]]:
    if _is_stale(state, event) or state.voice_state is not VoiceState.LISTENING:
        return _ignore(state, event, "stale_recognition")

    transcript = event.transcript.strip()
    if not transcript:
        return _fail_listen(state, event, RecognitionFailure.NO_SPEECH, "empty_transcript")

    new_state = replace(
        state,
        voice_state=VoiceState.PROCESSING,
        last_transcript=transcript,
    )
    return new_state, (
        _state_changed(state, new_state, event, "transcript_received"),
        CancelTimer(timer_id=TIMER_LISTEN),
        CancelRecognition(generation=state.generation),
        ResolveListen(generation=state.generation, transcript=transcript),
    )


def _on_recognition_failed(state: CoordinatorState, event: RecognitionFailed) -> tuple[CoordinatorState, tuple[Command, ...]]:
    if _is_stale(state, event) or state.voice_state is not VoiceState.LISTENING:
        return _ignore(state, event, "stale_recognition")

    return _fail_listen(state, event, event.reason, "recognition_failed")


def _on_listen_timeout(state: CoordinatorState, event: ListenTimeout) -> tuple[CoordinatorState, tuple[Command, ...]]:
    if _is_stale(state, event) or state.voice_state is not VoiceState.LISTENING:
        return _ignore(state, event, "stale_timer")
    if state.speech_detected:
        return _ignore(state, event, "speech_in_progress")

    return _fail_listen(state, event, RecognitionFailure.NO_SPEECH, "listen_timeout")


def _fail_listen(
    state: CoordinatorState,
    event: Event,
    reason: RecognitionFailure,
    source: str,
) -> tuple[CoordinatorState, tuple[Command, ...]]:
    new_state = replace(
        state,
        voice_state=VoiceState.IDLE,
        last_error=reason.value,
    )
    return new_state, (
        _state_changed(state, new_state, event, source),
        CancelTimer(timer_id=TIMER_LISTEN),
        CancelRecognition(generation=state.generation),
        ResolveListen(generation=state.generation, failure=reason),
    )


# =============================================================================
# Entry point
# =============================================================================

def reduce(
    state: CoordinatorState,
    event: Event,
) -> tuple[CoordinatorState, tuple[Command, ...]]:
    """
    Apply one event to the coordinator state.

    Returns the new state and the commands the coordinator must execute,
    in order.
    """
    if isinstance(event, SpeakRequested):
        return _on_speak(state, event)

    if isinstance(event, ListenRequested):
        return _on_listen(state, event)

    if isinstance(event, StopSpeakingRequested):
        return _on_stop(state, event, "stop_speaking")

    if isinstance(event, StopListeningRequested):
        return _on_stop(state, event, "stop_listening")

    if isinstance(event, LanguageChanged):
        return _on_language(state, event)

    if isinstance(event, SynthesisDone):
        return _on_synthesis_done(state, event)

    if isinstance(event, SynthesisFailed):
        return _on_synthesis_failed(state, event)

    if isinstance(event, MicrophoneAccess):
        return _on_microphone(state, event)

    if isinstance(event, RecognitionReady):
        return _on_recognition_ready(state, event)

    if isinstance(event, SpeechStarted):
        return _on_speech_started(state, event)

    if isinstance(event, RecognitionResult):
        return _on_transcript(state, event)

    if isinstance(event, RecognitionFailed):
        return _on_recognition_failed(state, event)

    if isinstance(event, ListenTimeout):
        return _on_listen_timeout(state, event)

    return _ignore(state, event, "unhandled_event")
