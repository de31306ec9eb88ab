"""
Whisper-backed single-shot recognizer.

Consumes the session's microphone frame queue, endpoints one utterance
with energy VAD, and transcribes it with faster-whisper in a worker
thread.

Event model:
- RecognitionReady(generation) once the engine is loaded and capture begins
- SpeechStarted(generation) when the endpointer first hears the user
- RecognitionResult(generation, transcript) on a decoded utterance
  (possibly empty; the reducer treats empty as no-speech)
- RecognitionFailed(generation, unsupported) when the engine cannot load
- RecognitionFailed(generation, network) when decoding fails

The no-speech deadline belongs to the coordinator; this adapter simply
keeps listening until it is cancelled or an utterance ends. Once speech has
started, a stalled microphone stream counts as silence so the utterance
still ends.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import numpy as np

from adapters.asr.base import RecognizerAdapter
from adapters.asr.whisper_adapter import WhisperBackendError, WhisperEngine
from audio.pcm import pcm16le_to_float32
from audio.queues import AudioFrameQueue
from audio.vad import Endpointer
from orchestrator.enums.failure import RecognitionFailure
from orchestrator.enums.service import Service
from orchestrator.events import (
    Event,
    EventType,
    RecognitionFailed,
    RecognitionReady,
    RecognitionResult,
    SpeechStarted,
)

from observability.logger import log_event, now_ms
from observability.metrics import timed

from spec import AUDIO_FRAME_MS, AUDIO_SAMPLES_PER_FRAME

# How often the capture loop re-checks an empty queue
_POLL_S = 0.25


class WhisperRecognizer(RecognizerAdapter):
    """
    One asyncio task per generation.

    load_engine is called (in a worker thread) on first use; a
    WhisperBackendError marks the recognizer unsupported for good.
    """

    def __init__(
        self,
        *,
        emit_event: Callable[[Event], Awaitable[None]],
        frames: AudioFrameQueue,
        load_engine: Callable[[], WhisperEngine],
        session_id: str,
    ) -> None:
        self._emit_event = emit_event
        self._frames = frames
        self._load_engine = load_engine
        self._session_id = session_id

        self._engine: WhisperEngine | None = None
        self._unsupported_reason: str | None = None
        self._tasks: dict[int, asyncio.Task[None]] = {}

    # ------------------------------------------------------------------
    # RecognizerAdapter contract
    # ------------------------------------------------------------------

    async def start(self, *, generation: int, language_code: str) -> None:
        if generation in self._tasks:
            return

        # Audio captured before this attempt belongs to nobody
        self._frames.clear()

        task = asyncio.create_task(self._run(generation=generation, language_code=language_code))
        self._tasks[generation] = task

        def _cleanup(_: asyncio.Task[None]) -> None:
            if self._tasks.get(generation) is task:
                del self._tasks[generation]

        task.add_done_callback(_cleanup)

    def cancel(self, generation: int) -> None:
        task = self._tasks.pop(generation, None)
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def force_reset(self) -> None:
        """Cancel every attempt (session teardown)."""
        for generation in list(self._tasks):
            self.cancel(generation)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _run(self, *, generation: int, language_code: str) -> None:
        try:
            engine = await self._ensure_engine()
        except WhisperBackendError as exc:
            log_event({
                "event_type": "RECOGNIZER_UNSUPPORTED",
                "session_id": self._session_id,
                "generation": generation,
                "error": str(exc),
            })
            await self._fail(generation, RecognitionFailure.UNSUPPORTED)
            return

        try:
            await self._emit_event(RecognitionReady(
                event_type=EventType.RECOGNITION_READY,
                ts_ms=now_ms(),
                service=Service.RECOGNITION,
                generation=generation,
            ))
            pcm = await self._capture_utterance(generation)
            audio = pcm16le_to_float32(pcm)
            with timed("whisper_transcribe", session_id=self._session_id,
                       details={"generation": generation, "samples": int(audio.size)}):
                result = await asyncio.to_thread(
                    engine.transcribe,
                    audio,
                    language=language_code.split("-")[0],
                )
        except asyncio.CancelledError:
            return
        except WhisperBackendError as exc:
            log_event({
                "event_type": "RECOGNIZER_DECODE_ERROR",
                "session_id": self._session_id,
                "generation": generation,
                "error": str(exc),
            })
            await self._fail(generation, RecognitionFailure.NETWORK)
            return

        await self._emit_event(RecognitionResult(
            event_type=EventType.RECOGNITION_RESULT,
            ts_ms=now_ms(),
            service=Service.RECOGNITION,
            generation=generation,
            transcript=result.text,
        ))

    async def _capture_utterance(self, generation: int) -> bytes:
        endpointer = Endpointer()
        pcm = bytearray()

        while True:
            frame = await self._frames.get(timeout_s=_POLL_S)
            if frame is None:
                if endpointer.speech_started and self._observe_stall(endpointer):
                    return bytes(pcm)
                continue

            heard_before = endpointer.speech_started
            pcm += frame.pcm_bytes
            done = endpointer.observe(pcm16le_to_float32(frame.pcm_bytes))

            if endpointer.speech_started and not heard_before:
                await self._emit_event(SpeechStarted(
                    event_type=EventType.SPEECH_STARTED,
                    ts_ms=now_ms(),
                    service=Service.RECOGNITION,
                    generation=generation,
                ))
            if done:
                return bytes(pcm)

    @staticmethod
    def _observe_stall(endpointer: Endpointer) -> bool:
        """Feed one poll interval of silence; True when that ends the utterance."""
        silence = np.zeros(AUDIO_SAMPLES_PER_FRAME, dtype=np.float32)
        for _ in range(int(_POLL_S * 1000) // AUDIO_FRAME_MS):
            if endpointer.observe(silence):
                return True
        return False

    async def _ensure_engine(self) -> WhisperEngine:
        if self._engine is not None:
            return self._engine
        if self._unsupported_reason is not None:
            raise WhisperBackendError(self._unsupported_reason)

        try:
            self._engine = await asyncio.to_thread(self._load_engine)
        except WhisperBackendError as exc:
            self._unsupported_reason = str(exc)
            raise
        return self._engine

    async def _fail(self, generation: int, reason: RecognitionFailure) -> None:
        await self._emit_event(RecognitionFailed(
            event_type=EventType.RECOGNITION_FAILED,
            ts_ms=now_ms(),
            service=Service.RECOGNITION,
            generation=generation,
            reason=reason,
        ))
