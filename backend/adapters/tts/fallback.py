"""
Fallback synthesis adapter.

The one TTSAdapter the coordinator drives. For each generation it:
1. renders the text with the primary provider,
2. on any primary error renders the same text and language with the
   fallback provider,
3. plays the audio through the AudioSink,
4. emits SynthesisDone, or SynthesisFailed when no path produced audio.

Concurrency & cancellation:
- One asyncio task per generation.
- cancel() cancels the task and silences the sink synchronously; a
  cancelled generation emits nothing.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from adapters.tts.base import AudioSink, TTSAdapter, TTSProvider
from orchestrator.enums.service import Service
from orchestrator.events import Event, EventType, SynthesisDone, SynthesisFailed

from observability.logger import log_event, now_ms
from observability.metrics import timed


class FallbackTTSAdapter(TTSAdapter):
    """Primary provider with an alternate path on failure."""

    def __init__(
        self,
        *,
        emit_event: Callable[[Event], Awaitable[None]],
        primary: TTSProvider,
        fallback: TTSProvider | None,
        sink: AudioSink,
        session_id: str,
    ) -> None:
        self._emit_event = emit_event
        self._primary = primary
        self._fallback = fallback
        self._sink = sink
        self._session_id = session_id
        self._tasks: dict[int, asyncio.Task[None]] = {}

    # ------------------------------------------------------------------
    # TTSAdapter contract
    # ------------------------------------------------------------------

    async def synthesize(self, *, generation: int, text: str, language_code: str) -> None:
        """Schedule the utterance and return immediately."""
        if generation in self._tasks:
            return

        task = asyncio.create_task(
            self._run(generation=generation, text=text, language_code=language_code)
        )
        self._tasks[generation] = task

        def _cleanup(_: asyncio.Task[None]) -> None:
            if self._tasks.get(generation) is task:
                del self._tasks[generation]

        task.add_done_callback(_cleanup)

    def cancel(self, generation: int) -> None:
        task = self._tasks.pop(generation, None)
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._sink.stop(generation)

    async def aclose(self) -> None:
        """Cancel everything in flight and release provider clients."""
        for generation in list(self._tasks):
            self.cancel(generation)
        await self._primary.aclose()
        if self._fallback is not None:
            await self._fallback.aclose()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _run(self, *, generation: int, text: str, language_code: str) -> None:
        try:
            pcm = await self._render(generation=generation, text=text, language_code=language_code)
            await self._sink.play(generation, pcm)

        except asyncio.CancelledError:
            # Superseded or stopped; the coordinator already moved on
            return

        except Exception as exc:  # pylint: disable=broad-exception-caught
            await self._emit_event(SynthesisFailed(
                event_type=EventType.SYNTHESIS_FAILED,
                ts_ms=now_ms(),
                service=Service.SYNTHESIS,
                generation=generation,
                reason=f"{type(exc).__name__}: {exc}",
            ))
            return

        await self._emit_event(SynthesisDone(
            event_type=EventType.SYNTHESIS_DONE,
            ts_ms=now_ms(),
            service=Service.SYNTHESIS,
            generation=generation,
        ))

    async def _render(self, *, generation: int, text: str, language_code: str) -> bytes:
        try:
            with timed(
                "tts_render",
                session_id=self._session_id,
                details={"provider": self._primary.name, "generation": generation},
            ):
                return await self._primary.render(text=text, language_code=language_code)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "TTS_PRIMARY_FAILED",
                "session_id": self._session_id,
                "generation": generation,
                "provider": self._primary.name,
                "error": f"{type(exc).__name__}: {exc}",
                "fallback": self._fallback.name if self._fallback else None,
            })
            if self._fallback is None:
                raise

        with timed(
            "tts_render",
            session_id=self._session_id,
            details={"provider": self._fallback.name, "generation": generation},
        ):
            return await self._fallback.render(text=text, language_code=language_code)
