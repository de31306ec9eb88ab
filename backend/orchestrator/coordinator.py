"""
Speech interaction coordinator: runtime shell around the pure reducer.

Responsibilities:
- Own the authoritative CoordinatorState
- Act as the single event sink for caller requests, adapter events and timers
- Invoke the pure reducer exactly once per event
- Execute emitted commands in order (cancel before start)
- Own the listen no-speech timer
- Park suspended speak()/listen() callers on futures keyed by generation

Guarantees:
- State is swapped in before any side effect executes
- A generation's caller is woken at most once; later resolutions are dropped
- Timers and microphone prompts re-enter handle_event(), never the reducer

Non-responsibilities:
- Transition decisions (reducer)
- Transport (session / gateway)
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any, Callable

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
from orchestrator.enums.service import Service
from orchestrator.enums.state import VoiceState
from orchestrator.errors import RecognitionError, RecognitionUnsupported, RetriesExhausted
from orchestrator.events import (
    Event,
    EventType,
    LanguageChanged,
    ListenRequested,
    ListenTimeout,
    MicrophoneAccess,
    SpeakRequested,
    StopListeningRequested,
    StopSpeakingRequested,
)
from orchestrator.reducer import reduce
from orchestrator.retry import SpeechRetryPolicy, next_attempt, reset_attempt
from orchestrator.runtime_context import CoordinatorContext
from orchestrator.state_dataclass import CoordinatorState

from observability.logger import log_event, now_ms
from observability.metrics import timed

from spec import PHRASE_MIC_PERMISSION


# (transcript, failure) handed from ResolveListen to the parked listen() caller
ListenOutcome = tuple[str | None, RecognitionFailure | None]


class SpeechCoordinator:
    """
    Serializes speaking and listening for one session.

    At most one of {synthesis, recognition} is active at any instant. Starting
    an operation first stops the previous one (last-writer-wins, no queuing).

    Adapters are attached to the context after construction and report back
    through handle_event().
    """

    def __init__(
        self,
        *,
        language_code: str,
        context: CoordinatorContext | None = None,
        speech_policy: SpeechRetryPolicy | None = None,
        listen_timeout_ms: int | None = None,
        on_state_change: Callable[[VoiceState], None] | None = None,
    ) -> None:
        self._state = CoordinatorState(language_code=language_code)
        if listen_timeout_ms is not None:
            self._state = replace(self._state, listen_timeout_ms=listen_timeout_ms)

        self._ctx = context or CoordinatorContext()
        self._speech_policy = speech_policy or SpeechRetryPolicy()
        self._on_state_change = on_state_change

        self._timers: dict[str, asyncio.Task[None]] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._speak_waiters: dict[int, asyncio.Future[str | None]] = {}
        self._listen_waiters: dict[int, asyncio.Future[ListenOutcome]] = {}

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def context(self) -> CoordinatorContext:
        return self._ctx

    @property
    def state(self) -> CoordinatorState:
        """Current immutable state. Mutated only through handle_event()."""
        return self._state

    @property
    def voice_state(self) -> VoiceState:
        return self._state.voice_state

    @property
    def is_speaking(self) -> bool:
        return self._state.voice_state is VoiceState.SPEAKING

    @property
    def is_listening(self) -> bool:
        return self._state.voice_state is VoiceState.LISTENING

    @property
    def language_code(self) -> str:
        return self._state.language_code

    # ------------------------------------------------------------------
    # Event entry point
    # ------------------------------------------------------------------

    async def handle_event(self, event: Event) -> None:
        """
        Run one event through the reducer and execute its commands.

        Every event source converges here: caller requests, adapter
        callbacks, the listen timer and microphone prompts.
        """
        prev_voice_state = self._state.voice_state
        new_state, commands = reduce(self._state, event)
        self._state = new_state

        if self._on_state_change is not None and new_state.voice_state is not prev_voice_state:
            self._on_state_change(new_state.voice_state)

        for cmd in commands:
            await self._execute_command(cmd)

    # ------------------------------------------------------------------
    # Caller API
    # ------------------------------------------------------------------

    async def speak(self, text: str) -> str | None:
        """
        Speak one utterance and wait for it to finish.

        Returns None on completion or supersession, or the failure reason
        when every synthesis path failed. Never raises for synthesis errors.
        Empty text still interrupts whatever is in flight.
        """
        if not text.strip():
            await self.stop_speaking()
            return None

        waiter = self._park(self._speak_waiters)
        await self.handle_event(SpeakRequested(
            event_type=EventType.SPEAK_REQUESTED,
            ts_ms=now_ms(),
            text=text,
        ))

        with timed("speak", session_id=self._ctx.session_id, details={"chars": len(text)}):
            return await self._await(self._speak_waiters, waiter)

    async def listen(self) -> str:
        """
        Run one recognition attempt and return the transcript.

        Raises:
            RecognitionUnsupported: the runtime cannot recognize speech.
            RecognitionError: any other failure, with its reason.
        """
        waiter = self._park(self._listen_waiters)
        await self.handle_event(ListenRequested(
            event_type=EventType.LISTEN_REQUESTED,
            ts_ms=now_ms(),
        ))

        transcript, failure = await self._await(self._listen_waiters, waiter)
        if failure is None:
            assert transcript is not None
            return transcript

        if failure is RecognitionFailure.UNSUPPORTED:
            raise RecognitionUnsupported()

        if failure is RecognitionFailure.AUDIO_CAPTURE:
            await self.speak(PHRASE_MIC_PERMISSION)

        raise RecognitionError(failure)

    async def speak_and_listen(
        self,
        text: str,
        retries: int | None = None,
        *,
        policy: SpeechRetryPolicy | None = None,
    ) -> str:
        """
        Speak a prompt, then listen; repeat the whole cycle on retryable failures.

        Performs at most retries + 1 cycles. Non-retryable failures propagate
        unchanged; an exhausted budget raises RetriesExhausted.
        """
        policy = policy or self._speech_policy
        if retries is not None:
            policy = replace(policy, max_retries=retries)

        attempt = reset_attempt()
        while True:
            await self.speak(text)
            try:
                return await self.listen()
            except RecognitionUnsupported:
                raise
            except RecognitionError as exc:
                if exc.reason not in policy.retryable:
                    raise
                if not policy.should_retry(reason=exc.reason, attempt=attempt):
                    raise RetriesExhausted(exc.reason, attempts=attempt.attempt + 1) from exc

                attempt = next_attempt(attempt)
                log_event({
                    "event_type": "SPEAK_LISTEN_RETRY",
                    "session_id": self._ctx.session_id,
                    "reason": exc.reason.value,
                    "attempt": attempt.attempt,
                })

    async def stop_speaking(self) -> None:
        """Force IDLE and release any utterance. No-op when already IDLE."""
        await self.handle_event(StopSpeakingRequested(
            event_type=EventType.STOP_SPEAKING,
            ts_ms=now_ms(),
        ))

    async def stop_listening(self) -> None:
        """Force IDLE and release any recognition. No-op when already IDLE."""
        await self.handle_event(StopListeningRequested(
            event_type=EventType.STOP_LISTENING,
            ts_ms=now_ms(),
        ))

    async def set_language(self, language_code: str) -> None:
        """Applies to the next synthesis / recognition, not the running one."""
        await self.handle_event(LanguageChanged(
            event_type=EventType.LANGUAGE_CHANGED,
            ts_ms=now_ms(),
            language_code=language_code,
        ))

    async def shutdown(self) -> None:
        """
        Release everything owned by this coordinator.

        Stops any in-flight operation (waking its caller), cancels timers and
        background tasks and waits for them to finish.
        """
        await self.stop_listening()

        for timer_id in list(self._timers.keys()):
            self._cancel_timer(timer_id)

        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Waiters
    # ------------------------------------------------------------------

    def _park(self, waiters: dict[int, asyncio.Future[Any]]) -> asyncio.Future[Any]:
        # The request about to be dispatched always takes the next generation.
        generation = self._state.generation + 1
        waiter = asyncio.get_running_loop().create_future()
        waiters[generation] = waiter
        return waiter

    @staticmethod
    async def _await(waiters: dict[int, asyncio.Future[Any]], waiter: asyncio.Future[Any]) -> Any:
        try:
            return await waiter
        finally:
            for generation, parked in list(waiters.items()):
                if parked is waiter:
                    del waiters[generation]

    @staticmethod
    def _wake(waiters: dict[int, asyncio.Future[Any]], generation: int, value: Any) -> bool:
        waiter = waiters.get(generation)
        if waiter is None or waiter.done():
            return False
        waiter.set_result(value)
        return True

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "component": "coordinator",
                "session_id": self._ctx.session_id,
            })

        elif isinstance(cmd, CancelSynthesis):
            if self._ctx.tts_adapter is not None:
                self._ctx.tts_adapter.cancel(cmd.generation)
            log_event({
                "event_type": "SYNTHESIS_CANCEL_EXECUTED",
                "session_id": self._ctx.session_id,
                "generation": cmd.generation,
            })

        elif isinstance(cmd, StartSynthesis):
            assert self._ctx.tts_adapter is not None, "TTS adapter missing"
            await self._ctx.tts_adapter.synthesize(
                generation=cmd.generation,
                text=cmd.text,
                language_code=cmd.language_code,
            )
            log_event({
                "event_type": "SYNTHESIS_START_EXECUTED",
                "session_id": self._ctx.session_id,
                "generation": cmd.generation,
                "language_code": cmd.language_code,
            })

        elif isinstance(cmd, RequestMicrophone):
            self._spawn(self._request_microphone(cmd.generation))

        elif isinstance(cmd, CancelRecognition):
            if self._ctx.recognizer is not None:
                self._ctx.recognizer.cancel(cmd.generation)

        elif isinstance(cmd, StartRecognition):
            assert self._ctx.recognizer is not None, "Recognizer missing"
            await self._ctx.recognizer.start(
                generation=cmd.generation,
                language_code=cmd.language_code,
            )
            log_event({
                "event_type": "RECOGNITION_START_EXECUTED",
                "session_id": self._ctx.session_id,
                "generation": cmd.generation,
                "language_code": cmd.language_code,
            })

        elif isinstance(cmd, StartTimer):
            self._start_timer(
                timer_id=cmd.timer_id,
                duration_ms=cmd.duration_ms,
                generation=cmd.generation,
            )

        elif isinstance(cmd, CancelTimer):
            self._cancel_timer(cmd.timer_id)

        elif isinstance(cmd, ResolveSpeak):
            self._wake(self._speak_waiters, cmd.generation, cmd.error)

        elif isinstance(cmd, ResolveListen):
            woke = self._wake(
                self._listen_waiters,
                cmd.generation,
                (cmd.transcript, cmd.failure),
            )
            if not woke:
                log_event({
                    "event_type": "LISTEN_RESOLUTION_DROPPED",
                    "session_id": self._ctx.session_id,
                    "generation": cmd.generation,
                })

        else:
            log_event({
                "event_type": "COMMAND_NOT_HANDLED",
                "session_id": self._ctx.session_id,
                "command_type": cmd.command_type.value,
            })

    # ------------------------------------------------------------------
    # Microphone
    # ------------------------------------------------------------------

    async def _request_microphone(self, generation: int) -> None:
        microphone = self._ctx.microphone
        granted = True
        if microphone is not None:
            try:
                granted = await microphone.request_access()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                log_event({
                    "event_type": "MICROPHONE_REQUEST_ERROR",
                    "session_id": self._ctx.session_id,
                    "generation": generation,
                    "error": str(exc),
                })
                granted = False

        await self.handle_event(MicrophoneAccess(
            event_type=EventType.MICROPHONE_ACCESS,
            ts_ms=now_ms(),
            service=Service.MICROPHONE,
            generation=generation,
            granted=granted,
        ))

    def _spawn(self, coro: Any) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # ------------------------------------------------------------------
    # Timer management
    # ------------------------------------------------------------------

    def _start_timer(self, *, timer_id: str, duration_ms: int, generation: int) -> None:
        """
        Start or replace the timer under timer_id.

        Expiry re-enters handle_event() with a ListenTimeout tagged with the
        generation that started it; the reducer drops it if stale.
        """
        self._cancel_timer(timer_id)

        async def _timer_task() -> None:
            try:
                await asyncio.sleep(duration_ms / 1000.0)
            except asyncio.CancelledError:
                return

            self._timers.pop(timer_id, None)
            await self.handle_event(ListenTimeout(
                event_type=EventType.LISTEN_TIMEOUT,
                ts_ms=now_ms(),
                service=Service.RECOGNITION,
                generation=generation,
            ))

        self._timers[timer_id] = asyncio.create_task(_timer_task())

    def _cancel_timer(self, timer_id: str) -> None:
        """Idempotent: safe when the timer does not exist or already fired."""
        task = self._timers.pop(timer_id, None)
        if task is not None and not task.done():
            task.cancel()
