"""
Session gateway.

Responsibilities:
- Owns VoiceSession lifecycle (bootstrap on connect, teardown on disconnect)
- Wires coordinator, adapters, features and accessible controls together
- Routes inbound JSON control messages -> session actions
- Routes inbound binary mic frames -> recognizer frame queue
- Detects sequence gaps and logs them
- Runs feature scripts as background tasks so the receive loop never blocks
- Publishes VOICE_STATE on every coordinator state change

NOT responsible for:
- Transition decisions (reducer)
- Speech / listen semantics (coordinator)
- Socket I/O (the route drains session.outbound)
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable, TYPE_CHECKING
from uuid import uuid4

from adapters.asr.recognizer import WhisperRecognizer
from adapters.tts.fallback import FallbackTTSAdapter
from assistant.features import AssistantFeatures
from language.catalog import resolve_language
from language.preferences import PreferenceStore, is_valid_client_id
from orchestrator.coordinator import SpeechCoordinator
from orchestrator.enums.state import VoiceState
from orchestrator.errors import RecognitionUnsupported
from orchestrator.gesture import TwoTapGesture
from orchestrator.runtime_context import CoordinatorContext
from protocol.binary import BinaryProtocolError, check_sequence_gap, decode_c2s_frame
from session.bootstrap import ServicesFactory, SessionServices, build_services
from session.remote_io import RemoteAudioSink, RemoteMicrophone
from session.voice_session import ConnectionStatus, VoiceSession

from observability.logger import log_event, now_ms

from spec import (
    AUDIO_CHANNELS,
    AUDIO_FRAME_MS,
    AUDIO_SAMPLE_RATE_HZ,
    AUDIO_SAMPLE_WIDTH_BYTES,
    PHRASE_EMERGENCY_OPENED,
    PHRASE_FIND_OPENED,
    PHRASE_GREETING,
    PHRASE_NAVIGATE_OPENED,
    PHRASE_VOICE_DISABLED,
    PHRASE_VOICE_GUIDE_OPENED,
    STATUS_STOPPED,
)

if TYPE_CHECKING:
    from config import AppConfig


# Controls that stay disabled while a vision request is in flight
_VISION_CONTROLS = ("Describe Scene", "Currency", "Scan Now")

# Controls that need speech recognition
_VOICE_CONTROLS = ("Start",)


def _new_session_id() -> str:
    return f"sess_{uuid4().hex[:12]}"


class SessionGateway:
    """One gateway == one WebSocket connection == one voice session."""

    def __init__(
        self,
        *,
        config: AppConfig,
        services_factory: ServicesFactory = build_services,
    ) -> None:
        self._config = config
        self._services_factory = services_factory
        self.session: VoiceSession | None = None
        self._feature_task: asyncio.Task[None] | None = None
        self._busy_task: asyncio.Task[Any] | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def on_ws_connect(self, client_id: str | None = None) -> VoiceSession:
        """
        Build the session, queue SESSION_INIT and start the greeting.

        client_id identifies the browser across reconnects; without a valid
        one the session runs with the default language and nothing is saved.
        """
        session_id = _new_session_id()
        services = self._services_factory(self._config, session_id)

        preferences = self._preference_store(services, client_id, session_id)
        language = preferences.load_language() if preferences is not None else None
        session = VoiceSession(session_id=session_id)
        if language is not None:
            session.language = language
        session.connection_status = ConnectionStatus.UP
        self.session = session

        coordinator = SpeechCoordinator(
            language_code=session.language.code,
            context=CoordinatorContext(session_id=session_id),
            on_state_change=self._publish_voice_state,
        )
        session.coordinator = coordinator

        # Adapters report back into the coordinator, so they come second
        session.audio_sink = RemoteAudioSink(
            send_control=session.enqueue_control,
            send_audio=session.enqueue_audio,
            session_id=session_id,
        )
        session.microphone = RemoteMicrophone(
            send_control=session.enqueue_control,
            session_id=session_id,
        )
        session.tts_adapter = FallbackTTSAdapter(
            emit_event=coordinator.handle_event,
            primary=services.primary_tts,
            fallback=services.fallback_tts,
            sink=session.audio_sink,
            session_id=session_id,
        )
        session.recognizer = WhisperRecognizer(
            emit_event=coordinator.handle_event,
            frames=session.mic_frames,
            load_engine=services.load_engine,
            session_id=session_id,
        )
        coordinator.context.tts_adapter = session.tts_adapter
        coordinator.context.recognizer = session.recognizer
        coordinator.context.microphone = session.microphone

        session.features = AssistantFeatures(
            coordinator=coordinator,
            vision=services.vision,
            routing=services.routing,
            camera=session.current_frame,
            location=session.current_location,
            publish=session.enqueue_control,
            language=session.language,
            preferences=preferences,
            emergency=services.emergency,
            session_id=session_id,
        )
        session.controls = self._build_controls(session)

        session.enqueue_control({
            "type": "SESSION_INIT",
            "session_id": session_id,
            "language": {"name": session.language.name, "code": session.language.code},
            "controls": list(session.controls),
            "audio_format": {
                "sample_rate": AUDIO_SAMPLE_RATE_HZ,
                "sample_width": AUDIO_SAMPLE_WIDTH_BYTES,
                "channels": AUDIO_CHANNELS,
                "frame_duration_ms": AUDIO_FRAME_MS,
            },
        })

        log_event({"event_type": "SESSION_STARTED", **session.log_context()})

        self._spawn(self._say(PHRASE_GREETING))
        return session

    async def on_ws_disconnect(self, reason: str | None = None) -> None:
        """Tear everything down. Safe to call more than once."""
        session = self.session
        if session is None:
            log_event({
                "event_type": "WS_DISCONNECT_WITHOUT_SESSION",
                "reason": reason,
            })
            return
        if session.connection_status is ConnectionStatus.DOWN:
            return
        session.connection_status = ConnectionStatus.DOWN

        for control in session.controls.values():
            control.reset()

        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if session.coordinator is not None:
            await session.coordinator.shutdown()
        if session.recognizer is not None:
            session.recognizer.force_reset()
        if session.microphone is not None:
            session.microphone.close()
        if session.audio_sink is not None:
            session.audio_sink.close()
        if session.tts_adapter is not None:
            await session.tts_adapter.aclose()

        log_event({
            "event_type": "SESSION_ENDED",
            "reason": reason,
            "mic_frames": session.mic_frames.snapshot(),
            **session.log_context(),
        })

    # ------------------------------------------------------------------
    # Inbound JSON
    # ------------------------------------------------------------------

    async def on_json_message(self, payload: str) -> None:
        """Route one client control message."""
        session = self.session
        if session is None:
            log_event({
                "event_type": "MESSAGE_WITHOUT_SESSION",
                "payload_preview": payload[:100],
            })
            return

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            log_event({
                "event_type": "JSON_DECODE_ERROR",
                "session_id": session.session_id,
                "error": str(e),
                "payload_preview": payload[:100],
            })
            return

        if not isinstance(data, dict):
            data = {}
        msg_type = data.get("type")

        if msg_type == "TAP":
            self._on_tap(session, data)

        elif msg_type == "MIC_PERMISSION":
            assert session.microphone is not None
            session.microphone.answer(bool(data.get("granted")))

        elif msg_type == "PLAYBACK_DONE":
            assert session.audio_sink is not None
            generation = data.get("generation")
            if isinstance(generation, int):
                session.audio_sink.playback_done(generation)

        elif msg_type == "CAMERA_FRAME":
            image = data.get("image")
            session.camera_frame = image if isinstance(image, str) and image else None

        elif msg_type == "CAMERA_ERROR":
            session.camera_frame = None
            log_event({
                "event_type": "CAMERA_ERROR",
                "session_id": session.session_id,
                "message": data.get("message"),
            })

        elif msg_type == "LOCATION":
            try:
                session.location = (float(data["lat"]), float(data["lon"]))
            except (KeyError, TypeError, ValueError):
                session.location = None

        elif msg_type == "SET_LANGUAGE":
            language = resolve_language(str(data.get("language", "")))
            if language is None:
                log_event({
                    "event_type": "UNKNOWN_LANGUAGE",
                    "session_id": session.session_id,
                    "language": data.get("language"),
                })
                return
            features = session.features
            assert features is not None
            self._start_feature(lambda: features.select_language(language))

        elif msg_type == "STOP":
            await self._stop(session)

        else:
            log_event({
                "event_type": "UNKNOWN_MESSAGE_TYPE",
                "msg_type": msg_type,
                "session_id": session.session_id,
            })

    def _on_tap(self, session: VoiceSession, data: dict[str, Any]) -> None:
        label = data.get("control")
        control = session.controls.get(label) if isinstance(label, str) else None
        if control is None:
            log_event({
                "event_type": "UNKNOWN_CONTROL",
                "session_id": session.session_id,
                "control": label,
            })
            return

        # Text fields travel with the tap on the screen that owns them
        text = data.get("text")
        if isinstance(text, str):
            if label == "Start Navigation":
                session.destination = text
            elif label == "Scan Now":
                session.target_object = text

        control.tap()

    async def _stop(self, session: VoiceSession) -> None:
        assert session.coordinator is not None
        if self._feature_task is not None and not self._feature_task.done():
            self._feature_task.cancel()
        await session.coordinator.stop_speaking()
        await session.coordinator.stop_listening()
        session.enqueue_control({"type": "STATUS", "text": STATUS_STOPPED})

    # ------------------------------------------------------------------
    # Inbound binary
    # ------------------------------------------------------------------

    async def on_binary_message(self, payload: bytes) -> None:
        """Decode one mic frame and queue it for the recognizer."""
        session = self.session
        if session is None:
            log_event({
                "event_type": "BINARY_WITHOUT_SESSION",
                "payload_len": len(payload),
            })
            return

        try:
            frame = decode_c2s_frame(payload, ts_ms=now_ms())
        except BinaryProtocolError as e:
            log_event({
                "event_type": "BINARY_DECODE_ERROR",
                "session_id": session.session_id,
                "error": str(e),
                "payload_len": len(payload),
            })
            return

        gap_result = check_sequence_gap(
            last_seq=session.last_mic_seq,
            current_seq=frame.sequence_num,
        )
        if gap_result.gap:
            log_event({
                "event_type": "SEQ_GAP_DETECTED",
                "session_id": session.session_id,
                "expected": gap_result.expected,
                "actual": gap_result.actual,
                "gap_size": gap_result.gap_size,
            })
        session.last_mic_seq = frame.sequence_num

        if not session.mic_frames.enqueue(frame):
            log_event({
                "event_type": "AUDIO_FRAME_DROPPED",
                "session_id": session.session_id,
                "seq_num": frame.sequence_num,
                **session.mic_frames.snapshot(),
            })

    @staticmethod
    def _preference_store(
        services: SessionServices,
        client_id: str | None,
        session_id: str,
    ) -> PreferenceStore | None:
        if services.preferences_path is None:
            return None
        if not is_valid_client_id(client_id):
            log_event({
                "event_type": "PREFERENCES_DISABLED",
                "session_id": session_id,
                "reason": "missing_client_id" if client_id is None else "invalid_client_id",
            })
            return None
        assert client_id is not None
        return PreferenceStore(services.preferences_path, client_id=client_id)

    # ------------------------------------------------------------------
    # Accessible controls
    # ------------------------------------------------------------------

    def _build_controls(self, session: VoiceSession) -> dict[str, TwoTapGesture]:
        features = session.features
        assert features is not None

        def page_then(page: str, phrase: str) -> Callable[[], Awaitable[None]]:
            async def _run() -> None:
                session.enqueue_control({"type": "PAGE", "page": page})
                await self._say(phrase)
            return _run

        async def open_emergency() -> None:
            session.enqueue_control({"type": "PAGE", "page": "emergency"})
            await self._say(PHRASE_EMERGENCY_OPENED)
            await features.emergency_info()

        async def describe() -> None:
            session.enqueue_control({"type": "PAGE", "page": "describe"})
            await features.describe_scene()

        async def currency() -> None:
            session.enqueue_control({"type": "PAGE", "page": "currency"})
            await features.identify_currency()

        actions: dict[str, Callable[[], Awaitable[Any]]] = {
            "Navigate": page_then("navigate", PHRASE_NAVIGATE_OPENED),
            "Find Object": page_then("find", PHRASE_FIND_OPENED),
            "Describe Scene": describe,
            "Currency": currency,
            "Language": features.cycle_language,
            "Voice Guide": page_then("voice-guide", PHRASE_VOICE_GUIDE_OPENED),
            "Emergency Info": open_emergency,
            "Start Navigation": lambda: features.navigate(session.destination),
            "Scan Now": lambda: features.find_object(session.target_object),
            "Start": features.voice_guide,
        }

        controls: dict[str, TwoTapGesture] = {}
        for label, action in actions.items():
            controls[label] = TwoTapGesture(
                label,
                on_announce=lambda text: self._spawn(self._say(text)),
                on_activate=lambda action=action, label=label: self._start_feature(
                    action, busy=label in _VISION_CONTROLS
                ),
            )
        return controls

    # ------------------------------------------------------------------
    # Feature tasks
    # ------------------------------------------------------------------

    def _start_feature(self, action: Callable[[], Awaitable[Any]], *, busy: bool = False) -> None:
        """Run a feature script; a newer activation replaces the running one."""
        if self._feature_task is not None and not self._feature_task.done():
            self._feature_task.cancel()
        task = self._spawn(self._run_feature(action, busy=busy))
        self._feature_task = task

    async def _run_feature(self, action: Callable[[], Awaitable[Any]], *, busy: bool) -> None:
        session = self.session
        assert session is not None

        if busy:
            self._busy_task = asyncio.current_task()
            self._set_enabled(_VISION_CONTROLS, False)
        try:
            await action()
        except RecognitionUnsupported:
            await self._disable_voice(session)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "FEATURE_ERROR",
                "session_id": session.session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
        finally:
            # A newer vision feature keeps the controls disabled
            if busy and self._busy_task is asyncio.current_task():
                self._busy_task = None
                self._set_enabled(_VISION_CONTROLS, True)
            if session.features is not None:
                session.language = session.features.language

    async def _disable_voice(self, session: VoiceSession) -> None:
        """Recognition cannot run here; turn voice features off for good."""
        if not session.voice_enabled:
            return
        session.voice_enabled = False
        self._set_enabled(_VOICE_CONTROLS, False)
        log_event({"event_type": "VOICE_FEATURES_DISABLED", **session.log_context()})
        session.enqueue_control({"type": "VOICE_DISABLED"})
        await self._say(PHRASE_VOICE_DISABLED)

    def _set_enabled(self, labels: tuple[str, ...], enabled: bool) -> None:
        session = self.session
        assert session is not None
        for label in labels:
            control = session.controls.get(label)
            if control is None:
                continue
            # Voice controls never come back once recognition is unsupported
            if enabled and label in _VOICE_CONTROLS and not session.voice_enabled:
                continue
            control.enabled = enabled
            if not enabled:
                control.reset()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _say(self, text: str) -> None:
        session = self.session
        assert session is not None and session.coordinator is not None
        await session.coordinator.speak(text)

    def _publish_voice_state(self, state: VoiceState) -> None:
        if self.session is not None:
            self.session.enqueue_control({"type": "VOICE_STATE", "state": state.value})

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task[None]:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
