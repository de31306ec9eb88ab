"""
Voice session container.

- Owns the coordinator and the adapters wired into it
- Holds the latest client-reported inputs (camera still, location, text fields)
- Owns the outbound queue the WebSocket sender drains
- Owned and mutated by SessionGateway
- NOT a state machine; contains no orchestration logic
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from adapters.asr.recognizer import WhisperRecognizer
from adapters.tts.fallback import FallbackTTSAdapter
from assistant.features import AssistantFeatures
from audio.queues import AudioFrameQueue
from language.catalog import Language, default_language
from orchestrator.coordinator import SpeechCoordinator
from orchestrator.gesture import TwoTapGesture
from services.routing import LatLon
from session.remote_io import RemoteAudioSink, RemoteMicrophone

from spec import INGEST_AUDIO_Q_MAX_S


# JSON control message or encoded binary audio frame
Outbound = Union[dict[str, Any], bytes]


class ConnectionStatus(Enum):
    """WebSocket lifecycle, tracked apart from the coordinator's VoiceState."""
    DOWN = "DOWN"
    UP = "UP"


@dataclass
class VoiceSession:
    """Mutable runtime container for a single client connection."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    session_id: str
    created_at: float = field(default_factory=time.time)
    connection_status: ConnectionStatus = ConnectionStatus.DOWN

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    language: Language = field(default_factory=default_language)
    voice_enabled: bool = True

    # ------------------------------------------------------------------
    # Orchestration (attached by the gateway during bootstrap)
    # ------------------------------------------------------------------

    coordinator: SpeechCoordinator | None = None
    features: AssistantFeatures | None = None
    controls: dict[str, TwoTapGesture] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # Adapters
    # ------------------------------------------------------------------

    tts_adapter: FallbackTTSAdapter | None = None
    recognizer: WhisperRecognizer | None = None
    audio_sink: RemoteAudioSink | None = None
    microphone: RemoteMicrophone | None = None

    # ------------------------------------------------------------------
    # Client inputs
    # ------------------------------------------------------------------

    mic_frames: AudioFrameQueue = field(
        default_factory=lambda: AudioFrameQueue(max_depth_s=INGEST_AUDIO_Q_MAX_S)
    )
    last_mic_seq: int | None = None
    camera_frame: str | None = None
    location: LatLon | None = None
    destination: str = ""
    target_object: str = ""

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    outbound: asyncio.Queue[Outbound] = field(default_factory=asyncio.Queue)

    def enqueue_control(self, msg: dict[str, Any]) -> None:
        """Queue a JSON message for the client, FIFO with audio frames."""
        self.outbound.put_nowait(msg)

    def enqueue_audio(self, frame: bytes) -> None:
        """Queue one encoded S2C audio frame."""
        self.outbound.put_nowait(frame)

    # ------------------------------------------------------------------
    # Client input accessors (handed to features as callables)
    # ------------------------------------------------------------------

    def current_frame(self) -> str | None:
        return self.camera_frame

    def current_location(self) -> LatLon | None:
        return self.location

    # ------------------------------------------------------------------
    # Observability helpers (read-only)
    # ------------------------------------------------------------------

    def log_context(self) -> dict[str, Any]:
        """Standard logging context for this session."""
        return {
            "session_id": self.session_id,
            "connection_status": self.connection_status.value,
            "language": self.language.code,
            "voice_enabled": self.voice_enabled,
        }
