"""
Per-session service construction.

Turns AppConfig into the concrete providers and clients one session needs.
The gateway takes the factory as a dependency so tests can hand in fakes
without touching the network or loading a Whisper model.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable

from adapters.asr.whisper_adapter import WhisperEngine
from adapters.tts.base import TTSProvider
from adapters.tts.elevenlabs_adapter import ElevenLabsTTSAdapter
from adapters.tts.sarvam import SarvamTTSAdapter
from adapters.tts.speechmatics import SpeechmaticsTTSAdapter
from assistant.features import EmergencyContact
from config import AppConfig
from services.routing import RoutingClient
from services.vision_client import VisionClient


@dataclass
class SessionServices:
    """Everything external a session talks to."""

    primary_tts: TTSProvider
    fallback_tts: TTSProvider | None
    load_engine: Callable[[], WhisperEngine]
    vision: VisionClient
    routing: RoutingClient
    # Where per-client language choices live; None disables persistence
    preferences_path: str | None = None
    emergency: EmergencyContact = EmergencyContact()


ServicesFactory = Callable[[AppConfig, str], SessionServices]


@lru_cache(maxsize=2)
def _shared_engine(model: str, device: str) -> WhisperEngine:
    # One model per process; loading takes seconds
    return WhisperEngine(model=model, device=device)


def build_fallback_tts(config: AppConfig) -> TTSProvider | None:
    """Alternate synthesis path selected by TTS_FALLBACK_PROVIDER."""
    provider = config.tts_fallback_provider.lower()
    if provider == "speechmatics":
        return SpeechmaticsTTSAdapter(
            api_key=config.speechmatics_api_key,
            voice=config.speechmatics_voice,
        )
    if provider == "elevenlabs":
        return ElevenLabsTTSAdapter(
            api_key=config.elevenlabs_api_key,
            voice_id=config.elevenlabs_voice_id,
            model_id=config.elevenlabs_model_id,
        )
    if provider == "none":
        return None
    raise RuntimeError(f"Unknown TTS_FALLBACK_PROVIDER: {config.tts_fallback_provider}")


def build_services(config: AppConfig, session_id: str) -> SessionServices:
    return SessionServices(
        primary_tts=SarvamTTSAdapter(
            api_key=config.sarvam_api_key,
            speaker=config.sarvam_speaker,
            model=config.sarvam_model,
        ),
        fallback_tts=build_fallback_tts(config),
        load_engine=lambda: _shared_engine(config.whisper_model, config.whisper_device),
        vision=VisionClient(url=config.vision_proxy_url, session_id=session_id),
        routing=RoutingClient(),
        preferences_path=config.preferences_path,
        emergency=EmergencyContact(
            name=config.emergency_contact_name,
            phone=config.emergency_contact_phone,
        ),
    )
