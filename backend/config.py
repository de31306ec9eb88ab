"""
Application configuration.

Responsibilities:
- Read environment variables once at process startup
- Provide a typed, immutable config object

Non-responsibilities:
- No behavioral constants (see spec.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Passed downward to the app factory, the gateway and session bootstrap.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str = "dev"
    log_level: str = "INFO"
    enable_json_logs: bool = True

    # ------------------------------------------------------------------
    # Vision (provider credential stays server-side)
    # ------------------------------------------------------------------

    gemini_api_key: str | None = None
    vision_model: str = "gemini-2.0-flash"
    vision_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    vision_proxy_url: str = "http://127.0.0.1:8000/api/vision"

    # ------------------------------------------------------------------
    # TTS
    # ------------------------------------------------------------------

    sarvam_api_key: str | None = None
    sarvam_speaker: str = "anushka"
    sarvam_model: str = "bulbul:v2"
    tts_fallback_provider: str = "speechmatics"
    speechmatics_api_key: str | None = None
    speechmatics_voice: str = "sarah"
    elevenlabs_api_key: str | None = None
    elevenlabs_voice_id: str = "21m00Tcm4TlvDq8ikWAM"
    elevenlabs_model_id: str = "eleven_multilingual_v2"

    # ------------------------------------------------------------------
    # Recognition
    # ------------------------------------------------------------------

    whisper_model: str = "small"
    whisper_device: str = "cpu"

    # ------------------------------------------------------------------
    # Assistant
    # ------------------------------------------------------------------

    preferences_path: str = "preferences.json"
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """Load configuration from environment variables."""
        defaults = AppConfig()
        return AppConfig(
            env=os.environ.get("ENV", defaults.env),
            log_level=os.environ.get("LOG_LEVEL", defaults.log_level),
            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",

            gemini_api_key=os.environ.get("GEMINI_API_KEY"),
            vision_model=os.environ.get("VISION_MODEL", defaults.vision_model),
            vision_base_url=os.environ.get("VISION_BASE_URL", defaults.vision_base_url),
            vision_proxy_url=os.environ.get("VISION_PROXY_URL", defaults.vision_proxy_url),

            sarvam_api_key=os.environ.get("SARVAM_API_KEY"),
            sarvam_speaker=os.environ.get("SARVAM_SPEAKER", defaults.sarvam_speaker),
            sarvam_model=os.environ.get("SARVAM_MODEL", defaults.sarvam_model),
            tts_fallback_provider=os.environ.get(
                "TTS_FALLBACK_PROVIDER", defaults.tts_fallback_provider
            ),
            speechmatics_api_key=os.environ.get("SPEECHMATICS_API_KEY"),
            speechmatics_voice=os.environ.get("SPEECHMATICS_VOICE", defaults.speechmatics_voice),
            elevenlabs_api_key=os.environ.get("ELEVENLABS_API_KEY"),
            elevenlabs_voice_id=os.environ.get("ELEVENLABS_VOICE_ID", defaults.elevenlabs_voice_id),
            elevenlabs_model_id=os.environ.get("ELEVENLABS_MODEL_ID", defaults.elevenlabs_model_id),

            whisper_model=os.environ.get("WHISPER_MODEL", defaults.whisper_model),
            whisper_device=os.environ.get("WHISPER_DEVICE", defaults.whisper_device),

            preferences_path=os.environ.get("PREFERENCES_PATH", defaults.preferences_path),
            emergency_contact_name=os.environ.get("EMERGENCY_CONTACT_NAME"),
            emergency_contact_phone=os.environ.get("EMERGENCY_CONTACT_PHONE"),
        )
