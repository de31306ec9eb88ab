"""
SPEC-AS-CONSTANTS
-----------------
Single source of truth for all behavioral invariants in the system.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Audio Format (PCM16 mono @ 16kHz, 20ms frames)
# =============================================================================

AUDIO_SAMPLE_RATE_HZ: Final[int] = 16_000
AUDIO_CHANNELS: Final[int] = 1
AUDIO_SAMPLE_WIDTH_BYTES: Final[int] = 2  # PCM16 (signed 16-bit)
AUDIO_FRAME_MS: Final[int] = 20

AUDIO_SAMPLES_PER_FRAME: Final[int] = (AUDIO_SAMPLE_RATE_HZ * AUDIO_FRAME_MS) // 1000
AUDIO_BYTES_PER_FRAME_PCM: Final[int] = AUDIO_SAMPLES_PER_FRAME * AUDIO_SAMPLE_WIDTH_BYTES
AUDIO_FRAME_DURATION_S: Final[float] = AUDIO_FRAME_MS / 1000.0

# =============================================================================
# Binary WebSocket Frame Formats
# =============================================================================
# Client → Server (mic audio): 4B seq_num + PCM frame
C2S_SEQ_NUM_BYTES: Final[int] = 4
C2S_FRAME_BYTES_TOTAL: Final[int] = C2S_SEQ_NUM_BYTES + AUDIO_BYTES_PER_FRAME_PCM

# Server → Client (TTS audio): 4B seq_num + 4B generation + PCM frame
S2C_SEQ_NUM_BYTES: Final[int] = 4
S2C_GENERATION_BYTES: Final[int] = 4
S2C_FRAME_BYTES_TOTAL: Final[int] = (
    S2C_SEQ_NUM_BYTES + S2C_GENERATION_BYTES + AUDIO_BYTES_PER_FRAME_PCM
)

SEQ_NUM_START: Final[int] = 1
SEQ_NUM_MAX: Final[int] = 2**32 - 1  # u32 wraparound

# =============================================================================
# Speech Interaction Coordinator
# =============================================================================

# No-speech deadline for a single recognition attempt
LISTEN_TIMEOUT_MS: Final[int] = 5_000

# speak_and_listen(): additional attempts after the first (3 cycles total)
SPEAK_LISTEN_RETRIES: Final[int] = 2

# Recognition failures that speak_and_listen() re-attempts
SPEECH_RETRYABLE_REASONS: Final[Tuple[str, ...]] = (
    "no-speech",
    "network",
    "not-allowed",
)

# Calm, slightly slower speaking rate
TTS_SPEAKING_RATE: Final[float] = 0.9

# Read size for streamed provider audio
PROVIDER_CHUNK_SIZE: Final[int] = 4096

# Playback completion slack on top of the rendered audio duration
PLAYBACK_DONE_SLACK_MS: Final[int] = 2_000

# =============================================================================
# Recognition endpointing
# =============================================================================

VAD_RMS_THRESHOLD: Final[float] = 0.02
VAD_FRAMES_REQUIRED: Final[int] = 3

# Trailing silence that closes an utterance once speech has started
END_OF_UTTERANCE_SILENCE_MS: Final[int] = 800

# Hard cap on a single utterance
MAX_UTTERANCE_S: Final[float] = 15.0

INGEST_AUDIO_Q_MAX_S: Final[float] = 10.0

# =============================================================================
# Two-tap gesture
# =============================================================================

GESTURE_WINDOW_MS: Final[int] = 1_500

# =============================================================================
# Vision analysis
# =============================================================================

VISION_RETRIES: Final[int] = 2
VISION_BACKOFF_BASE_S: Final[float] = 1.0
VISION_REQUEST_TIMEOUT_S: Final[float] = 10.0
VISION_NON_RETRYABLE_STATUSES: Final[Tuple[int, ...]] = (401,)

VISION_TEMPERATURE: Final[float] = 0.4
VISION_MAX_IMAGE_BYTES: Final[int] = 50 * 1024 * 1024

VISION_SYSTEM_INSTRUCTION: Final[str] = (
    "You are an AI assistant for a visually impaired user. Keep your responses "
    "extremely concise, calm, and clear. Use short sentences. Prioritize safety "
    "and immediate obstacles."
)
PROMPT_DESCRIBE_SCENE: Final[str] = (
    "Describe the surroundings concisely for a blind person. Mention any immediate "
    "obstacles or people. Keep it under 3 sentences."
)
PROMPT_IDENTIFY_CURRENCY: Final[str] = (
    "Identify the Indian currency note in this image. State only the denomination. "
    "If unclear, say 'Currency not clear. Please hold steady.'"
)
PROMPT_FIND_OBJECT: Final[str] = (
    "Find the {name} in this image. Tell me where it is (left, right, center) and "
    "approximate distance. Provide hand guidance like 'Move hand right'. If not "
    "found, say so. Keep it very short."
)

# =============================================================================
# Routing
# =============================================================================

ROUTING_REQUEST_TIMEOUT_S: Final[float] = 10.0

# =============================================================================
# Fixed phrases
# =============================================================================

PHRASE_GREETING: Final[str] = (
    "Assistive Vision is ready. Single tap to hear a button. Double tap to activate."
)
PHRASE_MIC_PERMISSION: Final[str] = "Microphone permission required."
PHRASE_COMMAND_NOT_RECOGNIZED: Final[str] = "Command not recognized. Please try again."
PHRASE_COULD_NOT_HEAR: Final[str] = "Could not hear command."
PHRASE_CAMERA_UNAVAILABLE: Final[str] = "Camera unavailable."
PHRASE_SERVICE_UNAVAILABLE: Final[str] = "Service unavailable. Please try again."
PHRASE_VOICE_DISABLED: Final[str] = (
    "Voice commands are not supported on this device. Use double tap instead."
)

# Vision user-facing failures
VISION_MSG_INVALID_KEY: Final[str] = "Vision API key invalid."
VISION_MSG_KEY_MISSING: Final[str] = "Vision API key invalid or missing."
VISION_MSG_RATE_LIMIT: Final[str] = "Vision service rate limit exceeded."
VISION_MSG_UNAVAILABLE: Final[str] = "Vision service temporarily unavailable."
VISION_MSG_NETWORK: Final[str] = "Network connection issue."
VISION_MSG_TIMEOUT: Final[str] = "Network connection issue. Request timed out."
VISION_MSG_EMPTY: Final[str] = "I couldn't analyze the scene."
VISION_MSG_BAD_REQUEST: Final[str] = "Image and prompt are required."
VISION_MSG_IMAGE_TOO_LARGE: Final[str] = "Image is too large."

# =============================================================================
# Preferences
# =============================================================================

LANGUAGE_PREFERENCE_KEY: Final[str] = "assistive_vision.language"
DEFAULT_LANGUAGE_NAME: Final[str] = "English"

# Voice language menu: options 1..N per page, 0 = next page
LANGUAGE_MENU_PAGE_SIZE: Final[int] = 5

# Unrecognized answers tolerated per menu page before giving up
LANGUAGE_MENU_MAX_REPROMPTS: Final[int] = 2

# =============================================================================
# Assistant phrases
# =============================================================================

PHRASE_VOICE_GUIDE_PROMPT: Final[str] = "Voice guide active. What would you like to do?"
PHRASE_ANALYZING_SCENE: Final[str] = "Analyzing surroundings."
PHRASE_ANALYZING_CURRENCY: Final[str] = "Analyzing currency."
PHRASE_OPENING_LANGUAGE: Final[str] = "Opening language settings."
PHRASE_OPENING_EMERGENCY: Final[str] = "Opening emergency information."
PHRASE_MENU_REPEAT: Final[str] = "Please say one of the numbers."
PHRASE_LOCATION_UNAVAILABLE: Final[str] = "Location unavailable."

# =============================================================================
# Session controls
# =============================================================================

# How long a MIC_REQUEST waits for the client's MIC_PERMISSION answer
MIC_PERMISSION_TIMEOUT_S: Final[float] = 30.0

PHRASE_NAVIGATE_OPENED: Final[str] = "Navigation opened. Where to?"
PHRASE_FIND_OPENED: Final[str] = "Find object opened. What are you looking for?"
PHRASE_VOICE_GUIDE_OPENED: Final[str] = "Voice Guide opened. Double tap Start to begin."
PHRASE_EMERGENCY_OPENED: Final[str] = "Emergency information opened."
STATUS_STOPPED: Final[str] = "Stopped listening."
