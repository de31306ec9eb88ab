"""
Recognition failure reasons.

Values mirror the reason strings browser speech recognizers report, so the
client can forward them unchanged.
"""

from __future__ import annotations

from enum import Enum


class RecognitionFailure(str, Enum):
    """Why a recognition attempt ended without a transcript."""

    NO_SPEECH = "no-speech"
    AUDIO_CAPTURE = "audio-capture"
    NOT_ALLOWED = "not-allowed"
    NETWORK = "network"
    ABORTED = "aborted"
    UNSUPPORTED = "unsupported"
