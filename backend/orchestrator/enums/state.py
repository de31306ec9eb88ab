"""
Authoritative voice state enumeration.

Rules:
- This enum defines ONLY the control-plane states.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class VoiceState(str, Enum):
    """
    Voice interaction states for a single coordinator.

    IDLE:
        Resting. Nothing is being synthesized or recognized.

    SPEAKING:
        One utterance is in flight.

    LISTENING:
        One recognition attempt is in flight.

    PROCESSING:
        A transcript was received and handed to the caller, who drives
        the next transition.
    """

    IDLE = "IDLE"
    SPEAKING = "SPEAKING"
    LISTENING = "LISTENING"
    PROCESSING = "PROCESSING"
