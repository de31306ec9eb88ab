"""
Energy-based voice activity detection and utterance endpointing.

EnergyVAD reports speech after N consecutive loud frames. Endpointer builds
on it to decide when one spoken command has finished: speech seen, then a
run of quiet frames, or a hard length cap.
"""

from __future__ import annotations

import numpy as np

from spec import (
    AUDIO_FRAME_MS,
    END_OF_UTTERANCE_SILENCE_MS,
    MAX_UTTERANCE_S,
    VAD_FRAMES_REQUIRED,
    VAD_RMS_THRESHOLD,
)


class EnergyVAD:
    """
    RMS threshold detector with consecutive-frame smoothing.

    Single-frame spikes never count as speech.
    """

    def __init__(
        self,
        threshold: float = VAD_RMS_THRESHOLD,
        frames_required: int = VAD_FRAMES_REQUIRED,
    ) -> None:
        self._threshold = threshold
        self._frames_required = frames_required
        self._count = 0

    @staticmethod
    def rms(f32: np.ndarray) -> float:
        if f32.size == 0:
            return 0.0
        return float(np.sqrt(np.mean(np.square(f32))))

    def is_loud(self, f32: np.ndarray) -> bool:
        return self.rms(f32) >= self._threshold

    def observe(self, f32: np.ndarray) -> bool:
        """
        Feed one frame; True once frames_required consecutive frames
        (including this one) were above the threshold.
        """
        if self.is_loud(f32):
            self._count += 1
        else:
            self._count = 0
        return self._count >= self._frames_required

    def reset(self) -> None:
        self._count = 0


class Endpointer:
    """
    Decides when a single utterance is complete.

    observe() returns True when the utterance should be transcribed.
    """

    def __init__(
        self,
        vad: EnergyVAD | None = None,
        *,
        silence_ms: int = END_OF_UTTERANCE_SILENCE_MS,
        max_utterance_s: float = MAX_UTTERANCE_S,
        frame_ms: int = AUDIO_FRAME_MS,
    ) -> None:
        self._vad = vad or EnergyVAD()
        self._silence_frames_needed = max(1, silence_ms // frame_ms)
        self._max_frames = int(max_utterance_s * 1000) // frame_ms
        self.speech_started = False
        self._silent_frames = 0
        self._frames = 0

    def observe(self, f32: np.ndarray) -> bool:
        self._frames += 1

        if self._vad.observe(f32):
            self.speech_started = True

        if self.speech_started:
            if self._vad.is_loud(f32):
                self._silent_frames = 0
            else:
                self._silent_frames += 1
            if self._silent_frames >= self._silence_frames_needed:
                return True

        return self.speech_started and self._frames >= self._max_frames

    def reset(self) -> None:
        self._vad.reset()
        self.speech_started = False
        self._silent_frames = 0
        self._frames = 0
