"""
Audio frame primitives.

Pure data containers only.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AudioFrame:
    """
    One 20 ms PCM16 mono frame, in either direction.

    sequence_num:
        Monotonic per-direction sequence number, used for gap detection.

    pcm_bytes:
        Raw PCM16 little-endian audio; spec.AUDIO_BYTES_PER_FRAME_PCM long
        except possibly the last frame of an utterance.

    ts_ms:
        Wall-clock receive/produce time. Observability only.

    generation:
        0 for microphone frames, else the coordinator generation of the
        utterance the frame belongs to.
    """
    sequence_num: int
    pcm_bytes: bytes
    ts_ms: int
    generation: int = 0
