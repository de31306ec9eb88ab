"""
Binary WebSocket framing for audio.

Client → Server (microphone):
    4 bytes  seq_num     (u32, little-endian)
    640 bytes PCM16 mono 16 kHz

Server → Client (synthesized speech):
    4 bytes  seq_num     (u32, little-endian)
    4 bytes  generation  (u32, little-endian)
    640 bytes PCM16 mono 16 kHz

The generation lets the browser drop frames of an utterance that was
cancelled after they were put on the wire.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Optional

from audio.frames import AudioFrame
from spec import (
    AUDIO_BYTES_PER_FRAME_PCM,
    C2S_FRAME_BYTES_TOTAL,
    C2S_SEQ_NUM_BYTES,
    S2C_FRAME_BYTES_TOTAL,
    S2C_GENERATION_BYTES,
    S2C_SEQ_NUM_BYTES,
    SEQ_NUM_MAX,
    SEQ_NUM_START,
)

_C2S_HEADER = struct.Struct("<I")
_S2C_HEADER = struct.Struct("<II")

# Header layouts must agree with the declared field widths
assert _C2S_HEADER.size == C2S_SEQ_NUM_BYTES
assert _S2C_HEADER.size == S2C_SEQ_NUM_BYTES + S2C_GENERATION_BYTES


class BinaryProtocolError(Exception):
    """A binary frame violates the framing contract and must be dropped."""


class InvalidFrameLength(BinaryProtocolError):
    """Truncated, oversized or otherwise mis-sized frame."""


class InvalidSequenceNumber(BinaryProtocolError):
    """seq_num or generation outside its valid range."""


def _check_seq(seq: int) -> None:
    if seq < SEQ_NUM_START or seq > SEQ_NUM_MAX:
        raise InvalidSequenceNumber(f"Invalid seq_num: {seq}")


def next_seq(prev: int) -> int:
    """Sequence number following prev, with u32 wraparound."""
    return SEQ_NUM_START if prev >= SEQ_NUM_MAX else prev + 1


def decode_c2s_frame(payload: bytes, *, ts_ms: int) -> AudioFrame:
    """Decode one microphone frame."""
    if len(payload) != C2S_FRAME_BYTES_TOTAL:
        raise InvalidFrameLength(
            f"C2S frame length {len(payload)} != {C2S_FRAME_BYTES_TOTAL}"
        )

    (seq,) = _C2S_HEADER.unpack_from(payload, 0)
    _check_seq(seq)

    return AudioFrame(
        sequence_num=seq,
        pcm_bytes=bytes(payload[C2S_SEQ_NUM_BYTES:]),
        ts_ms=ts_ms,
    )


def encode_s2c_frame(*, sequence_num: int, generation: int, pcm_bytes: bytes) -> bytes:
    """Encode one synthesized-speech frame."""
    _check_seq(sequence_num)

    # generation 0 means "nothing started yet" and never carries audio
    if generation < 1 or generation > SEQ_NUM_MAX:
        raise InvalidSequenceNumber(f"Invalid generation: {generation}")

    if len(pcm_bytes) != AUDIO_BYTES_PER_FRAME_PCM:
        raise InvalidFrameLength(
            f"PCM length {len(pcm_bytes)} != {AUDIO_BYTES_PER_FRAME_PCM}"
        )

    payload = _S2C_HEADER.pack(sequence_num, generation) + pcm_bytes
    assert len(payload) == S2C_FRAME_BYTES_TOTAL
    return payload


@dataclass(frozen=True)
class SeqCheckResult:
    """Outcome of a sequence continuity check."""
    gap: bool
    expected: int
    actual: int

    @property
    def gap_size(self) -> int:
        """Frames skipped (0 if no gap), wraparound aware."""
        if not self.gap:
            return 0
        if self.actual > self.expected:
            return self.actual - self.expected
        return (SEQ_NUM_MAX - self.expected + 1) + (self.actual - SEQ_NUM_START)


def check_sequence_gap(*, last_seq: Optional[int], current_seq: int) -> SeqCheckResult:
    """Pure; never raises."""
    if last_seq is None:
        return SeqCheckResult(gap=False, expected=current_seq, actual=current_seq)

    expected = next_seq(last_seq)
    return SeqCheckResult(gap=current_seq != expected, expected=expected, actual=current_seq)
