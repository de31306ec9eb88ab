"""PCM conversion utilities."""

from __future__ import annotations

import io
import wave

import numpy as np

from spec import (
    AUDIO_BYTES_PER_FRAME_PCM,
    AUDIO_SAMPLE_RATE_HZ,
    AUDIO_SAMPLE_WIDTH_BYTES,
)


class WavDecodeError(ValueError):
    """The payload is not a PCM16 WAV file."""


def pcm16le_to_float32(pcm_bytes: bytes) -> np.ndarray:
    """
    Convert PCM16 little-endian mono bytes to float32 in [-1.0, 1.0).

    No resampling. No channel mixing.
    """
    if len(pcm_bytes) % 2 != 0:
        # Truncated sample; drop it
        pcm_bytes = pcm_bytes[: len(pcm_bytes) - 1]

    audio_i16 = np.frombuffer(pcm_bytes, dtype="<i2")
    return audio_i16.astype(np.float32) / 32768.0


def wav_to_pcm16(wav_bytes: bytes, *, target_rate_hz: int = AUDIO_SAMPLE_RATE_HZ) -> bytes:
    """
    Unpack a PCM16 WAV file into mono PCM16 at target_rate_hz.

    Multi-channel audio is averaged down to mono; other rates are linearly
    resampled. Anything other than 16-bit PCM raises WavDecodeError.
    """
    try:
        with wave.open(io.BytesIO(wav_bytes), "rb") as wav:
            channels = wav.getnchannels()
            sample_width = wav.getsampwidth()
            rate = wav.getframerate()
            raw = wav.readframes(wav.getnframes())
    except (wave.Error, EOFError) as exc:
        raise WavDecodeError(str(exc)) from exc

    if sample_width != AUDIO_SAMPLE_WIDTH_BYTES:
        raise WavDecodeError(f"unsupported sample width: {sample_width}")

    samples = np.frombuffer(raw, dtype="<i2").astype(np.float32)
    if channels > 1:
        samples = samples.reshape(-1, channels).mean(axis=1)

    if rate != target_rate_hz and samples.size:
        duration_s = samples.size / rate
        n_out = int(round(duration_s * target_rate_hz))
        src_t = np.arange(samples.size) / rate
        dst_t = np.arange(n_out) / target_rate_hz
        samples = np.interp(dst_t, src_t, samples)

    return np.clip(samples, -32768, 32767).astype("<i2").tobytes()


def split_frames(pcm_bytes: bytes, frame_bytes: int = AUDIO_BYTES_PER_FRAME_PCM) -> list[bytes]:
    """
    Cut PCM into fixed-size frames. The last frame is zero-padded.
    """
    frames = [pcm_bytes[i:i + frame_bytes] for i in range(0, len(pcm_bytes), frame_bytes)]
    if frames and len(frames[-1]) < frame_bytes:
        frames[-1] = frames[-1] + b"\x00" * (frame_bytes - len(frames[-1]))
    return frames


def pcm_duration_ms(pcm_bytes: bytes, rate_hz: int = AUDIO_SAMPLE_RATE_HZ) -> int:
    samples = len(pcm_bytes) // AUDIO_SAMPLE_WIDTH_BYTES
    return (samples * 1000) // rate_hz
