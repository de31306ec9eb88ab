# pyright: reportUnknownVariableType=false
# pyright: reportUnknownMemberType=false
# pyright: reportUnknownArgumentType=false
"""
Whisper engine wrapper.

Deliberately "dumb":
- Accepts one complete utterance as float32 samples
- Runs faster-whisper
- Returns text (+ segment timestamps)

Must NOT:
- Know about generations
- Perform endpointing
- Emit coordinator events
- Manage timers

Blocking: callers run transcribe() in a worker thread.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np


@dataclass(frozen=True)
class WhisperSegment:
    """One timestamped segment, relative to the start of the utterance."""
    start_ms: int
    end_ms: int
    text: str


@dataclass(frozen=True)
class WhisperResult:
    """Text of one utterance plus its segments (may be empty)."""
    text: str
    segments: tuple[WhisperSegment, ...] = ()


class WhisperBackendError(RuntimeError):
    """faster-whisper is unavailable, failed to load, or failed to decode."""


class WhisperEngine:
    """
    Minimal faster-whisper inference wrapper.

    Model loading happens in the constructor and is slow; build one engine
    per process and share it.
    """

    def __init__(
        self,
        *,
        model: str = "small",
        device: str | None = None,
        compute_type: str | None = None,
    ) -> None:
        try:
            from faster_whisper import WhisperModel  # type: ignore pylint: disable=import-outside-toplevel

            kwargs: dict[str, Any] = {}
            if device is not None:
                kwargs["device"] = device
            if compute_type is not None:
                kwargs["compute_type"] = compute_type

            self._backend: Any = WhisperModel(model, **kwargs)
        except Exception as e:  # pylint: disable=broad-exception-caught
            raise WhisperBackendError(f"faster-whisper unavailable: {e!r}") from e

    def transcribe(
        self,
        audio: np.ndarray,
        *,
        language: str | None = None,
        temperature: float = 0.0,
    ) -> WhisperResult:
        """
        Transcribe one utterance.

        Args:
            audio: float32 mono samples at 16 kHz.
            language: ISO 639-1 code ("hi"), or None to auto-detect.
        """
        if audio.size == 0:
            return WhisperResult(text="")

        try:
            segments_iter, _info = self._backend.transcribe(
                audio,
                language=language,
                beam_size=1,
                temperature=temperature,
                vad_filter=False,  # endpointing happens upstream
            )

            segments: list[WhisperSegment] = []
            text_parts: list[str] = []
            for seg in segments_iter:
                seg_text = str(getattr(seg, "text", "")).strip()
                if seg_text:
                    text_parts.append(seg_text)
                segments.append(WhisperSegment(
                    start_ms=int(seg.start * 1000),
                    end_ms=int(seg.end * 1000),
                    text=seg_text,
                ))
        except Exception as e:
            raise WhisperBackendError(f"Whisper transcription failed: {e!r}") from e

        return WhisperResult(text=" ".join(text_parts).strip(), segments=tuple(segments))
