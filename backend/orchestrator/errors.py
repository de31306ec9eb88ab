"""
Caller-visible coordinator failures.

Every externally caused failure degrades the coordinator to IDLE and
surfaces here with a reason. Only RecognitionUnsupported is permanent.
"""

from __future__ import annotations

from orchestrator.enums.failure import RecognitionFailure


class VoiceError(Exception):
    """Base class for coordinator failures."""


class RecognitionError(VoiceError):
    """A recognition attempt ended without a transcript."""

    def __init__(self, reason: RecognitionFailure) -> None:
        super().__init__(reason.value)
        self.reason = reason


class RecognitionUnsupported(RecognitionError):
    """
    The runtime cannot recognize speech at all.

    Callers must disable voice features; this is never retried.
    """

    def __init__(self) -> None:
        super().__init__(RecognitionFailure.UNSUPPORTED)


class RetriesExhausted(RecognitionError):
    """speak_and_listen() used its whole retry budget."""

    def __init__(self, reason: RecognitionFailure, attempts: int) -> None:
        super().__init__(reason)
        self.attempts = attempts

    def __str__(self) -> str:
        return f"{self.reason.value} after {self.attempts} attempts"
