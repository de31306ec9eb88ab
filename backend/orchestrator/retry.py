"""
Retry policy helpers.

Purpose:
- Centralize retry rules for the two retrying paths
- Keep reducer pure
- Allow callers to make deterministic retry decisions

The speech policy (speak_and_listen) and the vision policy (scene analysis)
are deliberately independent objects with their own budgets, delays and
retryable sets.

This module contains NO timers, NO async, NO side effects.
"""
from __future__ import annotations

from dataclasses import dataclass

from orchestrator.enums.failure import RecognitionFailure

from spec import (
    SPEAK_LISTEN_RETRIES,
    SPEECH_RETRYABLE_REASONS,
    VISION_BACKOFF_BASE_S,
    VISION_NON_RETRYABLE_STATUSES,
    VISION_RETRIES,
)


# =============================================================================
# Retry State
# =============================================================================

@dataclass(frozen=True)
class RetryAttempt:
    """
    Immutable retry attempt counter.

    Semantics:
    - attempt == 0 represents the initial attempt (no retry yet).
    - attempt >= 1 represents the Nth retry attempt.
    """
    attempt: int


def next_attempt(current: RetryAttempt) -> RetryAttempt:
    """Return a new RetryAttempt with attempt incremented by 1."""
    return RetryAttempt(attempt=current.attempt + 1)


def reset_attempt() -> RetryAttempt:
    """Returns a fresh retry attempt counter."""
    return RetryAttempt(attempt=0)


# =============================================================================
# Speech policy
# =============================================================================

@dataclass(frozen=True)
class SpeechRetryPolicy:
    """
    Policy for speak_and_listen().

    max_retries excludes the initial attempt. No delay between cycles:
    the re-spoken prompt already paces the user.
    """
    max_retries: int = SPEAK_LISTEN_RETRIES
    retryable: frozenset[RecognitionFailure] = frozenset(
        RecognitionFailure(reason) for reason in SPEECH_RETRYABLE_REASONS
    )

    def should_retry(self, *, reason: RecognitionFailure, attempt: RetryAttempt) -> bool:
        """
        Returns True if another speak+listen cycle is allowed.

        attempt = number of retries already performed
        """
        return reason in self.retryable and attempt.attempt < self.max_retries


# =============================================================================
# Vision policy
# =============================================================================

@dataclass(frozen=True)
class VisionRetryPolicy:
    """
    Policy for scene analysis requests.

    Linear backoff: delay before retry N is base_delay_s * N.
    """
    max_retries: int = VISION_RETRIES
    base_delay_s: float = VISION_BACKOFF_BASE_S
    non_retryable_statuses: frozenset[int] = frozenset(VISION_NON_RETRYABLE_STATUSES)

    def should_retry(self, *, status: int | None, attempt: RetryAttempt) -> bool:
        """
        Returns True if the request may be re-attempted.

        status is None for transport failures (timeout, connection reset).
        """
        if status is not None and status in self.non_retryable_statuses:
            return False
        return attempt.attempt < self.max_retries

    def delay_s(self, attempt: RetryAttempt) -> float:
        """
        Delay before the retry that follows `attempt`.

        attempt.attempt == 0 (first failure) -> 1 * base, then 2 * base...
        """
        return self.base_delay_s * (attempt.attempt + 1)
