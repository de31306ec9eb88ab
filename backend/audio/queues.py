"""
Bounded microphone frame queue with depth measured in seconds.

Rules:
- Depth is measured in seconds, not frame count
- When full, the OLDEST frame is dropped so recognition hears recent audio
- Drops are counted, never silent
- Synchronous; readers are woken through an asyncio.Event
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque, Optional

from audio.frames import AudioFrame
from spec import AUDIO_FRAME_DURATION_S


class AudioFrameQueue:
    """Bounded FIFO of AudioFrame objects."""

    def __init__(self, *, max_depth_s: float) -> None:
        if max_depth_s <= 0:
            raise ValueError("max_depth_s must be > 0")

        self._max_depth_s = max_depth_s
        self._frames: Deque[AudioFrame] = deque()
        self._available = asyncio.Event()
        self.dropped = 0

    def enqueue(self, frame: AudioFrame) -> bool:
        """
        Append a frame.

        Returns False if an older frame had to be dropped to make room.
        """
        kept_all = True
        while self._frames and self.depth_seconds() + AUDIO_FRAME_DURATION_S > self._max_depth_s:
            self._frames.popleft()
            self.dropped += 1
            kept_all = False

        self._frames.append(frame)
        self._available.set()
        return kept_all

    def dequeue(self) -> Optional[AudioFrame]:
        """Oldest frame, or None when empty."""
        if not self._frames:
            self._available.clear()
            return None
        frame = self._frames.popleft()
        if not self._frames:
            self._available.clear()
        return frame

    async def get(self, timeout_s: float) -> Optional[AudioFrame]:
        """Wait up to timeout_s for a frame; None on timeout."""
        frame = self.dequeue()
        if frame is not None:
            return frame
        try:
            await asyncio.wait_for(self._available.wait(), timeout=timeout_s)
        except asyncio.TimeoutError:
            return None
        return self.dequeue()

    def clear(self) -> None:
        """Drop everything without counting it (stale audio before a new attempt)."""
        self._frames.clear()
        self._available.clear()

    def __len__(self) -> int:
        return len(self._frames)

    def depth_seconds(self) -> float:
        return len(self._frames) * AUDIO_FRAME_DURATION_S

    def snapshot(self) -> dict[str, float | int]:
        """Lightweight snapshot for logging."""
        return {
            "frames": len(self._frames),
            "depth_s": self.depth_seconds(),
            "dropped": self.dropped,
        }
