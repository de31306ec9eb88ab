# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import time

from audio.frames import AudioFrame
from audio.queues import AudioFrameQueue
from spec import AUDIO_FRAME_DURATION_S


def make_frame(seq: int) -> AudioFrame:
    return AudioFrame(
        sequence_num=seq,
        pcm_bytes=b"\x00\x00" * 320,
        ts_ms=int(time.time() * 1000),
    )


# ---------------------------------------------------------------------
# depth_seconds math
# ---------------------------------------------------------------------

def test_depth_seconds_exact():
    q = AudioFrameQueue(max_depth_s=1.0)

    q.enqueue(make_frame(1))
    q.enqueue(make_frame(2))
    q.enqueue(make_frame(3))

    assert q.depth_seconds() == 3 * AUDIO_FRAME_DURATION_S
    assert len(q) == 3


# ---------------------------------------------------------------------
# Overflow behavior
# ---------------------------------------------------------------------

def test_overflow_drops_oldest():
    q = AudioFrameQueue(max_depth_s=2 * AUDIO_FRAME_DURATION_S)

    assert q.enqueue(make_frame(1)) is True
    assert q.enqueue(make_frame(2)) is True
    assert q.enqueue(make_frame(3)) is False

    assert q.dropped == 1
    assert [q.dequeue().sequence_num, q.dequeue().sequence_num] == [2, 3]  # type: ignore[union-attr]
    assert q.dequeue() is None


def test_clear_is_not_counted_as_drops():
    q = AudioFrameQueue(max_depth_s=1.0)
    q.enqueue(make_frame(1))

    q.clear()

    assert len(q) == 0
    assert q.snapshot() == {"frames": 0, "depth_s": 0.0, "dropped": 0}


# ---------------------------------------------------------------------
# Async reader
# ---------------------------------------------------------------------

def test_get_waits_for_a_frame():
    async def scenario() -> int | None:
        q = AudioFrameQueue(max_depth_s=1.0)
        asyncio.get_running_loop().call_later(0.01, q.enqueue, make_frame(7))
        frame = await q.get(timeout_s=1.0)
        return frame.sequence_num if frame else None

    assert asyncio.run(scenario()) == 7


def test_get_times_out_empty():
    async def scenario() -> AudioFrame | None:
        return await AudioFrameQueue(max_depth_s=1.0).get(timeout_s=0.01)

    assert asyncio.run(scenario()) is None
