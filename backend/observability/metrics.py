"""
Timing helpers.

Responsibilities:
- Measure durations with monotonic time
- Emit one METRIC_TIMER event per measurement via observability.logger
- Never aggregate

Durations use monotonic time; the event's ts_ms is wall-clock so logs line
up with the rest of the stream.
"""

from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from observability.logger import log_event, now_ms


# timer_id -> (metric_name, start_time_ns)
_active_timers: dict[str, tuple[str, int]] = {}


def start_timer(name: str) -> str:
    """
    Start a monotonic timer and return its opaque id.

    Callers must pair this with stop_timer() in a finally block, or use
    timed() instead.
    """
    timer_id = f"timer_{uuid.uuid4().hex[:12]}"
    _active_timers[timer_id] = (name, time.monotonic_ns())
    return timer_id


def stop_timer(
    timer_id: str,
    *,
    session_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> int | None:
    """
    Stop a timer and emit its metric.

    Returns duration_ms, or None for an unknown / already stopped timer.
    """
    entry = _active_timers.pop(timer_id, None)
    if entry is None:
        return None

    name, start_ns = entry
    duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000

    log_event({
        "ts_ms": now_ms(),
        "event_type": "METRIC_TIMER",
        "metric": name,
        "value_ms": duration_ms,
        "session_id": session_id,
        "details": details or {},
    })
    return duration_ms


@contextmanager
def timed(
    name: str,
    *,
    session_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[None]:
    """
    Measure the enclosed block.

    The metric is emitted exactly once, also when the block raises.

        with timed("vision_analyze", session_id=session.session_id):
            text = await client.analyze_scene(image, prompt)
    """
    timer_id = start_timer(name)
    try:
        yield
    finally:
        stop_timer(timer_id, session_id=session_id, details=details)
