"""
JSONL event logger.

Rules:
- One JSON object per line on stdout
- No buffering, no batching
- ts_ms is stamped when the caller did not supply one
- Never raises
"""

from __future__ import annotations

import json
import sys
import time
from typing import Any, Callable, Mapping


# ------------------------------------------------------------------
# Output sink (patched in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


_print: Callable[[str], None] = _stdout_print


def now_ms() -> int:
    """Wall-clock milliseconds, used for event timestamps only."""
    return time.time_ns() // 1_000_000


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single JSONL event.

    The caller supplies event_type and whatever identifiers it owns
    (session_id, generation, ...). Values that json cannot encode
    (enums, paths) are rendered with str().
    """
    record: dict[str, Any] = dict(event)
    if record.get("ts_ms") is None:
        record["ts_ms"] = now_ms()

    try:
        line = json.dumps(record, ensure_ascii=False, separators=(",", ":"), default=str)
    except (TypeError, ValueError) as e:
        fallback: dict[str, Any] = {
            "ts_ms": record.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)
