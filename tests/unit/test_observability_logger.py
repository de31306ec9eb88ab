# pylint: disable=missing-module-docstring,missing-function-docstring

import enum
import json
from typing import Any

import pytest

from observability import logger


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    lines: list[str] = []
    monkeypatch.setattr(logger, "_print", lines.append)
    return lines


def test_log_event_emits_one_jsonl_line(captured: list[str]) -> None:
    """
    Contract:
    - log_event emits exactly one JSONL line
    - payload keys are preserved
    - ts_ms is stamped when missing
    """
    payload: dict[str, Any] = {
        "event_type": "TEST",
        "value": 123,
    }

    logger.log_event(payload)

    assert len(captured) == 1
    decoded = json.loads(captured[0])

    assert isinstance(decoded.pop("ts_ms"), int)
    assert decoded == payload
    # Caller's mapping is not mutated
    assert "ts_ms" not in payload


def test_caller_timestamp_is_kept(captured: list[str]) -> None:
    logger.log_event({"event_type": "TEST", "ts_ms": 5})

    assert json.loads(captured[0])["ts_ms"] == 5


def test_unencodable_values_are_stringified(captured: list[str]) -> None:
    class Color(enum.Enum):
        RED = "red"

    logger.log_event({"event_type": "TEST", "color": Color.RED})

    assert json.loads(captured[0])["color"] == "Color.RED"
