# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio

import pytest

from orchestrator.gesture import TwoTapGesture
from observability import logger


@pytest.fixture(autouse=True)
def _quiet_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logger, "_print", lambda line: None)


def make_gesture(window_s: float = 0.05) -> tuple[TwoTapGesture, list[str], list[str]]:
    announced: list[str] = []
    activated: list[str] = []
    gesture = TwoTapGesture(
        "Describe Scene",
        on_announce=announced.append,
        on_activate=lambda: activated.append("Describe Scene"),
        window_s=window_s,
    )
    return gesture, announced, activated


def test_single_tap_announces_label() -> None:
    async def scenario() -> None:
        gesture, announced, activated = make_gesture()
        gesture.tap()

        assert announced == ["Describe Scene button"]
        assert activated == []
        assert gesture.armed

    asyncio.run(scenario())


def test_double_tap_inside_window_activates() -> None:
    async def scenario() -> None:
        gesture, announced, activated = make_gesture()
        gesture.tap()
        gesture.tap()

        assert announced == ["Describe Scene button"]
        assert activated == ["Describe Scene"]
        assert not gesture.armed

    asyncio.run(scenario())


def test_taps_spanning_window_announce_twice() -> None:
    async def scenario() -> None:
        gesture, announced, activated = make_gesture(window_s=0.01)
        gesture.tap()
        await asyncio.sleep(0.05)
        assert not gesture.armed

        gesture.tap()
        assert announced == ["Describe Scene button", "Describe Scene button"]
        assert activated == []

    asyncio.run(scenario())


def test_reset_is_idempotent() -> None:
    async def scenario() -> None:
        gesture, _, activated = make_gesture()
        gesture.tap()
        gesture.reset()
        gesture.reset()
        assert not gesture.armed

        # Next tap starts a fresh sequence
        gesture.tap()
        assert activated == []

    asyncio.run(scenario())


def test_disabled_control_ignores_taps() -> None:
    async def scenario() -> None:
        gesture, announced, activated = make_gesture()
        gesture.enabled = False
        gesture.tap()
        gesture.tap()

        assert announced == []
        assert activated == []

    asyncio.run(scenario())
