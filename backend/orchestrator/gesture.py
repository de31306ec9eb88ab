"""
Two-tap gesture detector for accessible controls.

First tap announces the control, a second tap inside the window activates
it. One timer, one counter, explicit reset. Independent of the coordinator:
callbacks decide what announcing and activating mean.
"""

from __future__ import annotations

import asyncio
from typing import Callable

from observability.logger import log_event

from spec import GESTURE_WINDOW_MS


class TwoTapGesture:
    """
    Tap counter for one control.

    on_announce / on_activate are plain callables; async work belongs to the
    caller (typically it schedules coordinator.speak()).
    """

    def __init__(
        self,
        label: str,
        *,
        on_announce: Callable[[str], None],
        on_activate: Callable[[], None],
        window_s: float = GESTURE_WINDOW_MS / 1000.0,
        enabled: bool = True,
    ) -> None:
        self.label = label
        self.enabled = enabled
        self._on_announce = on_announce
        self._on_activate = on_activate
        self._window_s = window_s
        self._taps = 0
        self._timer: asyncio.TimerHandle | None = None

    @property
    def armed(self) -> bool:
        """True between the first tap and activation / expiry."""
        return self._taps > 0

    def tap(self) -> None:
        """Register one tap. Must be called from the event loop thread."""
        if not self.enabled:
            log_event({
                "event_type": "GESTURE_TAP_IGNORED",
                "label": self.label,
                "reason": "disabled",
            })
            return

        self._taps += 1

        if self._taps == 1:
            self._arm()
            self._on_announce(f"{self.label} button")
            return

        self.reset()
        self._on_activate()

    def reset(self) -> None:
        """Drop the pending tap and its timer. Idempotent."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._taps = 0

    def _arm(self) -> None:
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._window_s, self._expire)

    def _expire(self) -> None:
        self._timer = None
        self._taps = 0
