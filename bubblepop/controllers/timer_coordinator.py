"""Per-round timer ownership.

TimerCoordinator owns every timer the round engine arms. Timers are keyed:
a key is a TimerKind, or a `(TimerKind, discriminator)` tuple for timers that
exist once per item (wrong-answer revert). Rules:

- At most one live timer per key: arming a key cancels the previous one.
- `cancel_all()` stops everything synchronously.
- Every armed callback carries the generation it was armed under; a callback
  whose timer was cancelled, re-armed or torn down is a no-op even if the
  event loop already queued it.

Three shapes of timer are offered on top of `arm()`:

- countdown: ticks once per second, reports the remaining seconds, fires an
  expiry callback at zero and cancels itself.
- watchdog: repeating; fires its callback every `window_ms` until cancelled.
  Re-arming restarts the window (a "kick").
- one-shot: `arm(..., repeat=False)`.

Timer creation is injectable so tests can drive time by hand.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional

from PyQt6.QtCore import QObject, QTimer

from bubblepop.domain.enums import TimerKind

logger = logging.getLogger(__name__)

VoidFn = Callable[[], None]
TickFn = Callable[[int], None]
TimerFactory = Callable[[], Any]

TICK_MS = 1000


@dataclass
class _Armed:
    timer: Any
    generation: int
    repeat: bool
    interval_ms: int
    remaining: Optional[int] = None


class TimerCoordinator(QObject):
    def __init__(
        self,
        *,
        timer_factory: Optional[TimerFactory] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._timer_factory: TimerFactory = timer_factory or self._qt_timer
        self._armed: Dict[Hashable, _Armed] = {}
        self._generation = 0
        self._alive = True

    @staticmethod
    def _qt_timer() -> QTimer:
        return QTimer()

    # ----------------------------
    # Inspection
    # ----------------------------

    def is_armed(self, key: Hashable) -> bool:
        entry = self._armed.get(key)
        return entry is not None and bool(entry.timer.isActive())

    def armed_keys(self) -> list:
        return [k for k in self._armed if self.is_armed(k)]

    def countdown_remaining(self, key: Hashable = TimerKind.ROUND_COUNTDOWN) -> Optional[int]:
        entry = self._armed.get(key)
        return None if entry is None else entry.remaining

    @property
    def alive(self) -> bool:
        return self._alive

    # ----------------------------
    # Arming
    # ----------------------------

    def arm(self, key: Hashable, interval_ms: int, callback: VoidFn, *, repeat: bool = False) -> None:
        """Arm `callback` under `key`, replacing any live timer of that key."""
        if not self._alive:
            logger.debug("Ignoring arm(%s) after teardown", key)
            return
        self.cancel(key)

        self._generation += 1
        gen = self._generation
        timer = self._timer_factory()
        timer.setSingleShot(not repeat)
        entry = _Armed(timer=timer, generation=gen, repeat=repeat, interval_ms=max(0, int(interval_ms)))
        self._armed[key] = entry
        timer.timeout.connect(lambda: self._fire(key, gen, callback))
        timer.start(entry.interval_ms)
        logger.debug("armed %s (%d ms%s)", key, entry.interval_ms, ", repeat" if repeat else "")

    def start_countdown(
        self,
        seconds: int,
        on_tick: TickFn,
        on_expired: VoidFn,
        *,
        key: Hashable = TimerKind.ROUND_COUNTDOWN,
    ) -> None:
        """Tick once per second from `seconds` down to zero.

        `on_tick(remaining)` runs after every decrement; `on_expired()` runs
        once when remaining reaches zero, after the countdown cancelled itself.
        """
        start = max(0, int(seconds))

        def _tick() -> None:
            entry = self._armed.get(key)
            if entry is None or entry.remaining is None:
                return
            entry.remaining -= 1
            remaining = entry.remaining
            if remaining <= 0:
                self.cancel(key)
                on_tick(0)
                on_expired()
                return
            on_tick(remaining)

        self.arm(key, TICK_MS, _tick, repeat=True)
        entry = self._armed.get(key)
        if entry is not None:
            entry.remaining = start

    def arm_watchdog(self, window_ms: int, on_idle: VoidFn, *, key: Hashable = TimerKind.INACTIVITY_WATCHDOG) -> None:
        """(Re)start an inactivity window. Fires every `window_ms` until cancelled."""
        self.arm(key, window_ms, on_idle, repeat=True)

    def arm_once(self, key: Hashable, delay_ms: int, callback: VoidFn) -> None:
        self.arm(key, delay_ms, callback, repeat=False)

    # ----------------------------
    # Cancellation
    # ----------------------------

    def cancel(self, key: Hashable) -> bool:
        entry = self._armed.pop(key, None)
        if entry is None:
            return False
        self._stop_timer(entry.timer)
        logger.debug("cancelled %s", key)
        return True

    def cancel_all(self, *, keep: tuple = ()) -> None:
        for key in list(self._armed):
            if key in keep:
                continue
            self.cancel(key)

    def teardown(self) -> None:
        """Cancel everything and refuse further arming."""
        self.cancel_all()
        self._alive = False

    # ----------------------------
    # Internal
    # ----------------------------

    def _fire(self, key: Hashable, generation: int, callback: VoidFn) -> None:
        if not self._alive:
            return
        entry = self._armed.get(key)
        if entry is None or entry.generation != generation:
            # Cancelled or re-armed since this timeout was queued.
            return
        if not entry.repeat:
            self._armed.pop(key, None)
        try:
            callback()
        except Exception:
            logger.exception("Timer callback for %s failed", key)

    @staticmethod
    def _stop_timer(timer: Any) -> None:
        try:
            if timer.isActive():
                timer.stop()
        except (RuntimeError, AttributeError):
            pass
