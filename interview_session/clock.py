"""Monotonic countdown clock driving the session lifetime."""
from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ClockState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class CountdownClock:
    """Emit one tick per elapsed second, then a single expiry event.

    Tick ``n`` is due at ``start + n`` seconds on the monotonic clock, so a
    late wake-up replays every missed second one by one instead of drifting.
    Callbacks run outside the clock lock; their errors are logged and
    swallowed.
    """

    def __init__(
        self,
        on_tick: Callable[[int], None],
        on_expire: Callable[[], None],
        *,
        now: Callable[[], float] = time.monotonic,
        run_in_thread: bool = True,
    ) -> None:
        self._on_tick = on_tick
        self._on_expire = on_expire
        self._now = now
        self._run_in_thread = run_in_thread
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._state = ClockState.IDLE
        self._duration = 0
        self._ticks = 0
        self._started_at = 0.0

    @property
    def state(self) -> ClockState:
        return self._state

    def start(self, duration_seconds: int) -> None:
        if int(duration_seconds) != duration_seconds or duration_seconds <= 0:
            raise ValueError("duration_seconds must be a positive whole number")
        with self._lock:
            if self._state is not ClockState.IDLE:
                raise RuntimeError(f"clock already started (state={self._state.value})")
            self._duration = int(duration_seconds)
            self._ticks = 0
            self._started_at = self._now()
            self._state = ClockState.RUNNING
        if self._run_in_thread:
            self._thread = threading.Thread(target=self._run, name="countdown-clock", daemon=True)
            self._thread.start()

    def remaining(self) -> int:
        with self._lock:
            return self._duration - self._ticks

    def cancel(self) -> None:
        with self._lock:
            if self._state is ClockState.RUNNING:
                self._state = ClockState.CANCELLED
        self._stop.set()

    def poll(self) -> int:
        """Emit every tick that is due by now; return how many were emitted."""

        emitted = 0
        while True:
            with self._lock:
                if self._state is not ClockState.RUNNING:
                    break
                elapsed = int(self._now() - self._started_at)
                if self._ticks >= min(elapsed, self._duration):
                    break
                self._ticks += 1
                remaining = self._duration - self._ticks
                expired = remaining == 0
                if expired:
                    self._state = ClockState.EXPIRED
            emitted += 1
            self._notify(self._on_tick, remaining)
            if expired:
                self._stop.set()
                self._notify(self._on_expire)
                break
        return emitted

    def _run(self) -> None:
        while not self._stop.is_set():
            with self._lock:
                next_due = self._started_at + self._ticks + 1
            delay = max(0.0, next_due - self._now())
            if self._stop.wait(delay):
                break
            self.poll()

    def _notify(self, callback: Callable[..., None], *args: int) -> None:
        try:
            callback(*args)
        except Exception:  # noqa: BLE001
            logger.exception("Clock callback %s failed", getattr(callback, "__name__", callback))


__all__ = ["ClockState", "CountdownClock"]
