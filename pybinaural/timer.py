"""Cancellable periodic callbacks.

``PeriodicTimer`` ticks on wall-clock time from a daemon thread and is what a
live session uses. ``RenderClockTimer`` ticks on an AudioContext's clock while
it renders, which keeps offline renders deterministic.
"""
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

_EPS = 1e-9


class PeriodicTimer:
    def __init__(self, interval: float, callback: Callable[[], None], name: Optional[str] = None):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.interval = interval
        self.callback = callback
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name or "PeriodicTimer", daemon=True)

    @property
    def active(self) -> bool:
        return self._thread.is_alive() and not self._stopped.is_set()

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._stopped.set()

    def _run(self) -> None:
        # each tick runs to completion before the next wait starts
        while not self._stopped.wait(self.interval):
            try:
                self.callback()
            except Exception:
                logger.exception("Timer callback %r failed", self.callback)


class RenderClockTimer:
    def __init__(self, context, interval: float, callback: Callable[[], None]):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.context = context
        self.interval = interval
        self.callback = callback
        self._origin = 0.0
        self._ticks = 0
        self._running = False

    @property
    def active(self) -> bool:
        return self._running

    @property
    def due(self) -> float:
        return self._origin + (self._ticks + 1) * self.interval

    def start(self) -> None:
        if self._running:
            raise RuntimeError("timer already started")
        self._origin = self.context.current_time
        self._ticks = 0
        self._running = True
        self.context._register(self)

    def cancel(self) -> None:
        self._running = False
        self.context._unregister(self)

    def fire_due(self, now: float) -> None:
        while self._running and self.due <= now + _EPS:
            self._ticks += 1
            self.callback()
