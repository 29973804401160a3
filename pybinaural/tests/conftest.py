import sys
from pathlib import Path

import pytest

# Ensure the repository root is on sys.path so tests can import the package
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pybinaural.controller import StimulusController  # noqa: E402
from pybinaural.graph import AudioContext  # noqa: E402


class ManualTimer:
    """Timer handle that only ticks when the test says so."""

    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def tick(self, n=1):
        for _ in range(n):
            if self.started and not self.cancelled:
                self.callback()


class ManualTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, callback):
        timer = ManualTimer(interval, callback)
        self.timers.append(timer)
        return timer

    @property
    def last(self):
        return self.timers[-1]


@pytest.fixture
def context():
    return AudioContext()


@pytest.fixture
def timers():
    return ManualTimerFactory()


@pytest.fixture
def controller(context, timers):
    return StimulusController(context, timer_factory=timers)
