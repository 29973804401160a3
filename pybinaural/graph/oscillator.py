import logging
from typing import Callable, Optional

import numpy as np

from ..config import WAVEFORMS
from .base import AudioNode, AudioParam

logger = logging.getLogger(__name__)

TWO_PI = 2 * np.pi


def waveform(kind: str, phase: np.ndarray) -> np.ndarray:
    """Evaluate one of the basic periodic waveforms at ``phase`` (radians)."""
    if kind == "sine":
        return np.sin(phase)
    cycles = phase / TWO_PI
    if kind == "square":
        return np.sign(np.sin(phase))
    if kind == "triangle":
        return 2 * np.abs(2 * (cycles - np.floor(cycles + 0.5))) - 1
    if kind == "sawtooth":
        return 2 * (cycles - np.floor(cycles + 0.5))
    raise ValueError(f"Unknown waveform: {kind!r}")


class OscillatorNode(AudioNode):
    """Mono periodic source with a phase-continuous, automatable frequency."""

    number_of_inputs = 0

    def __init__(self, context, frequency: float = 440.0, type: str = "sine"):
        super().__init__(context)
        self.frequency = AudioParam(context, frequency, "frequency")
        self._type = "sine"
        self.type = type
        self.on_ended: Optional[Callable[[], None]] = None
        self._phase = 0.0
        self._start_time: Optional[float] = None
        self._stop_time: Optional[float] = None
        self._ended = False

    def __repr__(self):
        return f"OscillatorNode(type={self._type!r}, frequency={self.frequency.value:g})"

    @property
    def type(self) -> str:
        return self._type

    @type.setter
    def type(self, kind: str):
        if kind not in WAVEFORMS:
            raise ValueError(f"Unknown waveform: {kind!r} (expected one of {', '.join(WAVEFORMS)})")
        self._type = kind

    @property
    def started(self) -> bool:
        return self._start_time is not None

    @property
    def ended(self) -> bool:
        return self._ended

    def start(self, when: Optional[float] = None) -> None:
        with self.context.lock:
            if self._start_time is not None:
                raise RuntimeError("oscillator already started")
            self._start_time = max(self.context.current_time, when or 0.0)

    def stop(self, when: Optional[float] = None) -> None:
        with self.context.lock:
            if self._start_time is None:
                raise RuntimeError("cannot stop an oscillator that was never started")
            self._stop_time = max(self.context.current_time, when or 0.0)

    def process(self, inputs, start_time: float, frames: int) -> np.ndarray:
        out = np.zeros((frames, 1), dtype=np.float64)
        if self._ended or self._start_time is None:
            return out
        sr = self.context.sample_rate
        t = start_time + np.arange(frames) / sr
        freq = self.frequency.render(start_time, frames)

        steps = TWO_PI * freq / sr
        phase = self._phase + np.concatenate(([0.0], np.cumsum(steps[:-1])))
        self._phase = float((phase[-1] + steps[-1]) % TWO_PI)

        gate = t >= self._start_time
        if self._stop_time is not None:
            gate &= t < self._stop_time
        out[:, 0] = waveform(self._type, phase) * gate

        if self._stop_time is not None and start_time + frames / sr >= self._stop_time:
            self._ended = True
            logger.debug("%r ended at %.3fs", self, self._stop_time)
            if self.on_ended is not None:
                self.context.call_soon(self.on_ended)
        return out
