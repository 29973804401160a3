import threading
from typing import Callable, Generator, List, Tuple

import numpy as np

from ..config import CHANNELS, FRAME, SAMPLE_RATE
from ..timer import RenderClockTimer
from ..types import ChunkInfo
from .base import AudioNode
from .filter import BiquadFilterNode
from .gain import GainNode
from .merger import ChannelMergerNode
from .oscillator import OscillatorNode


class DestinationNode(AudioNode):
    number_of_outputs = 0

    def process(self, inputs, start_time: float, frames: int) -> np.ndarray:
        channels = self.context.channels
        out = np.zeros((frames, channels), dtype=np.float64)
        signal = inputs[0]
        if signal is not None:
            if signal.shape[1] == 1:
                out += signal
            else:
                n = min(channels, signal.shape[1])
                out[:, :n] += signal[:, :n]
        return out


class AudioContext:
    """Owns the clock and the node graph, and renders it block by block.

    The clock only advances while rendering, so ``current_time`` is the
    position of the next sample to be produced. Graph mutations and
    rendering share ``lock``; the realtime player renders from its own
    thread while control calls arrive from others.
    """

    def __init__(self, sample_rate: int = SAMPLE_RATE, channels: int = CHANNELS, block_size: int = FRAME):
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        if channels < 1:
            raise ValueError(f"channels must be at least 1, got {channels}")
        self.sample_rate = int(sample_rate)
        self.channels = int(channels)
        self.block_size = int(block_size)
        self.lock = threading.RLock()
        self.quantum = 0
        self._frames = 0
        self._pending: List[Callable[[], None]] = []
        self._timers: List[RenderClockTimer] = []
        self._destination = DestinationNode(self)

    @property
    def current_time(self) -> float:
        return self._frames / self.sample_rate

    @property
    def destination(self) -> DestinationNode:
        return self._destination

    def create_oscillator(self) -> OscillatorNode:
        return OscillatorNode(self)

    def create_gain(self) -> GainNode:
        return GainNode(self)

    def create_biquad_filter(self) -> BiquadFilterNode:
        return BiquadFilterNode(self)

    def create_channel_merger(self, number_of_inputs: int = 2) -> ChannelMergerNode:
        return ChannelMergerNode(self, number_of_inputs)

    def interval_timer(self, interval: float, callback: Callable[[], None]) -> RenderClockTimer:
        """Timer that ticks in audio time, at block boundaries while rendering."""
        return RenderClockTimer(self, interval, callback)

    def call_soon(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once the current render quantum is complete."""
        with self.lock:
            self._pending.append(callback)

    def _register(self, timer: RenderClockTimer) -> None:
        with self.lock:
            if timer not in self._timers:
                self._timers.append(timer)

    def _unregister(self, timer: RenderClockTimer) -> None:
        with self.lock:
            if timer in self._timers:
                self._timers.remove(timer)

    def _next_due(self) -> float:
        return min((t.due for t in self._timers), default=float("inf"))

    def _render_block(self, frames: int) -> np.ndarray:
        self.quantum += 1
        out = self._destination.pull(self.current_time, frames)
        self._frames += frames
        pending, self._pending = self._pending, []
        for callback in pending:
            callback()
        return out

    def render(self, frames: int) -> np.ndarray:
        """Render ``frames`` samples of the graph as float32 ``(frames, channels)``.

        Levels are not rescaled; the sink limits.
        """
        out = np.zeros((frames, self.channels), dtype=np.float64)
        with self.lock:
            pos = 0
            while pos < frames:
                n = min(self.block_size, frames - pos)
                if self._timers:
                    # split so the next timer tick lands on a block boundary
                    until_due = int(np.ceil((self._next_due() - self.current_time) * self.sample_rate - 1e-9))
                    n = min(n, max(until_due, 1))
                out[pos:pos + n] = self._render_block(n)
                pos += n
                for timer in list(self._timers):
                    timer.fire_due(self.current_time)
        return out.astype(np.float32)

    def stream(self, duration: float) -> Generator[Tuple[np.ndarray, ChunkInfo], None, None]:
        num = int(self.sample_rate * duration)
        for i in range(0, num, self.block_size):
            n = min(self.block_size, num - i)
            t = self.current_time
            yield self.render(n), {"type": "render", "time": t, "frames": n}
