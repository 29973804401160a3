from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np


@dataclass
class _TargetEvent:
    time: float
    target: float
    time_constant: float


class AudioParam:
    """A node parameter that can jump to a value or glide towards a target.

    Glides follow the exponential approach of ``set_target_at_time``: once an
    event's start time is reached the value moves towards ``target`` with the
    given time constant until the next event takes over.
    """

    def __init__(self, context, value: float, name: str = ""):
        self.context = context
        self.name = name
        self._value = float(value)
        self._events: List[_TargetEvent] = []

    def __repr__(self):
        return f"AudioParam({self.name!r}, value={self._value:g})"

    @property
    def value(self) -> float:
        return self._value

    @value.setter
    def value(self, value: float):
        with self.context.lock:
            self._events.clear()
            self._value = float(value)

    @property
    def target(self) -> float:
        """Value the parameter settles on once every scheduled event has run."""
        with self.context.lock:
            return self._events[-1].target if self._events else self._value

    @property
    def scheduled(self) -> List[Tuple[float, float, float]]:
        with self.context.lock:
            return [(e.time, e.target, e.time_constant) for e in self._events]

    def set_target_at_time(self, target: float, start_time: float, time_constant: float):
        if time_constant <= 0:
            raise ValueError(f"time_constant must be positive, got {time_constant}")
        event = _TargetEvent(float(start_time), float(target), float(time_constant))
        with self.context.lock:
            idx = len(self._events)
            while idx > 0 and self._events[idx - 1].time > event.time:
                idx -= 1
            self._events.insert(idx, event)
        return self

    def cancel_scheduled_values(self, cancel_time: float):
        with self.context.lock:
            self._events = [e for e in self._events if e.time < cancel_time]
        return self

    def _frame_at(self, t: float, start_time: float, frames: int) -> int:
        idx = int(np.ceil((t - start_time) * self.context.sample_rate - 1e-9))
        return min(max(idx, 0), frames)

    def render(self, start_time: float, frames: int) -> np.ndarray:
        sr = self.context.sample_rate
        out = np.empty(frames, dtype=np.float64)
        pos = 0
        while pos < frames:
            if not self._events:
                out[pos:] = self._value
                break
            event = self._events[0]
            begin = self._frame_at(event.time, start_time, frames)
            if begin > pos:
                out[pos:begin] = self._value
                pos = begin
                continue
            nxt = self._events[1] if len(self._events) > 1 else None
            end = frames if nxt is None else self._frame_at(nxt.time, start_time, frames)
            if end <= pos:
                self._events.pop(0)
                continue
            k = np.arange(1, end - pos + 1)
            decay = np.exp(-k / (event.time_constant * sr))
            out[pos:end] = event.target + (self._value - event.target) * decay
            self._value = float(out[end - 1])
            pos = end
        return out


class AudioNode:
    """Base class for graph nodes rendered in blocks by an AudioContext.

    Subclasses implement ``process(inputs, start_time, frames)`` which gets
    one mixed ``(frames, channels)`` array (or ``None``) per input and
    returns a ``(frames, channels)`` array.
    """

    number_of_inputs = 1
    number_of_outputs = 1

    def __init__(self, context):
        self.context = context
        self._inputs: List[Tuple["AudioNode", int, int]] = []
        self._outputs: List[Tuple["AudioNode", int, int]] = []
        self._rendered_quantum = -1
        self._rendered: Optional[np.ndarray] = None

    def connect(self, destination: "AudioNode", output: int = 0, input: int = 0):
        if destination.context is not self.context:
            raise ValueError("cannot connect nodes from different contexts")
        if not 0 <= output < self.number_of_outputs:
            raise ValueError(f"output index {output} out of range")
        if not 0 <= input < destination.number_of_inputs:
            raise ValueError(f"input index {input} out of range")
        link = (destination, output, input)
        with self.context.lock:
            if link not in self._outputs:
                self._outputs.append(link)
                destination._inputs.append((self, output, input))
        return destination

    def disconnect(self, destination: Optional["AudioNode"] = None) -> None:
        with self.context.lock:
            keep = []
            for dest, output, input in self._outputs:
                if destination is None or dest is destination:
                    dest._inputs.remove((self, output, input))
                else:
                    keep.append((dest, output, input))
            self._outputs = keep

    @property
    def connected(self) -> bool:
        return bool(self._outputs)

    @property
    def sources(self) -> List["AudioNode"]:
        return [src for src, _, _ in self._inputs]

    @property
    def destinations(self) -> List["AudioNode"]:
        return [dest for dest, _, _ in self._outputs]

    def _mix_input(self, index: int, start_time: float, frames: int) -> Optional[np.ndarray]:
        chunks = [src.pull(start_time, frames) for src, _, inp in list(self._inputs) if inp == index]
        if not chunks:
            return None
        channels = max(c.shape[1] for c in chunks)
        acc = np.zeros((frames, channels), dtype=np.float64)
        for chunk in chunks:
            # mono sources are up-mixed by broadcasting
            acc += chunk
        return acc

    def pull(self, start_time: float, frames: int) -> np.ndarray:
        quantum = self.context.quantum
        if self._rendered_quantum != quantum:
            inputs = [self._mix_input(i, start_time, frames) for i in range(self.number_of_inputs)]
            self._rendered = self.process(inputs, start_time, frames)
            self._rendered_quantum = quantum
        return self._rendered

    def process(self, inputs, start_time: float, frames: int) -> np.ndarray:
        raise NotImplementedError
