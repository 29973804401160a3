"""Capability interface between the stimulus controller and an audio graph.

Any graph implementation can drive :class:`~pybinaural.controller.StimulusController`
as long as it offers these shapes. Transition and start/stop support are
modelled as separate optional capabilities so partial implementations still work.
"""
from typing import Callable, Optional, Protocol, TypedDict, runtime_checkable


class ChunkInfo(TypedDict, total=False):
    type: str
    time: float
    frames: int


class AudioParamLike(Protocol):
    value: float


@runtime_checkable
class SupportsTransitions(Protocol):
    def cancel_scheduled_values(self, cancel_time: float): ...

    def set_target_at_time(self, target: float, start_time: float, time_constant: float): ...


@runtime_checkable
class Schedulable(Protocol):
    def start(self, when: Optional[float] = None) -> None: ...

    def stop(self, when: Optional[float] = None) -> None: ...


@runtime_checkable
class NotifiesEnded(Protocol):
    on_ended: Optional[Callable[[], None]]


class AudioNodeLike(Protocol):
    def connect(self, destination, output: int = 0, input: int = 0): ...

    def disconnect(self, destination=None) -> None: ...


class OscillatorLike(AudioNodeLike, Protocol):
    type: str
    frequency: AudioParamLike
    on_ended: Optional[Callable[[], None]]


class GainLike(AudioNodeLike, Protocol):
    gain: AudioParamLike


class FilterLike(AudioNodeLike, Protocol):
    type: str
    frequency: AudioParamLike


class AudioContextLike(Protocol):
    @property
    def current_time(self) -> float: ...

    @property
    def destination(self) -> AudioNodeLike: ...

    def create_oscillator(self) -> OscillatorLike: ...

    def create_gain(self) -> GainLike: ...

    def create_biquad_filter(self) -> FilterLike: ...

    def create_channel_merger(self, number_of_inputs: int = 2) -> AudioNodeLike: ...


class TimerHandle(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]
