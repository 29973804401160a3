from .controller import (
    DriftState,
    SessionNotActiveError,
    StimulusController,
    drift_beat,
    triangle_progress,
)
from .graph import AudioContext
from .timer import PeriodicTimer, RenderClockTimer

__all__ = [
    "AudioContext",
    "DriftState",
    "PeriodicTimer",
    "RenderClockTimer",
    "SessionNotActiveError",
    "StimulusController",
    "drift_beat",
    "triangle_progress",
]
