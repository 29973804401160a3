import numpy as np

from .base import AudioNode, AudioParam


class GainNode(AudioNode):
    def __init__(self, context, gain: float = 1.0):
        super().__init__(context)
        self.gain = AudioParam(context, gain, "gain")

    def __repr__(self):
        return f"GainNode(gain={self.gain.value:g})"

    def process(self, inputs, start_time: float, frames: int) -> np.ndarray:
        # the param has to advance even while nothing is connected
        gain = self.gain.render(start_time, frames)
        signal = inputs[0]
        if signal is None:
            return np.zeros((frames, 1), dtype=np.float64)
        return signal * gain[:, None]
