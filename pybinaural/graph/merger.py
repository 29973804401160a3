import numpy as np

from .base import AudioNode


class ChannelMergerNode(AudioNode):
    """Combine several mono inputs into one multi-channel output.

    Input ``i`` becomes output channel ``i``; multi-channel inputs are
    down-mixed to mono first.
    """

    def __init__(self, context, number_of_inputs: int = 2):
        if number_of_inputs < 1:
            raise ValueError("a channel merger needs at least one input")
        super().__init__(context)
        self.number_of_inputs = number_of_inputs

    def __repr__(self):
        return f"ChannelMergerNode(inputs={self.number_of_inputs})"

    def process(self, inputs, start_time: float, frames: int) -> np.ndarray:
        out = np.zeros((frames, self.number_of_inputs), dtype=np.float64)
        for channel, signal in enumerate(inputs):
            if signal is not None:
                out[:, channel] = signal.mean(axis=1)
        return out
