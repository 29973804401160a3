import numpy as np
from scipy.signal import butter, lfilter

from ..config import FILTER_TYPES
from .base import AudioNode, AudioParam


class BiquadFilterNode(AudioNode):
    """Second-order Butterworth filter with a block-rate cutoff.

    ``Q`` only shapes the ``bandpass`` response (bandwidth = cutoff / Q);
    lowpass and highpass keep the Butterworth Q of 1/sqrt(2).
    """

    def __init__(self, context, type: str = "lowpass", frequency: float = 350.0, q: float = 1.0):
        super().__init__(context)
        self.frequency = AudioParam(context, frequency, "frequency")
        self.Q = AudioParam(context, q, "Q")
        self._type = "lowpass"
        self.type = type
        self._design = None
        self._coeffs = None
        self._zi = None

    def __repr__(self):
        return f"BiquadFilterNode(type={self._type!r}, frequency={self.frequency.value:g})"

    @property
    def type(self) -> str:
        return self._type

    @type.setter
    def type(self, kind: str):
        if kind not in FILTER_TYPES:
            raise ValueError(f"Unsupported filter type: {kind!r}")
        self._type = kind

    def _coefficients(self, cutoff: float, q: float):
        nyquist = self.context.sample_rate / 2
        cutoff = float(np.clip(cutoff, 1.0, nyquist * 0.999))
        if self._type == "bandpass":
            half = cutoff / max(q, 1e-3) / 2
            band = [max(cutoff - half, 1.0), min(cutoff + half, nyquist * 0.999)]
            return butter(2, band, btype="bandpass", fs=self.context.sample_rate)
        return butter(2, cutoff, btype=self._type, fs=self.context.sample_rate)

    def process(self, inputs, start_time: float, frames: int) -> np.ndarray:
        cutoff = self.frequency.render(start_time, frames)[0]
        q = self.Q.render(start_time, frames)[0]
        signal = inputs[0]
        if signal is None:
            return np.zeros((frames, 1), dtype=np.float64)

        design = (self._type, cutoff, q, signal.shape[1])
        if design != self._design:
            b, a = self._coefficients(cutoff, q)
            order = max(len(a), len(b)) - 1
            if self._zi is None or self._zi.shape != (order, signal.shape[1]):
                self._zi = np.zeros((order, signal.shape[1]))
            self._coeffs = (b, a)
            self._design = design
        b, a = self._coeffs
        out, self._zi = lfilter(b, a, signal, axis=0, zi=self._zi)
        return out
