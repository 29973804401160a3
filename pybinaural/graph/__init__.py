from .base import AudioNode, AudioParam
from .context import AudioContext, DestinationNode
from .filter import BiquadFilterNode
from .gain import GainNode
from .merger import ChannelMergerNode
from .oscillator import OscillatorNode, waveform

__all__ = [
    "AudioContext",
    "AudioNode",
    "AudioParam",
    "BiquadFilterNode",
    "ChannelMergerNode",
    "DestinationNode",
    "GainNode",
    "OscillatorNode",
    "waveform",
]
