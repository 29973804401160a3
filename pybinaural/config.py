SAMPLE_RATE = 44100
FRAME = 1024
CHANNELS = 2

# seconds
SMOOTHING_TIME_CONSTANT = 0.1
DRIFT_TICK = 0.1
STOP_GRACE = 0.1

FILTER_TYPE = "lowpass"
FILTER_CUTOFF = 12000.0

WAVEFORMS = ("sine", "square", "triangle", "sawtooth")
FILTER_TYPES = ("lowpass", "highpass", "bandpass")

DEFAULT_VOLUME = 0.5
DEFAULT_WAVE = "sine"
DEFAULT_ISO_RATE = 10.0
DEFAULT_ISO_VOLUME = 0.1
DEFAULT_DRIFT_PERIOD = 60.0
DEFAULT_DRIFT_MIN = 3.0
DEFAULT_DRIFT_MAX = 7.0
