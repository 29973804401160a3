import logging
import time

import numpy as np

from .config import FRAME

logger = logging.getLogger(__name__)


def open_stream(**kwargs):
    """Create the device stream; PortAudio is only loaded once playback starts."""
    import sounddevice as sd

    return sd.OutputStream(**kwargs)


class StreamPlayer:
    """Plays an AudioContext live through the default (or given) output device."""

    def __init__(self, context, device=None, blocksize: int = FRAME):
        self.context = context
        self.device = device
        self.blocksize = blocksize
        self.stream = None

    @property
    def playing(self) -> bool:
        return self.stream is not None and self.stream.active

    def audio_callback(self, outdata, frames, time_info, status):
        if status:
            logger.warning("Stream status: %s", status)
        outdata[:] = np.clip(self.context.render(frames), -1.0, 1.0)

    def start(self) -> None:
        if self.stream is not None:
            return
        self.stream = open_stream(
            samplerate=self.context.sample_rate,
            channels=self.context.channels,
            blocksize=self.blocksize,
            device=self.device,
            callback=self.audio_callback,
            dtype="float32",
        )
        self.stream.start()
        logger.info("Output stream started at %d Hz", self.context.sample_rate)

    def stop(self) -> None:
        if self.stream is None:
            return
        self.stream.stop()
        self.stream.close()
        self.stream = None
        logger.info("Output stream stopped")

    def play_for(self, seconds: float) -> None:
        self.start()
        deadline = time.monotonic() + seconds
        try:
            while self.playing and time.monotonic() < deadline:
                time.sleep(0.1)
        finally:
            self.stop()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
