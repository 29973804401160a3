"""Binaural/isochronic stimulus controller.

Drives a stereo pair of oscillators (left at ``base``, right at
``base + beat``) through a shared low-pass filter into an output gain, plus
an optional square-wave pulse layer and a drift loop that sweeps the beat
frequency along a triangle wave.

Every level or frequency change on a live path is a glide with a 0.1 s time
constant. Parameters without transition support get their value set directly.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from .config import (
    DEFAULT_DRIFT_MAX,
    DEFAULT_DRIFT_MIN,
    DEFAULT_DRIFT_PERIOD,
    DEFAULT_ISO_RATE,
    DEFAULT_ISO_VOLUME,
    DEFAULT_VOLUME,
    DEFAULT_WAVE,
    DRIFT_TICK,
    FILTER_CUTOFF,
    FILTER_TYPE,
    SMOOTHING_TIME_CONSTANT,
    STOP_GRACE,
    WAVEFORMS,
)
from .timer import PeriodicTimer
from .types import AudioContextLike, NotifiesEnded, Schedulable, SupportsTransitions, TimerFactory

logger = logging.getLogger(__name__)


class SessionNotActiveError(RuntimeError):
    """Raised when an operation needs a running stereo session and there is none."""


def triangle_progress(phase: float) -> float:
    """Map a normalized phase in [0, 1) onto a 0 -> 1 -> 0 triangle."""
    return phase * 2 if phase < 0.5 else (1 - phase) * 2


def drift_beat(counter: float, period: float, minimum: float, maximum: float) -> float:
    return minimum + (maximum - minimum) * triangle_progress(counter / period)


@dataclass
class DriftState:
    period: float
    minimum: float
    maximum: float
    phase: float = 0.0
    active: bool = True

    def advance(self) -> float:
        """Step the phase counter by one tick and return the new beat target."""
        # rounding keeps the counter landing exactly on the period boundary
        self.phase = round(self.phase + DRIFT_TICK, 9) % self.period
        return drift_beat(self.phase, self.period, self.minimum, self.maximum)


@dataclass
class _Session:
    left: object
    right: object
    merger: object


def _check_wave(wave_type: str):
    if wave_type not in WAVEFORMS:
        raise ValueError(f"Unknown wave type: {wave_type!r} (expected one of {', '.join(WAVEFORMS)})")


class StimulusController:
    def __init__(self, context: Optional[AudioContextLike] = None, output_gain=None,
                 timer_factory: Optional[TimerFactory] = None):
        if context is None:
            from .graph import AudioContext
            context = AudioContext()
        self.context = context
        self.output_gain = output_gain if output_gain is not None else context.create_gain()
        self.timer_factory = timer_factory or (lambda interval, cb: PeriodicTimer(interval, cb, name="drift"))

        self.filter = context.create_biquad_filter()
        self.filter.type = FILTER_TYPE
        self.filter.frequency.value = FILTER_CUTOFF
        self.filter.connect(self.output_gain)
        self.output_gain.connect(context.destination)

        self._session: Optional[_Session] = None
        self._fading: Optional[_Session] = None
        self._left_target: Optional[float] = None
        self._right_target: Optional[float] = None
        self.volume = DEFAULT_VOLUME
        self.wave_type = DEFAULT_WAVE

        self._drift: Optional[DriftState] = None
        self._drift_timer = None

        self._iso_osc = None
        self._iso_gain = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        self.stop_isochronic()

    # -- inspection -------------------------------------------------------

    @property
    def active(self) -> bool:
        return self._session is not None

    @property
    def left(self):
        return self._session.left if self._session else None

    @property
    def right(self):
        return self._session.right if self._session else None

    @property
    def merger(self):
        return self._session.merger if self._session else None

    @property
    def left_frequency(self) -> Optional[float]:
        """Frequency the left oscillator is gliding towards."""
        return self._left_target

    @property
    def right_frequency(self) -> Optional[float]:
        return self._right_target

    @property
    def base_freq(self) -> Optional[float]:
        return self._left_target

    @property
    def beat_freq(self) -> Optional[float]:
        if self._session is None:
            return None
        return self._right_target - self._left_target

    @property
    def drift(self) -> Optional[DriftState]:
        return self._drift

    @property
    def isochronic_active(self) -> bool:
        return self._iso_osc is not None

    # -- parameter helpers ------------------------------------------------

    def _glide(self, param, value: float):
        now = self.context.current_time
        if isinstance(param, SupportsTransitions):
            param.cancel_scheduled_values(now)
            param.set_target_at_time(value, now, SMOOTHING_TIME_CONSTANT)
        else:
            param.value = value

    # -- session lifecycle ------------------------------------------------

    def start(self, base_freq: float, beat_freq: float, volume: float = DEFAULT_VOLUME,
              wave_type: str = DEFAULT_WAVE):
        if base_freq <= 0:
            raise ValueError(f"base_freq must be positive, got {base_freq}")
        if base_freq + beat_freq <= 0:
            raise ValueError(f"base_freq + beat_freq must be positive, got {base_freq + beat_freq}")
        if not 0.0 <= volume <= 1.0:
            raise ValueError(f"volume must be within [0, 1], got {volume}")
        _check_wave(wave_type)

        self._drop_previous()
        ctx = self.context
        left = ctx.create_oscillator()
        right = ctx.create_oscillator()
        left.type = right.type = wave_type
        left.frequency.value = base_freq
        right.frequency.value = base_freq + beat_freq

        merger = ctx.create_channel_merger(2)
        left.connect(merger, 0, 0)
        right.connect(merger, 0, 1)
        merger.connect(self.filter)

        self._session = _Session(left, right, merger)
        self._left_target = float(base_freq)
        self._right_target = float(base_freq + beat_freq)
        self.wave_type = wave_type

        # hard mute: the new pair must not begin mid-phase at full level
        self.output_gain.gain.value = 0
        for osc in (left, right):
            if isinstance(osc, Schedulable):
                osc.start()
        self.set_volume(volume)
        logger.info("Started %s session: %.2f Hz / %.2f Hz (beat %.2f Hz)",
                    wave_type, base_freq, base_freq + beat_freq, beat_freq)

    def update(self, base_freq: Optional[float] = None, beat_freq: Optional[float] = None):
        session = self._session
        if session is None:
            if beat_freq is not None:
                raise SessionNotActiveError("no active session to retarget the beat frequency on")
            return

        base = self._left_target if base_freq is None else base_freq
        if base <= 0:
            raise ValueError(f"base_freq must be positive, got {base}")
        if beat_freq is not None and base + beat_freq <= 0:
            raise ValueError(f"base_freq + beat_freq must be positive, got {base + beat_freq}")

        if base_freq is not None:
            self._glide(session.left.frequency, base)
            self._left_target = float(base)
        if beat_freq is not None:
            self._glide(session.right.frequency, base + beat_freq)
            self._right_target = float(base + beat_freq)
        logger.debug("Retargeted session: left %.3f Hz, right %.3f Hz", self._left_target, self._right_target)

    def set_volume(self, vol: float):
        self._glide(self.output_gain.gain, vol)
        self.volume = vol

    def set_wave_type(self, wave_type: str):
        _check_wave(wave_type)
        self.wave_type = wave_type
        if self._session is not None:
            self._session.left.type = wave_type
            self._session.right.type = wave_type

    def stop(self):
        self.stop_drift()
        # fade out even when idle, so a following start begins from silence
        self.set_volume(0)
        if self._session is None:
            return
        self._end_session(self._session, STOP_GRACE)
        self._session = None
        self._left_target = self._right_target = None
        logger.info("Stopped session")

    def _end_session(self, session: _Session, grace: float):
        """Halt a session's oscillators ``grace`` seconds from now and unhook its nodes.

        With a grace period the nodes stay wired until the oscillators report
        they have ended, so the fade-out is heard; otherwise they go at once.
        """
        now = self.context.current_time
        pending = []
        for osc in (session.left, session.right):
            if isinstance(osc.frequency, SupportsTransitions):
                osc.frequency.cancel_scheduled_values(now)
            if isinstance(osc, Schedulable):
                osc.stop(now + grace)
                pending.append(osc)

        def release():
            if isinstance(session.left, NotifiesEnded):
                session.left.on_ended = None
            session.left.disconnect()
            session.right.disconnect()
            session.merger.disconnect()
            if self._fading is session:
                self._fading = None
            logger.debug("Released session nodes")

        if grace > 0 and pending and isinstance(pending[0], NotifiesEnded):
            pending[0].on_ended = release
            self._fading = session
        else:
            release()

    def _drop_previous(self):
        """Tear down the running session and any fade-out still in flight."""
        self.stop_drift()
        if self._fading is not None:
            self._end_session(self._fading, 0)
        if self._session is not None:
            self._end_session(self._session, 0)
            self._session = None
            self._left_target = self._right_target = None
            logger.info("Superseded previous session")

    # -- isochronic pulse layer -------------------------------------------

    def start_isochronic(self, rate: float = DEFAULT_ISO_RATE, volume: float = DEFAULT_ISO_VOLUME):
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")
        self.stop_isochronic()
        osc = self.context.create_oscillator()
        gain = self.context.create_gain()
        osc.type = "square"
        osc.frequency.value = rate
        osc.connect(gain)
        gain.gain.value = volume
        gain.connect(self.output_gain)
        if isinstance(osc, Schedulable):
            osc.start()
        self._iso_osc, self._iso_gain = osc, gain
        logger.info("Started isochronic pulse at %.2f Hz (volume %.2f)", rate, volume)

    def stop_isochronic(self):
        if self._iso_osc is None:
            return
        if isinstance(self._iso_osc, Schedulable):
            self._iso_osc.stop()
        self._iso_osc.disconnect()
        self._iso_gain.disconnect()
        self._iso_osc = None
        self._iso_gain = None
        logger.info("Stopped isochronic pulse")

    # -- beat drift -------------------------------------------------------

    def start_drift(self, period: float = DEFAULT_DRIFT_PERIOD, minimum: float = DEFAULT_DRIFT_MIN,
                    maximum: float = DEFAULT_DRIFT_MAX):
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        if minimum > maximum:
            raise ValueError(f"minimum ({minimum}) must not exceed maximum ({maximum})")
        self.stop_drift()
        self._drift = DriftState(float(period), float(minimum), float(maximum))
        self._drift_timer = self.timer_factory(DRIFT_TICK, self._drift_tick)
        self._drift_timer.start()
        logger.info("Started drift: %.2f-%.2f Hz over %.1fs", minimum, maximum, period)

    def stop_drift(self):
        if self._drift_timer is not None:
            self._drift_timer.cancel()
            self._drift_timer = None
        if self._drift is not None:
            self._drift.active = False
            self._drift = None
            logger.info("Stopped drift")

    def _drift_tick(self):
        drift = self._drift
        if drift is None or not drift.active:
            return
        beat = drift.advance()
        try:
            self.update(None, beat)
        except SessionNotActiveError:
            # stop() can land between the drift check and the retarget
            logger.debug("Drift tick skipped, no active session")
