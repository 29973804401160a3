import numpy as np
import pytest

from pybinaural.graph import AudioContext, AudioParam, waveform


def rms(x):
    return float(np.sqrt(np.mean(np.square(x))))


def test_param_glides_towards_target(context):
    param = AudioParam(context, 0.0)
    param.set_target_at_time(1.0, 0.0, 0.1)

    values = param.render(0.0, context.sample_rate)  # one second

    assert values[0] > 0.0
    assert np.all(np.diff(values) >= 0)
    assert values[int(0.1 * context.sample_rate) - 1] == pytest.approx(1 - np.exp(-1), abs=1e-3)
    assert values[-1] == pytest.approx(1.0, abs=1e-3)
    assert param.target == 1.0


def test_param_holds_until_event_start(context):
    param = AudioParam(context, 5.0)
    param.set_target_at_time(0.0, 0.5, 0.1)

    values = param.render(0.0, context.sample_rate)
    half = context.sample_rate // 2

    assert np.all(values[:half] == 5.0)
    assert values[-1] < 0.1


def test_cancel_scheduled_values_drops_later_events(context):
    param = AudioParam(context, 0.0)
    param.set_target_at_time(0.7, 0.0, 0.1)
    param.set_target_at_time(0.2, 1.0, 0.1)

    param.cancel_scheduled_values(0.5)

    assert param.scheduled == [(0.0, 0.7, 0.1)]
    assert param.target == 0.7


def test_setting_value_clears_automation(context):
    param = AudioParam(context, 0.0)
    param.set_target_at_time(1.0, 0.0, 0.1)
    param.value = 0.25

    assert param.scheduled == []
    assert np.all(param.render(0.0, 256) == 0.25)


def test_param_rejects_non_positive_time_constant(context):
    param = AudioParam(context, 0.0)
    with pytest.raises(ValueError):
        param.set_target_at_time(1.0, 0.0, 0.0)


@pytest.mark.parametrize("kind", ["sine", "square", "triangle", "sawtooth"])
def test_waveforms_are_bounded(kind):
    phase = np.linspace(0, 4 * np.pi, 1000, endpoint=False)
    wave = waveform(kind, phase)
    assert wave.shape == phase.shape
    assert np.max(np.abs(wave)) <= 1.0


def test_unknown_waveform_rejected(context):
    osc = context.create_oscillator()
    with pytest.raises(ValueError):
        osc.type = "noise"


def test_oscillator_silent_until_started(context):
    osc = context.create_oscillator()
    osc.connect(context.destination)

    assert np.all(context.render(512) == 0)
    osc.start()
    assert np.max(np.abs(context.render(512))) > 0.5


def test_oscillator_start_twice_fails(context):
    osc = context.create_oscillator()
    osc.start()
    with pytest.raises(RuntimeError):
        osc.start()


def test_oscillator_stop_requires_start(context):
    osc = context.create_oscillator()
    with pytest.raises(RuntimeError):
        osc.stop()


def test_oscillator_stop_fires_on_ended(context):
    osc = context.create_oscillator()
    osc.connect(context.destination)
    ended = []
    osc.on_ended = lambda: ended.append(context.current_time)
    osc.start()
    osc.stop(0.05)

    audio = context.render(int(0.1 * context.sample_rate))

    assert osc.ended
    assert len(ended) == 1
    tail = audio[int(0.06 * context.sample_rate):]
    assert np.all(tail == 0)


def test_merger_routes_inputs_to_channels(context):
    osc = context.create_oscillator()
    merger = context.create_channel_merger(2)
    osc.connect(merger, 0, 0)
    merger.connect(context.destination)
    osc.start()

    audio = context.render(2048)

    assert np.max(np.abs(audio[:, 0])) > 0.5
    assert np.all(audio[:, 1] == 0)


def test_connect_rejects_bad_input_index(context):
    osc = context.create_oscillator()
    merger = context.create_channel_merger(2)
    with pytest.raises(ValueError):
        osc.connect(merger, 0, 2)


def test_disconnect_removes_links(context):
    osc = context.create_oscillator()
    gain = context.create_gain()
    osc.connect(gain)
    gain.connect(context.destination)

    osc.disconnect()

    assert not osc.connected
    assert gain.sources == []


def test_lowpass_attenuates_above_cutoff():
    results = {}
    for freq in (100.0, 15000.0):
        ctx = AudioContext()
        osc = ctx.create_oscillator()
        lp = ctx.create_biquad_filter()
        lp.type = "lowpass"
        lp.frequency.value = 500.0
        osc.frequency.value = freq
        osc.connect(lp)
        lp.connect(ctx.destination)
        osc.start()
        audio = ctx.render(ctx.sample_rate // 2)
        results[freq] = rms(audio[4096:, 0])

    assert results[100.0] > 0.5
    assert results[15000.0] < 0.01


def test_gain_scales_signal(context):
    osc = context.create_oscillator()
    gain = context.create_gain()
    gain.gain.value = 0.25
    osc.connect(gain)
    gain.connect(context.destination)
    osc.start()

    audio = context.render(4096)

    assert np.max(np.abs(audio)) == pytest.approx(0.25, abs=1e-3)


def test_stream_length_and_clock(context):
    duration = 0.1
    chunks = [chunk for chunk, info in context.stream(duration)]
    audio = np.vstack(chunks)

    assert audio.shape == (int(44100 * duration), 2)
    assert audio.dtype == np.float32
    assert context.current_time == pytest.approx(duration, abs=1 / 44100)


def test_render_does_not_rescale_blocks(context):
    for _ in range(3):
        osc = context.create_oscillator()
        osc.connect(context.destination)
        osc.start()

    first = context.render(1024)
    second = context.render(1024)

    # three in-phase unit sines sum to ~3 in every block
    assert np.max(np.abs(first)) == pytest.approx(3.0, abs=0.01)
    assert np.max(np.abs(second)) == pytest.approx(3.0, abs=0.01)


def test_interval_timer_ticks_on_audio_clock(context):
    ticks = []
    timer = context.interval_timer(0.1, lambda: ticks.append(context.current_time))
    timer.start()

    context.render(context.sample_rate)  # one second

    assert len(ticks) == 10
    assert ticks[0] == pytest.approx(0.1, abs=1e-6)
    assert ticks[-1] == pytest.approx(1.0, abs=1e-6)

    timer.cancel()
    timer.cancel()
    context.render(context.sample_rate)
    assert len(ticks) == 10
