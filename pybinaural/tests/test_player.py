import numpy as np
import pytest

import pybinaural.cli as cli
import pybinaural.player as player_mod
from pybinaural.player import StreamPlayer


class FakeStream:
    """Stands in for sounddevice.OutputStream; pulls one block on start."""

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.active = False
        self.started = self.stopped = self.closed = False

    def start(self):
        self.started = True
        self.active = True
        frames = self.kwargs["blocksize"]
        outdata = np.zeros((frames, self.kwargs["channels"]), dtype=np.float32)
        self.kwargs["callback"](outdata, frames, None, None)
        self.last_block = outdata

    def stop(self):
        self.stopped = True
        self.active = False

    def close(self):
        self.closed = True


@pytest.fixture
def streams(monkeypatch):
    opened = []

    def fake_open(**kwargs):
        stream = FakeStream(**kwargs)
        opened.append(stream)
        return stream

    monkeypatch.setattr(player_mod, "open_stream", fake_open)
    return opened


def test_callback_renders_from_context(controller, context):
    controller.start(200, 4, volume=0.5)
    player = StreamPlayer(context)
    outdata = np.zeros((512, 2), dtype=np.float32)

    player.audio_callback(outdata, 512, None, None)

    assert context.current_time == pytest.approx(512 / 44100)
    assert not player.playing


def test_callback_clips_hot_signal(context):
    for _ in range(3):
        osc = context.create_oscillator()
        osc.connect(context.destination)
        osc.start()
    player = StreamPlayer(context)
    outdata = np.zeros((1024, 2), dtype=np.float32)

    player.audio_callback(outdata, 1024, None, None)

    assert np.max(np.abs(outdata)) == pytest.approx(1.0)


def test_stop_without_stream_is_noop(context):
    player = StreamPlayer(context)
    player.stop()
    assert player.stream is None


def test_start_opens_stream_once(context, streams):
    player = StreamPlayer(context, device="dummy", blocksize=256)
    player.start()
    player.start()

    assert len(streams) == 1
    stream = streams[0]
    assert stream.started and player.playing
    assert stream.kwargs["samplerate"] == 44100
    assert stream.kwargs["channels"] == 2
    assert stream.kwargs["device"] == "dummy"
    assert stream.kwargs["dtype"] == "float32"
    assert context.current_time == pytest.approx(256 / 44100)

    player.stop()
    player.stop()
    assert stream.stopped and stream.closed
    assert player.stream is None
    assert not player.playing


def test_play_for_closes_stream(context, streams):
    player = StreamPlayer(context)
    player.play_for(0.2)

    assert streams[0].closed
    assert player.stream is None


def test_context_manager_closes_stream(context, streams):
    with StreamPlayer(context) as player:
        assert player.playing
    assert streams[0].stopped and streams[0].closed
    assert player.stream is None


def test_cli_play_stops_controller(streams, monkeypatch):
    made = []

    class RecordingController(cli.StimulusController):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            made.append(self)

    monkeypatch.setattr(cli, "StimulusController", RecordingController)

    assert cli.main(["--play", "-d", "0.2", "--drift", "1", "3", "7"]) == 0

    controller = made[0]
    assert not controller.active
    assert controller.drift is None
    assert streams[0].closed
    assert streams[0].kwargs["callback"] is not None
