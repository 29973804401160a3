import argparse
import logging

import numpy as np
import soundfile as sf

from .config import (
    DEFAULT_VOLUME,
    DEFAULT_WAVE,
    SAMPLE_RATE,
    STOP_GRACE,
    WAVEFORMS,
)
from .controller import StimulusController
from .graph import AudioContext

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="pybinaural", description="Binaural beat / isochronic stimulus generator")
    out = p.add_mutually_exclusive_group(required=True)
    out.add_argument("-o", "--outfile", help="Render offline to this audio file")
    out.add_argument("--play", action="store_true", help="Play live on the output device")
    p.add_argument("-d", "--duration", type=float, required=True, help="Session length in seconds")
    p.add_argument("--base", type=float, default=200.0, help="Carrier frequency for the left ear (Hz)")
    p.add_argument("--beat", type=float, default=10.0, help="Beat frequency added on the right ear (Hz)")
    p.add_argument("--volume", type=float, default=DEFAULT_VOLUME, help="Output volume (0-1)")
    p.add_argument("--wave", default=DEFAULT_WAVE, choices=WAVEFORMS)
    p.add_argument("--drift", nargs=3, type=float, metavar=("PERIOD", "MIN", "MAX"),
                   help="Sweep the beat between MIN and MAX Hz over PERIOD seconds")
    p.add_argument("--isochronic", nargs=2, type=float, metavar=("RATE", "VOLUME"),
                   help="Add a square-wave pulse layer")
    p.add_argument("--no-tones", action="store_true", help="Skip the binaural pair (pulse layer only)")
    p.add_argument("--sample-rate", type=int, default=SAMPLE_RATE)
    p.add_argument("--device", help="Output device for --play")
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def configure(controller: StimulusController, args) -> None:
    if not args.no_tones:
        controller.start(args.base, args.beat, args.volume, args.wave)
        if args.drift is not None:
            period, lo, hi = args.drift
            controller.start_drift(period, lo, hi)
    else:
        controller.set_volume(args.volume)
    if args.isochronic is not None:
        controller.start_isochronic(*args.isochronic)


def render_to_file(args) -> int:
    context = AudioContext(sample_rate=args.sample_rate)
    controller = StimulusController(context, timer_factory=context.interval_timer)
    configure(controller, args)

    chunks = [c for c, _ in context.stream(args.duration)]
    controller.stop()
    controller.stop_isochronic()
    # let the fade-out finish so the file does not end on a click
    chunks.extend(c for c, _ in context.stream(STOP_GRACE * 2))
    if not chunks:
        print("No audio generated.")
        return 1

    audio = np.vstack(chunks)
    # one gain for the whole file
    peak = float(np.max(np.abs(audio)))
    if peak > 1.0:
        audio /= peak
    sf.write(args.outfile, audio, context.sample_rate)
    print(f"Wrote {len(audio) / context.sample_rate:.2f}s to {args.outfile}")
    return 0


def play_live(args) -> int:
    from .player import StreamPlayer

    context = AudioContext(sample_rate=args.sample_rate)
    player = StreamPlayer(context, device=args.device)
    with StimulusController(context) as controller:
        configure(controller, args)
        try:
            player.play_for(args.duration)
        except KeyboardInterrupt:
            logger.info("Interrupted")
            player.stop()
    return 0


def main(argv=None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="[%(levelname)s] %(message)s")

    if args.duration <= 0:
        p.error("--duration must be positive")
    if args.no_tones and args.drift is not None:
        p.error("--drift needs the binaural pair; drop --no-tones")
    if args.no_tones and args.isochronic is None:
        p.error("--no-tones without --isochronic would render silence")
    try:
        if args.play:
            return play_live(args)
        return render_to_file(args)
    except ValueError as e:
        p.error(str(e))


if __name__ == "__main__":
    raise SystemExit(main())
