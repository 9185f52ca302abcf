"""CLI entry point for voxgate.

Modes:
    voxgate FILE.wav   - detect speech segments in a mono WAV file
    voxgate --listen   - report speech edges from the microphone live
"""

import argparse
import logging

from rich.console import Console

from voxgate.audio.vad import NOISE_FLOOR_STRATEGIES
from voxgate.config import VoxgateConfig, load_config, with_overrides
from voxgate.env import LOGGER, configure_logging


def _add_vad_args(parser: argparse.ArgumentParser) -> None:
    """Detector overrides; unset flags keep the config file values."""
    parser.add_argument(
        "--frame-ms", type=float, default=None, help="Analysis frame length in ms"
    )
    parser.add_argument(
        "--threshold-multiplier",
        type=float,
        default=None,
        help="Speech threshold as a multiple of the noise floor",
    )
    parser.add_argument(
        "--confirm-speech-ms",
        type=float,
        default=None,
        help="How long energy must stay above threshold to confirm speech",
    )
    parser.add_argument(
        "--confirm-silence-ms",
        type=float,
        default=None,
        help="How long energy must stay below threshold to confirm silence",
    )
    parser.add_argument(
        "--max-speech-ms",
        type=float,
        default=None,
        help="Longest utterance kept for the silence callback",
    )
    parser.add_argument(
        "--noise-floor",
        choices=NOISE_FLOOR_STRATEGIES,
        default=None,
        help="Noise floor estimator",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Energy-based voice activity detection for mono audio"
    )
    parser.add_argument("wav", nargs="?", default=None, help="Mono WAV file to scan")
    parser.add_argument(
        "--listen", action="store_true", help="Detect speech from the microphone"
    )
    parser.add_argument(
        "--config", default=None, help="Config file (default: ~/.config/voxgate/config.json)"
    )
    parser.add_argument(
        "--chunk-ms",
        type=float,
        default=None,
        help="Feed file audio in chunks of this length (default: whole file)",
    )
    parser.add_argument("--sample-rate", type=int, default=None, help="Capture rate")
    parser.add_argument(
        "--device", type=int, default=None, help="Audio input device"
    )
    parser.add_argument(
        "--list-devices", action="store_true", help="List audio devices"
    )
    _add_vad_args(parser)
    return parser


def resolve_config(args: argparse.Namespace) -> VoxgateConfig:
    """Merge the config file with command line overrides."""
    return with_overrides(
        load_config(args.config),
        sample_rate=args.sample_rate,
        device=args.device,
        frame_ms=args.frame_ms,
        speech_threshold_multiplier=args.threshold_multiplier,
        confirm_speech_ms=args.confirm_speech_ms,
        confirm_silence_ms=args.confirm_silence_ms,
        max_speech_ms=args.max_speech_ms,
        noise_floor_strategy=args.noise_floor,
    )


def list_audio_devices(console: Console | None = None) -> int:
    """Print capture devices with their native rates; returns the count shown."""
    import sounddevice as sd
    from rich.table import Table

    default_input = sd.default.device[0]
    table = Table(title="Input devices")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name")
    table.add_column("Channels", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("", style="green")
    shown = 0
    for index, device in enumerate(sd.query_devices()):
        channels = device["max_input_channels"]
        if channels < 1:
            continue
        table.add_row(
            str(index),
            device["name"],
            str(channels),
            f"{device['default_samplerate']:.0f} Hz",
            "default" if index == default_input else "",
        )
        shown += 1
    (console or Console()).print(table)
    return shown


def _run_file(args: argparse.Namespace, config: VoxgateConfig) -> int:
    """Print the speech segments found in a WAV file."""
    from rich.table import Table

    from voxgate.api import detect_array, read_wav

    samples, sample_rate = read_wav(args.wav)
    chunk_samples = (
        max(int(sample_rate * args.chunk_ms / 1000), 1) if args.chunk_ms else None
    )
    segments = detect_array(samples, sample_rate, config.vad, chunk_samples)

    table = Table(title=f"Speech in {args.wav}")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Start", justify="right")
    table.add_column("End", justify="right")
    table.add_column("Duration", style="green", justify="right")
    for i, segment in enumerate(segments, start=1):
        table.add_row(
            str(i),
            f"{segment.start_seconds:.2f}s",
            f"{segment.end_seconds:.2f}s",
            f"{segment.duration_seconds:.2f}s",
        )
    Console().print(table)
    LOGGER.info("%d segment(s) in %.2fs of audio", len(segments), samples.size / sample_rate)
    return 0


def _run_listen(config: VoxgateConfig) -> int:
    """Run the live microphone session."""
    import asyncio

    from voxgate.pipeline import ListenSession

    asyncio.run(ListenSession(config).run())
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns exit code."""
    configure_logging()
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if args.list_devices:
        if not list_audio_devices():
            LOGGER.warning("No audio input devices found")
        return 0

    if args.listen == bool(args.wav):
        parser.error("give either a WAV file or --listen")

    config = resolve_config(args)
    if args.listen:
        return _run_listen(config)
    return _run_file(args, config)
