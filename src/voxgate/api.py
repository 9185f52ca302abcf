"""Offline detection API: run the detector over arrays and WAV files.

Typical usage::

    from voxgate.api import detect_file

    for segment in detect_file("meeting.wav"):
        print(f"{segment.start_seconds:.2f}s - {segment.end_seconds:.2f}s")
"""

from __future__ import annotations

import wave

import numpy as np

from voxgate.audio.vad import SpeechSegment, VadConfig, VoiceActivityDetector
from voxgate.env import LOGGER
from voxgate.errors import InvalidArgumentError


def read_wav(audio_path: str) -> tuple[np.ndarray, int]:
    """Read a mono PCM WAV file as float32 samples in ``[-1, 1)``.

    Supports 8-bit unsigned, 16-bit and 32-bit signed PCM. Multi-channel
    files are rejected; the file's own sample rate is returned unchanged.
    """
    with wave.open(audio_path, "rb") as wf:
        n_channels = wf.getnchannels()
        sampwidth = wf.getsampwidth()
        framerate = wf.getframerate()
        raw_data = wf.readframes(wf.getnframes())

    if n_channels != 1:
        raise InvalidArgumentError(
            f"{audio_path}: expected mono audio, got {n_channels} channels"
        )

    if sampwidth == 2:
        samples = np.frombuffer(raw_data, dtype="<i2").astype(np.float32) / 32768.0
    elif sampwidth == 4:
        samples = (
            np.frombuffer(raw_data, dtype="<i4").astype(np.float32) / 2147483648.0
        )
    elif sampwidth == 1:
        samples = np.frombuffer(raw_data, dtype=np.uint8).astype(np.float32) / 128.0 - 1.0
    else:
        raise InvalidArgumentError(f"{audio_path}: unsupported sample width {sampwidth}")

    return samples, framerate


def detect_array(
    audio: np.ndarray,
    sample_rate: int,
    config: VadConfig | None = None,
    chunk_samples: int | None = None,
) -> list[SpeechSegment]:
    """Run voice activity detection over a mono float32 array.

    The array is fed in chunks of ``chunk_samples`` (all at once when
    None) to mimic streaming input. Speech still in progress at the end
    of the array is closed as a final segment.
    """
    segments: list[SpeechSegment] = []
    detector: VoiceActivityDetector

    def on_silence(_samples: np.ndarray) -> None:
        segments.append(detector.last_segment)

    detector = VoiceActivityDetector(sample_rate, config, on_silence=on_silence)

    samples = np.asarray(audio, dtype=np.float32)
    step = chunk_samples or max(samples.size, 1)
    if step < 1:
        raise InvalidArgumentError("chunk_samples must be positive")
    for start in range(0, samples.size, step):
        detector.process_audio_samples(samples[start : start + step])
    detector.flush()

    LOGGER.debug(
        "Detected %d segment(s) in %.2fs of audio",
        len(segments),
        samples.size / sample_rate,
    )
    return segments


def detect_file(
    audio_path: str,
    config: VadConfig | None = None,
    chunk_samples: int | None = None,
) -> list[SpeechSegment]:
    """Run voice activity detection over a mono WAV file."""
    samples, sample_rate = read_wav(audio_path)
    return detect_array(samples, sample_rate, config, chunk_samples)
