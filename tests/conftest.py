"""Shared test fixtures - no audio hardware needed."""

from __future__ import annotations

import wave
from collections.abc import Callable
from pathlib import Path

import numpy as np
import pytest


class EventRecorder:
    """Collects detector callbacks in the order they fire."""

    def __init__(self) -> None:
        self.events: list[tuple[str, np.ndarray | None]] = []

    def on_speech(self) -> None:
        self.events.append(("speech", None))

    def on_silence(self, samples: np.ndarray) -> None:
        self.events.append(("silence", samples.copy()))

    @property
    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.events]

    @property
    def speech_count(self) -> int:
        return self.kinds.count("speech")

    @property
    def silence_count(self) -> int:
        return self.kinds.count("silence")

    @property
    def silences(self) -> list[np.ndarray]:
        return [s for kind, s in self.events if kind == "silence"]


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


def make_utterance_audio(
    sample_rate: int,
    layout: list[tuple[float, float]],
    seed: int = 7,
) -> np.ndarray:
    """Concatenate (seconds, amplitude) blocks of noise-like signal."""
    rng = np.random.default_rng(seed)
    blocks = [
        (rng.standard_normal(int(seconds * sample_rate)) * amplitude).astype(np.float32)
        for seconds, amplitude in layout
    ]
    return np.concatenate(blocks)


@pytest.fixture
def utterance_audio() -> Callable[..., np.ndarray]:
    return make_utterance_audio


@pytest.fixture
def write_wav(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing 16-bit PCM WAV files into tmp_path."""

    def _write(
        samples: np.ndarray,
        sample_rate: int,
        name: str = "audio.wav",
        channels: int = 1,
    ) -> Path:
        path = tmp_path / name
        pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2")
        with wave.open(str(path), "wb") as wf:
            wf.setnchannels(channels)
            wf.setsampwidth(2)
            wf.setframerate(sample_rate)
            wf.writeframes(pcm.tobytes())
        return path

    return _write
