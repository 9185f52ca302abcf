"""Tests for voxgate.pipeline - queueing, detector wiring and session shutdown.

No audio hardware is needed: the run() tests install a stand-in sounddevice.
"""

from __future__ import annotations

import asyncio
import io
import signal
import sys
import types
from collections.abc import Callable

import numpy as np
import pytest
from rich.console import Console

from voxgate.audio.vad import SpeechSegment, VadConfig
from voxgate.config import AudioConfig, VoxgateConfig
from voxgate.constants import DEFAULT_AUDIO_QUEUE_MAXSIZE
from voxgate.pipeline import ListenSession

RATE = 8_000
BLOCK = 160


def _session(on_segment: Callable[[SpeechSegment], None] | None = None) -> ListenSession:
    config = VoxgateConfig(
        audio=AudioConfig(sample_rate=RATE),
        vad=VadConfig(
            speech_threshold_multiplier=8,
            confirm_speech_ms=40,
            confirm_silence_ms=300,
        ),
    )
    return ListenSession(config, on_segment, console=Console(file=io.StringIO()))


async def _drain(session: ListenSession) -> None:
    while not session.audio_queue.empty():
        await asyncio.sleep(0)


class TestEnqueue:
    def test_drops_blocks_when_queue_full(self) -> None:
        async def scenario() -> ListenSession:
            session = _session()
            for _ in range(DEFAULT_AUDIO_QUEUE_MAXSIZE + 3):
                session._enqueue(np.zeros(BLOCK, dtype=np.float32))
            return session

        session = asyncio.run(scenario())
        assert session.audio_queue.qsize() == DEFAULT_AUDIO_QUEUE_MAXSIZE
        assert session.dropped_blocks == 3

    def test_callback_flattens_and_copies(self) -> None:
        async def scenario() -> np.ndarray:
            session = _session()
            session.loop = asyncio.get_running_loop()
            indata = np.ones((BLOCK, 1), dtype=np.float32)
            session._audio_callback(indata, BLOCK, None, None)
            indata[:] = 0
            await asyncio.sleep(0)
            return session.audio_queue.get_nowait()

        block = asyncio.run(scenario())
        assert block.shape == (BLOCK,)
        assert np.all(block == 1)


class TestProcessing:
    def test_segments_reported(self, utterance_audio: Callable[..., np.ndarray]) -> None:
        segments: list[SpeechSegment] = []
        audio = utterance_audio(RATE, [(1.0, 0.01), (1.0, 0.5), (1.0, 0.01)])

        async def scenario() -> ListenSession:
            session = _session(segments.append)
            session.loop = asyncio.get_running_loop()
            processor = asyncio.create_task(session._processor())
            for start in range(0, audio.size, BLOCK):
                block = audio[start : start + BLOCK].reshape(-1, 1)
                session._audio_callback(block, block.shape[0], None, None)
            await asyncio.sleep(0)
            await asyncio.wait_for(_drain(session), timeout=5)
            processor.cancel()
            await asyncio.gather(processor, return_exceptions=True)
            return session

        session = asyncio.run(scenario())
        assert session.dropped_blocks == 0
        assert session.segment_count == 1
        assert len(segments) == 1
        assert 0.95 <= segments[0].start_seconds <= 1.0
        output = session.console.file.getvalue()
        assert "speech" in output
        assert "silence" in output

    def test_no_segment_handler(self) -> None:
        session = _session()
        session.detector.process_audio_samples(
            np.concatenate(
                [
                    np.full(800, 0.01, dtype=np.float32),
                    np.full(800, 0.5, dtype=np.float32),
                    np.full(4000, 0.01, dtype=np.float32),
                ]
            )
        )
        assert session.segment_count == 1


class FakeInputStream:
    """Records lifecycle calls and replays blocks through the callback on start."""

    def __init__(self, blocks: list[np.ndarray], **kwargs: object) -> None:
        self.blocks = blocks
        self.kwargs = kwargs
        self.calls: list[str] = []

    def start(self) -> None:
        self.calls.append("start")
        callback = self.kwargs["callback"]
        for block in self.blocks:
            callback(block.reshape(-1, 1), block.size, None, None)

    def stop(self) -> None:
        self.calls.append("stop")

    def close(self) -> None:
        self.calls.append("close")


@pytest.fixture
def fake_sounddevice(
    monkeypatch: pytest.MonkeyPatch,
) -> Callable[[np.ndarray], list[FakeInputStream]]:
    """Install a stand-in ``sounddevice`` module that streams the given audio."""

    def install(audio: np.ndarray) -> list[FakeInputStream]:
        streams: list[FakeInputStream] = []
        blocks = [audio[i : i + BLOCK] for i in range(0, audio.size, BLOCK)]

        def input_stream(**kwargs: object) -> FakeInputStream:
            stream = FakeInputStream(blocks, **kwargs)
            streams.append(stream)
            return stream

        module = types.ModuleType("sounddevice")
        module.InputStream = input_stream
        monkeypatch.setitem(sys.modules, "sounddevice", module)
        return streams

    return install


class TestRun:
    def test_sigint_stops_session(
        self,
        fake_sounddevice: Callable[[np.ndarray], list[FakeInputStream]],
        utterance_audio: Callable[..., np.ndarray],
    ) -> None:
        streams = fake_sounddevice(
            utterance_audio(RATE, [(1.0, 0.01), (1.0, 0.5), (1.0, 0.01)])
        )
        session = _session()

        async def wait_for_segment() -> None:
            while session.segment_count < 1:
                await asyncio.sleep(0)

        async def scenario() -> None:
            task = asyncio.create_task(session.run())
            await asyncio.wait_for(wait_for_segment(), timeout=5)
            signal.raise_signal(signal.SIGINT)
            await asyncio.wait_for(task, timeout=5)

        asyncio.run(scenario())
        (stream,) = streams
        assert stream.calls == ["start", "stop", "close"]
        assert stream.kwargs["samplerate"] == RATE
        assert stream.kwargs["blocksize"] == BLOCK
        assert stream.kwargs["channels"] == 1
        assert stream.kwargs["dtype"] == "float32"
        assert "device" not in stream.kwargs
        assert session.segment_count == 1
        assert signal.getsignal(signal.SIGINT) is signal.default_int_handler

    def test_processor_failure_is_reraised(
        self,
        fake_sounddevice: Callable[[np.ndarray], list[FakeInputStream]],
        utterance_audio: Callable[..., np.ndarray],
    ) -> None:
        streams = fake_sounddevice(
            utterance_audio(RATE, [(1.0, 0.01), (1.0, 0.5), (1.0, 0.01)])
        )

        def on_segment(_segment: SpeechSegment) -> None:
            raise RuntimeError("segment handler failed")

        session = _session(on_segment)
        with pytest.raises(RuntimeError, match="segment handler failed"):
            asyncio.run(session.run())
        assert streams[0].calls == ["start", "stop", "close"]
        assert session.segment_count == 1
