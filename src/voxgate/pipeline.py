"""Live microphone session: capture audio and report speech edges.

The sounddevice callback runs on PortAudio's thread and only copies each
block onto an asyncio queue. A single processor task owns the detector,
so detector callbacks always run on the event loop thread.
"""

import asyncio
import signal
import time
from collections.abc import Callable
from typing import Any

import numpy as np
from rich.console import Console

from voxgate.audio.vad import SpeechSegment, VoiceActivityDetector
from voxgate.config import VoxgateConfig
from voxgate.constants import DEFAULT_AUDIO_QUEUE_MAXSIZE
from voxgate.env import LOGGER

SegmentHandler = Callable[[SpeechSegment], None]


class ListenSession:
    """Async pipeline feeding microphone audio through a detector."""

    def __init__(
        self,
        config: VoxgateConfig | None = None,
        on_segment: SegmentHandler | None = None,
        console: Console | None = None,
    ) -> None:
        self.config = config or VoxgateConfig()
        self.sample_rate = self.config.audio.sample_rate
        self.on_segment = on_segment
        self.console = console or Console()

        self.audio_queue: asyncio.Queue[np.ndarray] = asyncio.Queue(
            maxsize=DEFAULT_AUDIO_QUEUE_MAXSIZE
        )
        self.loop: asyncio.AbstractEventLoop | None = None
        self.dropped_blocks = 0
        self.segment_count = 0
        self._started_at = 0.0

        self.detector = VoiceActivityDetector(
            self.sample_rate,
            self.config.vad,
            on_speech=self._handle_speech,
            on_silence=self._handle_silence,
        )

    def _audio_callback(
        self,
        indata: np.ndarray,
        frames: int,
        time_info: Any,
        status: Any,
    ) -> None:
        """Keep callback lightweight by deferring work to the async loop."""
        data = indata.reshape(-1).copy()
        self.loop.call_soon_threadsafe(self._enqueue, data)

    def _enqueue(self, data: np.ndarray) -> None:
        if self.audio_queue.full():
            self.dropped_blocks += 1
            LOGGER.debug("Audio queue full; dropped block %d", self.dropped_blocks)
            return
        self.audio_queue.put_nowait(data)

    def _elapsed(self) -> float:
        return time.monotonic() - self._started_at

    def _handle_speech(self) -> None:
        self.console.print(f"[bold green]●[/bold green] speech  {self._elapsed():7.2f}s")

    def _handle_silence(self, samples: np.ndarray) -> None:
        segment = self.detector.last_segment
        self.segment_count += 1
        self.console.print(
            f"[dim]○[/dim] silence {self._elapsed():7.2f}s  "
            f"[cyan]{samples.size / self.sample_rate:.2f}s[/cyan] of speech"
        )
        if self.on_segment and segment is not None:
            self.on_segment(segment)

    async def _processor(self) -> None:
        """Drain captured blocks into the detector."""
        while True:
            block = await self.audio_queue.get()
            self.detector.process_audio_samples(block)

    async def run(self) -> None:
        """Open the input stream and process audio until SIGINT."""
        import sounddevice as sd

        self.loop = asyncio.get_running_loop()

        stream_kwargs: dict[str, Any] = {}
        if self.config.audio.device is not None:
            stream_kwargs["device"] = self.config.audio.device
        stream = sd.InputStream(
            samplerate=self.sample_rate,
            blocksize=int(self.sample_rate * self.config.audio.block_ms / 1000),
            channels=1,
            dtype="float32",
            callback=self._audio_callback,
            **stream_kwargs,
        )

        vad = self.config.vad
        LOGGER.info(
            "Listening at %d Hz | frame %sms, x%s threshold, %s noise floor",
            self.sample_rate,
            vad.frame_ms,
            vad.speech_threshold_multiplier,
            vad.noise_floor_strategy,
        )
        LOGGER.info("Press Ctrl+C to stop")

        self._started_at = time.monotonic()
        stream.start()
        processor = asyncio.create_task(self._processor())

        stop_event = asyncio.Event()
        processor.add_done_callback(lambda _task: stop_event.set())

        def signal_handler() -> None:
            if not stop_event.is_set():
                LOGGER.info("Stopping...")
                stop_event.set()

        signal_handler_installed = False
        try:
            self.loop.add_signal_handler(signal.SIGINT, signal_handler)
            signal_handler_installed = True
        except NotImplementedError:
            signal_handler_installed = False

        try:
            await stop_event.wait()
        finally:
            if signal_handler_installed:
                self.loop.remove_signal_handler(signal.SIGINT)

            processor.cancel()
            (outcome,) = await asyncio.gather(processor, return_exceptions=True)

            stream.stop()
            stream.close()

            if self.dropped_blocks:
                LOGGER.warning("Dropped %d audio block(s)", self.dropped_blocks)
            LOGGER.info("%d speech segment(s) detected", self.segment_count)

        if isinstance(outcome, Exception):
            raise outcome
