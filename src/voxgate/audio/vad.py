"""Energy-based voice activity detection with hysteresis.

Audio is analysed in half-overlapping frames. Each frame's energy is
compared against an adaptive noise floor times a multiplier, and a
two-state machine confirms speech onset and return to silence only after
the condition has held for a configurable delay. Time is measured in
samples, so the detector is deterministic for a given input stream no
matter how it is chunked.
"""

import math
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

import numpy as np

from voxgate.audio.noise_floor import (
    ExponentialNoiseFloor,
    NoiseFloorEstimator,
    RollingPercentileNoiseFloor,
)
from voxgate.audio.ring_buffer import RingSampleBuffer
from voxgate.constants import (
    DEFAULT_CONFIRM_SILENCE_MS,
    DEFAULT_CONFIRM_SPEECH_MS,
    DEFAULT_FRAME_MS,
    DEFAULT_MAX_SPEECH_MS,
    DEFAULT_NOISE_FLOOR_STRATEGY,
    DEFAULT_NOISE_PERCENTILE,
    DEFAULT_NOISE_WINDOW_FRAMES,
    DEFAULT_SPEECH_THRESHOLD_MULTIPLIER,
    MIN_WINDOW_NODE_COUNT,
)
from voxgate.env import LOGGER
from voxgate.errors import InvalidArgumentError

NOISE_FLOOR_STRATEGIES = ("exponential", "percentile")

SpeechCallback = Callable[[], None]
SilenceCallback = Callable[[np.ndarray], None]


@dataclass(frozen=True, slots=True)
class VadConfig:
    """Immutable detector configuration."""

    frame_ms: float = DEFAULT_FRAME_MS
    speech_threshold_multiplier: float = DEFAULT_SPEECH_THRESHOLD_MULTIPLIER
    confirm_speech_ms: float = DEFAULT_CONFIRM_SPEECH_MS
    confirm_silence_ms: float = DEFAULT_CONFIRM_SILENCE_MS
    max_speech_ms: float = DEFAULT_MAX_SPEECH_MS
    noise_floor_strategy: str = DEFAULT_NOISE_FLOOR_STRATEGY
    noise_window_frames: int = DEFAULT_NOISE_WINDOW_FRAMES
    noise_percentile: float = DEFAULT_NOISE_PERCENTILE

    def __post_init__(self) -> None:
        if self.frame_ms <= 0:
            raise InvalidArgumentError("frame_ms must be positive")
        if self.speech_threshold_multiplier <= 0:
            raise InvalidArgumentError("speech_threshold_multiplier must be positive")
        if self.confirm_speech_ms < 0 or self.confirm_silence_ms < 0:
            raise InvalidArgumentError("confirmation delays must not be negative")
        if self.max_speech_ms < 0:
            raise InvalidArgumentError("max_speech_ms must not be negative")
        if self.noise_floor_strategy not in NOISE_FLOOR_STRATEGIES:
            raise InvalidArgumentError(
                f"noise_floor_strategy must be one of: {', '.join(NOISE_FLOOR_STRATEGIES)}"
            )
        if self.noise_window_frames < MIN_WINDOW_NODE_COUNT:
            raise InvalidArgumentError(
                f"noise_window_frames must be at least {MIN_WINDOW_NODE_COUNT}"
            )
        if not (0.0 <= self.noise_percentile <= 1.0):
            raise InvalidArgumentError("noise_percentile must be between 0 and 1")


class VadState(StrEnum):
    SILENCE = "silence"
    SPEECH = "speech"


@dataclass(frozen=True, slots=True)
class SpeechSegment:
    """Samples of one confirmed utterance and where they sit in the stream."""

    samples: np.ndarray
    start_sample_no: int
    end_sample_no: int
    sample_rate: int

    @property
    def start_seconds(self) -> float:
        return self.start_sample_no / self.sample_rate

    @property
    def end_seconds(self) -> float:
        return self.end_sample_no / self.sample_rate

    @property
    def duration_seconds(self) -> float:
        return self.samples.size / self.sample_rate


def ms_to_samples(ms: float, sample_rate: int) -> int:
    """Convert milliseconds to a sample count, rounding half up."""
    return math.floor(ms * sample_rate / 1000 + 0.5)


def make_noise_floor(config: VadConfig, min_noise_floor: float) -> NoiseFloorEstimator:
    """Build the noise floor estimator named by ``config``."""
    if config.noise_floor_strategy == "percentile":
        return RollingPercentileNoiseFloor(
            min_noise_floor,
            window_frames=config.noise_window_frames,
            percentile=config.noise_percentile,
        )
    return ExponentialNoiseFloor(min_noise_floor)


class VoiceActivityDetector:
    """Streaming speech/silence detector driven by successive sample chunks.

    ``on_speech()`` fires once per confirmed speech onset and
    ``on_silence(samples)`` once per confirmed return to silence, with the
    buffered utterance samples. Callbacks run inline on the caller's
    thread and must not call back into the same detector.
    """

    __slots__ = (
        "_sample_rate",
        "_config",
        "_on_speech",
        "_on_silence",
        "_buffer",
        "_noise_floor",
        "_multiplier",
        "_confirm_speech_samples",
        "_confirm_silence_samples",
        "_state",
        "_speech_since",
        "_silence_since",
        "_threshold",
        "_frame_count",
        "_last_segment",
    )

    def __init__(
        self,
        sample_rate: int,
        config: VadConfig | None = None,
        *,
        on_speech: SpeechCallback | None = None,
        on_silence: SilenceCallback | None = None,
        noise_floor: NoiseFloorEstimator | None = None,
    ) -> None:
        if sample_rate <= 0:
            raise InvalidArgumentError("sample_rate must be positive")
        self._sample_rate = sample_rate
        self._config = config or VadConfig()
        self._on_speech = on_speech
        self._on_silence = on_silence

        frame_sample_count = max(ms_to_samples(self._config.frame_ms, sample_rate), 2)
        if frame_sample_count % 2 == 1:
            frame_sample_count += 1  # hops must be exactly half a frame
        self._buffer = RingSampleBuffer.create(
            frame_sample_count, self._config.max_speech_ms / 1000, sample_rate
        )
        self._noise_floor = noise_floor or make_noise_floor(
            self._config, 1.0 / sample_rate
        )
        self._multiplier = self._config.speech_threshold_multiplier
        self._confirm_speech_samples = ms_to_samples(
            self._config.confirm_speech_ms, sample_rate
        )
        self._confirm_silence_samples = ms_to_samples(
            self._config.confirm_silence_ms, sample_rate
        )
        self._state = VadState.SILENCE
        self._speech_since: int | None = None
        self._silence_since: int | None = None
        self._threshold: float | None = None
        self._frame_count = 0
        self._last_segment: SpeechSegment | None = None

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def config(self) -> VadConfig:
        return self._config

    @property
    def state(self) -> VadState:
        return self._state

    @property
    def is_speech(self) -> bool:
        return self._state is VadState.SPEECH

    @property
    def noise_floor(self) -> float | None:
        """Current noise floor, or None before the first frame."""
        return self._noise_floor.value

    @property
    def threshold(self) -> float | None:
        """Speech threshold used for the most recent frame."""
        return self._threshold

    @property
    def frame_sample_count(self) -> int:
        return self._buffer.frame_sample_count

    @property
    def processed_frame_count(self) -> int:
        return self._frame_count

    @property
    def buffer(self) -> RingSampleBuffer:
        return self._buffer

    @property
    def last_segment(self) -> SpeechSegment | None:
        """The segment most recently handed to ``on_silence``."""
        return self._last_segment

    def process_audio_samples(self, samples: np.ndarray) -> None:
        """Consume a chunk of mono samples, firing callbacks for each edge.

        Samples that do not complete a frame are retained for the next call.
        """
        data = np.asarray(samples, dtype=np.float32)
        if data.ndim > 1:
            if data.ndim != 2 or data.shape[1] != 1:
                raise InvalidArgumentError("only mono audio is supported")
            data = data.reshape(-1)

        buffer = self._buffer
        offset = 0
        while True:
            if not buffer.is_frame_available:
                count = min(data.size - offset, buffer.available_write_space)
                if count < 1:
                    return
                buffer.add_samples(data, offset, count)
                offset += count
                if not buffer.is_frame_available:
                    return
            self._process_frame()

    def _process_frame(self) -> None:
        buffer = self._buffer
        energy = buffer.calc_frame_energy()
        now = buffer.start_frame_sample_no
        self._frame_count += 1

        # Speech would pollute the baseline.
        if self._state is VadState.SILENCE:
            noise_floor = self._noise_floor.update(energy)
        else:
            noise_floor = self._noise_floor.value
        self._threshold = threshold = noise_floor * self._multiplier

        if energy > threshold:
            self._silence_since = None
            if self._state is VadState.SILENCE:
                if self._speech_since is None:
                    self._speech_since = now
                if now - self._speech_since >= self._confirm_speech_samples:
                    self._enter_speech(now, energy, threshold)
        elif self._state is VadState.SPEECH:
            if self._silence_since is None:
                self._silence_since = now
            if now - self._silence_since >= self._confirm_silence_samples:
                self._enter_silence(now)
        else:
            self._speech_since = None

        buffer.hop()

    def _enter_speech(self, now: int, energy: float, threshold: float) -> None:
        self._state = VadState.SPEECH
        LOGGER.debug(
            "Speech at sample %d (since %d, energy %.6g > %.6g)",
            now,
            self._speech_since,
            energy,
            threshold,
        )
        if self._on_speech:
            self._on_speech()

    def _enter_silence(self, now: int) -> None:
        # One extra frame keeps word endings that dipped below threshold early.
        end = self._silence_since + self._buffer.frame_sample_count
        LOGGER.debug("Silence at sample %d (since %d)", now, self._silence_since)
        self._emit_segment(self._speech_since, end)

    def _emit_segment(self, start: int, end: int) -> None:
        buffer = self._buffer
        if start < buffer.first_available_sample_no:
            LOGGER.debug(
                "Utterance longer than buffer; dropping %d oldest samples",
                buffer.first_available_sample_no - start,
            )
        samples = buffer.copy_samples(start, end)
        end_sample_no = min(max(end, buffer.first_available_sample_no), buffer.write_sample_no)
        self._last_segment = SpeechSegment(
            samples=samples,
            start_sample_no=end_sample_no - samples.size,
            end_sample_no=end_sample_no,
            sample_rate=self._sample_rate,
        )
        self._state = VadState.SILENCE
        self._speech_since = self._silence_since = None
        if self._on_silence:
            self._on_silence(samples)

    def flush(self) -> None:
        """End an utterance still in progress at the last written sample.

        Intended for finite inputs such as files; live streams simply stop
        calling process_audio_samples().
        """
        if self._state is not VadState.SPEECH:
            return
        LOGGER.debug("Flushing speech at sample %d", self._buffer.write_sample_no)
        self._emit_segment(self._speech_since, self._buffer.write_sample_no)

    def reset(self) -> None:
        """Return to the initial state, forgetting buffered audio and noise floor."""
        self._buffer.reset()
        self._noise_floor.reset()
        self._state = VadState.SILENCE
        self._speech_since = self._silence_since = None
        self._threshold = None
        self._frame_count = 0
        self._last_segment = None
