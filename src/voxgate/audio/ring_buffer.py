"""Fixed-capacity circular buffer for float32 audio samples.

Samples are addressed by monotonically increasing sample numbers rather
than physical offsets. The buffer is preallocated once and never grows;
when a writer outpaces the reader, the oldest samples are overwritten
silently. Only _physical() maps sample numbers onto storage.
"""

from typing import Self

import numpy as np

from voxgate.errors import (
    CapacityExceededError,
    FrameNotReadyError,
    InsufficientSamplesError,
    InvalidArgumentError,
)


class RingSampleBuffer:
    """Circular sample store with frame energy, hop, and range extraction.

    Three counters only ever grow:

    - ``write_sample_no``: next sample number to be written.
    - ``first_available_sample_no``: oldest sample still in storage.
    - ``start_frame_sample_no``: first sample of the current analysis frame.

    ``first_available <= start_frame <= write`` and
    ``write - first_available <= capacity`` hold after every call.
    """

    __slots__ = (
        "_buffer",
        "_frame_sample_count",
        "_hop_sample_count",
        "_write_sample_no",
        "_first_available_sample_no",
        "_start_frame_sample_no",
    )

    def __init__(self, frame_sample_count: int, total_capacity: int = 0) -> None:
        if frame_sample_count <= 1:
            raise InvalidArgumentError("frame_sample_count must be > 1")
        if frame_sample_count % 2 != 0:
            raise InvalidArgumentError("frame_sample_count must be even")
        capacity = max(int(total_capacity), frame_sample_count * 2)
        self._buffer = np.zeros(capacity, dtype=np.float32)
        self._frame_sample_count = int(frame_sample_count)
        self._hop_sample_count = self._frame_sample_count // 2
        self._write_sample_no = 0
        self._first_available_sample_no = 0
        self._start_frame_sample_no = 0

    @classmethod
    def create(
        cls, frame_sample_count: int, max_seconds: float, sample_rate: int
    ) -> Self:
        """Create a buffer able to look back over ``max_seconds`` of audio."""
        return cls(frame_sample_count, round(max_seconds * sample_rate))

    @property
    def capacity(self) -> int:
        return len(self._buffer)

    @property
    def frame_sample_count(self) -> int:
        return self._frame_sample_count

    @property
    def hop_sample_count(self) -> int:
        return self._hop_sample_count

    @property
    def write_sample_no(self) -> int:
        return self._write_sample_no

    @property
    def first_available_sample_no(self) -> int:
        return self._first_available_sample_no

    @property
    def start_frame_sample_no(self) -> int:
        return self._start_frame_sample_no

    @property
    def available_frame_sample_count(self) -> int:
        """Samples written at or after the current frame start."""
        return self._write_sample_no - self._start_frame_sample_no

    @property
    def available_write_space(self) -> int:
        return self.capacity - self.available_frame_sample_count

    @property
    def is_frame_available(self) -> bool:
        return self.available_frame_sample_count >= self._frame_sample_count

    def _physical(self, sample_no: int) -> int:
        return sample_no % len(self._buffer)

    def _segments(self, from_sample_no: int, to_sample_no: int) -> tuple[slice, ...]:
        """Physical slices covering ``[from_sample_no, to_sample_no)``.

        The range must not be longer than the capacity.
        """
        if to_sample_no <= from_sample_no:
            return ()
        start = self._physical(from_sample_no)
        stop = self._physical(to_sample_no - 1) + 1
        if start < stop:
            return (slice(start, stop),)
        return (slice(start, len(self._buffer)), slice(0, stop))

    def add_samples(
        self, source: np.ndarray, offset: int = 0, count: int | None = None
    ) -> None:
        """Write ``count`` samples of ``source`` starting at ``offset``.

        Raises CapacityExceededError if the samples do not fit in
        ``available_write_space``. Samples older than the frame start may
        be overwritten; that data is dropped without notice.
        """
        data = np.asarray(source, dtype=np.float32).reshape(-1)
        if count is None:
            count = data.size - offset
        if offset < 0 or count < 0 or offset + count > data.size:
            raise InvalidArgumentError(
                f"range [{offset}, {offset + count}) outside source of {data.size}"
            )
        if count > self.available_write_space:
            raise CapacityExceededError(
                f"cannot add {count} samples, only {self.available_write_space} free"
            )
        pos = offset
        for seg in self._segments(self._write_sample_no, self._write_sample_no + count):
            n = seg.stop - seg.start
            self._buffer[seg] = data[pos : pos + n]
            pos += n
        self._write_sample_no += count
        oldest = self._write_sample_no - self.capacity
        if oldest > self._first_available_sample_no:
            self._first_available_sample_no = oldest

    def calc_frame_energy(self) -> float:
        """Sum of squared samples over the current frame."""
        if not self.is_frame_available:
            raise FrameNotReadyError(
                f"frame needs {self._frame_sample_count} samples, "
                f"{self.available_frame_sample_count} available"
            )
        start = self._start_frame_sample_no
        energy = 0.0
        for seg in self._segments(start, start + self._frame_sample_count):
            values = self._buffer[seg].astype(np.float64)
            energy += float(np.dot(values, values))
        return energy

    def hop(self) -> None:
        """Advance the frame start by half a frame."""
        if self.available_frame_sample_count < self._hop_sample_count:
            raise InsufficientSamplesError(
                f"hop needs {self._hop_sample_count} samples, "
                f"{self.available_frame_sample_count} available"
            )
        self._start_frame_sample_no += self._hop_sample_count

    def copy_samples(self, from_sample_no: int, to_sample_no: int) -> np.ndarray:
        """Return a contiguous copy of samples in ``[from, to)``.

        Both bounds are clamped to what is still stored, so this never
        raises; an empty array is returned for an empty range.
        """
        low = self._first_available_sample_no
        high = self._write_sample_no
        start = min(max(from_sample_no, low), high)
        end = min(max(to_sample_no, low), high)
        segments = self._segments(start, end)
        if not segments:
            return np.array([], dtype=np.float32)
        if len(segments) == 1:
            return self._buffer[segments[0]].copy()
        return np.concatenate([self._buffer[seg] for seg in segments])

    def reset(self) -> None:
        """Forget all samples; storage is kept."""
        self._write_sample_no = 0
        self._first_available_sample_no = 0
        self._start_frame_sample_no = 0
