"""Adaptive noise floor estimators used to derive the speech threshold.

The detector feeds one frame energy per frame while it is in silence and
multiplies the estimate by its threshold multiplier.
"""

from typing import Protocol

from voxgate.audio.order_statistic import OrderStatisticWindow, natural_order
from voxgate.constants import (
    DEFAULT_NOISE_PERCENTILE,
    DEFAULT_NOISE_WINDOW_FRAMES,
    NOISE_FLOOR_FALL_WEIGHT,
    NOISE_FLOOR_RISE_WEIGHT,
)


class NoiseFloorEstimator(Protocol):
    """Structural type for noise floor strategies."""

    @property
    def value(self) -> float | None: ...

    def update(self, energy: float) -> float: ...

    def reset(self) -> None: ...


class ExponentialNoiseFloor:
    """Asymmetric exponential smoothing of frame energy.

    The first energy seeds the floor. Afterwards the floor rises slowly
    and falls quickly, so that a loud transient cannot inflate it for long.
    """

    __slots__ = ("_min_noise_floor", "_value")

    def __init__(self, min_noise_floor: float) -> None:
        self._min_noise_floor = min_noise_floor
        self._value: float | None = None

    @property
    def value(self) -> float | None:
        return self._value

    def update(self, energy: float) -> float:
        if self._value is None:
            self._value = max(energy, self._min_noise_floor)
            return self._value
        weight = (
            NOISE_FLOOR_RISE_WEIGHT if energy > self._value else NOISE_FLOOR_FALL_WEIGHT
        )
        smoothed = self._value * (1.0 - weight) + energy * weight
        self._value = max(smoothed, self._min_noise_floor)
        return self._value

    def reset(self) -> None:
        self._value = None


class RollingPercentileNoiseFloor:
    """Noise floor as a rolling percentile of recent silent frame energies."""

    __slots__ = ("_min_noise_floor", "_window")

    def __init__(
        self,
        min_noise_floor: float,
        window_frames: int = DEFAULT_NOISE_WINDOW_FRAMES,
        percentile: float = DEFAULT_NOISE_PERCENTILE,
    ) -> None:
        self._min_noise_floor = min_noise_floor
        self._window: OrderStatisticWindow[float] = OrderStatisticWindow(
            window_frames, natural_order, percentile
        )

    @property
    def window(self) -> OrderStatisticWindow[float]:
        return self._window

    @property
    def value(self) -> float | None:
        current = self._window.value
        if current is None:
            return None
        return max(current, self._min_noise_floor)

    def update(self, energy: float) -> float:
        return max(self._window.insert(energy), self._min_noise_floor)

    def reset(self) -> None:
        self._window.clear()
