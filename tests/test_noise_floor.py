"""Tests for voxgate.audio.noise_floor - adaptive baseline estimators."""

from __future__ import annotations

import pytest

from voxgate.audio.noise_floor import ExponentialNoiseFloor, RollingPercentileNoiseFloor


class TestExponentialNoiseFloor:
    def test_unset_before_first_update(self) -> None:
        assert ExponentialNoiseFloor(0.01).value is None

    def test_first_energy_seeds_floor(self) -> None:
        floor = ExponentialNoiseFloor(0.01)
        assert floor.update(2.0) == 2.0
        assert floor.value == 2.0

    def test_seed_clamped_to_minimum(self) -> None:
        floor = ExponentialNoiseFloor(0.01)
        assert floor.update(0.0) == 0.01

    def test_rises_slowly(self) -> None:
        floor = ExponentialNoiseFloor(0.01)
        floor.update(2.0)
        assert floor.update(102.0) == pytest.approx(2.0 * 0.99 + 102.0 * 0.01)

    def test_falls_quickly(self) -> None:
        floor = ExponentialNoiseFloor(0.01)
        floor.update(2.0)
        assert floor.update(1.0) == pytest.approx(2.0 * 0.9 + 1.0 * 0.1)

    def test_never_below_minimum(self) -> None:
        floor = ExponentialNoiseFloor(0.5)
        floor.update(1.0)
        for _ in range(100):
            floor.update(0.0)
        assert floor.value == 0.5

    def test_reset(self) -> None:
        floor = ExponentialNoiseFloor(0.01)
        floor.update(3.0)
        floor.reset()
        assert floor.value is None
        assert floor.update(5.0) == 5.0


class TestRollingPercentileNoiseFloor:
    def test_unset_before_first_update(self) -> None:
        assert RollingPercentileNoiseFloor(0.01).value is None

    def test_tracks_median_of_window(self) -> None:
        floor = RollingPercentileNoiseFloor(0.01, window_frames=5)
        for energy in (3.0, 2.0, 1.0, 5.0):
            floor.update(energy)
        assert floor.update(4.0) == 3.0
        assert floor.value == 3.0

    def test_old_energies_age_out(self) -> None:
        floor = RollingPercentileNoiseFloor(0.01, window_frames=3)
        for energy in (100.0, 100.0, 100.0, 1.0, 1.0):
            floor.update(energy)
        assert floor.value == 1.0
        assert floor.window.size == 3

    def test_low_percentile(self) -> None:
        floor = RollingPercentileNoiseFloor(0.01, window_frames=10, percentile=0.1)
        for energy in (5.0, 9.0, 1.0, 7.0, 3.0):
            floor.update(energy)
        assert floor.value == 1.0

    def test_clamped_to_minimum(self) -> None:
        floor = RollingPercentileNoiseFloor(0.25, window_frames=3)
        assert floor.update(0.0) == 0.25
        assert floor.value == 0.25

    def test_reset(self) -> None:
        floor = RollingPercentileNoiseFloor(0.01, window_frames=3)
        floor.update(2.0)
        floor.reset()
        assert floor.value is None
