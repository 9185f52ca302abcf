"""Audio subpackage: ring buffer, order statistics, and voice activity detection."""

from voxgate.audio.noise_floor import (
    ExponentialNoiseFloor,
    NoiseFloorEstimator,
    RollingPercentileNoiseFloor,
)
from voxgate.audio.order_statistic import OrderStatisticWindow, key_comparator
from voxgate.audio.ring_buffer import RingSampleBuffer
from voxgate.audio.vad import (
    SpeechSegment,
    VadConfig,
    VadState,
    VoiceActivityDetector,
)

__all__ = [
    "ExponentialNoiseFloor",
    "NoiseFloorEstimator",
    "OrderStatisticWindow",
    "RingSampleBuffer",
    "RollingPercentileNoiseFloor",
    "SpeechSegment",
    "VadConfig",
    "VadState",
    "VoiceActivityDetector",
    "key_comparator",
]
