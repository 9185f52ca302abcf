"""Default configuration values for voxgate."""

from typing import Final

DEFAULT_SAMPLE_RATE: Final = 16_000
DEFAULT_BLOCK_MS: Final = 20
DEFAULT_AUDIO_QUEUE_MAXSIZE: Final = 200

# Detector
DEFAULT_FRAME_MS: Final = 20
DEFAULT_SPEECH_THRESHOLD_MULTIPLIER: Final = 20.0
DEFAULT_CONFIRM_SPEECH_MS: Final = 40
DEFAULT_CONFIRM_SILENCE_MS: Final = 1000
DEFAULT_MAX_SPEECH_MS: Final = 10_000
DEFAULT_NOISE_FLOOR_STRATEGY: Final = "exponential"
DEFAULT_NOISE_WINDOW_FRAMES: Final = 100
DEFAULT_NOISE_PERCENTILE: Final = 0.5

# Noise floor smoothing: rise slowly, fall fast.
NOISE_FLOOR_RISE_WEIGHT: Final = 0.01
NOISE_FLOOR_FALL_WEIGHT: Final = 0.10

# Order statistic window
MIN_WINDOW_NODE_COUNT: Final = 3
MAX_PERCENTILE: Final = 0.99999

# Config file
DEFAULT_CONFIG_DIR: Final = "~/.config/voxgate"
DEFAULT_CONFIG_DIR_ENV: Final = "VOXGATE_CONFIG_DIR"
DEFAULT_CONFIG_FILE: Final = "config.json"
