"""Application-level configuration loaded from a JSON file.

The file is optional; every value has a default in voxgate.constants.
Example ``~/.config/voxgate/config.json``::

    {
      "audio": {"sample_rate": 16000, "device": null, "block_ms": 20},
      "vad": {"speech_threshold_multiplier": 8, "confirm_silence_ms": 700}
    }
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from voxgate.audio.vad import VadConfig
from voxgate.constants import (
    DEFAULT_BLOCK_MS,
    DEFAULT_CONFIG_DIR,
    DEFAULT_CONFIG_DIR_ENV,
    DEFAULT_CONFIG_FILE,
    DEFAULT_SAMPLE_RATE,
)
from voxgate.env import LOGGER
from voxgate.errors import InvalidArgumentError


@dataclass(frozen=True, slots=True)
class AudioConfig:
    """Capture settings for the live listen session."""

    sample_rate: int = DEFAULT_SAMPLE_RATE
    device: int | None = None
    block_ms: int = DEFAULT_BLOCK_MS

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise InvalidArgumentError("sample_rate must be positive")
        if self.block_ms <= 0:
            raise InvalidArgumentError("block_ms must be positive")


@dataclass(frozen=True, slots=True)
class VoxgateConfig:
    """Top-level configuration."""

    audio: AudioConfig = field(default_factory=AudioConfig)
    vad: VadConfig = field(default_factory=VadConfig)


def _filter_fields(cls: type, raw: dict[str, Any], section: str) -> dict[str, Any]:
    """Keep only keys that match dataclass fields."""
    valid = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - valid)
    if unknown:
        LOGGER.warning("Ignoring unknown keys in %s: %s", section, ", ".join(unknown))
    return {k: v for k, v in raw.items() if k in valid}


def config_path(path: str | None = None) -> Path:
    """Resolve the config file location, honouring VOXGATE_CONFIG_DIR."""
    if path:
        return Path(path).expanduser()
    config_dir = Path(
        os.environ.get(DEFAULT_CONFIG_DIR_ENV, "") or DEFAULT_CONFIG_DIR,
    ).expanduser()
    return config_dir / DEFAULT_CONFIG_FILE


def load_config(path: str | None = None) -> VoxgateConfig:
    """Load voxgate configuration from a JSON file.

    Returns a default config if the file does not exist. Raises
    ValueError for unreadable JSON or a non-object top level, and
    InvalidArgumentError for out-of-range values.
    """
    location = config_path(path)
    if not location.exists():
        return VoxgateConfig()

    try:
        with open(location) as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {location}: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"{location}: top level must be a JSON object")

    audio_raw = data.get("audio", {})
    vad_raw = data.get("vad", {})
    if not isinstance(audio_raw, dict) or not isinstance(vad_raw, dict):
        raise ValueError(f"{location}: 'audio' and 'vad' must be JSON objects")

    LOGGER.debug("Loaded config from %s", location)
    return VoxgateConfig(
        audio=AudioConfig(**_filter_fields(AudioConfig, audio_raw, "audio")),
        vad=VadConfig(**_filter_fields(VadConfig, vad_raw, "vad")),
    )


def with_overrides(config: VoxgateConfig, **overrides: Any) -> VoxgateConfig:
    """Return ``config`` with non-None keyword overrides applied.

    Keys are matched against AudioConfig and VadConfig field names.
    """
    audio_keys = {f.name for f in fields(AudioConfig)}
    vad_keys = {f.name for f in fields(VadConfig)}
    audio_changes = {
        k: v for k, v in overrides.items() if v is not None and k in audio_keys
    }
    vad_changes = {k: v for k, v in overrides.items() if v is not None and k in vad_keys}
    unknown = set(overrides) - audio_keys - vad_keys
    if unknown:
        raise InvalidArgumentError(f"Unknown config keys: {', '.join(sorted(unknown))}")
    return VoxgateConfig(
        audio=replace(config.audio, **audio_changes),
        vad=replace(config.vad, **vad_changes),
    )
