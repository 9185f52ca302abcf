"""Real-time voice activity detection over streaming mono audio."""

__version__ = "0.1.0"


def __getattr__(name: str):
    """Lazy re-exports for convenience."""
    _audio_names = {
        "OrderStatisticWindow",
        "RingSampleBuffer",
        "SpeechSegment",
        "VadConfig",
        "VadState",
        "VoiceActivityDetector",
    }
    _api_names = {"detect_array", "detect_file", "read_wav"}
    if name in _audio_names:
        from voxgate import audio

        return getattr(audio, name)
    if name in _api_names:
        from voxgate import api

        return getattr(api, name)
    raise AttributeError(f"module 'voxgate' has no attribute {name!r}")
