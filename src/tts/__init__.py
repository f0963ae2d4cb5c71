"""Public exports for text-to-speech components."""

from .config import TTSConfig, TTSConfigurationError
from .engine import PiperTTSEngine, TTSError
from .output import PlaybackControl, SoundDeviceAudioOutput
from .service import PiperSpeechEngine

__all__ = [
    "TTSConfig",
    "TTSConfigurationError",
    "TTSError",
    "PiperTTSEngine",
    "PiperSpeechEngine",
    "PlaybackControl",
    "SoundDeviceAudioOutput",
]
