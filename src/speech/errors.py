class SpeechError(Exception):
    """Base exception for the speech pipeline."""


class NoVoiceAvailable(SpeechError):
    """Raised when not even a default voice can be constructed for a language tag."""


class EngineSubmitFailure(SpeechError):
    """Raised by a speech engine that cannot accept a speakable unit."""
