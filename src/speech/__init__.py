"""Multi-language speech segmentation, playback, and highlighting pipeline."""

from .engine import (
    DisabledSpeechEngine,
    EngineEvent,
    EngineEventPublisher,
    QueueEngineEventPublisher,
    SpeechEngine,
    UnitCancelledEvent,
    UnitFinishedEvent,
    UnitPausedEvent,
    UnitProgressEvent,
    UnitResumedEvent,
    UnitStartedEvent,
)
from .errors import EngineSubmitFailure, NoVoiceAvailable, SpeechError
from .highlight import HighlightRange, HighlightTracker
from .language import LanguageDetector
from .playback import (
    PlaybackActionResult,
    PlaybackController,
    PlaybackPhase,
    PlaybackSnapshot,
)
from .utterances import SpeakableUnit, UtteranceBuilder, segment_sentences
from .voices import Voice, VoiceGender, VoiceSelector

__all__ = [
    "DisabledSpeechEngine",
    "EngineEvent",
    "EngineEventPublisher",
    "EngineSubmitFailure",
    "HighlightRange",
    "HighlightTracker",
    "LanguageDetector",
    "NoVoiceAvailable",
    "PlaybackActionResult",
    "PlaybackController",
    "PlaybackPhase",
    "PlaybackSnapshot",
    "QueueEngineEventPublisher",
    "SpeakableUnit",
    "SpeechEngine",
    "SpeechError",
    "UnitCancelledEvent",
    "UnitFinishedEvent",
    "UnitPausedEvent",
    "UnitProgressEvent",
    "UnitResumedEvent",
    "UnitStartedEvent",
    "UtteranceBuilder",
    "Voice",
    "VoiceGender",
    "VoiceSelector",
    "segment_sentences",
]
