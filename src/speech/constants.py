"""State, action, reason, and language constants used by the speech pipeline."""

from __future__ import annotations

PHASE_IDLE = "idle"
PHASE_SPEAKING = "speaking"
PHASE_PAUSED = "paused"

ACTIVE_PHASES: frozenset[str] = frozenset({PHASE_SPEAKING, PHASE_PAUSED})

ACTION_SPEAK = "speak"
ACTION_RESTART = "restart"
ACTION_STOP = "stop"
ACTION_ENGINE_EVENT = "engine_event"

REASON_STARTED = "started"
REASON_PAUSED = "paused"
REASON_RESUMED = "resumed"
REASON_STOPPED = "stopped"
REASON_NOT_ACTIVE = "not_active"
REASON_EMPTY_INPUT = "empty_input"
REASON_ALL_UNITS_FAILED = "all_units_failed"
REASON_UNIT_STARTED = "unit_started"
REASON_PROGRESS = "progress"
REASON_NEXT_UNIT = "next_unit"
REASON_QUEUE_FINISHED = "queue_finished"
REASON_CANCELLED = "cancelled"
REASON_ENGINE_PAUSED = "engine_paused"
REASON_ENGINE_RESUMED = "engine_resumed"
REASON_STALE_CALLBACK = "stale_callback"
REASON_UNSUPPORTED_EVENT = "unsupported_event"

GENDER_FEMALE = "female"
GENDER_MALE = "male"
GENDERS: frozenset[str] = frozenset({GENDER_FEMALE, GENDER_MALE})

DEFAULT_PRIMARY_LANGUAGE = "fr-FR"
DEFAULT_CJK_LANGUAGE = "zh-CN"

MIN_SPEECH_RATE = 0.0
MAX_SPEECH_RATE = 1.0
DEFAULT_SPEECH_RATE = 0.5
