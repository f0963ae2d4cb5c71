"""Observable reader state: text, rate, gender, playback flags and highlight."""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from speech import (
    EngineEvent,
    HighlightRange,
    PlaybackActionResult,
    PlaybackController,
    VoiceGender,
)
from speech.constants import (
    DEFAULT_SPEECH_RATE,
    GENDER_FEMALE,
    GENDERS,
    MAX_SPEECH_RATE,
    MIN_SPEECH_RATE,
)


@dataclass(frozen=True)
class ReaderSnapshot:
    """Immutable copy of every field the UI observes."""
    text: str
    rate: float
    gender: VoiceGender
    is_speaking: bool
    is_paused: bool
    highlight: Optional[HighlightRange]

    def without_highlight(self) -> "ReaderSnapshot":
        return ReaderSnapshot(
            text=self.text,
            rate=self.rate,
            gender=self.gender,
            is_speaking=self.is_speaking,
            is_paused=self.is_paused,
            highlight=None,
        )


ReaderListener = Callable[[ReaderSnapshot], None]


class ReaderSession:
    """View model wrapping the playback controller.

    Every mutation notifies subscribers with a fresh `ReaderSnapshot`; an
    unchanged snapshot is not re-sent.
    """

    def __init__(
        self,
        controller: PlaybackController,
        *,
        text: str = "",
        rate: float = DEFAULT_SPEECH_RATE,
        gender: VoiceGender = GENDER_FEMALE,
        logger: Optional[logging.Logger] = None,
    ):
        self._controller = controller
        self._logger = logger or logging.getLogger("runtime.reader")
        self._text = text
        self._rate = _validate_rate(rate)
        self._gender = _validate_gender(gender)
        self._listeners: list[ReaderListener] = []
        self._listeners_lock = threading.Lock()
        self._last_notified: Optional[ReaderSnapshot] = None

    @property
    def text(self) -> str:
        return self._text

    @property
    def rate(self) -> float:
        return self._rate

    @property
    def gender(self) -> VoiceGender:
        return self._gender

    def snapshot(self) -> ReaderSnapshot:
        playback = self._controller.snapshot()
        return ReaderSnapshot(
            text=self._text,
            rate=self._rate,
            gender=self._gender,
            is_speaking=playback.is_speaking,
            is_paused=playback.is_paused,
            highlight=playback.highlight,
        )

    def subscribe(self, listener: ReaderListener) -> Callable[[], None]:
        with self._listeners_lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def speak(self) -> PlaybackActionResult:
        result = self._controller.speak(self._text, gender=self._gender, rate=self._rate)
        self._notify()
        return result

    def restart(self) -> PlaybackActionResult:
        """Read the current text again from its first sentence."""
        result = self._controller.restart(self._text, gender=self._gender, rate=self._rate)
        self._notify()
        return result

    def stop(self) -> PlaybackActionResult:
        result = self._controller.stop()
        self._notify()
        return result

    def set_rate(self, value: float) -> float:
        """Set the speech rate for the next utterances, clamped to [0, 1]."""
        self._rate = _validate_rate(value)
        self._notify()
        return self._rate

    def set_gender(self, value: str) -> VoiceGender:
        self._gender = _validate_gender(value)
        self._notify()
        return self._gender

    def replace_text(self, text: str) -> Optional[PlaybackActionResult]:
        result = None
        if self._controller.snapshot().is_active:
            result = self._controller.stop()
            self._logger.info("Stopped playback before replacing text")
        self._text = text
        self._notify()
        return result

    def handle_engine_event(self, event: EngineEvent) -> PlaybackActionResult:
        result = self._controller.handle_event(event)
        if result.accepted:
            self._notify()
        return result

    def _notify(self) -> None:
        snapshot = self.snapshot()
        if snapshot == self._last_notified:
            return
        self._last_notified = snapshot

        with self._listeners_lock:
            listeners = tuple(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception as error:
                self._logger.error("Reader listener failed: %s", error, exc_info=True)


def _validate_rate(value: float) -> float:
    try:
        rate = float(value)
    except (TypeError, ValueError) as error:
        raise ValueError(f"rate must be a number, got: {value!r}") from error
    if not math.isfinite(rate):
        raise ValueError(f"rate must be finite, got: {value!r}")
    return min(MAX_SPEECH_RATE, max(MIN_SPEECH_RATE, rate))


def _validate_gender(value: str) -> VoiceGender:
    normalized = str(value).strip().lower()
    if normalized not in GENDERS:
        allowed = ", ".join(sorted(GENDERS))
        raise ValueError(f"gender must be one of: {allowed}")
    return normalized  # type: ignore[return-value]
