"""Playback state machine driving a speech engine across an utterance queue."""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Literal, Optional

from .constants import (
    ACTION_ENGINE_EVENT,
    ACTION_RESTART,
    ACTION_SPEAK,
    ACTION_STOP,
    ACTIVE_PHASES,
    DEFAULT_SPEECH_RATE,
    PHASE_IDLE,
    PHASE_PAUSED,
    PHASE_SPEAKING,
    REASON_ALL_UNITS_FAILED,
    REASON_CANCELLED,
    REASON_EMPTY_INPUT,
    REASON_ENGINE_PAUSED,
    REASON_ENGINE_RESUMED,
    REASON_NEXT_UNIT,
    REASON_NOT_ACTIVE,
    REASON_PAUSED,
    REASON_PROGRESS,
    REASON_QUEUE_FINISHED,
    REASON_RESUMED,
    REASON_STALE_CALLBACK,
    REASON_STARTED,
    REASON_STOPPED,
    REASON_UNIT_STARTED,
    REASON_UNSUPPORTED_EVENT,
)
from .engine import (
    EngineEvent,
    SpeechEngine,
    UnitCancelledEvent,
    UnitFinishedEvent,
    UnitPausedEvent,
    UnitProgressEvent,
    UnitResumedEvent,
    UnitStartedEvent,
)
from .errors import EngineSubmitFailure
from .highlight import HighlightRange, HighlightTracker
from .utterances import SpeakableUnit, UtteranceBuilder
from .voices import VoiceGender

PlaybackPhase = Literal["idle", "speaking", "paused"]
PlaybackAction = Literal["speak", "restart", "stop", "engine_event"]


@dataclass(frozen=True)
class PlaybackSnapshot:
    """Immutable playback snapshot exposed to the reader view model and UI."""
    phase: PlaybackPhase
    current_unit_id: Optional[int]
    queued_units: int
    highlight: Optional[HighlightRange]

    @property
    def is_speaking(self) -> bool:
        return self.phase == PHASE_SPEAKING

    @property
    def is_paused(self) -> bool:
        return self.phase == PHASE_PAUSED

    @property
    def is_active(self) -> bool:
        return self.phase in ACTIVE_PHASES


@dataclass(frozen=True)
class PlaybackActionResult:
    """Result envelope returned after a command or an engine event."""
    action: PlaybackAction
    accepted: bool
    reason: str
    snapshot: PlaybackSnapshot


class PlaybackController:
    """Idle/Speaking/Paused state machine with one unit in flight at a time."""

    def __init__(
        self,
        builder: UtteranceBuilder,
        engine: SpeechEngine,
        *,
        tracker: Optional[HighlightTracker] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._builder = builder
        self._engine = engine
        self._tracker = tracker or HighlightTracker()
        self._logger = logger or logging.getLogger("speech.playback")
        self._lock = threading.Lock()

        self._phase: PlaybackPhase = PHASE_IDLE
        self._queue: deque[SpeakableUnit] = deque()
        self._in_flight: Optional[SpeakableUnit] = None

    def snapshot(self) -> PlaybackSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def speak(
        self,
        text: str,
        *,
        gender: Optional[VoiceGender] = None,
        rate: float = DEFAULT_SPEECH_RATE,
    ) -> PlaybackActionResult:
        """Start speaking `text` when idle, otherwise toggle pause/resume."""
        with self._lock:
            if self._phase == PHASE_SPEAKING:
                self._engine.pause_at_word_boundary()
                self._phase = PHASE_PAUSED
                self._logger.info("Playback paused: unit=%s", self._current_unit_id())
                return self._result_locked(ACTION_SPEAK, True, REASON_PAUSED)

            if self._phase == PHASE_PAUSED:
                self._phase = PHASE_SPEAKING
                if self._in_flight is None:
                    # The in-flight unit finished while paused; continue with the next one.
                    if not self._submit_next_locked():
                        self._finish_locked()
                        return self._result_locked(ACTION_SPEAK, True, REASON_QUEUE_FINISHED)
                else:
                    self._engine.resume()
                self._logger.info("Playback resumed: unit=%s", self._current_unit_id())
                return self._result_locked(ACTION_SPEAK, True, REASON_RESUMED)

            return self._start_locked(ACTION_SPEAK, text, gender=gender, rate=rate)

    def restart(
        self,
        text: str,
        *,
        gender: Optional[VoiceGender] = None,
        rate: float = DEFAULT_SPEECH_RATE,
    ) -> PlaybackActionResult:
        """Discard any current queue and speak `text` from the beginning."""
        with self._lock:
            if self._phase in ACTIVE_PHASES:
                self._engine.stop_immediate()
                self._discard_locked()
                self._phase = PHASE_IDLE
            return self._start_locked(ACTION_RESTART, text, gender=gender, rate=rate)

    def stop(self) -> PlaybackActionResult:
        with self._lock:
            if self._phase not in ACTIVE_PHASES:
                return self._result_locked(ACTION_STOP, False, REASON_NOT_ACTIVE)

            self._engine.stop_immediate()
            self._discard_locked()
            self._phase = PHASE_IDLE
            self._logger.info("Playback stopped")
            return self._result_locked(ACTION_STOP, True, REASON_STOPPED)

    def handle_event(self, event: EngineEvent) -> PlaybackActionResult:
        """Apply one serialized engine callback."""
        with self._lock:
            in_flight = self._in_flight
            if in_flight is None or event.unit_id != in_flight.unit_id:
                self._logger.debug(
                    "Ignoring stale %s for unit %s",
                    type(event).__name__,
                    event.unit_id,
                )
                return self._result_locked(ACTION_ENGINE_EVENT, False, REASON_STALE_CALLBACK)

            if isinstance(event, UnitStartedEvent):
                self._logger.debug(
                    "Unit %s started (%s, voice=%s)",
                    in_flight.unit_id,
                    in_flight.language,
                    in_flight.voice_id,
                )
                return self._result_locked(ACTION_ENGINE_EVENT, True, REASON_UNIT_STARTED)

            if isinstance(event, UnitProgressEvent):
                self._tracker.on_progress(
                    event.unit_id,
                    event.local_start,
                    event.local_length,
                )
                return self._result_locked(ACTION_ENGINE_EVENT, True, REASON_PROGRESS)

            if isinstance(event, UnitFinishedEvent):
                self._tracker.release(in_flight.unit_id)
                self._tracker.clear_highlight()
                self._in_flight = None
                if self._phase == PHASE_PAUSED and self._queue:
                    # Hold the next unit until resume.
                    return self._result_locked(ACTION_ENGINE_EVENT, True, REASON_NEXT_UNIT)
                if self._submit_next_locked():
                    return self._result_locked(ACTION_ENGINE_EVENT, True, REASON_NEXT_UNIT)
                self._finish_locked()
                return self._result_locked(ACTION_ENGINE_EVENT, True, REASON_QUEUE_FINISHED)

            if isinstance(event, UnitCancelledEvent):
                self._discard_locked()
                self._phase = PHASE_IDLE
                self._logger.info("Playback cancelled by engine: unit=%s", event.unit_id)
                return self._result_locked(ACTION_ENGINE_EVENT, True, REASON_CANCELLED)

            if isinstance(event, UnitPausedEvent):
                if self._phase == PHASE_SPEAKING:
                    self._phase = PHASE_PAUSED
                return self._result_locked(ACTION_ENGINE_EVENT, True, REASON_ENGINE_PAUSED)

            if isinstance(event, UnitResumedEvent):
                if self._phase == PHASE_PAUSED:
                    self._phase = PHASE_SPEAKING
                return self._result_locked(ACTION_ENGINE_EVENT, True, REASON_ENGINE_RESUMED)

            return self._result_locked(ACTION_ENGINE_EVENT, False, REASON_UNSUPPORTED_EVENT)

    def _start_locked(
        self,
        action: PlaybackAction,
        text: str,
        *,
        gender: Optional[VoiceGender],
        rate: float,
    ) -> PlaybackActionResult:
        units = [unit for unit in self._builder.build(text, gender, rate=rate) if not unit.is_blank]
        if not units:
            self._logger.info("Nothing to speak: input text is empty")
            return self._result_locked(action, False, REASON_EMPTY_INPUT)

        self._tracker.reset()
        for unit in units:
            self._tracker.register(unit)
        self._queue = deque(units)
        self._phase = PHASE_SPEAKING

        if not self._submit_next_locked():
            self._finish_locked()
            return self._result_locked(action, False, REASON_ALL_UNITS_FAILED)

        self._logger.info(
            "Playback started: units=%d characters=%d",
            len(units),
            len(text),
        )
        return self._result_locked(action, True, REASON_STARTED)

    def _submit_next_locked(self) -> bool:
        while self._queue:
            unit = self._queue.popleft()
            try:
                self._engine.submit(unit)
            except EngineSubmitFailure as error:
                self._logger.warning("Skipping unit %s: %s", unit.unit_id, error)
                self._tracker.release(unit.unit_id)
                continue
            self._in_flight = unit
            return True

        self._in_flight = None
        return False

    def _finish_locked(self) -> None:
        self._discard_locked()
        self._phase = PHASE_IDLE
        self._logger.info("Playback finished")

    def _discard_locked(self) -> None:
        self._queue.clear()
        self._in_flight = None
        self._tracker.reset()

    def _current_unit_id(self) -> Optional[int]:
        return self._in_flight.unit_id if self._in_flight is not None else None

    def _result_locked(
        self,
        action: PlaybackAction,
        accepted: bool,
        reason: str,
    ) -> PlaybackActionResult:
        return PlaybackActionResult(
            action=action,
            accepted=accepted,
            reason=reason,
            snapshot=self._snapshot_locked(),
        )

    def _snapshot_locked(self) -> PlaybackSnapshot:
        return PlaybackSnapshot(
            phase=self._phase,
            current_unit_id=self._current_unit_id(),
            queued_units=len(self._queue),
            highlight=self._tracker.active,
        )
