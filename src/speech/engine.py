"""Speech engine contract and the lifecycle events engines emit."""

from __future__ import annotations

from dataclasses import dataclass
from queue import Queue
from typing import Iterable, Protocol

from .errors import EngineSubmitFailure
from .utterances import SpeakableUnit
from .voices import Voice


@dataclass(frozen=True)
class UnitStartedEvent:
    """The engine began vocalizing a unit."""
    unit_id: int


@dataclass(frozen=True)
class UnitProgressEvent:
    """The engine is about to speak a range local to the unit text."""
    unit_id: int
    local_start: int
    local_length: int


@dataclass(frozen=True)
class UnitFinishedEvent:
    """The engine spoke the whole unit."""
    unit_id: int


@dataclass(frozen=True)
class UnitCancelledEvent:
    """The engine dropped the unit before finishing it."""
    unit_id: int


@dataclass(frozen=True)
class UnitPausedEvent:
    """The engine halted at a word boundary."""
    unit_id: int


@dataclass(frozen=True)
class UnitResumedEvent:
    """The engine continued a paused unit."""
    unit_id: int


EngineEvent = (
    UnitStartedEvent
    | UnitProgressEvent
    | UnitFinishedEvent
    | UnitCancelledEvent
    | UnitPausedEvent
    | UnitResumedEvent
)


class SpeechEngine(Protocol):
    """Black-box synthesizer driven by the playback controller.

    `submit` is fire-and-forget; results arrive later as engine events that
    are delivered serially on the owning thread.
    """

    def submit(self, unit: SpeakableUnit) -> None:
        ...

    def pause_at_word_boundary(self) -> None:
        ...

    def resume(self) -> None:
        ...

    def stop_immediate(self) -> None:
        ...

    def enumerate_voices(self) -> Iterable[Voice]:
        ...


class EngineEventPublisher(Protocol):
    """Protocol for publishing engine events to the owning thread."""

    def publish(self, event: EngineEvent) -> None: ...


class QueueEngineEventPublisher:
    """Engine event publisher that pushes events to a queue."""

    def __init__(self, queue: Queue):
        self._queue = queue

    def publish(self, event: EngineEvent) -> None:
        self._queue.put(event)


class DisabledSpeechEngine:
    """Engine used when speech output is turned off; every submit is rejected."""

    def __init__(self, reason: str = "Speech output is disabled"):
        self._reason = reason

    def submit(self, unit: SpeakableUnit) -> None:
        raise EngineSubmitFailure(f"{self._reason} (unit {unit.unit_id})")

    def pause_at_word_boundary(self) -> None:
        return None

    def resume(self) -> None:
        return None

    def stop_immediate(self) -> None:
        return None

    def enumerate_voices(self) -> tuple[Voice, ...]:
        return ()
