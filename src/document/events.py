"""Event dataclasses and publisher contracts emitted by page recognition."""

from dataclasses import dataclass
from datetime import datetime
from queue import Queue
from typing import Optional, Protocol


@dataclass(frozen=True)
class RecognitionStartedEvent:
    """Event emitted when OCR of a page has been scheduled."""
    document_path: str
    page_index: int
    occurred_at: datetime


@dataclass(frozen=True)
class RecognitionCompletedEvent:
    """Event emitted with the recognized text of a page."""
    document_path: str
    page_index: int
    text: str
    occurred_at: datetime


@dataclass(frozen=True)
class RecognitionFailedEvent:
    """Event emitted when rendering or OCR of a page fails."""
    document_path: str
    page_index: int
    message: str
    occurred_at: datetime
    exception: Optional[Exception] = None


RecognitionEvent = RecognitionStartedEvent | RecognitionCompletedEvent | RecognitionFailedEvent


class RecognitionEventPublisher(Protocol):
    """Protocol for publishing recognition events."""

    def publish(self, event: RecognitionEvent) -> None: ...


class QueueRecognitionEventPublisher:
    """Recognition event publisher that pushes events to a queue."""

    def __init__(self, queue: Queue):
        self._queue = queue

    def publish(self, event: RecognitionEvent) -> None:
        self._queue.put(event)
