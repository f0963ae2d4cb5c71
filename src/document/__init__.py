"""PDF import, page recognition, and session persistence."""

from .errors import DocumentError, SessionStoreError, TextRecognitionError
from .events import (
    QueueRecognitionEventPublisher,
    RecognitionCompletedEvent,
    RecognitionEvent,
    RecognitionFailedEvent,
    RecognitionStartedEvent,
)
from .ocr import TesseractTextRecognizer, TextRecognitionService, TextRecognizer
from .pdf import DocumentSnapshot, PdfDocumentSession
from .store import KEY_LAST_DOCUMENT, KEY_LAST_PAGE_INDEX, SessionStore

__all__ = [
    "DocumentError",
    "DocumentSnapshot",
    "KEY_LAST_DOCUMENT",
    "KEY_LAST_PAGE_INDEX",
    "PdfDocumentSession",
    "QueueRecognitionEventPublisher",
    "RecognitionCompletedEvent",
    "RecognitionEvent",
    "RecognitionFailedEvent",
    "RecognitionStartedEvent",
    "SessionStore",
    "SessionStoreError",
    "TesseractTextRecognizer",
    "TextRecognitionError",
    "TextRecognitionService",
    "TextRecognizer",
]
