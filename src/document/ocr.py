"""Tesseract OCR of rendered pages and the background recognition service."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Optional, Protocol

import pytesseract
from PIL import Image

from .errors import DocumentError, TextRecognitionError
from .events import (
    RecognitionCompletedEvent,
    RecognitionEventPublisher,
    RecognitionFailedEvent,
    RecognitionStartedEvent,
)
from .pdf import DEFAULT_RENDER_DPI, PdfDocumentSession

DEFAULT_OCR_LANGUAGES = "fra"
DEFAULT_PAGE_SEGMENTATION_MODE = 3


class TextRecognizer(Protocol):
    """Black-box OCR: image in, recognized text out."""

    def recognize(self, image: Image.Image) -> str:
        ...


class TesseractTextRecognizer:
    """Runs Tesseract through pytesseract and joins recognized lines."""

    def __init__(
        self,
        *,
        languages: str = DEFAULT_OCR_LANGUAGES,
        page_segmentation_mode: int = DEFAULT_PAGE_SEGMENTATION_MODE,
        tesseract_cmd: str = "",
        logger: Optional[logging.Logger] = None,
    ):
        if not languages.strip():
            raise ValueError("languages cannot be empty")
        self._languages = languages.strip()
        self._page_segmentation_mode = page_segmentation_mode
        self._logger = logger or logging.getLogger("document.ocr")
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def recognize(self, image: Image.Image) -> str:
        try:
            raw = pytesseract.image_to_string(
                image,
                lang=self._languages,
                config=f"--psm {self._page_segmentation_mode}",
            )
        except pytesseract.TesseractNotFoundError as error:
            raise TextRecognitionError(
                "Tesseract executable not found; install tesseract or set ocr.tesseract_cmd"
            ) from error
        except pytesseract.TesseractError as error:
            raise TextRecognitionError(f"Tesseract failed: {error}") from error

        text = _normalize_recognized_text(raw)
        self._logger.debug("Recognized %d characters", len(text))
        return text


def _normalize_recognized_text(raw: str) -> str:
    """Strip each line and collapse blank runs into one paragraph break."""
    paragraphs: list[list[str]] = [[]]
    for line in raw.splitlines():
        line = line.strip()
        if line:
            paragraphs[-1].append(line)
        elif paragraphs[-1]:
            paragraphs.append([])
    return "\n\n".join("\n".join(lines) for lines in paragraphs if lines)


class TextRecognitionService:
    """Renders and recognizes pages on a single background worker."""

    def __init__(
        self,
        recognizer: TextRecognizer,
        publisher: RecognitionEventPublisher,
        *,
        dpi: int = DEFAULT_RENDER_DPI,
        logger: Optional[logging.Logger] = None,
    ):
        if dpi <= 0:
            raise ValueError("dpi must be greater than zero")
        self._recognizer = recognizer
        self._publisher = publisher
        self._dpi = dpi
        self._logger = logger or logging.getLogger("document.ocr")
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ocr")
        self._lock = threading.Lock()
        self._pending = 0

    @property
    def is_recognizing(self) -> bool:
        with self._lock:
            return self._pending > 0

    def recognize_page(
        self,
        document: PdfDocumentSession,
        page_index: Optional[int] = None,
    ) -> bool:
        """Schedule OCR of a page; returns False when no document is loaded."""
        snapshot = document.snapshot()
        if snapshot.path is None:
            return False

        index = snapshot.current_page_index if page_index is None else page_index
        with self._lock:
            self._pending += 1
        self._publisher.publish(
            RecognitionStartedEvent(
                document_path=snapshot.path,
                page_index=index,
                occurred_at=_now(),
            )
        )
        self._executor.submit(self._run, document, snapshot.path, index)
        return True

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _run(self, document: PdfDocumentSession, path: str, page_index: int) -> None:
        try:
            image = document.render_page(page_index, dpi=self._dpi)
            text = self._recognizer.recognize(image)
        except (DocumentError, TextRecognitionError) as error:
            self._logger.error("Recognition of page %d failed: %s", page_index + 1, error)
            self._finish(
                RecognitionFailedEvent(
                    document_path=path,
                    page_index=page_index,
                    message=str(error),
                    occurred_at=_now(),
                    exception=error,
                )
            )
            return
        except Exception as error:
            self._logger.error(
                "Unexpected recognition failure on page %d: %s",
                page_index + 1,
                error,
                exc_info=True,
            )
            self._finish(
                RecognitionFailedEvent(
                    document_path=path,
                    page_index=page_index,
                    message=f"Unexpected recognition failure: {error}",
                    occurred_at=_now(),
                    exception=error,
                )
            )
            return

        self._logger.info(
            "Recognized page %d (%d characters)",
            page_index + 1,
            len(text),
        )
        self._finish(
            RecognitionCompletedEvent(
                document_path=path,
                page_index=page_index,
                text=text,
                occurred_at=_now(),
            )
        )

    def _finish(self, event) -> None:
        with self._lock:
            self._pending = max(0, self._pending - 1)
        self._publisher.publish(event)


def _now() -> datetime:
    return datetime.now(timezone.utc)
