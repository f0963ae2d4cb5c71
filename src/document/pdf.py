"""PyMuPDF-backed document session with clamped page navigation."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import fitz
from PIL import Image

from .errors import DocumentError

DEFAULT_RENDER_DPI = 300


@dataclass(frozen=True)
class DocumentSnapshot:
    """Immutable view of the open document exposed to the runtime and UI."""
    path: Optional[str]
    page_count: int
    current_page_index: int

    @property
    def is_loaded(self) -> bool:
        return self.path is not None

    @property
    def has_previous(self) -> bool:
        return self.is_loaded and self.current_page_index > 0

    @property
    def has_next(self) -> bool:
        return self.is_loaded and self.current_page_index < self.page_count - 1


class PdfDocumentSession:
    """Holds the currently open PDF and the current page index."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("document.pdf")
        self._lock = threading.Lock()
        self._document: Optional[fitz.Document] = None
        self._path: Optional[str] = None
        self._page_count = 0
        self._current_page_index = 0

    @property
    def path(self) -> Optional[str]:
        return self._path

    @property
    def page_count(self) -> int:
        return self._page_count

    @property
    def current_page_index(self) -> int:
        return self._current_page_index

    @property
    def is_loaded(self) -> bool:
        return self._document is not None

    def snapshot(self) -> DocumentSnapshot:
        with self._lock:
            return DocumentSnapshot(
                path=self._path,
                page_count=self._page_count,
                current_page_index=self._current_page_index,
            )

    def load(self, path: str | Path, *, page_index: int = 0) -> DocumentSnapshot:
        resolved = Path(path).expanduser().resolve()
        if not resolved.is_file():
            raise DocumentError(f"PDF file not found: {resolved}")

        try:
            document = fitz.open(str(resolved))
        except Exception as error:
            raise DocumentError(f"Failed to open PDF {resolved}: {error}") from error

        if not document.is_pdf or document.page_count == 0:
            document.close()
            raise DocumentError(f"Not a readable PDF document: {resolved}")

        with self._lock:
            self._close_locked()
            self._document = document
            self._path = str(resolved)
            self._page_count = document.page_count
            self._current_page_index = _clamp(page_index, self._page_count)

        self._logger.info(
            "Loaded PDF %s (%d pages, page %d)",
            resolved,
            self._page_count,
            self._current_page_index + 1,
        )
        return self.snapshot()

    def next_page(self) -> bool:
        return self.go_to_page(self._current_page_index + 1)

    def prev_page(self) -> bool:
        return self.go_to_page(self._current_page_index - 1)

    def go_to_page(self, index: int) -> bool:
        """Move to `index` clamped to the document; return whether it changed."""
        with self._lock:
            if self._document is None:
                return False
            target = _clamp(index, self._page_count)
            if target == self._current_page_index:
                return False
            self._current_page_index = target
        self._logger.debug("Current page: %d/%d", target + 1, self._page_count)
        return True

    def render_page(
        self,
        index: Optional[int] = None,
        *,
        dpi: int = DEFAULT_RENDER_DPI,
    ) -> Image.Image:
        with self._lock:
            if self._document is None:
                raise DocumentError("No PDF document is loaded")
            page_index = self._current_page_index if index is None else index
            if not 0 <= page_index < self._page_count:
                raise DocumentError(
                    f"Page index {page_index} out of range for {self._page_count} pages"
                )
            scale = float(dpi) / 72.0
            try:
                pixmap = self._document[page_index].get_pixmap(
                    matrix=fitz.Matrix(scale, scale),
                    alpha=False,
                )
            except Exception as error:
                raise DocumentError(f"Failed to render page {page_index + 1}: {error}") from error

        return Image.frombytes("RGB", (pixmap.width, pixmap.height), pixmap.samples)

    def close(self) -> None:
        with self._lock:
            self._close_locked()

    def _close_locked(self) -> None:
        if self._document is not None:
            self._document.close()
        self._document = None
        self._path = None
        self._page_count = 0
        self._current_page_index = 0


def _clamp(index: int, page_count: int) -> int:
    if page_count <= 0:
        return 0
    return max(0, min(page_count - 1, int(index)))
