class DocumentError(Exception):
    """Raised when a PDF document cannot be opened, navigated, or rendered."""


class TextRecognitionError(Exception):
    """Raised when OCR of a rendered page fails."""


class SessionStoreError(Exception):
    """Raised when the session store cannot be written."""
