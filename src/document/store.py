"""JSON-file key-value store persisting the reading session across launches."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Optional

from .errors import SessionStoreError

KEY_LAST_DOCUMENT = "last_document"
KEY_LAST_PAGE_INDEX = "last_page_index"


class SessionStore:
    """Lazily loaded key-value store; `synchronize` writes it atomically."""

    def __init__(self, path: str | Path, logger: Optional[logging.Logger] = None):
        self._path = Path(path).expanduser()
        self._logger = logger or logging.getLogger("document.store")
        self._lock = threading.Lock()
        self._values: Optional[dict[str, Any]] = None
        self._dirty = False

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._load_locked().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            values = self._load_locked()
            if values.get(key) == value and key in values:
                return
            values[key] = value
            self._dirty = True

    def remove(self, key: str) -> None:
        with self._lock:
            values = self._load_locked()
            if key in values:
                del values[key]
                self._dirty = True

    def synchronize(self) -> None:
        with self._lock:
            if not self._dirty:
                return
            values = self._load_locked()
            try:
                payload = json.dumps(values, indent=2, sort_keys=True)
            except (TypeError, ValueError) as error:
                raise SessionStoreError(f"Session values are not serializable: {error}") from error

            temp_path = self._path.with_suffix(f"{self._path.suffix}.tmp")
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                temp_path.write_text(payload, encoding="utf-8")
                temp_path.replace(self._path)
            except OSError as error:
                if temp_path.exists():
                    try:
                        temp_path.unlink()
                    except OSError:
                        pass
                raise SessionStoreError(
                    f"Failed to write session store {self._path}: {error}"
                ) from error
            self._dirty = False

    def _load_locked(self) -> dict[str, Any]:
        if self._values is not None:
            return self._values

        self._values = {}
        if not self._path.exists():
            return self._values

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as error:
            self._logger.warning("Malformed session store %s: %s", self._path, error)
            return self._values

        if not isinstance(raw, dict):
            self._logger.warning("Session store %s is not a JSON object", self._path)
            return self._values

        self._values = raw
        return self._values
