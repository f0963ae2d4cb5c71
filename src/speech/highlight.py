"""Translation of engine progress ranges into document-absolute highlights."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .utterances import SpeakableUnit


@dataclass(frozen=True)
class HighlightRange:
    """Absolute `(start, length)` range within the document text."""
    start: int
    length: int

    @property
    def end(self) -> int:
        return self.start + self.length


class HighlightTracker:
    """Owns the unit-to-range map and the active highlight range."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("speech.highlight")
        self._unit_offsets: dict[int, HighlightRange] = {}
        self._active: Optional[HighlightRange] = None

    @property
    def active(self) -> Optional[HighlightRange]:
        return self._active

    def register(self, unit: SpeakableUnit) -> None:
        self._unit_offsets[unit.unit_id] = HighlightRange(unit.start, unit.length)

    def release(self, unit_id: int) -> None:
        self._unit_offsets.pop(unit_id, None)

    def is_tracked(self, unit_id: int) -> bool:
        return unit_id in self._unit_offsets

    def tracked_units(self) -> frozenset[int]:
        return frozenset(self._unit_offsets)

    def on_progress(self, unit_id: int, local_start: int, local_length: int) -> HighlightRange:
        base = self._unit_offsets.get(unit_id)
        if base is None:
            self._logger.debug(
                "Progress for untracked unit %s, passing local range through",
                unit_id,
            )
            self._active = HighlightRange(local_start, local_length)
        else:
            self._active = HighlightRange(base.start + local_start, local_length)
        return self._active

    def clear_highlight(self) -> None:
        self._active = None

    def reset(self) -> None:
        """Drop every tracked unit and the active highlight."""
        self._unit_offsets.clear()
        self._active = None
