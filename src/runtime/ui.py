from __future__ import annotations

from typing import Any, Optional, Protocol

from contracts.ui_protocol import (
    EVENT_DOCUMENT,
    EVENT_ERROR,
    EVENT_HIGHLIGHT,
    EVENT_READER,
    STATE_ERROR,
)
from document import DocumentSnapshot
from speech import HighlightRange

from .reader import ReaderSnapshot


class UIServerLike(Protocol):
    def publish(self, event_type: str, **payload: Any) -> None:
        ...

    def publish_state(
        self,
        state: str,
        *,
        message: Optional[str] = None,
        **payload: Any,
    ) -> None:
        ...


class RuntimeUIPublisher:
    def __init__(self, ui_server: Optional[UIServerLike]):
        self._ui_server = ui_server

    def publish(self, event_type: str, **payload: Any) -> None:
        if self._ui_server:
            self._ui_server.publish(event_type, **payload)

    def publish_state(
        self,
        state: str,
        *,
        message: Optional[str] = None,
        **payload: Any,
    ) -> None:
        if self._ui_server:
            self._ui_server.publish_state(state, message=message, **payload)

    def publish_error(self, message: str) -> None:
        self.publish(EVENT_ERROR, state=STATE_ERROR, message=message)

    def publish_reader_update(
        self,
        snapshot: ReaderSnapshot,
        *,
        reason: str = "",
    ) -> None:
        payload: dict[str, Any] = {
            "text": snapshot.text,
            "rate": snapshot.rate,
            "gender": snapshot.gender,
            "is_speaking": snapshot.is_speaking,
            "is_paused": snapshot.is_paused,
        }
        if reason:
            payload["reason"] = reason
        self.publish(EVENT_READER, **payload)

    def publish_highlight(self, highlight: Optional[HighlightRange]) -> None:
        if highlight is None:
            self.publish(EVENT_HIGHLIGHT, active=False, start=None, length=None)
            return
        self.publish(
            EVENT_HIGHLIGHT,
            active=True,
            start=highlight.start,
            length=highlight.length,
        )

    def publish_document_update(
        self,
        snapshot: DocumentSnapshot,
        *,
        is_recognizing: bool,
    ) -> None:
        self.publish(
            EVENT_DOCUMENT,
            path=snapshot.path,
            page_count=snapshot.page_count,
            page_index=snapshot.current_page_index,
            has_previous=snapshot.has_previous,
            has_next=snapshot.has_next,
            is_recognizing=is_recognizing,
        )
