"""Runtime orchestration loop for engine callbacks, UI commands, and OCR results."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from queue import Empty, Queue
from typing import Any, Callable, Optional, Protocol

from contracts.ui_protocol import (
    COMMAND_GO_TO_PAGE,
    COMMAND_NEXT_PAGE,
    COMMAND_OPEN_DOCUMENT,
    COMMAND_PREV_PAGE,
    COMMAND_RECOGNIZE,
    COMMAND_RESTART,
    COMMAND_SET_GENDER,
    COMMAND_SET_RATE,
    COMMAND_SET_TEXT,
    COMMAND_SPEAK,
    COMMAND_STOP,
    STATE_IDLE,
    STATE_PAUSED,
    STATE_RECOGNIZING,
    STATE_SPEAKING,
)
from document import (
    KEY_LAST_DOCUMENT,
    KEY_LAST_PAGE_INDEX,
    DocumentError,
    PdfDocumentSession,
    RecognitionCompletedEvent,
    RecognitionFailedEvent,
    RecognitionStartedEvent,
    SessionStore,
    SessionStoreError,
    TextRecognitionService,
)
from server.commands import UICommand
from speech import (
    PlaybackActionResult,
    UnitCancelledEvent,
    UnitFinishedEvent,
    UnitPausedEvent,
    UnitProgressEvent,
    UnitResumedEvent,
    UnitStartedEvent,
)
from speech.constants import REASON_ALL_UNITS_FAILED, REASON_EMPTY_INPUT

from .reader import ReaderSession, ReaderSnapshot
from .ui import RuntimeUIPublisher, UIServerLike

_ENGINE_EVENT_TYPES = (
    UnitStartedEvent,
    UnitProgressEvent,
    UnitFinishedEvent,
    UnitCancelledEvent,
    UnitPausedEvent,
    UnitResumedEvent,
)


class ClosableService(Protocol):
    def close(self) -> None:
        ...


class StoppableServer(UIServerLike, Protocol):
    def stop(self, timeout_seconds: float = 5.0) -> None:
        ...


@dataclass(frozen=True)
class RuntimeHooks:
    """Injectable lifecycle hooks used by runtime startup and shutdown flow."""
    setup_signal_handlers: Callable[[Callable[[], None]], None]


@dataclass(frozen=True)
class RuntimeBootstrap:
    """Dependency bundle required to construct the runtime engine."""
    logger: logging.Logger
    event_queue: Queue[Any]
    reader: ReaderSession
    document: PdfDocumentSession
    recognition: TextRecognitionService
    session_store: SessionStore
    ui_server: Optional[StoppableServer] = None
    speech_engine: Optional[ClosableService] = None
    initial_document: Optional[str] = None
    hooks: Optional[RuntimeHooks] = None


class RuntimeEngine:
    """Owner-thread loop: every reader, document and playback mutation runs here."""

    def __init__(self, bootstrap: RuntimeBootstrap):
        self._bootstrap = bootstrap
        self._logger = bootstrap.logger
        self._queue = bootstrap.event_queue
        self._reader = bootstrap.reader
        self._document = bootstrap.document
        self._recognition = bootstrap.recognition
        self._store = bootstrap.session_store
        self._ui = RuntimeUIPublisher(bootstrap.ui_server)
        self._stop_requested = threading.Event()

        self._last_reader: Optional[ReaderSnapshot] = None
        self._last_state: Optional[str] = None
        self._unsubscribe_reader = self._reader.subscribe(self._on_reader_changed)

    def submit_command(self, command: UICommand) -> None:
        """Thread-safe entry point for UI commands."""
        self._queue.put(command)

    def request_stop(self) -> None:
        self._stop_requested.set()

    def run(self) -> int:
        try:
            hooks = self._bootstrap.hooks
            if hooks is not None:
                hooks.setup_signal_handlers(self.request_stop)

            self.start()
            self._logger.info("Ready! Waiting for commands ...")

            while not self._stop_requested.is_set():
                event = self._poll_event()
                if event is None:
                    continue
                self._handle_event(event)
            return 0

        except KeyboardInterrupt:
            self._logger.info("Shutdown requested by keyboard interrupt.")
            return 0
        except Exception as error:
            self._logger.error("Unexpected error: %s", error, exc_info=True)
            return 1
        finally:
            self._shutdown()

    def start(self) -> None:
        """Restore the last session and publish the initial UI state."""
        self._restore_session()
        self._publish_startup_sync()

    def run_pending(self) -> int:
        """Dispatch every queued event without blocking; returns the count."""
        handled = 0
        while True:
            try:
                event = self._queue.get_nowait()
            except Empty:
                return handled
            self._handle_event(event)
            handled += 1

    def _poll_event(self) -> Optional[Any]:
        try:
            return self._queue.get(timeout=0.25)
        except Empty:
            return None

    def _handle_event(self, event: Any) -> None:
        if isinstance(event, _ENGINE_EVENT_TYPES):
            result = self._reader.handle_engine_event(event)
            if not result.accepted:
                self._logger.debug(
                    "Engine event %s not applied: %s",
                    type(event).__name__,
                    result.reason,
                )
            return

        if isinstance(event, UICommand):
            self._handle_command(event)
            return

        if isinstance(event, RecognitionStartedEvent):
            self._logger.info("Recognizing page %d", event.page_index + 1)
            self._publish_document()
            self._publish_state()
            return

        if isinstance(event, RecognitionCompletedEvent):
            self._handle_recognition_completed(event)
            return

        if isinstance(event, RecognitionFailedEvent):
            if self._is_current_page(event.document_path, event.page_index):
                self._ui.publish_error(f"Text recognition failed: {event.message}")
            self._publish_document()
            self._publish_state()
            return

        self._logger.warning("Ignoring unknown event type: %s", type(event).__name__)

    def _handle_command(self, command: UICommand) -> None:
        self._logger.debug("UI command: %s %s", command.name, command.args)
        try:
            if command.name == COMMAND_SPEAK:
                self._report_start(self._reader.speak())
            elif command.name == COMMAND_RESTART:
                self._report_start(self._reader.restart())
            elif command.name == COMMAND_STOP:
                self._reader.stop()
            elif command.name == COMMAND_SET_RATE:
                self._reader.set_rate(command.args["value"])
            elif command.name == COMMAND_SET_GENDER:
                self._reader.set_gender(command.args["value"])
            elif command.name == COMMAND_SET_TEXT:
                self._reader.replace_text(command.args["text"])
            elif command.name == COMMAND_OPEN_DOCUMENT:
                self._open_document(command.args["path"])
            elif command.name == COMMAND_NEXT_PAGE:
                self._change_page(self._document.next_page())
            elif command.name == COMMAND_PREV_PAGE:
                self._change_page(self._document.prev_page())
            elif command.name == COMMAND_GO_TO_PAGE:
                self._change_page(self._document.go_to_page(command.args["index"]))
            elif command.name == COMMAND_RECOGNIZE:
                self._recognize_current_page()
            else:
                self._logger.warning("Ignoring unsupported command: %s", command.name)
        except (KeyError, ValueError) as error:
            self._logger.warning("Rejected command %s: %s", command.name, error)
            self._ui.publish_error(f"Invalid {command.name} command: {error}")

    def _report_start(self, result: PlaybackActionResult) -> None:
        if result.reason == REASON_EMPTY_INPUT:
            self._publish_state(message="Nothing to read")
        elif result.reason == REASON_ALL_UNITS_FAILED:
            self._ui.publish_error("Speech engine rejected every sentence")

    def _open_document(self, path: str, *, page_index: int = 0) -> bool:
        try:
            self._document.load(path, page_index=page_index)
        except DocumentError as error:
            self._logger.error("Failed to open document: %s", error)
            self._ui.publish_error(str(error))
            return False

        self._persist_session()
        self._publish_document()
        self._recognize_current_page()
        return True

    def _change_page(self, changed: bool) -> None:
        if not changed:
            self._publish_document()
            return
        self._persist_session()
        self._publish_document()
        self._recognize_current_page()

    def _recognize_current_page(self) -> None:
        if not self._recognition.recognize_page(self._document):
            self._ui.publish_error("No document is open")

    def _handle_recognition_completed(self, event: RecognitionCompletedEvent) -> None:
        if not self._is_current_page(event.document_path, event.page_index):
            self._logger.debug(
                "Discarding recognition of page %d: no longer current",
                event.page_index + 1,
            )
            self._publish_state()
            return

        self._reader.replace_text(event.text)
        self._publish_document()
        self._publish_state()

    def _is_current_page(self, path: str, page_index: int) -> bool:
        snapshot = self._document.snapshot()
        return snapshot.path == path and snapshot.current_page_index == page_index

    def _persist_session(self) -> None:
        snapshot = self._document.snapshot()
        if snapshot.path is None:
            return
        self._store.set(KEY_LAST_DOCUMENT, snapshot.path)
        self._store.set(KEY_LAST_PAGE_INDEX, snapshot.current_page_index)
        try:
            self._store.synchronize()
        except SessionStoreError as error:
            self._logger.warning("Failed to persist session: %s", error)

    def _restore_session(self) -> None:
        initial = self._bootstrap.initial_document
        last_document = self._store.get(KEY_LAST_DOCUMENT)
        last_page = self._store.get(KEY_LAST_PAGE_INDEX, 0)
        if not isinstance(last_page, int) or isinstance(last_page, bool):
            last_page = 0

        if initial:
            resolved = str(Path(initial).expanduser().resolve())
            page_index = last_page if resolved == last_document else 0
            self._open_document(resolved, page_index=page_index)
            return

        if not isinstance(last_document, str) or not last_document:
            return
        if not Path(last_document).is_file():
            self._logger.info("Last document no longer exists: %s", last_document)
            return

        self._logger.info("Restoring last document %s (page %d)", last_document, last_page + 1)
        self._open_document(last_document, page_index=last_page)

    def _on_reader_changed(self, snapshot: ReaderSnapshot) -> None:
        previous = self._last_reader
        self._last_reader = snapshot

        if previous is None or previous.without_highlight() != snapshot.without_highlight():
            self._ui.publish_reader_update(snapshot)
        if previous is None or previous.highlight != snapshot.highlight:
            self._ui.publish_highlight(snapshot.highlight)
        self._publish_state()

    def _publish_startup_sync(self) -> None:
        snapshot = self._reader.snapshot()
        self._last_reader = snapshot
        self._ui.publish_reader_update(snapshot, reason="startup")
        self._ui.publish_highlight(snapshot.highlight)
        self._publish_document()
        self._publish_state(force=True)

    def _publish_document(self) -> None:
        self._ui.publish_document_update(
            self._document.snapshot(),
            is_recognizing=self._recognition.is_recognizing,
        )

    def _current_state(self) -> str:
        snapshot = self._reader.snapshot()
        if snapshot.is_speaking:
            return STATE_SPEAKING
        if snapshot.is_paused:
            return STATE_PAUSED
        if self._recognition.is_recognizing:
            return STATE_RECOGNIZING
        return STATE_IDLE

    def _publish_state(self, *, message: Optional[str] = None, force: bool = False) -> None:
        state = self._current_state()
        if not force and message is None and state == self._last_state:
            return
        self._last_state = state
        self._ui.publish_state(state, message=message)

    def _shutdown(self) -> None:
        self._unsubscribe_reader()

        self._logger.info("Stopping playback...")
        try:
            self._reader.stop()
        except Exception as error:
            self._logger.error("Error stopping playback: %s", error, exc_info=True)

        speech_engine = self._bootstrap.speech_engine
        if speech_engine is not None:
            self._logger.info("Stopping speech engine...")
            try:
                speech_engine.close()
            except Exception as error:
                self._logger.error("Error stopping speech engine: %s", error, exc_info=True)

        self._logger.info("Stopping recognition worker...")
        self._recognition.close()
        self._document.close()

        ui_server = self._bootstrap.ui_server
        if ui_server is not None:
            self._logger.info("Stopping UI server...")
            try:
                ui_server.stop(timeout_seconds=5.0)
            except Exception as error:
                self._logger.error("Error stopping UI server: %s", error, exc_info=True)
