import json
import logging
import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from queue import Queue

from document import (
    DocumentError,
    DocumentSnapshot,
    RecognitionCompletedEvent,
    RecognitionFailedEvent,
    SessionStore,
)
from runtime import ReaderSession, RuntimeBootstrap, RuntimeEngine
from server.commands import UICommand
from speech import (
    EngineSubmitFailure,
    LanguageDetector,
    PlaybackController,
    UnitFinishedEvent,
    UnitProgressEvent,
    UtteranceBuilder,
    Voice,
    VoiceSelector,
)

_CATALOG = (
    Voice(voice_id="fr-female", language="fr-FR", gender="female"),
    Voice(voice_id="zh-female", language="zh-CN", gender="female"),
)


class _EngineStub:
    def __init__(self, reject_all: bool = False):
        self.submitted = []
        self._reject_all = reject_all

    def submit(self, unit) -> None:
        if self._reject_all:
            raise EngineSubmitFailure("no audio")
        self.submitted.append(unit)

    def pause_at_word_boundary(self) -> None:
        pass

    def resume(self) -> None:
        pass

    def stop_immediate(self) -> None:
        pass

    def enumerate_voices(self):
        return _CATALOG


class _DocumentStub:
    def __init__(self, page_count: int = 3):
        self.loads: list[tuple[str, int]] = []
        self.closed = False
        self._page_count = page_count
        self._path = None
        self._index = 0

    def load(self, path, *, page_index: int = 0):
        resolved = Path(path).expanduser().resolve()
        if not resolved.is_file():
            raise DocumentError(f"PDF file not found: {resolved}")
        self._path = str(resolved)
        self._index = max(0, min(self._page_count - 1, page_index))
        self.loads.append((self._path, self._index))
        return self.snapshot()

    def snapshot(self) -> DocumentSnapshot:
        if self._path is None:
            return DocumentSnapshot(path=None, page_count=0, current_page_index=0)
        return DocumentSnapshot(
            path=self._path,
            page_count=self._page_count,
            current_page_index=self._index,
        )

    def next_page(self) -> bool:
        return self.go_to_page(self._index + 1)

    def prev_page(self) -> bool:
        return self.go_to_page(self._index - 1)

    def go_to_page(self, index: int) -> bool:
        if self._path is None:
            return False
        target = max(0, min(self._page_count - 1, index))
        if target == self._index:
            return False
        self._index = target
        return True

    def close(self) -> None:
        self.closed = True


class _RecognitionStub:
    def __init__(self):
        self.requests: list[tuple[str, int]] = []
        self.is_recognizing = False
        self.closed = False

    def recognize_page(self, document, page_index=None) -> bool:
        snapshot = document.snapshot()
        if not snapshot.is_loaded:
            return False
        index = snapshot.current_page_index if page_index is None else page_index
        self.requests.append((snapshot.path, index))
        return True

    def close(self) -> None:
        self.closed = True


class _UIServerStub:
    def __init__(self):
        self.events: list[tuple[str, dict]] = []
        self.stopped = False

    def publish(self, event_type: str, **payload) -> None:
        self.events.append((event_type, payload))

    def publish_state(self, state: str, *, message=None, **payload) -> None:
        self.events.append(("state_update", {"state": state, "message": message, **payload}))

    def stop(self, timeout_seconds: float = 5.0) -> None:
        self.stopped = True

    def payloads(self, event_type: str) -> list[dict]:
        return [payload for kind, payload in self.events if kind == event_type]


class RuntimeEngineTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self._tmp.name).resolve()
        self.queue: Queue = Queue()
        self.engine = _EngineStub()
        self.document = _DocumentStub()
        self.recognition = _RecognitionStub()
        self.ui = _UIServerStub()
        self.store = SessionStore(self.tmp_path / "session.json")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _runtime(self, *, initial_document=None, text: str = "") -> RuntimeEngine:
        builder = UtteranceBuilder(
            LanguageDetector(primary_language="fr-FR", cjk_language="zh-CN"),
            VoiceSelector(self.engine.enumerate_voices),
        )
        reader = ReaderSession(PlaybackController(builder, self.engine), text=text)
        return RuntimeEngine(
            RuntimeBootstrap(
                logger=logging.getLogger("tests.runtime"),
                event_queue=self.queue,
                reader=reader,
                document=self.document,
                recognition=self.recognition,
                session_store=self.store,
                ui_server=self.ui,
                initial_document=initial_document,
            )
        )

    def _pdf(self, name: str = "livre.pdf") -> Path:
        path = self.tmp_path / name
        path.write_bytes(b"%PDF-1.4\n")
        return path

    def test_start_publishes_initial_sync(self) -> None:
        runtime = self._runtime(text="Bonjour.")
        runtime.start()

        kinds = [kind for kind, _ in self.ui.events]
        self.assertEqual(["reader", "highlight", "document", "state_update"], kinds)
        self.assertEqual("startup", self.ui.payloads("reader")[0]["reason"])
        self.assertEqual("idle", self.ui.payloads("state_update")[0]["state"])
        self.assertIsNone(self.ui.payloads("document")[0]["path"])

    def test_speak_command_and_progress_publish_highlight(self) -> None:
        runtime = self._runtime()
        runtime.start()

        runtime.submit_command(UICommand("set_text", {"text": "Bonjour. 你好。"}))
        runtime.submit_command(UICommand("speak"))
        self.assertEqual(2, runtime.run_pending())

        states = [payload["state"] for payload in self.ui.payloads("state_update")]
        self.assertEqual("speaking", states[-1])

        first = self.engine.submitted[0]
        self.queue.put(UnitProgressEvent(first.unit_id, 0, 7))
        runtime.run_pending()
        highlight = self.ui.payloads("highlight")[-1]
        self.assertEqual((True, 0, 7), (highlight["active"], highlight["start"], highlight["length"]))

        self.queue.put(UnitFinishedEvent(first.unit_id))
        runtime.run_pending()
        self.assertFalse(self.ui.payloads("highlight")[-1]["active"])
        self.assertEqual("zh-female", self.engine.submitted[1].voice_id)

    def test_speak_with_empty_text_reports_message(self) -> None:
        runtime = self._runtime()
        runtime.start()

        runtime.submit_command(UICommand("speak"))
        runtime.run_pending()

        last_state = self.ui.payloads("state_update")[-1]
        self.assertEqual(("idle", "Nothing to read"), (last_state["state"], last_state["message"]))
        self.assertEqual([], self.engine.submitted)

    def test_restart_command_reads_from_first_sentence_again(self) -> None:
        runtime = self._runtime(text="Bonjour. 你好。")
        runtime.start()

        runtime.submit_command(UICommand("speak"))
        runtime.run_pending()
        self.queue.put(UnitFinishedEvent(self.engine.submitted[0].unit_id))
        runtime.run_pending()
        self.assertEqual("zh-female", self.engine.submitted[-1].voice_id)

        runtime.submit_command(UICommand("restart"))
        runtime.run_pending()

        self.assertEqual(3, len(self.engine.submitted))
        again = self.engine.submitted[-1]
        self.assertEqual(("Bonjour. ", "fr-female"), (again.text, again.voice_id))
        self.assertEqual("speaking", self.ui.payloads("state_update")[-1]["state"])

    def test_restart_with_empty_text_reports_message(self) -> None:
        runtime = self._runtime()
        runtime.start()

        runtime.submit_command(UICommand("restart"))
        runtime.run_pending()

        last_state = self.ui.payloads("state_update")[-1]
        self.assertEqual(("idle", "Nothing to read"), (last_state["state"], last_state["message"]))
        self.assertEqual([], self.engine.submitted)

    def test_rejected_units_publish_error(self) -> None:
        self.engine = _EngineStub(reject_all=True)
        runtime = self._runtime(text="Bonjour.")
        runtime.start()

        runtime.submit_command(UICommand("speak"))
        runtime.run_pending()

        self.assertEqual(
            "Speech engine rejected every sentence",
            self.ui.payloads("error")[-1]["message"],
        )

    def test_invalid_command_arguments_publish_error(self) -> None:
        runtime = self._runtime()
        runtime.start()

        runtime.submit_command(UICommand("set_gender", {"value": "robot"}))
        runtime.submit_command(UICommand("set_rate", {}))
        runtime.run_pending()

        messages = [payload["message"] for payload in self.ui.payloads("error")]
        self.assertEqual(2, len(messages))
        self.assertTrue(messages[0].startswith("Invalid set_gender command"))
        self.assertTrue(messages[1].startswith("Invalid set_rate command"))

    def test_open_document_persists_and_recognizes(self) -> None:
        pdf = self._pdf()
        runtime = self._runtime()
        runtime.start()

        runtime.submit_command(UICommand("open_document", {"path": str(pdf)}))
        runtime.run_pending()

        self.assertEqual([(str(pdf), 0)], self.recognition.requests)
        stored = json.loads(self.store.path.read_text(encoding="utf-8"))
        self.assertEqual({"last_document": str(pdf), "last_page_index": 0}, stored)
        self.assertEqual(str(pdf), self.ui.payloads("document")[-1]["path"])

    def test_open_missing_document_publishes_error(self) -> None:
        runtime = self._runtime()
        runtime.start()

        runtime.submit_command(UICommand("open_document", {"path": str(self.tmp_path / "absent.pdf")}))
        runtime.run_pending()

        self.assertIn("PDF file not found", self.ui.payloads("error")[-1]["message"])
        self.assertEqual([], self.recognition.requests)

    def test_recognition_result_replaces_text_for_current_page(self) -> None:
        pdf = self._pdf()
        runtime = self._runtime(initial_document=str(pdf))
        runtime.start()

        self.queue.put(RecognitionCompletedEvent(str(pdf), 0, "Texte reconnu.", datetime.now()))
        runtime.run_pending()

        self.assertEqual("Texte reconnu.", self.ui.payloads("reader")[-1]["text"])

    def test_stale_recognition_result_is_discarded(self) -> None:
        pdf = self._pdf()
        runtime = self._runtime(initial_document=str(pdf), text="Avant.")
        runtime.start()

        runtime.submit_command(UICommand("next_page"))
        runtime.run_pending()
        self.queue.put(RecognitionCompletedEvent(str(pdf), 0, "Page un.", datetime.now()))
        self.queue.put(RecognitionFailedEvent(str(pdf), 0, "tesseract crashed", datetime.now()))
        runtime.run_pending()

        self.assertEqual([(str(pdf), 0), (str(pdf), 1)], self.recognition.requests)
        self.assertEqual("Avant.", self.ui.payloads("reader")[-1]["text"])
        self.assertEqual([], self.ui.payloads("error"))

    def test_recognize_without_document_publishes_error(self) -> None:
        runtime = self._runtime()
        runtime.start()

        runtime.submit_command(UICommand("recognize"))
        runtime.run_pending()

        self.assertEqual("No document is open", self.ui.payloads("error")[-1]["message"])

    def test_start_restores_last_document_and_page(self) -> None:
        pdf = self._pdf()
        self.store.set("last_document", str(pdf))
        self.store.set("last_page_index", 2)
        self.store.synchronize()

        runtime = self._runtime()
        runtime.start()

        self.assertEqual([(str(pdf), 2)], self.document.loads)
        self.assertEqual([(str(pdf), 2)], self.recognition.requests)

    def test_initial_document_ignores_page_of_other_document(self) -> None:
        previous = self._pdf("ancien.pdf")
        current = self._pdf("nouveau.pdf")
        self.store.set("last_document", str(previous))
        self.store.set("last_page_index", 2)
        self.store.synchronize()

        runtime = self._runtime(initial_document=str(current))
        runtime.start()

        self.assertEqual([(str(current), 0)], self.document.loads)

    def test_missing_last_document_is_not_restored(self) -> None:
        self.store.set("last_document", str(self.tmp_path / "gone.pdf"))
        self.store.synchronize()

        runtime = self._runtime()
        runtime.start()

        self.assertEqual([], self.document.loads)

    def test_run_returns_after_stop_request_and_shuts_down(self) -> None:
        runtime = self._runtime()
        runtime.request_stop()

        self.assertEqual(0, runtime.run())
        self.assertTrue(self.ui.stopped)
        self.assertTrue(self.recognition.closed)
        self.assertTrue(self.document.closed)


if __name__ == "__main__":
    unittest.main()
