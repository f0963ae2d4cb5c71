import unittest

from speech import (
    EngineSubmitFailure,
    LanguageDetector,
    PlaybackController,
    UnitCancelledEvent,
    UnitFinishedEvent,
    UnitPausedEvent,
    UnitProgressEvent,
    UnitResumedEvent,
    UnitStartedEvent,
    UtteranceBuilder,
    Voice,
    VoiceSelector,
)

_CATALOG = (
    Voice(voice_id="fr-female", language="fr-FR", gender="female"),
    Voice(voice_id="zh-female", language="zh-CN", gender="female"),
)


class _RecordingEngine:
    def __init__(self, reject_voices: frozenset[str] = frozenset()):
        self.calls: list[tuple[str, object]] = []
        self.submitted = []
        self._reject_voices = reject_voices

    def submit(self, unit) -> None:
        self.calls.append(("submit", unit.unit_id))
        if unit.voice_id in self._reject_voices:
            raise EngineSubmitFailure(f"rejected {unit.voice_id}")
        self.submitted.append(unit)

    def pause_at_word_boundary(self) -> None:
        self.calls.append(("pause", None))

    def resume(self) -> None:
        self.calls.append(("resume", None))

    def stop_immediate(self) -> None:
        self.calls.append(("stop", None))

    def enumerate_voices(self):
        return _CATALOG

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


def _controller(engine: _RecordingEngine) -> PlaybackController:
    builder = UtteranceBuilder(
        LanguageDetector(primary_language="fr-FR", cjk_language="zh-CN"),
        VoiceSelector(engine.enumerate_voices),
    )
    return PlaybackController(builder, engine)


class PlaybackControllerTests(unittest.TestCase):
    def test_speak_from_idle_submits_first_unit(self) -> None:
        engine = _RecordingEngine()
        controller = _controller(engine)

        result = controller.speak("Bonjour. 你好。", gender="female")

        self.assertTrue(result.accepted)
        self.assertEqual("started", result.reason)
        self.assertEqual("speaking", result.snapshot.phase)
        self.assertEqual(["submit"], engine.call_names())
        self.assertEqual(1, result.snapshot.queued_units)

    def test_toggle_pause_and_resume_makes_no_submit_calls(self) -> None:
        engine = _RecordingEngine()
        controller = _controller(engine)
        controller.speak("Bonjour. 你好。", gender="female")
        engine.calls.clear()

        paused = controller.speak("ignored")
        resumed = controller.speak("ignored")

        self.assertEqual(("paused", "paused"), (paused.reason, paused.snapshot.phase))
        self.assertEqual(("resumed", "speaking"), (resumed.reason, resumed.snapshot.phase))
        self.assertEqual(["pause", "resume"], engine.call_names())

    def test_stop_when_idle_is_a_no_op(self) -> None:
        engine = _RecordingEngine()
        controller = _controller(engine)

        first = controller.stop()
        second = controller.stop()

        self.assertFalse(first.accepted)
        self.assertEqual("not_active", first.reason)
        self.assertEqual(first.snapshot, second.snapshot)
        self.assertEqual([], engine.calls)

    def test_stop_while_speaking_drops_queue_and_highlight(self) -> None:
        engine = _RecordingEngine()
        controller = _controller(engine)
        controller.speak("Bonjour. 你好。", gender="female")
        unit = engine.submitted[0]
        controller.handle_event(UnitProgressEvent(unit.unit_id, 0, 7))

        result = controller.stop()

        self.assertTrue(result.accepted)
        self.assertEqual("idle", result.snapshot.phase)
        self.assertEqual(0, result.snapshot.queued_units)
        self.assertIsNone(result.snapshot.highlight)
        self.assertEqual("stop", engine.call_names()[-1])

    def test_empty_input_stays_idle_without_engine_calls(self) -> None:
        for text in ("", "   \n\t"):
            with self.subTest(text=text):
                engine = _RecordingEngine()
                controller = _controller(engine)

                result = controller.speak(text)

                self.assertFalse(result.accepted)
                self.assertEqual("empty_input", result.reason)
                self.assertEqual("idle", result.snapshot.phase)
                self.assertEqual([], engine.calls)

    def test_finished_units_advance_then_finish(self) -> None:
        engine = _RecordingEngine()
        controller = _controller(engine)
        controller.speak("Bonjour. 你好。", gender="female")

        first, = engine.submitted
        controller.handle_event(UnitStartedEvent(first.unit_id))
        advanced = controller.handle_event(UnitFinishedEvent(first.unit_id))
        self.assertEqual("next_unit", advanced.reason)
        self.assertEqual(2, len(engine.submitted))

        second = engine.submitted[1]
        self.assertEqual("zh-female", second.voice_id)
        finished = controller.handle_event(UnitFinishedEvent(second.unit_id))
        self.assertEqual("queue_finished", finished.reason)
        self.assertEqual("idle", finished.snapshot.phase)

    def test_progress_translates_to_absolute_highlight(self) -> None:
        engine = _RecordingEngine()
        controller = _controller(engine)
        controller.speak("Bonjour. 你好。", gender="female")
        first = engine.submitted[0]
        controller.handle_event(UnitFinishedEvent(first.unit_id))
        second = engine.submitted[1]

        result = controller.handle_event(UnitProgressEvent(second.unit_id, 1, 1))

        self.assertEqual((10, 1), (result.snapshot.highlight.start, result.snapshot.highlight.length))

    def test_highlight_cleared_when_unit_finishes(self) -> None:
        engine = _RecordingEngine()
        controller = _controller(engine)
        controller.speak("Bonjour. 你好。", gender="female")
        first = engine.submitted[0]
        controller.handle_event(UnitProgressEvent(first.unit_id, 0, 7))

        result = controller.handle_event(UnitFinishedEvent(first.unit_id))

        self.assertIsNone(result.snapshot.highlight)

    def test_stale_callback_after_stop_is_ignored(self) -> None:
        engine = _RecordingEngine()
        controller = _controller(engine)
        controller.speak("Bonjour. 你好。", gender="female")
        first = engine.submitted[0]
        controller.stop()

        result = controller.handle_event(UnitProgressEvent(first.unit_id, 2, 3))

        self.assertFalse(result.accepted)
        self.assertEqual("stale_callback", result.reason)
        self.assertIsNone(result.snapshot.highlight)
        self.assertEqual("idle", result.snapshot.phase)

    def test_submit_failure_skips_to_next_unit(self) -> None:
        engine = _RecordingEngine(reject_voices=frozenset({"fr-female"}))
        controller = _controller(engine)

        result = controller.speak("Bonjour. 你好。", gender="female")

        self.assertTrue(result.accepted)
        self.assertEqual(["submit", "submit"], engine.call_names())
        self.assertEqual("zh-female", engine.submitted[0].voice_id)
        self.assertEqual(engine.submitted[0].unit_id, result.snapshot.current_unit_id)

    def test_all_submits_failing_returns_to_idle(self) -> None:
        engine = _RecordingEngine(reject_voices=frozenset({"fr-female", "zh-female"}))
        controller = _controller(engine)

        result = controller.speak("Bonjour. 你好。", gender="female")

        self.assertFalse(result.accepted)
        self.assertEqual("all_units_failed", result.reason)
        self.assertEqual("idle", result.snapshot.phase)

    def test_unit_finishing_while_paused_holds_next_unit(self) -> None:
        engine = _RecordingEngine()
        controller = _controller(engine)
        controller.speak("Bonjour. 你好。", gender="female")
        first = engine.submitted[0]
        controller.speak("ignored")

        held = controller.handle_event(UnitFinishedEvent(first.unit_id))
        self.assertEqual("paused", held.snapshot.phase)
        self.assertEqual(1, len(engine.submitted))

        resumed = controller.speak("ignored")
        self.assertEqual("resumed", resumed.reason)
        self.assertEqual(2, len(engine.submitted))
        self.assertNotIn("resume", engine.call_names())

    def test_engine_cancel_returns_to_idle(self) -> None:
        engine = _RecordingEngine()
        controller = _controller(engine)
        controller.speak("Bonjour. 你好。", gender="female")
        first = engine.submitted[0]

        result = controller.handle_event(UnitCancelledEvent(first.unit_id))

        self.assertEqual("cancelled", result.reason)
        self.assertEqual("idle", result.snapshot.phase)
        self.assertEqual(0, result.snapshot.queued_units)

    def test_engine_pause_and_resume_events_follow_phase(self) -> None:
        engine = _RecordingEngine()
        controller = _controller(engine)
        controller.speak("Bonjour.", gender="female")
        unit = engine.submitted[0]

        paused = controller.handle_event(UnitPausedEvent(unit.unit_id))
        resumed = controller.handle_event(UnitResumedEvent(unit.unit_id))

        self.assertEqual("paused", paused.snapshot.phase)
        self.assertEqual("speaking", resumed.snapshot.phase)

    def test_restart_stops_current_queue_first(self) -> None:
        engine = _RecordingEngine()
        controller = _controller(engine)
        controller.speak("Bonjour. 你好。", gender="female")
        old_unit = engine.submitted[0]

        result = controller.restart("Merci.", gender="female")

        self.assertEqual("started", result.reason)
        self.assertEqual(["submit", "stop", "submit"], engine.call_names())
        stale = controller.handle_event(UnitFinishedEvent(old_unit.unit_id))
        self.assertEqual("stale_callback", stale.reason)


if __name__ == "__main__":
    unittest.main()
