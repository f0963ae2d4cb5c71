"""Speech engine that synthesizes units with Piper and plays them one at a time."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from speech import (
    EngineEventPublisher,
    EngineSubmitFailure,
    SpeakableUnit,
    UnitCancelledEvent,
    UnitFinishedEvent,
    UnitPausedEvent,
    UnitProgressEvent,
    UnitResumedEvent,
    UnitStartedEvent,
    Voice,
)
from speech.words import estimate_word_timings, word_spans

from .engine import PiperTTSEngine, TTSError
from .output import PlaybackControl, SoundDeviceAudioOutput


class PiperSpeechEngine:
    """Implements the speech engine contract on top of Piper and sounddevice.

    Units run on a single background worker; every lifecycle callback is
    handed to the publisher, which marshals it onto the owning thread.
    """

    def __init__(
        self,
        engine: PiperTTSEngine,
        output: SoundDeviceAudioOutput,
        publisher: EngineEventPublisher,
        logger: Optional[logging.Logger] = None,
    ):
        self._engine = engine
        self._output = output
        self._publisher = publisher
        self._logger = logger or logging.getLogger(__name__)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="speech")
        self._lock = threading.Lock()
        self._generation = 0
        self._control: Optional[PlaybackControl] = None
        self._active_unit_id: Optional[int] = None
        self._closed = False

    def enumerate_voices(self) -> tuple[Voice, ...]:
        return self._engine.catalog()

    def default_voice(self, language_tag: str) -> Optional[Voice]:
        return self._engine.default_voice(language_tag)

    def submit(self, unit: SpeakableUnit) -> None:
        if unit.voice_id is not None and not self._engine.is_known_voice(unit.voice_id):
            raise EngineSubmitFailure(f"Unknown voice {unit.voice_id!r} for unit {unit.unit_id}")

        with self._lock:
            if self._closed:
                raise EngineSubmitFailure("Speech engine is closed")
            generation = self._generation
            control = PlaybackControl()
            self._control = control
            try:
                self._executor.submit(self._run_unit, unit, generation, control)
            except RuntimeError as error:
                raise EngineSubmitFailure(f"Speech worker rejected unit: {error}") from error

    def pause_at_word_boundary(self) -> None:
        with self._lock:
            if self._control is not None:
                self._control.request_pause()

    def resume(self) -> None:
        with self._lock:
            control = self._control
            unit_id = self._active_unit_id
        if control is None:
            return
        control.resume()
        if unit_id is not None:
            self._publisher.publish(UnitResumedEvent(unit_id=unit_id))

    def stop_immediate(self) -> None:
        with self._lock:
            self._generation += 1
            if self._control is not None:
                self._control.stop()
            self._control = None

    def close(self) -> None:
        self.stop_immediate()
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def _run_unit(self, unit: SpeakableUnit, generation: int, control: PlaybackControl) -> None:
        if not self._is_current(generation) or control.stopped:
            self._publisher.publish(UnitCancelledEvent(unit_id=unit.unit_id))
            return

        with self._lock:
            self._active_unit_id = unit.unit_id
        try:
            self._publisher.publish(UnitStartedEvent(unit_id=unit.unit_id))
            try:
                wav, sample_rate_hz = self._engine.synthesize(
                    unit.text,
                    voice_id=unit.voice_id,
                    rate=unit.rate,
                )
            except TTSError as error:
                # A failed sentence is skipped, not fatal to the queue.
                self._logger.error("Synthesis failed for unit %s: %s", unit.unit_id, error)
                self._publisher.publish(UnitFinishedEvent(unit_id=unit.unit_id))
                return

            if not self._is_current(generation) or control.stopped:
                self._publisher.publish(UnitCancelledEvent(unit_id=unit.unit_id))
                return

            spans = word_spans(unit.text)
            timings = estimate_word_timings(spans, len(wav))
            word_starts = tuple(start for start, _ in timings)

            def on_word(index: int) -> None:
                start, length = spans[index]
                self._publisher.publish(
                    UnitProgressEvent(
                        unit_id=unit.unit_id,
                        local_start=start,
                        local_length=length,
                    )
                )

            def on_hold() -> None:
                self._publisher.publish(UnitPausedEvent(unit_id=unit.unit_id))

            self._logger.debug(
                "Playing unit %s: %d samples at %d Hz",
                unit.unit_id,
                len(wav),
                sample_rate_hz,
            )
            try:
                completed = self._output.play(
                    wav,
                    sample_rate_hz,
                    control=control,
                    word_starts=word_starts,
                    on_word=on_word,
                    on_hold=on_hold,
                )
            except TTSError as error:
                self._logger.error("Playback failed for unit %s: %s", unit.unit_id, error)
                self._publisher.publish(UnitCancelledEvent(unit_id=unit.unit_id))
                return

            if completed:
                self._publisher.publish(UnitFinishedEvent(unit_id=unit.unit_id))
            else:
                self._publisher.publish(UnitCancelledEvent(unit_id=unit.unit_id))
        finally:
            with self._lock:
                if self._active_unit_id == unit.unit_id:
                    self._active_unit_id = None
