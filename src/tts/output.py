"""Sounddevice-backed audio playback with word-boundary pause and immediate stop."""

import logging
import threading
from typing import Callable, Optional

import numpy as np
import sounddevice as sd

from .engine import TTSError


class PlaybackControl:
    """Thread-safe pause/resume/stop flags shared with one playback stream."""

    def __init__(self):
        self._lock = threading.Lock()
        self._pause_requested = False
        self._holding = False
        self._stopped = False

    def request_pause(self) -> None:
        with self._lock:
            self._pause_requested = True

    def resume(self) -> None:
        with self._lock:
            self._pause_requested = False
            self._holding = False

    def stop(self) -> None:
        with self._lock:
            self._stopped = True

    @property
    def stopped(self) -> bool:
        with self._lock:
            return self._stopped

    def state(self) -> tuple[bool, bool, bool]:
        with self._lock:
            return self._pause_requested, self._holding, self._stopped

    def hold(self) -> None:
        with self._lock:
            self._holding = True


class SoundDeviceAudioOutput:
    """Plays mono PCM arrays through a selected sounddevice output."""
    def __init__(
        self,
        output_device_index: Optional[int] = None,
        blocksize: int = 2048,
        logger: Optional[logging.Logger] = None,
    ):
        self._output_device_index = output_device_index
        self._blocksize = blocksize
        self._logger = logger or logging.getLogger(__name__)

    def play(
        self,
        wav: np.ndarray,
        sample_rate_hz: int,
        *,
        control: PlaybackControl,
        word_starts: tuple[int, ...] = (),
        on_word: Optional[Callable[[int], None]] = None,
        on_hold: Optional[Callable[[], None]] = None,
    ) -> bool:
        """Play `wav` until it ends or `control` is stopped.

        `word_starts` are frame offsets where a new word begins; `on_word` is
        called with the word index when the block containing it is queued. A pause request
        takes effect at the next word start, after which silence is streamed
        until resume. Returns True when the buffer played to the end.
        """
        if wav.ndim != 1:
            raise TTSError("Expected mono PCM array for playback")
        if len(wav) == 0:
            raise TTSError("Cannot play empty audio buffer")

        pos = 0
        next_word = 0
        completed = False
        done = threading.Event()

        def callback(outdata, frames, time_info, status):
            nonlocal pos, next_word, completed
            if status:
                self._logger.warning("Sounddevice status: %s", status)

            pause_requested, holding, stopped = control.state()
            if stopped:
                outdata.fill(0)
                raise sd.CallbackAbort()
            if holding:
                outdata.fill(0)
                return

            end = min(pos + frames, len(wav))
            if pause_requested:
                boundary = _next_boundary(word_starts, pos)
                if boundary is not None and boundary < end:
                    end = boundary
                    control.hold()
                    if on_hold is not None:
                        on_hold()

            while next_word < len(word_starts) and word_starts[next_word] < end:
                if on_word is not None:
                    on_word(next_word)
                next_word += 1

            chunk = wav[pos:end]
            outdata[: len(chunk), 0] = chunk
            outdata[len(chunk) :, 0] = 0
            pos = end

            if pos >= len(wav):
                completed = True
                raise sd.CallbackStop()

        try:
            with sd.OutputStream(
                channels=1,
                samplerate=sample_rate_hz,
                blocksize=self._blocksize,
                callback=callback,
                finished_callback=done.set,
                device=self._output_device_index,
            ):
                done.wait()
        except Exception as error:
            raise TTSError(f"Audio playback failed: {error}") from error

        return completed and not control.stopped


def _next_boundary(word_starts: tuple[int, ...], pos: int) -> Optional[int]:
    for start in word_starts:
        if start > pos:
            return start
    return None
