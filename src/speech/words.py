"""Word-boundary helpers used for progress reporting and pause points."""

from __future__ import annotations

import re

from .language import SCRIPT_HAN, SCRIPT_KANA, script_of

_TOKEN_PATTERN = re.compile(r"\S+")


def word_spans(text: str) -> list[tuple[int, int]]:
    """Return `(start, length)` for every word of `text`.

    Han and kana characters are one word each, since they are not separated
    by spaces.
    """
    spans: list[tuple[int, int]] = []
    for match in _TOKEN_PATTERN.finditer(text):
        token_start = match.start()
        run_start = token_start
        for offset, char in enumerate(match.group(0)):
            if script_of(ord(char)) not in (SCRIPT_HAN, SCRIPT_KANA):
                continue
            position = token_start + offset
            if position > run_start:
                spans.append((run_start, position - run_start))
            spans.append((position, 1))
            run_start = position + 1
        if run_start < match.end():
            spans.append((run_start, match.end() - run_start))
    return _attach_punctuation(text, spans)


def _attach_punctuation(text: str, spans: list[tuple[int, int]]) -> list[tuple[int, int]]:
    # Trailing CJK punctuation ("。") becomes its own span above; fold it into
    # the previous word so pauses never stop on punctuation alone.
    merged: list[tuple[int, int]] = []
    for start, length in spans:
        piece = text[start : start + length]
        if merged and not any(char.isalnum() for char in piece):
            prev_start, prev_length = merged[-1]
            if prev_start + prev_length == start:
                merged[-1] = (prev_start, prev_length + length)
                continue
        merged.append((start, length))
    return merged


def estimate_word_timings(
    spans: list[tuple[int, int]],
    total_frames: int,
) -> list[tuple[int, int]]:
    """Distribute `total_frames` across word spans proportionally to length.

    Returns `(start_frame, end_frame)` per span; the last word always ends at
    `total_frames`.
    """
    if not spans or total_frames <= 0:
        return []

    weights = [max(1, length) for _, length in spans]
    total_weight = sum(weights)
    timings: list[tuple[int, int]] = []
    consumed = 0
    elapsed = 0
    for index, weight in enumerate(weights):
        consumed += weight
        if index == len(weights) - 1:
            end = total_frames
        else:
            end = (total_frames * consumed) // total_weight
        timings.append((elapsed, end))
        elapsed = end
    return timings
