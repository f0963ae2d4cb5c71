"""Sentence segmentation and speakable-unit construction."""

from __future__ import annotations

import itertools
import logging
import re
from dataclasses import dataclass
from typing import Iterator, Optional

from .constants import DEFAULT_SPEECH_RATE
from .errors import NoVoiceAvailable
from .language import SCRIPT_HAN, SCRIPT_HANGUL, SCRIPT_KANA, LanguageDetector, script_of
from .voices import VoiceGender, VoiceSelector


@dataclass(frozen=True)
class SpeakableUnit:
    """One sentence of the document text, ready for submission to an engine."""
    unit_id: int
    text: str
    start: int
    length: int
    language: str
    voice_id: Optional[str]
    rate: float = DEFAULT_SPEECH_RATE

    @property
    def end(self) -> int:
        return self.start + self.length

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()


_BOUNDARY_PATTERN = re.compile(
    r"(?P<term>(?:[.!?…]+|[。！？｡]+)[\"'»”’）)\]」』]*)|(?P<para>\n[ \t]*\n)"
)
_CJK_TERMINATORS = frozenset("。！？｡")
_TRAILING_WORD = re.compile(r"(\w+)$")

# Lower-case abbreviations whose trailing period does not end a sentence.
_ABBREVIATIONS: frozenset[str] = frozenset(
    {
        "m",
        "mm",
        "mme",
        "mmes",
        "mlle",
        "mlles",
        "dr",
        "mr",
        "mrs",
        "ms",
        "st",
        "ste",
        "prof",
        "cf",
        "p",
        "pp",
        "vol",
        "fig",
        "env",
        "vs",
        "av",
        "bd",
    }
)


def segment_sentences(text: str) -> list[tuple[int, int]]:
    """Split `text` into `(start, length)` spans that partition it in order.

    Whitespace after a sentence terminator belongs to the sentence it closes,
    so spans never leave gaps. Returns an empty list for empty text.
    """
    spans: list[tuple[int, int]] = []
    cursor = 0
    for end in _iter_boundaries(text):
        if end > cursor:
            spans.append((cursor, end - cursor))
            cursor = end

    if cursor < len(text):
        spans.append((cursor, len(text) - cursor))
    return spans


def _iter_boundaries(text: str) -> Iterator[int]:
    length = len(text)
    last_end = 0
    for match in _BOUNDARY_PATTERN.finditer(text):
        if match.start() < last_end:
            continue

        end = match.end()
        if match.group("term"):
            terminator = match.group("term")
            if terminator[0] not in _CJK_TERMINATORS:
                if end < length and not _starts_new_sentence(text[end]):
                    continue
                if terminator == "." and _ends_with_abbreviation(text[: match.start()]):
                    continue

        while end < length and text[end].isspace():
            end += 1
        last_end = end
        yield end


def _starts_new_sentence(char: str) -> bool:
    # CJK text follows a Latin sentence without a separating space.
    return char.isspace() or script_of(ord(char)) in (SCRIPT_HAN, SCRIPT_KANA, SCRIPT_HANGUL)


def _ends_with_abbreviation(prefix: str) -> bool:
    match = _TRAILING_WORD.search(prefix)
    if match is None:
        return False
    word = match.group(1)
    if len(word) == 1 and word.isupper():
        # Initials such as "J. Verne".
        return True
    return word.lower() in _ABBREVIATIONS


class UtteranceBuilder:
    """Turns a document text into an ordered queue of speakable units."""

    def __init__(
        self,
        detector: LanguageDetector,
        selector: VoiceSelector,
        *,
        logger: Optional[logging.Logger] = None,
    ):
        self._detector = detector
        self._selector = selector
        self._logger = logger or logging.getLogger("speech.utterances")
        self._unit_ids = itertools.count(1)

    def build(
        self,
        full_text: str,
        gender: Optional[VoiceGender] = None,
        *,
        rate: float = DEFAULT_SPEECH_RATE,
    ) -> list[SpeakableUnit]:
        spans = segment_sentences(full_text)
        if not spans:
            return [
                self._make_unit(
                    full_text,
                    0,
                    len(full_text),
                    self._detector.primary_language,
                    gender,
                    rate,
                )
            ]

        units = []
        for start, length in spans:
            sentence = full_text[start : start + length]
            language = self._detector.detect(sentence)
            units.append(self._make_unit(sentence, start, length, language, gender, rate))

        self._logger.debug(
            "Built %d speakable units for %d characters",
            len(units),
            len(full_text),
        )
        return units

    def _make_unit(
        self,
        text: str,
        start: int,
        length: int,
        language: str,
        gender: Optional[VoiceGender],
        rate: float,
    ) -> SpeakableUnit:
        try:
            voice_id: Optional[str] = self._selector.select(language, gender).voice_id
        except NoVoiceAvailable as error:
            self._logger.warning("%s; using engine default voice", error)
            voice_id = None

        return SpeakableUnit(
            unit_id=next(self._unit_ids),
            text=text,
            start=start,
            length=length,
            language=language,
            voice_id=voice_id,
            rate=rate,
        )
