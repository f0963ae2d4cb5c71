"""Voice catalog model and most-specific-first voice resolution."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Literal, Optional

from .errors import NoVoiceAvailable
from .language import language_family, normalize_language_tag

VoiceGender = Literal["female", "male"]


@dataclass(frozen=True)
class Voice:
    """One entry of the engine voice catalog."""
    voice_id: str
    language: str
    gender: Optional[VoiceGender] = None
    name: str = ""

    @property
    def family(self) -> str:
        return language_family(self.language)


DefaultVoiceFactory = Callable[[str], Optional[Voice]]


class VoiceSelector:
    """Resolves the best available voice for a language tag and gender.

    Resolution order:
      1. exact language-region match with the requested gender
      2. exact language-region match, any gender
      3. language-family match with the requested gender
      4. language-family match, any gender
      5. engine default voice constructed from the tag alone

    The catalog is queried once per `select` call so that voices installed
    while the application runs are picked up.
    """

    def __init__(
        self,
        enumerate_voices: Callable[[], Iterable[Voice]],
        *,
        default_voice: Optional[DefaultVoiceFactory] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._enumerate_voices = enumerate_voices
        self._default_voice = default_voice
        self._logger = logger or logging.getLogger("speech.voices")

    def select(self, language_tag: str, gender: Optional[VoiceGender] = None) -> Voice:
        tag = normalize_language_tag(language_tag)
        family = language_family(tag)
        catalog = list(self._enumerate_voices())

        exact = [voice for voice in catalog if normalize_language_tag(voice.language) == tag]
        related = [voice for voice in catalog if voice.family == family]

        for candidates in (exact, related):
            match = _first_with_gender(candidates, gender)
            if match is not None:
                return match
            if candidates:
                return candidates[0]

        if self._default_voice is not None:
            voice = self._default_voice(tag)
            if voice is not None:
                self._logger.debug(
                    "No catalog voice for %s, using engine default %s",
                    tag,
                    voice.voice_id,
                )
                return voice

        raise NoVoiceAvailable(f"No voice available for language {tag or language_tag!r}")


def _first_with_gender(
    voices: list[Voice],
    gender: Optional[VoiceGender],
) -> Optional[Voice]:
    if gender is None:
        return None
    for voice in voices:
        if voice.gender == gender:
            return voice
    return None
