"""Sentence-level language detection from script ranges and stopword profiles."""

from __future__ import annotations

import re
from typing import Iterable, Optional

from .constants import DEFAULT_CJK_LANGUAGE, DEFAULT_PRIMARY_LANGUAGE

SCRIPT_LATIN = "latin"
SCRIPT_HAN = "han"
SCRIPT_KANA = "kana"
SCRIPT_HANGUL = "hangul"
SCRIPT_CYRILLIC = "cyrillic"
SCRIPT_GREEK = "greek"
SCRIPT_ARABIC = "arabic"
SCRIPT_HEBREW = "hebrew"
SCRIPT_DEVANAGARI = "devanagari"
SCRIPT_THAI = "thai"

_SCRIPT_RANGES: tuple[tuple[int, int, str], ...] = (
    (0x0041, 0x005A, SCRIPT_LATIN),
    (0x0061, 0x007A, SCRIPT_LATIN),
    (0x00C0, 0x024F, SCRIPT_LATIN),
    (0x1E00, 0x1EFF, SCRIPT_LATIN),
    (0x0370, 0x03FF, SCRIPT_GREEK),
    (0x0400, 0x04FF, SCRIPT_CYRILLIC),
    (0x0590, 0x05FF, SCRIPT_HEBREW),
    (0x0600, 0x06FF, SCRIPT_ARABIC),
    (0x0900, 0x097F, SCRIPT_DEVANAGARI),
    (0x0E00, 0x0E7F, SCRIPT_THAI),
    (0x1100, 0x11FF, SCRIPT_HANGUL),
    (0x3040, 0x309F, SCRIPT_KANA),
    (0x30A0, 0x30FF, SCRIPT_KANA),
    (0x3130, 0x318F, SCRIPT_HANGUL),
    (0x3400, 0x4DBF, SCRIPT_HAN),
    (0x4E00, 0x9FFF, SCRIPT_HAN),
    (0xAC00, 0xD7AF, SCRIPT_HANGUL),
    (0xF900, 0xFAFF, SCRIPT_HAN),
    (0x20000, 0x2A6DF, SCRIPT_HAN),
)

# Scripts that identify a single language without looking at words.
_SCRIPT_LANGUAGES: dict[str, str] = {
    SCRIPT_KANA: "ja-JP",
    SCRIPT_HANGUL: "ko-KR",
    SCRIPT_CYRILLIC: "ru-RU",
    SCRIPT_GREEK: "el-GR",
    SCRIPT_ARABIC: "ar-SA",
    SCRIPT_HEBREW: "he-IL",
    SCRIPT_DEVANAGARI: "hi-IN",
    SCRIPT_THAI: "th-TH",
}

_CJK_SCRIPTS = frozenset({SCRIPT_HAN, SCRIPT_KANA, SCRIPT_HANGUL})

_STOPWORD_PROFILES: dict[str, frozenset[str]] = {
    "fr": frozenset(
        """
        le la les de des du un une et est sont que qui dans pour pas sur au aux
        avec ce cette ces il elle ils elles nous vous je tu ne en mais ou donc
        bonjour merci bienvenue oui non très tout plus comme être avoir l d qu j
        c s n
        """.split()
    ),
    "en": frozenset(
        """
        the and is are was were of to in that it for with you this not on be
        have has had at by from they we he she or but what which hello thank
        thanks welcome yes no very all would there their
        """.split()
    ),
    "de": frozenset(
        """
        der die das und ist sind nicht ein eine einen ich sie es mit zu den
        von auf für dem des im auch sich wir ihr aber oder hallo danke
        willkommen ja nein sehr
        """.split()
    ),
    "es": frozenset(
        """
        el la los las de y que en es son un una por con para no del se lo al
        como pero más muy hola gracias bienvenido sí yo tú nosotros está
        """.split()
    ),
    "it": frozenset(
        """
        il lo la gli le di e che è sono un una per con non del della nel alla
        ma come più molto ciao grazie benvenuto sì io tu noi questo questa
        """.split()
    ),
}

_DEFAULT_PROFILE_TAGS: dict[str, str] = {
    "fr": "fr-FR",
    "en": "en-US",
    "de": "de-DE",
    "es": "es-ES",
    "it": "it-IT",
}

_WORD_PATTERN = re.compile(r"[^\W\d_]+")


def language_family(tag: str) -> str:
    """Return the lower-case language subtag of a BCP-47 style tag."""
    return tag.replace("_", "-").split("-", 1)[0].strip().lower()


def normalize_language_tag(tag: str) -> str:
    """Normalize `fr_fr` / `FR-fr` style tags to `fr-FR`."""
    parts = [part for part in tag.replace("_", "-").strip().split("-") if part]
    if not parts:
        return ""
    language = parts[0].lower()
    if len(parts) == 1:
        return language
    region = parts[1].upper() if len(parts[1]) == 2 else parts[1]
    return "-".join([language, region, *parts[2:]])


def script_counts(text: str) -> dict[str, int]:
    counts: dict[str, int] = {}
    for char in text:
        script = script_of(ord(char))
        if script is not None:
            counts[script] = counts.get(script, 0) + 1
    return counts


def script_of(code_point: int) -> Optional[str]:
    for low, high, script in _SCRIPT_RANGES:
        if low <= code_point <= high:
            return script
    return None


class LanguageDetector:
    """Deterministic detector returning a language tag for one sentence.

    The script with the most letters wins. CJK text resolves to Japanese when
    kana are present, Korean for hangul, otherwise the configured CJK language;
    other non-Latin scripts map to one language each. Latin text is scored
    against small stopword profiles; inconclusive scores fall back to the
    primary language.
    """

    def __init__(
        self,
        *,
        primary_language: str = DEFAULT_PRIMARY_LANGUAGE,
        cjk_language: str = DEFAULT_CJK_LANGUAGE,
        languages: Optional[Iterable[str]] = None,
    ):
        self._primary_language = normalize_language_tag(primary_language)
        self._cjk_language = normalize_language_tag(cjk_language)
        if not self._primary_language:
            raise ValueError("primary_language cannot be empty")
        if not self._cjk_language:
            raise ValueError("cjk_language cannot be empty")

        candidates = languages if languages is not None else _DEFAULT_PROFILE_TAGS.values()
        profile_tags: dict[str, str] = {}
        for tag in [self._primary_language, *candidates]:
            normalized = normalize_language_tag(tag)
            family = language_family(normalized)
            if family in _STOPWORD_PROFILES and family not in profile_tags:
                profile_tags[family] = normalized
        self._profile_tags = profile_tags

    @property
    def primary_language(self) -> str:
        return self._primary_language

    @property
    def cjk_language(self) -> str:
        return self._cjk_language

    def detect(self, sentence: str) -> str:
        counts = script_counts(sentence)
        if not counts:
            return self._primary_language

        latin_count = counts.get(SCRIPT_LATIN, 0)
        cjk_count = sum(counts.get(script, 0) for script in _CJK_SCRIPTS)
        if cjk_count > latin_count:
            return self._detect_cjk(counts)

        other_script, other_count = max(
            (
                (script, count)
                for script, count in counts.items()
                if script != SCRIPT_LATIN and script not in _CJK_SCRIPTS
            ),
            key=lambda item: item[1],
            default=(None, 0),
        )
        if other_script is not None and other_count > latin_count:
            return _SCRIPT_LANGUAGES.get(other_script, self._primary_language)

        return self._detect_latin(sentence)

    def _detect_cjk(self, counts: dict[str, int]) -> str:
        # Kana only occurs in Japanese; Han ideographs alone are ambiguous.
        if counts.get(SCRIPT_KANA):
            return _SCRIPT_LANGUAGES[SCRIPT_KANA]
        if counts.get(SCRIPT_HANGUL, 0) >= counts.get(SCRIPT_HAN, 0):
            return _SCRIPT_LANGUAGES[SCRIPT_HANGUL]
        return self._cjk_language

    def _detect_latin(self, sentence: str) -> str:
        words = _WORD_PATTERN.findall(sentence.lower())
        if not words:
            return self._primary_language

        scores = {
            family: sum(1 for word in words if word in _STOPWORD_PROFILES[family])
            for family in self._profile_tags
        }
        best = max(scores.values(), default=0)
        if best == 0:
            return self._primary_language

        leaders = [family for family, score in scores.items() if score == best]
        primary_family = language_family(self._primary_language)
        if len(leaders) > 1:
            # Ties are inconclusive.
            return self._primary_language
        if leaders[0] == primary_family:
            return self._primary_language
        return self._profile_tags[leaders[0]]
