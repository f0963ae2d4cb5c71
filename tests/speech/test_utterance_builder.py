import unittest

from speech import (
    LanguageDetector,
    UtteranceBuilder,
    Voice,
    VoiceSelector,
    segment_sentences,
)

_CATALOG = (
    Voice(voice_id="fr-female", language="fr-FR", gender="female"),
    Voice(voice_id="fr-male", language="fr-FR", gender="male"),
    Voice(voice_id="zh-female", language="zh-CN", gender="female"),
    Voice(voice_id="en-female", language="en-US", gender="female"),
)


def _builder(catalog=_CATALOG) -> UtteranceBuilder:
    return UtteranceBuilder(
        LanguageDetector(primary_language="fr-FR", cjk_language="zh-CN"),
        VoiceSelector(lambda: catalog),
    )


def _assert_partition(test: unittest.TestCase, text: str, spans) -> None:
    cursor = 0
    for start, length in spans:
        test.assertEqual(cursor, start)
        test.assertGreater(length, 0)
        cursor = start + length
    test.assertEqual(len(text), cursor)


class SegmentSentencesTests(unittest.TestCase):
    def test_spans_partition_mixed_text(self) -> None:
        samples = [
            "Bonjour. 你好。",
            "Une phrase! Une autre?  Et la fin",
            "  Leading spaces. Trailing spaces.   ",
            "第一句。第二句！第三句？",
            "Premier paragraphe\n\nSecond paragraphe",
            "M. Dupont est arrivé. Il a dit « bonjour ».",
            "Version 3.14 est sortie... Enfin!",
            "\n\n",
        ]
        for text in samples:
            with self.subTest(text=text):
                _assert_partition(self, text, segment_sentences(text))

    def test_latin_and_cjk_sentences_are_split(self) -> None:
        text = "Bonjour. 你好。"
        self.assertEqual([(0, 9), (9, 3)], segment_sentences(text))

    def test_cjk_terminators_split_without_whitespace(self) -> None:
        text = "第一句。第二句！"
        self.assertEqual([(0, 4), (4, 4)], segment_sentences(text))

    def test_latin_terminator_directly_before_cjk_splits(self) -> None:
        self.assertEqual([(0, 6), (6, 3)], segment_sentences("Hello.你好。"))

    def test_latin_terminator_before_latin_letter_does_not_split(self) -> None:
        self.assertEqual([(0, 9)], segment_sentences("e.g.ville"))

    def test_abbreviation_does_not_end_sentence(self) -> None:
        text = "M. Dupont lit. Mme Martin écoute."
        spans = segment_sentences(text)
        self.assertEqual(["M. Dupont lit. ", "Mme Martin écoute."], [text[s : s + n] for s, n in spans])

    def test_decimal_point_does_not_end_sentence(self) -> None:
        text = "Il mesure 3.5 mètres. Voilà."
        spans = segment_sentences(text)
        self.assertEqual(["Il mesure 3.5 mètres. ", "Voilà."], [text[s : s + n] for s, n in spans])

    def test_blank_line_ends_sentence(self) -> None:
        text = "Titre\n\nCorps du texte"
        spans = segment_sentences(text)
        self.assertEqual(["Titre\n\n", "Corps du texte"], [text[s : s + n] for s, n in spans])

    def test_empty_text_has_no_spans(self) -> None:
        self.assertEqual([], segment_sentences(""))


class UtteranceBuilderTests(unittest.TestCase):
    def test_mixed_language_text_gets_language_per_sentence(self) -> None:
        units = _builder().build("Bonjour. 你好。", "female")

        self.assertEqual(2, len(units))
        self.assertEqual(("fr-FR", "fr-female"), (units[0].language, units[0].voice_id))
        self.assertEqual(("zh-CN", "zh-female"), (units[1].language, units[1].voice_id))
        self.assertEqual((0, 9), (units[0].start, units[0].length))
        self.assertEqual((9, 3), (units[1].start, units[1].length))

    def test_unit_text_matches_source_slice(self) -> None:
        text = "The weather is nice today. Il fait beau."
        units = _builder().build(text, "female")
        for unit in units:
            self.assertEqual(text[unit.start : unit.end], unit.text)
        self.assertEqual("en-US", units[0].language)
        self.assertEqual("fr-FR", units[1].language)

    def test_gender_selects_matching_voice(self) -> None:
        units = _builder().build("Bonjour tout le monde.", "male")
        self.assertEqual("fr-male", units[0].voice_id)

    def test_latin_sentence_glued_to_cjk_gets_own_voice(self) -> None:
        units = _builder().build("Hello, this is it.你好。", "female")

        self.assertEqual(
            [("en-US", "en-female"), ("zh-CN", "zh-female")],
            [(unit.language, unit.voice_id) for unit in units],
        )

    def test_rate_is_copied_to_every_unit(self) -> None:
        units = _builder().build("Un. Deux. Trois.", rate=0.8)
        self.assertEqual({0.8}, {unit.rate for unit in units})

    def test_unit_ids_are_unique_across_builds(self) -> None:
        builder = _builder()
        first = builder.build("Un. Deux.")
        second = builder.build("Trois.")
        ids = [unit.unit_id for unit in first + second]
        self.assertEqual(len(ids), len(set(ids)))

    def test_empty_text_yields_single_degenerate_unit(self) -> None:
        units = _builder().build("")

        self.assertEqual(1, len(units))
        self.assertEqual((0, 0), (units[0].start, units[0].length))
        self.assertEqual("fr-FR", units[0].language)
        self.assertTrue(units[0].is_blank)

    def test_missing_voice_leaves_voice_unset(self) -> None:
        units = _builder(catalog=()).build("안녕하세요.")
        self.assertEqual("ko-KR", units[0].language)
        self.assertIsNone(units[0].voice_id)


if __name__ == "__main__":
    unittest.main()
