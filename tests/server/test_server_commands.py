import unittest

from server.commands import CommandParseError, UICommand, parse_command


class ParseCommandTests(unittest.TestCase):
    def test_commands_without_arguments(self) -> None:
        for name in ("speak", "restart", "stop", "next_page", "prev_page", "recognize"):
            with self.subTest(name=name):
                self.assertEqual(UICommand(name), parse_command(f'{{"command": "{name}"}}'))

    def test_set_rate_accepts_integers_as_float(self) -> None:
        command = parse_command('{"command": "set_rate", "value": 1}')
        self.assertEqual({"value": 1.0}, command.args)
        self.assertIsInstance(command.args["value"], float)

    def test_set_text_allows_empty_text(self) -> None:
        command = parse_command('{"command": "set_text", "text": ""}')
        self.assertEqual({"text": ""}, command.args)

    def test_bytes_payload_is_decoded(self) -> None:
        command = parse_command('{"command": "set_text", "text": "你好"}'.encode("utf-8"))
        self.assertEqual("你好", command.args["text"])

    def test_go_to_page_requires_integer(self) -> None:
        self.assertEqual({"index": 3}, parse_command('{"command": "go_to_page", "index": 3}').args)
        for raw in (
            '{"command": "go_to_page", "index": "3"}',
            '{"command": "go_to_page", "index": true}',
            '{"command": "go_to_page", "index": 2.5}',
        ):
            with self.subTest(raw=raw):
                with self.assertRaises(CommandParseError):
                    parse_command(raw)

    def test_invalid_messages_are_rejected(self) -> None:
        for raw in (
            "not json",
            "[1, 2]",
            '{"command": "fly"}',
            '{"value": 0.5}',
            '{"command": "set_rate", "value": true}',
            '{"command": "set_rate"}',
            '{"command": "set_gender", "value": 1}',
            '{"command": "open_document", "path": "  "}',
            b"\xff\xfe",
        ):
            with self.subTest(raw=raw):
                with self.assertRaises(CommandParseError):
                    parse_command(raw)

    def test_parse_error_is_a_value_error(self) -> None:
        self.assertTrue(issubclass(CommandParseError, ValueError))


if __name__ == "__main__":
    unittest.main()
