"""Validation of inbound websocket command messages."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from contracts.ui_protocol import (
    COMMAND_GO_TO_PAGE,
    COMMAND_NAMES,
    COMMAND_OPEN_DOCUMENT,
    COMMAND_SET_GENDER,
    COMMAND_SET_RATE,
    COMMAND_SET_TEXT,
)


class CommandParseError(ValueError):
    """Raised when an inbound UI message is not a valid command."""


@dataclass(frozen=True)
class UICommand:
    """A validated command from the browser UI."""
    name: str
    args: dict[str, Any] = field(default_factory=dict)


CommandSink = Callable[[UICommand], None]


def parse_command(raw: str | bytes) -> UICommand:
    """Parse `{"command": name, ...args}` into a `UICommand`."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as error:
            raise CommandParseError("Command message is not UTF-8") from error

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as error:
        raise CommandParseError(f"Command message is not valid JSON: {error}") from error

    if not isinstance(payload, dict):
        raise CommandParseError("Command message must be a JSON object")

    name = payload.get("command")
    if not isinstance(name, str) or name not in COMMAND_NAMES:
        raise CommandParseError(f"Unknown command: {name!r}")

    args: dict[str, Any] = {}
    if name == COMMAND_SET_RATE:
        args["value"] = _require_number(payload, "value")
    elif name == COMMAND_SET_GENDER:
        args["value"] = _require_str(payload, "value")
    elif name == COMMAND_SET_TEXT:
        args["text"] = _require_str(payload, "text", allow_empty=True)
    elif name == COMMAND_OPEN_DOCUMENT:
        args["path"] = _require_str(payload, "path")
    elif name == COMMAND_GO_TO_PAGE:
        args["index"] = _require_int(payload, "index")

    return UICommand(name=name, args=args)


def _require_str(payload: dict[str, Any], key: str, *, allow_empty: bool = False) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise CommandParseError(f"'{key}' must be a string")
    if not allow_empty and not value.strip():
        raise CommandParseError(f"'{key}' cannot be empty")
    return value


def _require_number(payload: dict[str, Any], key: str) -> float:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CommandParseError(f"'{key}' must be a number")
    if not math.isfinite(float(value)):
        raise CommandParseError(f"'{key}' must be finite")
    return float(value)


def _require_int(payload: dict[str, Any], key: str) -> int:
    value: Optional[Any] = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise CommandParseError(f"'{key}' must be an integer")
    return value
