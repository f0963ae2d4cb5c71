"""Web UI websocket event, state and command constants."""

from __future__ import annotations

# Websocket event types
EVENT_HELLO = "hello"
EVENT_STATE_UPDATE = "state_update"
EVENT_READER = "reader"
EVENT_HIGHLIGHT = "highlight"
EVENT_DOCUMENT = "document"
EVENT_ERROR = "error"

# UI runtime states
STATE_IDLE = "idle"
STATE_SPEAKING = "speaking"
STATE_PAUSED = "paused"
STATE_RECOGNIZING = "recognizing"
STATE_ERROR = "error"

# Inbound websocket commands
COMMAND_SPEAK = "speak"
COMMAND_RESTART = "restart"
COMMAND_STOP = "stop"
COMMAND_SET_RATE = "set_rate"
COMMAND_SET_GENDER = "set_gender"
COMMAND_SET_TEXT = "set_text"
COMMAND_OPEN_DOCUMENT = "open_document"
COMMAND_NEXT_PAGE = "next_page"
COMMAND_PREV_PAGE = "prev_page"
COMMAND_GO_TO_PAGE = "go_to_page"
COMMAND_RECOGNIZE = "recognize"

COMMAND_NAMES: frozenset[str] = frozenset(
    {
        COMMAND_SPEAK,
        COMMAND_RESTART,
        COMMAND_STOP,
        COMMAND_SET_RATE,
        COMMAND_SET_GENDER,
        COMMAND_SET_TEXT,
        COMMAND_OPEN_DOCUMENT,
        COMMAND_NEXT_PAGE,
        COMMAND_PREV_PAGE,
        COMMAND_GO_TO_PAGE,
        COMMAND_RECOGNIZE,
    }
)

STICKY_EVENT_TYPES: frozenset[str] = frozenset(
    {
        EVENT_STATE_UPDATE,
        EVENT_READER,
        EVENT_HIGHLIGHT,
        EVENT_DOCUMENT,
        EVENT_ERROR,
    }
)

STICKY_EVENT_ORDER: tuple[str, ...] = (
    EVENT_DOCUMENT,
    EVENT_READER,
    EVENT_HIGHLIGHT,
    EVENT_ERROR,
    EVENT_STATE_UPDATE,
)
