"""UI server module for static web UI, websocket events and commands."""

from .commands import CommandParseError, UICommand, parse_command
from .config import ServerConfigurationError, UIServerConfig
from .service import UIServer

__all__ = [
    "CommandParseError",
    "ServerConfigurationError",
    "UICommand",
    "UIServerConfig",
    "UIServer",
    "parse_command",
]
