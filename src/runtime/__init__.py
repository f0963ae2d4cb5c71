"""Runtime engine exports."""

from .loop import RuntimeBootstrap, RuntimeEngine, RuntimeHooks
from .reader import ReaderSession, ReaderSnapshot

__all__ = [
    "ReaderSession",
    "ReaderSnapshot",
    "RuntimeBootstrap",
    "RuntimeEngine",
    "RuntimeHooks",
]
