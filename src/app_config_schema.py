"""Dataclass schema objects used by runtime configuration loading."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_TEXT = "Bonjour, bienvenue dans l'application de synthèse vocale française."
DEFAULT_LANGUAGES: tuple[str, ...] = ("fr-FR", "en-US", "de-DE", "es-ES", "it-IT")


class AppConfigurationError(Exception):
    """Raised when application configuration fails."""


@dataclass(frozen=True)
class ReaderSettings:
    """Initial reader state and language detection settings from `[reader]`."""
    default_text: str = DEFAULT_TEXT
    rate: float = 0.5
    gender: str = "female"
    primary_language: str = "fr-FR"
    cjk_language: str = "zh-CN"
    languages: tuple[str, ...] = DEFAULT_LANGUAGES


@dataclass(frozen=True)
class VoiceSettings:
    """One `[[tts.voices]]` catalog entry."""
    voice_id: str
    language: str
    gender: Optional[str] = None
    name: str = ""


@dataclass(frozen=True)
class TTSSettings:
    """Text-to-speech settings from `[tts]`."""
    enabled: bool = True
    model_path: str = ""
    hf_repo_id: str = "rhasspy/piper-voices"
    hf_revision: str = "main"
    default_voice: str = ""
    output_device: Optional[int] = None
    voices: tuple[VoiceSettings, ...] = ()


@dataclass(frozen=True)
class OCRSettings:
    """Page recognition settings from `[ocr]`."""
    languages: str = "fra"
    dpi: int = 300
    page_segmentation_mode: int = 3
    tesseract_cmd: str = ""


@dataclass(frozen=True)
class SessionSettings:
    """Session persistence settings from `[session]`."""
    store_file: str = ""


@dataclass(frozen=True)
class UIServerSettings:
    """Built-in UI server settings from `[ui_server]`."""
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8765
    index_file: str = ""


@dataclass(frozen=True)
class AppConfig:
    """Complete typed runtime configuration loaded from `config.toml`."""
    reader: ReaderSettings
    tts: TTSSettings
    ocr: OCRSettings
    session: SessionSettings
    ui_server: UIServerSettings
    source_file: str


@dataclass(frozen=True)
class SecretConfig:
    """Environment-provided secrets kept out of `config.toml`."""
    hf_token: Optional[str]
