"""Configuration model for Piper voice assets, voice catalog, and output selection."""

from dataclasses import dataclass
from typing import Optional

from speech import Voice

DEFAULT_HF_REPO_ID = "rhasspy/piper-voices"

# Voices constructed from a language tag alone when the catalog has none.
DEFAULT_LANGUAGE_VOICES: dict[str, str] = {
    "fr": "fr/fr_FR/siwis/medium/fr_FR-siwis-medium.onnx",
    "en": "en/en_US/lessac/medium/en_US-lessac-medium.onnx",
    "de": "de/de_DE/thorsten/medium/de_DE-thorsten-medium.onnx",
    "es": "es/es_ES/davefx/medium/es_ES-davefx-medium.onnx",
    "it": "it/it_IT/riccardo/x_low/it_IT-riccardo-x_low.onnx",
    "zh": "zh/zh_CN/huayan/medium/zh_CN-huayan-medium.onnx",
    "ru": "ru/ru_RU/irina/medium/ru_RU-irina-medium.onnx",
}


class TTSConfigurationError(Exception):
    """Raised when TTS configuration is invalid."""


@dataclass(frozen=True)
class TTSConfig:
    """Resolved Piper voice settings, catalog, and optional output-device selection."""
    model_path: str = ""
    hf_repo_id: str = DEFAULT_HF_REPO_ID
    hf_revision: str = "main"
    hf_token: Optional[str] = None
    default_voice: str = ""
    voices: tuple[Voice, ...] = ()
    output_device_index: Optional[int] = None

    @classmethod
    def from_settings(cls, settings, *, hf_token: Optional[str] = None) -> "TTSConfig":
        model_path = (settings.model_path or "").strip()
        hf_repo_id = (getattr(settings, "hf_repo_id", "") or "").strip() or DEFAULT_HF_REPO_ID
        hf_revision = (getattr(settings, "hf_revision", "main") or "main").strip()
        default_voice = (getattr(settings, "default_voice", "") or "").strip()

        if not model_path:
            raise TTSConfigurationError("TTS model_path cannot be empty")

        voices: list[Voice] = []
        seen: set[str] = set()
        for entry in getattr(settings, "voices", ()) or ():
            voice_id = (entry.voice_id or "").strip()
            if not voice_id.endswith(".onnx"):
                raise TTSConfigurationError(
                    f"TTS voice id must reference a Piper .onnx file, got: {voice_id!r}"
                )
            if voice_id in seen:
                raise TTSConfigurationError(f"Duplicate TTS voice id: {voice_id}")
            seen.add(voice_id)
            voices.append(
                Voice(
                    voice_id=voice_id,
                    language=entry.language,
                    gender=entry.gender,
                    name=entry.name,
                )
            )

        if default_voice and not default_voice.endswith(".onnx"):
            raise TTSConfigurationError(
                f"TTS default_voice must reference a Piper .onnx file, got: {default_voice!r}"
            )
        if not default_voice:
            default_voice = voices[0].voice_id if voices else DEFAULT_LANGUAGE_VOICES["fr"]

        return cls(
            model_path=model_path,
            hf_repo_id=hf_repo_id,
            hf_revision=hf_revision,
            hf_token=hf_token,
            default_voice=default_voice,
            voices=tuple(voices),
            output_device_index=settings.output_device,
        )
