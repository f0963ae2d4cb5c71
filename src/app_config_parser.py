"""Typed parser for config.toml sections into immutable app settings."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Mapping

from app_config_schema import (
    DEFAULT_LANGUAGES,
    DEFAULT_TEXT,
    AppConfig,
    AppConfigurationError,
    OCRSettings,
    ReaderSettings,
    SessionSettings,
    TTSSettings,
    UIServerSettings,
    VoiceSettings,
)

_ALLOWED_GENDERS = {"female", "male"}
DEFAULT_SESSION_FILE = "session.json"


def parse_app_config(
    raw: Mapping[str, Any],
    *,
    base_dir: Path,
    source_file: str,
) -> AppConfig:
    """Parse raw TOML mappings into strongly typed application settings."""
    reader = _parse_reader_settings(_section(raw, "reader"))
    tts = _parse_tts_settings(_section(raw, "tts"), base_dir=base_dir)
    ocr = _parse_ocr_settings(_section(raw, "ocr"))
    session = _parse_session_settings(_section(raw, "session"), base_dir=base_dir)
    ui_server = _parse_ui_server_settings(_section(raw, "ui_server"), base_dir=base_dir)

    return AppConfig(
        reader=reader,
        tts=tts,
        ocr=ocr,
        session=session,
        ui_server=ui_server,
        source_file=source_file,
    )


def _parse_reader_settings(section: Mapping[str, Any]) -> ReaderSettings:
    rate = _as_float(section.get("rate", 0.5), "reader.rate")
    if not 0.0 <= rate <= 1.0:
        raise AppConfigurationError(f"reader.rate must be in [0.0, 1.0], got: {rate}")

    languages = _as_str_tuple(section.get("languages", list(DEFAULT_LANGUAGES)), "reader.languages")
    return ReaderSettings(
        default_text=_as_str(section.get("default_text", DEFAULT_TEXT), "reader.default_text"),
        rate=rate,
        gender=_as_gender(section.get("gender", "female"), "reader.gender"),
        primary_language=(
            _as_str(section.get("primary_language", "fr-FR"), "reader.primary_language")
            or "fr-FR"
        ),
        cjk_language=(
            _as_str(section.get("cjk_language", "zh-CN"), "reader.cjk_language") or "zh-CN"
        ),
        languages=languages or DEFAULT_LANGUAGES,
    )


def _parse_tts_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> TTSSettings:
    _forbid_secret_fields(section, "tts", ("hf_token",))
    return TTSSettings(
        enabled=_as_bool(section.get("enabled", True), "tts.enabled"),
        model_path=_resolve_path(
            base_dir,
            _as_str(section.get("model_path", "voices"), "tts.model_path") or "voices",
        ),
        hf_repo_id=(
            _as_str(section.get("hf_repo_id", ""), "tts.hf_repo_id") or "rhasspy/piper-voices"
        ),
        hf_revision=(
            _as_str(section.get("hf_revision", "main"), "tts.hf_revision") or "main"
        ),
        default_voice=_as_str(section.get("default_voice", ""), "tts.default_voice"),
        output_device=(
            _as_int(section.get("output_device"), "tts.output_device")
            if "output_device" in section
            else None
        ),
        voices=_parse_voice_settings(section.get("voices", [])),
    )


def _parse_voice_settings(raw: Any) -> tuple[VoiceSettings, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise AppConfigurationError("[[tts.voices]] must be an array of tables.")

    voices: list[VoiceSettings] = []
    for index, entry in enumerate(raw):
        field_prefix = f"tts.voices[{index}]"
        if not isinstance(entry, Mapping):
            raise AppConfigurationError(f"{field_prefix} must be a table.")
        gender = entry.get("gender")
        voices.append(
            VoiceSettings(
                voice_id=_required_str(entry, "id", field_prefix),
                language=_required_str(entry, "language", field_prefix),
                gender=(
                    _as_gender(gender, f"{field_prefix}.gender") if gender is not None else None
                ),
                name=_as_str(entry.get("name", ""), f"{field_prefix}.name"),
            )
        )
    return tuple(voices)


def _parse_ocr_settings(section: Mapping[str, Any]) -> OCRSettings:
    dpi = _as_int(section.get("dpi", 300), "ocr.dpi")
    if dpi <= 0:
        raise AppConfigurationError(f"ocr.dpi must be greater than zero, got: {dpi}")
    psm = _as_int(section.get("page_segmentation_mode", 3), "ocr.page_segmentation_mode")
    if not 0 <= psm <= 13:
        raise AppConfigurationError(
            f"ocr.page_segmentation_mode must be in [0, 13], got: {psm}"
        )
    return OCRSettings(
        languages=_as_str(section.get("languages", "fra"), "ocr.languages") or "fra",
        dpi=dpi,
        page_segmentation_mode=psm,
        tesseract_cmd=_as_str(section.get("tesseract_cmd", ""), "ocr.tesseract_cmd"),
    )


def _parse_session_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> SessionSettings:
    store_file = _as_str(section.get("store_file", ""), "session.store_file")
    return SessionSettings(
        store_file=_resolve_path(base_dir, store_file or DEFAULT_SESSION_FILE),
    )


def _parse_ui_server_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> UIServerSettings:
    index_file = _as_str(section.get("index_file", ""), "ui_server.index_file")
    return UIServerSettings(
        enabled=_as_bool(section.get("enabled", True), "ui_server.enabled"),
        host=_as_str(section.get("host", "127.0.0.1"), "ui_server.host"),
        port=_as_int(section.get("port", 8765), "ui_server.port"),
        index_file=_resolve_path(base_dir, index_file) if index_file else "",
    )


def _section(root: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    raw = root.get(name, {})
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise AppConfigurationError(f"[{name}] must be a table.")
    return raw


def _required_str(section: Mapping[str, Any], field: str, section_name: str) -> str:
    value = section.get(field)
    text = _as_str(value, f"{section_name}.{field}")
    if not text:
        raise AppConfigurationError(f"{section_name}.{field} is required.")
    return text


def _as_str(value: Any, field: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    raise AppConfigurationError(f"{field} must be a string.")


def _as_str_tuple(value: Any, field: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        raise AppConfigurationError(f"{field} must be a list of strings.")
    items = tuple(_as_str(item, field) for item in value)
    return tuple(item for item in items if item)


def _as_gender(value: Any, field: str) -> str:
    gender = _as_str(value, field).lower()
    if gender not in _ALLOWED_GENDERS:
        allowed = ", ".join(sorted(_ALLOWED_GENDERS))
        raise AppConfigurationError(f"{field} must be one of: {allowed}.")
    return gender


def _as_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    raise AppConfigurationError(f"{field} must be a boolean.")


def _as_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        base = 16 if text.startswith("0x") else 10
        try:
            return int(text, base)
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be an integer.") from error
    raise AppConfigurationError(f"{field} must be an integer.")


def _as_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be a float.")
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be a float.") from error
    else:
        raise AppConfigurationError(f"{field} must be a float.")
    if not math.isfinite(result):
        raise AppConfigurationError(f"{field} must be finite.")
    return result


def _resolve_path(base_dir: Path, raw: str) -> str:
    if not raw:
        return ""
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)


def _forbid_secret_fields(
    section: Mapping[str, Any],
    section_name: str,
    fields: tuple[str, ...],
) -> None:
    present = [field for field in fields if field in section]
    if present:
        joined = ", ".join(f"{section_name}.{field}" for field in present)
        raise AppConfigurationError(
            f"Secret values must not be stored in config.toml: {joined}. "
            "Move them to environment variables."
        )
