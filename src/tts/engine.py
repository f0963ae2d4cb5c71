import logging
import shutil
import threading
from pathlib import Path
from typing import Any, Optional

import numpy as np
from huggingface_hub import hf_hub_download
from huggingface_hub.utils import HfHubHTTPError, RepositoryNotFoundError
from piper.config import SynthesisConfig
from piper.voice import PiperVoice

from speech import Voice
from speech.constants import DEFAULT_SPEECH_RATE, MAX_SPEECH_RATE, MIN_SPEECH_RATE
from speech.language import language_family, normalize_language_tag

from .config import DEFAULT_LANGUAGE_VOICES, TTSConfig


class TTSError(Exception):
    """Raised when text-to-speech processing fails."""

    pass


def rate_to_length_scale(rate: float) -> float:
    """Map a [0, 1] speech rate (0.5 = normal) to Piper's length scale."""
    clamped = min(MAX_SPEECH_RATE, max(MIN_SPEECH_RATE, rate))
    return float(2.0 ** ((DEFAULT_SPEECH_RATE - clamped) * 2.0))


class PiperTTSEngine:
    """Loads Piper voices on demand and synthesizes mono float32 PCM."""

    def __init__(
        self,
        config: TTSConfig,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._logger = logger or logging.getLogger(__name__)
        self._voices: dict[str, PiperVoice] = {}
        self._lock = threading.Lock()

        try:
            Path(self._config.model_path).expanduser().mkdir(parents=True, exist_ok=True)
        except OSError as error:
            raise TTSError(
                f"Failed to create TTS model directory {self._config.model_path}: {error}"
            ) from error

    @property
    def default_voice_id(self) -> str:
        return self._config.default_voice

    def catalog(self) -> tuple[Voice, ...]:
        return self._config.voices

    def default_voice(self, language_tag: str) -> Optional[Voice]:
        """Construct a voice from the language tag alone."""
        voice_id = DEFAULT_LANGUAGE_VOICES.get(language_family(language_tag))
        if voice_id is None:
            return None
        return Voice(voice_id=voice_id, language=normalize_language_tag(language_tag))

    def is_known_voice(self, voice_id: str) -> bool:
        if voice_id == self._config.default_voice:
            return True
        if voice_id in DEFAULT_LANGUAGE_VOICES.values():
            return True
        return any(voice.voice_id == voice_id for voice in self._config.voices)

    def load_voice(self, voice_id: str) -> PiperVoice:
        with self._lock:
            voice = self._voices.get(voice_id)
            if voice is not None:
                return voice

            model_file = self._ensure_voice_files(voice_id)
            try:
                voice = PiperVoice.load(str(model_file))
            except Exception as error:
                raise TTSError(f"Failed to load Piper voice {voice_id}: {error}") from error
            self._voices[voice_id] = voice
            self._logger.info("Loaded Piper voice %s", voice_id)
            return voice

    def _ensure_voice_files(self, voice_id: str) -> Path:
        model_dir = Path(self._config.model_path).expanduser()
        model_file = model_dir / Path(voice_id).name
        config_file = model_dir / f"{Path(voice_id).name}.json"

        if model_file.is_file() and config_file.is_file():
            return model_file

        missing_assets: list[str] = []
        if not model_file.is_file():
            missing_assets.append(model_file.name)
        if not config_file.is_file():
            missing_assets.append(config_file.name)

        repo_id = self._config.hf_repo_id.strip()
        if not repo_id:
            raise TTSError(
                "Piper voice assets are missing: "
                f"{', '.join(missing_assets)}. "
                "Provide the files in tts.model_path or set tts.hf_repo_id for auto-download."
            )

        self._logger.info(
            "Piper voice assets not found locally (%s), downloading from %s into %s",
            ", ".join(missing_assets),
            repo_id,
            model_dir,
        )

        self._download_and_install_file(
            repo_id=repo_id,
            filename=voice_id,
            target_path=model_file,
        )
        self._download_and_install_file(
            repo_id=repo_id,
            filename=f"{voice_id}.json",
            target_path=config_file,
        )

        if not model_file.is_file() or not config_file.is_file():
            raise TTSError(
                "Downloaded Piper assets are incomplete. "
                f"Expected {model_file.name} and {config_file.name} in {model_dir}."
            )

        return model_file

    def _download_and_install_file(
        self,
        *,
        repo_id: str,
        filename: str,
        target_path: Path,
    ) -> None:
        try:
            downloaded_path = Path(
                hf_hub_download(
                    repo_id=repo_id,
                    filename=filename,
                    revision=self._config.hf_revision,
                    token=self._config.hf_token,
                )
            )
        except RepositoryNotFoundError as error:
            raise TTSError(
                f"Piper Hugging Face repository not found: {repo_id}"
            ) from error
        except HfHubHTTPError as error:
            if "404" in str(error):
                raise TTSError(
                    f"Piper asset not found in {repo_id}: {filename}"
                ) from error
            raise TTSError(
                f"HTTP error downloading Piper asset {filename} from {repo_id}: {error}"
            ) from error
        except Exception as error:
            raise TTSError(
                f"Failed to download Piper asset {filename} from {repo_id}: {error}"
            ) from error

        if not downloaded_path.is_file():
            raise TTSError(f"Downloaded Piper asset is not a file: {downloaded_path}")

        self._install_file(downloaded_path, target_path)

    @staticmethod
    def _install_file(source_path: Path, target_path: Path) -> None:
        temp_path = target_path.with_suffix(f"{target_path.suffix}.tmp")
        try:
            if temp_path.exists():
                temp_path.unlink()

            try:
                temp_path.hardlink_to(source_path)
            except (OSError, NotImplementedError):
                shutil.copy2(source_path, temp_path)

            if target_path.exists():
                target_path.unlink()
            temp_path.rename(target_path)
        except OSError as error:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    pass
            raise TTSError(
                f"Failed to install Piper asset {target_path.name}: {error}"
            ) from error

    def synthesize(
        self,
        text: str,
        *,
        voice_id: Optional[str] = None,
        rate: float = DEFAULT_SPEECH_RATE,
    ) -> tuple[np.ndarray, int]:
        if not text.strip():
            raise TTSError("Text to synthesize cannot be empty")

        voice = self.load_voice(voice_id or self._config.default_voice)
        syn_config = SynthesisConfig(length_scale=rate_to_length_scale(rate))

        try:
            audio_chunks: list[bytes] = []
            for chunk in voice.synthesize(text, syn_config=syn_config):
                audio_chunks.append(self._extract_chunk_bytes(chunk))

            if not audio_chunks:
                raise TTSError("Piper synthesis produced an empty audio stream")

            pcm_bytes = b"".join(audio_chunks)
            pcm_int16 = np.frombuffer(pcm_bytes, dtype=np.int16)
            if pcm_int16.size == 0:
                raise TTSError("Piper synthesis produced an empty audio buffer")

            wav = pcm_int16.astype(np.float32) / 32768.0
            return wav, int(voice.config.sample_rate)
        except TTSError:
            raise
        except Exception as error:
            raise TTSError(f"TTS synthesis failed: {error}") from error

    @staticmethod
    def _extract_chunk_bytes(chunk: Any) -> bytes:
        if hasattr(chunk, "audio_int16_bytes"):
            raw_audio = chunk.audio_int16_bytes
        else:
            raw_audio = chunk

        if isinstance(raw_audio, np.ndarray):
            if raw_audio.dtype != np.int16:
                raw_audio = raw_audio.astype(np.int16, copy=False)
            return raw_audio.tobytes()
        if isinstance(raw_audio, (bytes, bytearray)):
            return bytes(raw_audio)
        if isinstance(raw_audio, memoryview):
            return raw_audio.tobytes()

        try:
            return bytes(raw_audio)
        except Exception as error:
            raise TTSError(
                f"Unsupported Piper chunk audio type: {type(raw_audio).__name__}"
            ) from error
