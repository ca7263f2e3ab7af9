"""Speech engine backends and error taxonomy.

Each backend synthesizes one line on a worker thread and plays it through
``sounddevice``. The engine reports back through the utterance callbacks
and never blocks the caller: ``speak`` returns as soon as the worker has
started and ``stop`` only flags the worker and silences the output device.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import re
import threading
from typing import TYPE_CHECKING, Protocol, Sequence

from .interfaces import SpeechEngine, SpeechOptions, UtteranceCallbacks

if TYPE_CHECKING:
    from .config import Config

_LOGGER = logging.getLogger(__name__)

KOKORO_ENGINES = {"kokoro", "kokoro_onnx", "onnx"}
MLX_ENGINES = {"mlx", "mlx_audio"}

_KOKORO_LANGUAGES = {
    "zh": "cmn",
    "zh-cn": "cmn",
    "zh-hans": "cmn",
    "cmn": "cmn",
    "en": "en-us",
    "en-us": "en-us",
    "en-gb": "en-gb",
    "ja": "ja",
    "fr": "fr-fr",
    "es": "es",
    "it": "it",
    "hi": "hi",
    "pt": "pt-br",
    "pt-br": "pt-br",
}

# mlx-audio Kokoro uses single-letter pipeline codes.
_MLX_LANGUAGES = {
    "zh": "z",
    "zh-cn": "z",
    "en": "a",
    "en-us": "a",
    "en-gb": "b",
    "ja": "j",
    "fr": "f",
    "es": "e",
    "it": "i",
    "hi": "h",
    "pt": "p",
    "pt-br": "p",
}


class SpeechError(RuntimeError):
    """Base class for speech engine failures."""


class SpeechModelError(SpeechError):
    """Raised when the synthesis model cannot be loaded or initialized."""


class SpeechPlaybackError(SpeechError):
    """Raised when audio cannot be played on the output device."""


class AudioPlayer(Protocol):
    def play(self, samples: object, sample_rate: int) -> None:  # pragma: no cover - interface
        ...

    def wait(self) -> None:  # pragma: no cover - interface
        ...

    def stop(self) -> None:  # pragma: no cover - interface
        ...


class SounddevicePlayer:
    """Play float samples on the default output device."""

    def play(self, samples: object, sample_rate: int) -> None:
        sd = _import_sounddevice()
        import numpy as np

        try:
            sd.play(np.asarray(samples, dtype=np.float32), sample_rate)
        except Exception as exc:  # pragma: no cover - depends on audio hardware
            raise SpeechPlaybackError(f"Audio playback failed: {exc}") from exc

    def wait(self) -> None:
        sd = _import_sounddevice()
        try:
            sd.wait()
        except Exception as exc:  # pragma: no cover - depends on audio hardware
            raise SpeechPlaybackError(f"Audio playback failed: {exc}") from exc

    def stop(self) -> None:
        try:
            import sounddevice as sd  # type: ignore
        except (ImportError, OSError):
            return
        sd.stop()


@dataclass
class ThreadedSpeechEngine(SpeechEngine):
    """Base engine: subclasses provide ``synthesize``."""

    player: AudioPlayer = field(default_factory=SounddevicePlayer)

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _cancel: threading.Event | None = field(default=None, init=False, repr=False)
    _load_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def speak(self, text: str, options: SpeechOptions, callbacks: UtteranceCallbacks) -> None:
        cancel = threading.Event()
        with self._lock:
            self._cancel = cancel
        worker = threading.Thread(
            target=self._run,
            args=(text, options, callbacks, cancel),
            name="readaloud-speech",
            daemon=True,
        )
        worker.start()

    def stop(self) -> None:
        with self._lock:
            if self._cancel is not None:
                self._cancel.set()
                self._cancel = None
            self.player.stop()

    def synthesize(self, text: str, options: SpeechOptions) -> tuple[object, int]:
        raise NotImplementedError

    def _run(
        self,
        text: str,
        options: SpeechOptions,
        callbacks: UtteranceCallbacks,
        cancel: threading.Event,
    ) -> None:
        if not is_speakable_text(text):
            _LOGGER.debug("Skipping unspeakable line %r", text)
            callbacks.on_done()
            return

        try:
            samples, sample_rate = self.synthesize(text, options)
            with self._lock:
                started = not cancel.is_set()
                if started:
                    self.player.play(samples, sample_rate)
            if started:
                self.player.wait()
        except SpeechError as exc:
            callbacks.on_error(exc)
            return
        except Exception as exc:
            callbacks.on_error(SpeechPlaybackError(f"Speech failed: {exc}"))
            return

        if cancel.is_set():
            callbacks.on_stopped()
        else:
            callbacks.on_done()


@dataclass
class KokoroSpeechEngine(ThreadedSpeechEngine):
    model_id: str = "onnx-community/Kokoro-82M-v1.0-ONNX"
    voice: str | None = "zf_xiaobei"
    onnx_model_file: str = "model_q8f16.onnx"
    onnx_voices_file: str = "voices-v1.0.bin"

    _kokoro: object | None = field(default=None, init=False, repr=False)

    def ensure_loaded(self) -> None:
        if self._kokoro is not None:
            return

        try:
            from huggingface_hub import hf_hub_download  # type: ignore
        except ImportError as exc:
            raise SpeechModelError(
                "huggingface_hub is required for Kokoro ONNX. Install with `pip install -e '.[tts-kokoro]'`."
            ) from exc

        try:
            from kokoro_onnx import Kokoro  # type: ignore
        except ImportError as exc:
            raise SpeechModelError(
                "kokoro-onnx is not installed. Install with `pip install -e '.[tts-kokoro]'`."
            ) from exc

        try:
            model_path = hf_hub_download(repo_id=self.model_id, filename=self.onnx_model_file)
            voices_path = hf_hub_download(repo_id=self.model_id, filename=self.onnx_voices_file)
        except Exception as exc:  # pragma: no cover - depends on network/cache state
            raise SpeechModelError(f"Failed to download Kokoro model assets from Hugging Face: {exc}") from exc

        try:
            self._kokoro = Kokoro(str(model_path), str(voices_path))
        except Exception as exc:  # pragma: no cover - runtime dependency
            raise SpeechModelError(f"Failed to initialize kokoro-onnx runtime: {exc}") from exc
        _LOGGER.info("Loaded Kokoro ONNX model %s", self.model_id)

    def synthesize(self, text: str, options: SpeechOptions) -> tuple[object, int]:
        with self._load_lock:
            self.ensure_loaded()
        if options.pitch != 1.0:
            _LOGGER.debug("Kokoro does not support pitch; ignoring pitch=%s", options.pitch)
        try:
            samples, sample_rate = self._kokoro.create(  # type: ignore[union-attr]
                text,
                voice=self.voice or "zf_xiaobei",
                speed=_clamp_rate(options.rate),
                lang=kokoro_language(options.language),
            )
        except Exception as exc:  # pragma: no cover - runtime dependency
            raise SpeechError(f"Kokoro synthesis failed: {exc}") from exc
        if samples is None or len(samples) == 0:
            raise SpeechError("Kokoro synthesis returned empty audio.")
        return samples, int(sample_rate)


@dataclass
class MlxSpeechEngine(ThreadedSpeechEngine):
    model_id: str = "prince-canuma/Kokoro-82M"
    voice: str | None = "zf_xiaobei"
    sample_rate: int = 24000

    _model: object | None = field(default=None, init=False, repr=False)

    def ensure_loaded(self) -> None:
        if self._model is not None:
            return
        try:
            from mlx_audio.tts.utils import load_model  # type: ignore
        except ImportError as exc:
            raise SpeechModelError(
                "mlx-audio is not installed. Install with `pip install -e '.[tts-mlx]'`."
            ) from exc
        try:
            self._model = load_model(self.model_id)
        except Exception as exc:  # pragma: no cover - runtime dependency
            raise SpeechModelError(f"Failed to load MLX Audio model: {exc}") from exc
        _LOGGER.info("Loaded MLX Audio model %s", self.model_id)

    def synthesize(self, text: str, options: SpeechOptions) -> tuple[object, int]:
        with self._load_lock:
            self.ensure_loaded()
        try:
            import mlx.core as mx  # type: ignore
        except ImportError as exc:  # pragma: no cover - runtime dependency
            raise SpeechModelError("mlx is not installed. Install with `pip install -e '.[tts-mlx]'`.") from exc

        try:
            results = self._model.generate(  # type: ignore[union-attr]
                text,
                voice=self.voice,
                speed=_clamp_rate(options.rate),
                lang_code=mlx_language(options.language),
            )
            segments = [getattr(result, "audio", result) for result in results]
        except Exception as exc:  # pragma: no cover - runtime dependency
            raise SpeechError(f"MLX synthesis failed: {exc}") from exc

        if not segments:
            raise SpeechError("MLX synthesis returned empty audio.")
        audio = segments[0] if len(segments) == 1 else mx.concatenate([mx.array(seg) for seg in segments])
        sample_rate = int(getattr(self._model, "sample_rate", None) or self.sample_rate)
        return audio, sample_rate


def build_speech_engine(config: Config, *, player: AudioPlayer | None = None) -> SpeechEngine:
    engine = (config.speech.engine or "").strip().lower()
    extra = {"player": player} if player is not None else {}

    if engine in KOKORO_ENGINES:
        return KokoroSpeechEngine(
            model_id=config.speech.model_id,
            voice=config.speech.voice,
            onnx_model_file=config.speech.onnx_model_file,
            onnx_voices_file=config.speech.onnx_voices_file,
            **extra,
        )

    if engine in MLX_ENGINES:
        return MlxSpeechEngine(model_id=config.speech.model_id, voice=config.speech.voice, **extra)

    raise SpeechModelError(f"Unsupported speech engine '{config.speech.engine}'.")


def kokoro_language(tag: str) -> str:
    return _lookup_language(_KOKORO_LANGUAGES, tag, default="en-us")


def mlx_language(tag: str) -> str:
    return _lookup_language(_MLX_LANGUAGES, tag, default="a")


def is_speakable_text(text: str) -> bool:
    stripped = (text or "").strip()
    if not stripped:
        return False
    if re.fullmatch(r"[\W_]+", stripped):
        return False
    return True


def list_output_devices() -> Sequence[str]:
    sd = _import_sounddevice()
    devices = sd.query_devices()
    return [str(device["name"]) for device in devices if device.get("max_output_channels", 0) > 0]


def _lookup_language(table: dict[str, str], tag: str, *, default: str) -> str:
    key = (tag or "").strip().lower().replace("_", "-")
    if not key:
        return default
    if key in table:
        return table[key]
    return table.get(key.split("-")[0], default)


def _clamp_rate(rate: float) -> float:
    return max(0.5, min(2.0, float(rate)))


def _import_sounddevice() -> object:
    try:
        import sounddevice as sd  # type: ignore
    except ImportError as exc:
        raise SpeechPlaybackError("sounddevice is not installed. Install with `pip install sounddevice`.") from exc
    except OSError as exc:  # PortAudio library missing
        raise SpeechPlaybackError(f"sounddevice could not load PortAudio: {exc}") from exc
    return sd
