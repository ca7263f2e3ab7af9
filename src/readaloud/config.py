"""Configuration loading and defaults."""

from __future__ import annotations

from dataclasses import dataclass
import copy
from pathlib import Path
from typing import Any, Mapping

_TOML = None
try:  # pragma: no cover - module availability depends on Python version
    import tomllib as _TOML
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    try:
        import tomli as _TOML
    except ModuleNotFoundError:
        _TOML = None

from .chapter_segmenter import MAIN_TEXT_TITLE, PROLOGUE_TITLE
from .content_source import DEFAULT_ENCODINGS, MIN_CONTENT_CHARS


DEFAULT_CONFIG: dict[str, Any] = {
    "paths": {
        "library": "library",
        "logs": "logs",
        "cache": "cache",
    },
    "logging": {
        "level": "INFO",
        "console_level": "WARNING",
    },
    "speech": {
        "engine": "kokoro",
        "model_id": "onnx-community/Kokoro-82M-v1.0-ONNX",
        "voice": "zf_xiaobei",
        "language": "zh-CN",
        "rate": 0.9,
        "pitch": 1.0,
        "onnx_model_file": "model_q8f16.onnx",
        "onnx_voices_file": "voices-v1.0.bin",
    },
    "content": {
        "min_chars": MIN_CONTENT_CHARS,
        "encodings": list(DEFAULT_ENCODINGS),
    },
    "segmenter": {
        "main_text_title": MAIN_TEXT_TITLE,
        "prologue_title": PROLOGUE_TITLE,
    },
}

_DEFAULT_CONFIG_TOML = """\
# readaloud configuration

[paths]
library = "library"
logs = "logs"
cache = "cache"

[logging]
level = "INFO"
console_level = "WARNING"

[speech]
# "kokoro" (kokoro-onnx) or "mlx" (mlx-audio, Apple Silicon)
engine = "kokoro"
model_id = "onnx-community/Kokoro-82M-v1.0-ONNX"
voice = "zf_xiaobei"
language = "zh-CN"
rate = 0.9
pitch = 1.0

[content]
min_chars = 50
"""


@dataclass(frozen=True)
class PathsConfig:
    library: Path
    logs: Path
    cache: Path


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    console_level: str


@dataclass(frozen=True)
class SpeechConfig:
    engine: str
    model_id: str
    voice: str | None
    language: str
    rate: float
    pitch: float
    onnx_model_file: str
    onnx_voices_file: str


@dataclass(frozen=True)
class ContentConfig:
    min_chars: int
    encodings: tuple[str, ...]


@dataclass(frozen=True)
class SegmenterConfig:
    main_text_title: str
    prologue_title: str


@dataclass(frozen=True)
class Config:
    paths: PathsConfig
    logging: LoggingConfig
    speech: SpeechConfig
    content: ContentConfig
    segmenter: SegmenterConfig
    source: Path | None = None


def load_config(config_path: Path | None = None, *, cwd: Path | None = None) -> Config:
    cwd = cwd or Path.cwd()
    source: Path | None = None
    raw: Mapping[str, Any] = {}

    if config_path is None:
        candidate = cwd / "config.toml"
        if candidate.exists():
            source = candidate
            raw = _read_toml(candidate)
    else:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        source = config_path
        raw = _read_toml(config_path)

    merged = _deep_merge(_clone_defaults(DEFAULT_CONFIG), raw)
    base_dir = source.parent if source is not None else cwd

    paths = PathsConfig(
        library=_resolve_path(base_dir, merged["paths"]["library"]),
        logs=_resolve_path(base_dir, merged["paths"]["logs"]),
        cache=_resolve_path(base_dir, merged["paths"]["cache"]),
    )
    logging = LoggingConfig(
        level=str(merged["logging"]["level"]).upper(),
        console_level=str(merged["logging"]["console_level"]).upper(),
    )
    speech_raw = merged.get("speech", {})
    defaults = DEFAULT_CONFIG["speech"]
    speech = SpeechConfig(
        engine=str(speech_raw.get("engine", defaults["engine"])).strip().lower(),
        model_id=str(speech_raw.get("model_id", defaults["model_id"])),
        voice=_optional_str(speech_raw.get("voice")),
        language=_optional_str(speech_raw.get("language")) or defaults["language"],
        rate=float(speech_raw.get("rate", defaults["rate"])),
        pitch=float(speech_raw.get("pitch", defaults["pitch"])),
        onnx_model_file=str(speech_raw.get("onnx_model_file", defaults["onnx_model_file"])),
        onnx_voices_file=str(speech_raw.get("onnx_voices_file", defaults["onnx_voices_file"])),
    )
    content_raw = merged.get("content", {})
    content = ContentConfig(
        min_chars=int(content_raw.get("min_chars", MIN_CONTENT_CHARS)),
        encodings=_encodings(content_raw.get("encodings")),
    )
    segmenter_raw = merged.get("segmenter", {})
    segmenter = SegmenterConfig(
        main_text_title=_optional_str(segmenter_raw.get("main_text_title")) or MAIN_TEXT_TITLE,
        prologue_title=_optional_str(segmenter_raw.get("prologue_title")) or PROLOGUE_TITLE,
    )
    return Config(
        paths=paths,
        logging=logging,
        speech=speech,
        content=content,
        segmenter=segmenter,
        source=source,
    )


def config_summary(config: Config) -> str:
    source = str(config.source) if config.source is not None else "defaults"
    return (
        "Config\n"
        f"  source: {source}\n"
        f"  library: {config.paths.library}\n"
        f"  logs: {config.paths.logs}\n"
        f"  cache: {config.paths.cache}\n"
        f"  log level: {config.logging.level}\n"
        f"  console level: {config.logging.console_level}\n"
        "Speech\n"
        f"  engine: {config.speech.engine}\n"
        f"  model: {config.speech.model_id}\n"
        f"  voice: {config.speech.voice or 'default'}\n"
        f"  language: {config.speech.language}\n"
        f"  rate: {config.speech.rate}\n"
        f"  pitch: {config.speech.pitch}\n"
        "Content\n"
        f"  min_chars: {config.content.min_chars}\n"
        f"  encodings: {', '.join(config.content.encodings)}"
    )


def write_default_config(path: Path) -> Path:
    path.write_text(_DEFAULT_CONFIG_TOML, encoding="utf-8")
    return path


def _read_toml(path: Path) -> Mapping[str, Any]:
    if _TOML is None:  # pragma: no cover - defensive guard
        raise RuntimeError("TOML parser unavailable. Install tomli or use Python 3.11+.")
    try:
        with path.open("rb") as handle:
            return _TOML.load(handle)
    except _TOML.TOMLDecodeError as exc:
        raise RuntimeError(f"Invalid config file {path}: {exc}") from exc


def _resolve_path(base_dir: Path, value: Any) -> Path:
    path = value if isinstance(value, Path) else Path(str(value))
    return path if path.is_absolute() else base_dir / path


def _clone_defaults(defaults: Mapping[str, Any]) -> dict[str, Any]:
    return copy.deepcopy(defaults)


def _deep_merge(base: Mapping[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned or cleaned.lower() in {"none", "null"}:
            return None
        return cleaned
    return str(value)


def _encodings(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [part for part in value.split(",")]
    if not value:
        return tuple(DEFAULT_ENCODINGS)
    cleaned = tuple(str(item).strip() for item in value if str(item).strip())
    return cleaned or tuple(DEFAULT_ENCODINGS)
