"""Doctor checks for the speech environment."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
import platform
import threading
import time
from typing import Sequence

from .config import Config, config_summary
from .interfaces import SpeechOptions, UtteranceCallbacks
from .speech_engine import (
    KOKORO_ENGINES,
    MLX_ENGINES,
    SpeechError,
    build_speech_engine,
    list_output_devices,
)

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DoctorOptions:
    smoke_test: bool
    text: str
    timeout: float = 60.0


@dataclass(frozen=True)
class DoctorCheck:
    name: str
    status: str
    detail: str


def run_doctor(config: Config, options: DoctorOptions) -> int:
    checks: list[DoctorCheck] = []
    checks.extend(check_environment(config))

    if options.smoke_test:
        checks.append(_run_smoke_test(config, options))

    print(config_summary(config))
    print()
    print(render_report(checks))
    if any(check.status == "FAIL" for check in checks):
        return 1
    return 0


def check_environment(config: Config) -> list[DoctorCheck]:
    checks: list[DoctorCheck] = [DoctorCheck("Engine", "OK", config.speech.engine)]
    checks.extend(_backend_checks(config))
    checks.append(_audio_output_check())

    total_ram_gb = _total_ram_gb()
    if total_ram_gb is None:
        checks.append(DoctorCheck("Memory", "WARN", "Unable to determine system RAM."))
    elif total_ram_gb >= 2:
        checks.append(DoctorCheck("Memory", "OK", f"Detected {total_ram_gb:.1f} GB RAM."))
    else:
        checks.append(DoctorCheck("Memory", "WARN", f"Only {total_ram_gb:.1f} GB RAM detected."))

    cache_path = model_cache_path(config.speech.model_id)
    if cache_path is None:
        checks.append(DoctorCheck("Model cache", "WARN", "Model cache not found; first run will download weights."))
    else:
        checks.append(DoctorCheck("Model cache", "OK", f"Model cache present at {cache_path}."))

    checks.append(DoctorCheck("Platform", "OK", platform.platform()))
    return checks


def render_report(checks: Sequence[DoctorCheck]) -> str:
    width = max((len(check.name) for check in checks), default=0)
    lines = ["readaloud doctor"]
    for check in checks:
        lines.append(f"  [{check.status:<4}] {check.name.ljust(width)}  {check.detail}")
    return "\n".join(lines)


def model_cache_path(model_id: str) -> Path | None:
    model_dir = f"models--{model_id.replace('/', '--')}"
    candidates: list[Path] = []
    for key in ("HUGGINGFACE_HUB_CACHE", "HF_HUB_CACHE", "HF_HOME"):
        value = os.environ.get(key)
        if not value:
            continue
        path = Path(value)
        candidates.append(path / "hub" if key == "HF_HOME" else path)
    if not candidates:
        candidates.append(Path.home() / ".cache" / "huggingface" / "hub")

    for root in candidates:
        direct = root / model_dir
        if direct.exists():
            return direct
    return None


def _backend_checks(config: Config) -> list[DoctorCheck]:
    engine = config.speech.engine
    if engine in KOKORO_ENGINES:
        checks = [_import_check("Speech backend", "kokoro_onnx", "kokoro-onnx", "tts-kokoro")]
        try:
            import onnxruntime as ort  # type: ignore

            providers = ", ".join(ort.get_available_providers()) or "none"
            checks.append(DoctorCheck("ONNX providers", "OK", f"Available providers: {providers}."))
        except ImportError:
            checks.append(
                DoctorCheck("ONNX providers", "FAIL", "onnxruntime missing. Install with `pip install -e '.[tts-kokoro]'`.")
            )
        return checks

    if engine in MLX_ENGINES:
        return [_import_check("Speech backend", "mlx_audio", "mlx-audio", "tts-mlx")]

    return [DoctorCheck("Speech backend", "FAIL", f"Unsupported speech engine '{engine}'.")]


def _import_check(name: str, module: str, package: str, extra: str) -> DoctorCheck:
    try:
        __import__(module)
    except ImportError:
        return DoctorCheck(name, "FAIL", f"{package} missing. Install with `pip install -e '.[{extra}]'`.")
    return DoctorCheck(name, "OK", f"{package} is available.")


def _audio_output_check() -> DoctorCheck:
    try:
        devices = list_output_devices()
    except SpeechError as exc:
        return DoctorCheck("Audio output", "FAIL", str(exc))
    except Exception as exc:  # pragma: no cover - depends on audio hardware
        return DoctorCheck("Audio output", "FAIL", f"Unable to query audio devices: {exc}")
    if not devices:
        return DoctorCheck("Audio output", "WARN", "No output devices reported.")
    return DoctorCheck("Audio output", "OK", f"{len(devices)} output device(s); first: {devices[0]}.")


def _total_ram_gb() -> float | None:
    try:
        import psutil  # type: ignore

        return psutil.virtual_memory().total / (1024**3)
    except Exception:
        return None


def _run_smoke_test(config: Config, options: DoctorOptions) -> DoctorCheck:
    try:
        engine = build_speech_engine(config)
    except SpeechError as exc:
        return DoctorCheck("Smoke test", "FAIL", str(exc))

    finished = threading.Event()
    outcome: dict[str, object] = {}

    def _record(kind: str, error: BaseException | None = None) -> None:
        outcome["kind"] = kind
        outcome["error"] = error
        finished.set()

    callbacks = UtteranceCallbacks(
        on_done=lambda: _record("done"),
        on_stopped=lambda: _record("stopped"),
        on_error=lambda exc: _record("error", exc),
    )
    speech_options = SpeechOptions(
        language=config.speech.language,
        rate=config.speech.rate,
        pitch=config.speech.pitch,
    )

    start = time.time()
    engine.speak(options.text, speech_options, callbacks)
    if not finished.wait(options.timeout):
        engine.stop()
        return DoctorCheck("Smoke test", "FAIL", f"No completion after {options.timeout:.0f}s.")
    elapsed = time.time() - start

    if outcome.get("kind") == "done":
        _LOGGER.info("Smoke test spoke %r in %.2fs", options.text, elapsed)
        return DoctorCheck("Smoke test", "OK", f"Spoke test line in {elapsed:.2f}s.")
    if outcome.get("kind") == "error":
        return DoctorCheck("Smoke test", "FAIL", f"Speech failed: {outcome.get('error')}")
    return DoctorCheck("Smoke test", "WARN", "Utterance was stopped before completion.")
