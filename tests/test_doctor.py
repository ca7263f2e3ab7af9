from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from readaloud import doctor
from readaloud.config import load_config
from readaloud.doctor import DoctorCheck, DoctorOptions, model_cache_path, render_report, run_doctor


@pytest.fixture
def hf_cache(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    cache = tmp_path / "hf"
    cache.mkdir()
    monkeypatch.delenv("HUGGINGFACE_HUB_CACHE", raising=False)
    monkeypatch.delenv("HF_HOME", raising=False)
    monkeypatch.setenv("HF_HUB_CACHE", str(cache))
    return cache


def test_render_report_aligns_names() -> None:
    report = render_report(
        [DoctorCheck("Engine", "OK", "kokoro"), DoctorCheck("Audio output", "WARN", "none")]
    )
    lines = report.splitlines()
    assert lines[0] == "readaloud doctor"
    assert lines[1] == "  [OK  ] Engine        kokoro"
    assert lines[2] == "  [WARN] Audio output  none"


def test_model_cache_path_found(hf_cache: Path) -> None:
    model_dir = hf_cache / "models--onnx-community--Kokoro-82M-v1.0-ONNX"
    model_dir.mkdir()
    assert model_cache_path("onnx-community/Kokoro-82M-v1.0-ONNX") == model_dir


def test_model_cache_path_missing(hf_cache: Path) -> None:
    assert model_cache_path("someone/missing-model") is None


def test_unsupported_engine_fails(tmp_path: Path, hf_cache: Path, monkeypatch, capsys) -> None:
    monkeypatch.setattr(doctor, "list_output_devices", lambda: ["Speakers"])
    monkeypatch.setattr(doctor, "_total_ram_gb", lambda: 16.0)
    config = load_config(cwd=tmp_path)
    config = replace(config, speech=replace(config.speech, engine="espeak"))

    exit_code = run_doctor(config, DoctorOptions(smoke_test=False, text="你好"))

    out = capsys.readouterr().out
    assert exit_code == 1
    assert "Unsupported speech engine 'espeak'" in out
    assert "1 output device(s); first: Speakers." in out
    assert "Detected 16.0 GB RAM." in out
    assert "Model cache not found" in out
    assert "engine: espeak" in out
