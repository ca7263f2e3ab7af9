from __future__ import annotations

from pathlib import Path

import pytest

from readaloud.config import config_summary, load_config, write_default_config


def test_load_config_defaults(tmp_path: Path) -> None:
    config = load_config(cwd=tmp_path)
    assert config.source is None
    assert config.paths.library == tmp_path / "library"
    assert config.paths.logs == tmp_path / "logs"
    assert config.paths.cache == tmp_path / "cache"
    assert config.logging.level == "INFO"
    assert config.logging.console_level == "WARNING"
    assert config.speech.engine == "kokoro"
    assert config.speech.language == "zh-CN"
    assert config.speech.rate == 0.9
    assert config.content.min_chars == 50
    assert config.content.encodings[0] == "utf-8-sig"
    assert config.segmenter.main_text_title == "正文"
    assert config.segmenter.prologue_title == "序章/前言"


def test_load_config_overrides(tmp_path: Path) -> None:
    config_dir = tmp_path / "cfg"
    config_dir.mkdir()
    config_path = config_dir / "config.toml"
    config_path.write_text(
        """
[paths]
library = "books"
[logging]
level = "debug"
[speech]
engine = "MLX"
voice = "none"
language = "en-US"
rate = 1.2
[content]
min_chars = 10
encodings = "utf-8, gbk"
[segmenter]
main_text_title = "Main"
""".lstrip(),
        encoding="utf-8",
    )

    config = load_config(config_path, cwd=tmp_path)
    assert config.source == config_path
    assert config.paths.library == config_dir / "books"
    assert config.paths.logs == config_dir / "logs"
    assert config.logging.level == "DEBUG"
    assert config.speech.engine == "mlx"
    assert config.speech.voice is None
    assert config.speech.language == "en-US"
    assert config.speech.rate == 1.2
    assert config.content.min_chars == 10
    assert config.content.encodings == ("utf-8", "gbk")
    assert config.segmenter.main_text_title == "Main"
    assert config.segmenter.prologue_title == "序章/前言"


def test_config_toml_in_cwd_is_picked_up(tmp_path: Path) -> None:
    (tmp_path / "config.toml").write_text('[speech]\nvoice = "zm_yunxi"\n', encoding="utf-8")
    config = load_config(cwd=tmp_path)
    assert config.source == tmp_path / "config.toml"
    assert config.speech.voice == "zm_yunxi"


def test_missing_config_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.toml", cwd=tmp_path)


def test_invalid_config_raises(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("[speech\nengine = ", encoding="utf-8")
    with pytest.raises(RuntimeError, match="Invalid config file"):
        load_config(config_path, cwd=tmp_path)


def test_default_config_file_matches_defaults(tmp_path: Path) -> None:
    path = write_default_config(tmp_path / "config.toml")
    from_file = load_config(path, cwd=tmp_path)
    defaults = load_config(cwd=tmp_path)
    assert from_file.speech == defaults.speech
    assert from_file.content == defaults.content
    assert from_file.paths == defaults.paths


def test_config_summary_mentions_engine(tmp_path: Path) -> None:
    summary = config_summary(load_config(cwd=tmp_path))
    assert "source: defaults" in summary
    assert "engine: kokoro" in summary
