from __future__ import annotations

from pathlib import Path

import pytest

from readaloud.content_source import (
    ContentDecodeError,
    ContentNotFoundError,
    EmptyContentError,
    FileContentSource,
    decode_text,
)

LONG_TEXT = "第一章 开始\n" + "这是一段足够长的正文内容，用来通过最少字数的检查。" * 3


def test_reads_utf8(tmp_path: Path) -> None:
    path = tmp_path / "book.txt"
    path.write_text(LONG_TEXT, encoding="utf-8")
    assert FileContentSource().read(path) == LONG_TEXT


def test_strips_utf8_bom(tmp_path: Path) -> None:
    path = tmp_path / "book.txt"
    path.write_bytes(LONG_TEXT.encode("utf-8-sig"))
    assert FileContentSource().read(path) == LONG_TEXT


def test_falls_back_to_gb18030(tmp_path: Path) -> None:
    path = tmp_path / "book.txt"
    path.write_bytes(LONG_TEXT.encode("gb18030"))
    assert FileContentSource().read(path) == LONG_TEXT


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ContentNotFoundError):
        FileContentSource().read(tmp_path / "missing.txt")


def test_short_content_rejected(tmp_path: Path) -> None:
    path = tmp_path / "short.txt"
    path.write_text("太短了", encoding="utf-8")
    with pytest.raises(EmptyContentError):
        FileContentSource().read(path)


def test_min_chars_is_configurable(tmp_path: Path) -> None:
    path = tmp_path / "short.txt"
    path.write_text("太短了", encoding="utf-8")
    assert FileContentSource(min_chars=1).read(path) == "太短了"


def test_undecodable_content(tmp_path: Path) -> None:
    path = tmp_path / "binary.txt"
    path.write_bytes(b"\xff\xfe\xfa" * 40)
    with pytest.raises(ContentDecodeError):
        FileContentSource(encodings=("ascii",)).read(path)


def test_decode_text_skips_unknown_encodings() -> None:
    assert decode_text("abc".encode("utf-8"), ("no-such-codec", "utf-8")) == "abc"
    assert decode_text(b"\xff", ("ascii",)) is None
