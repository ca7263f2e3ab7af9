from __future__ import annotations

import io
from pathlib import Path

import pytest

from readaloud.cli.commands import start_position
from readaloud.cli.controls import ParsedCommand, parse_command
from readaloud.cli.main import main
from readaloud.cli.progress import ReaderDisplay
from readaloud.cli.rendering import render_book_list, render_chapters
from readaloud.interfaces import (
    BookRecord,
    Chapter,
    PlaybackPosition,
    PlaybackSnapshot,
    PlaybackState,
)

BODY = "这是一段足够长的正文内容，用来通过最少字数的检查。" * 3


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _write_book(root: Path) -> Path:
    path = root / "三体.txt"
    path.write_text(f"第一章 开始\n{BODY}\n第二章 继续\n{BODY}\n", encoding="utf-8")
    return path


class TestCommands:
    def test_init_creates_folders_and_config(self, workspace: Path, capsys) -> None:
        assert main(["init"]) == 0
        assert (workspace / "library").is_dir()
        assert (workspace / "logs").is_dir()
        assert (workspace / "config.toml").exists()
        assert "Created config.toml" in capsys.readouterr().out

        assert main(["init"]) == 0
        assert "already exists" in capsys.readouterr().out

    def test_import_list_chapters_remove(self, workspace: Path, capsys) -> None:
        path = _write_book(workspace)

        assert main(["import", str(path)]) == 0
        assert "Imported: 三体 (2 chapter(s))" in capsys.readouterr().out

        assert main(["list"]) == 0
        listing = capsys.readouterr().out
        assert "1. 三体" in listing
        assert "2 chapter(s), at chapter 1 line 1" in listing

        assert main(["chapters", "1"]) == 0
        chapters = capsys.readouterr().out
        assert "第一章 开始" in chapters
        assert "第二章 继续" in chapters

        assert main(["remove", "三体"]) == 0
        assert "Removed: 三体" in capsys.readouterr().out
        assert main([]) == 0
        assert "The library is empty" in capsys.readouterr().out

    def test_import_short_file_fails(self, workspace: Path, capsys) -> None:
        path = workspace / "short.txt"
        path.write_text("太短", encoding="utf-8")
        assert main(["import", str(path)]) == 1
        assert "Failed:" in capsys.readouterr().out

    def test_unknown_book(self, workspace: Path, capsys) -> None:
        assert main(["chapters", "nothing"]) == 1
        assert "No book matches 'nothing'" in capsys.readouterr().out

    def test_missing_config_file(self, workspace: Path, capsys) -> None:
        assert main(["list", "--config", "absent.toml"]) == 2
        assert "Config file not found" in capsys.readouterr().out

    def test_read_with_invalid_rate_fails(self, workspace: Path, engine, capsys, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("readaloud.cli.commands.build_speech_engine", lambda config: engine)
        assert main(["import", str(_write_book(workspace))]) == 0
        capsys.readouterr()

        assert main(["read", "1", "--rate", "0"]) == 1
        assert "Failed: rate must be positive" in capsys.readouterr().out
        assert engine.spoken == []

    def test_unknown_command_exits(self, workspace: Path) -> None:
        with pytest.raises(SystemExit):
            main(["dance"])


class TestControls:
    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            (" ", ParsedCommand("toggle")),
            ("p", ParsedCommand("toggle")),
            ("n", ParsedCommand("forward")),
            ("[", ParsedCommand("previous_chapter")),
            ("q", ParsedCommand("quit")),
            ("?", ParsedCommand("help")),
            ("g 3", ParsedCommand("seek", (2, 0))),
            ("g 3 10", ParsedCommand("seek", (2, 9))),
            ("r 1.2", ParsedCommand("rate", (1.2,))),
        ],
    )
    def test_parse_command(self, line: str, expected: ParsedCommand) -> None:
        assert parse_command(line) == expected

    @pytest.mark.parametrize("line", ["", "x", "g", "g x", "r", "r fast"])
    def test_parse_command_rejects(self, line: str) -> None:
        assert parse_command(line) is None


class TestRendering:
    def _book(self) -> BookRecord:
        return BookRecord(
            id="42",
            title="三体",
            chapters=(
                Chapter(index=0, title="第一章 开始", content="一\n二"),
                Chapter(index=1, title="第二章 继续", content="三"),
            ),
            position=PlaybackPosition(1, 0),
            preview="一 二",
        )

    def test_render_book_list(self) -> None:
        text = render_book_list([self._book()])
        assert "1. 三体  [42]" in text
        assert "at chapter 2 line 1" in text

    def test_render_chapters_marks_current(self) -> None:
        lines = render_chapters(self._book()).splitlines()
        assert lines[0] == "三体 (2 chapter(s))"
        assert lines[1].startswith("  ")
        assert "(2 line(s))" in lines[1]
        assert lines[2].startswith(" *")

    def test_reader_display(self) -> None:
        stream = io.StringIO()
        display = ReaderDisplay(stream=stream)
        snapshot = PlaybackSnapshot(
            state=PlaybackState.SPEAKING,
            position=PlaybackPosition(0, 0),
            chapter_title="第一章 开始",
            line_text="第一行",
            line_count=3,
            chapter_count=2,
        )
        display.show(snapshot)
        display.show(snapshot)
        lines = stream.getvalue().splitlines()
        assert lines == ["== [1/2] 第一章 开始", "▶ 1/3  第一行", "   (playing)"]


class TestStartPosition:
    @pytest.fixture
    def book(self) -> BookRecord:
        chapters = (Chapter(0, "一", "甲\n乙"), Chapter(1, "二", "丙\n丁\n戊"))
        return BookRecord(id="b", title="书", chapters=chapters, position=PlaybackPosition(1, 1))

    def test_saved_position_without_flags(self, book: BookRecord) -> None:
        assert start_position(book, None, None) == PlaybackPosition(1, 1)

    def test_line_alone_stays_in_saved_chapter(self, book: BookRecord) -> None:
        assert start_position(book, None, 3) == PlaybackPosition(1, 2)

    def test_chapter_alone_starts_at_first_line(self, book: BookRecord) -> None:
        assert start_position(book, 1, None) == PlaybackPosition(0, 0)

    def test_chapter_and_line(self, book: BookRecord) -> None:
        assert start_position(book, 2, 2) == PlaybackPosition(1, 1)
