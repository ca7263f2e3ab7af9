from __future__ import annotations

from pathlib import Path

from readaloud.book_store import JsonBookStore
from readaloud.chapter_segmenter import HeuristicChapterSegmenter
from readaloud.content_source import FileContentSource
from readaloud.interfaces import (
    BookRecord,
    BookStore,
    ChapterSegmenter,
    ContentSource,
    LineSplitter,
    PlaybackPosition,
    ProgressSink,
    SpeechEngine,
    SpeechOptions,
)
from readaloud.line_splitter import NewlineLineSplitter
from readaloud.progress import ProgressTracker
from readaloud.speech_engine import KokoroSpeechEngine, MlxSpeechEngine

from conftest import FakeSpeechEngine


def test_implementations_satisfy_protocols(tmp_path: Path) -> None:
    store = JsonBookStore(tmp_path)
    assert isinstance(store, BookStore)
    assert isinstance(HeuristicChapterSegmenter(), ChapterSegmenter)
    assert isinstance(NewlineLineSplitter(), LineSplitter)
    assert isinstance(FileContentSource(), ContentSource)
    assert isinstance(ProgressTracker(store), ProgressSink)
    assert isinstance(KokoroSpeechEngine(), SpeechEngine)
    assert isinstance(MlxSpeechEngine(), SpeechEngine)
    assert isinstance(FakeSpeechEngine(), SpeechEngine)


def test_defaults() -> None:
    assert PlaybackPosition() == PlaybackPosition(chapter_index=0, line_index=0)
    options = SpeechOptions()
    assert (options.language, options.rate, options.pitch) == ("zh-CN", 1.0, 1.0)

    book = BookRecord(id="1", title="t", chapters=())
    assert book.position == PlaybackPosition()
    assert book.source is None
