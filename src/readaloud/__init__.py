"""Read plain-text books aloud, chapter by chapter."""

from .book_store import BookNotFoundError, BookStoreError, JsonBookStore
from .chapter_segmenter import HeuristicChapterSegmenter
from .content_source import ContentError, FileContentSource
from .interfaces import (
    BookRecord,
    BookStore,
    Chapter,
    ChapterSegmenter,
    ContentSource,
    LineSplitter,
    PlaybackPosition,
    PlaybackSnapshot,
    PlaybackState,
    ProgressSink,
    SpeechEngine,
    SpeechOptions,
    UtteranceCallbacks,
)
from .library import Library
from .line_splitter import NewlineLineSplitter
from .playback import PlaybackController, PlaybackError
from .progress import ProgressTracker
from .session import ReadingSession
from .speech_engine import KokoroSpeechEngine, MlxSpeechEngine, SpeechError

__all__ = [
    "__version__",
    "BookNotFoundError",
    "BookRecord",
    "BookStore",
    "BookStoreError",
    "Chapter",
    "ChapterSegmenter",
    "ContentError",
    "ContentSource",
    "FileContentSource",
    "HeuristicChapterSegmenter",
    "JsonBookStore",
    "KokoroSpeechEngine",
    "Library",
    "LineSplitter",
    "MlxSpeechEngine",
    "NewlineLineSplitter",
    "PlaybackController",
    "PlaybackError",
    "PlaybackPosition",
    "PlaybackSnapshot",
    "PlaybackState",
    "ProgressSink",
    "ProgressTracker",
    "ReadingSession",
    "SpeechEngine",
    "SpeechError",
    "SpeechOptions",
    "UtteranceCallbacks",
]
__version__ = "0.1.0"
