"""Module interfaces and data contracts for the reader."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol, Sequence, runtime_checkable


@dataclass(frozen=True)
class Chapter:
    index: int
    title: str
    content: str


@dataclass(frozen=True)
class PlaybackPosition:
    chapter_index: int = 0
    line_index: int = 0


class PlaybackState(Enum):
    IDLE = "idle"
    SPEAKING = "speaking"
    STOPPED = "stopped"


@dataclass(frozen=True)
class SpeechOptions:
    language: str = "zh-CN"
    rate: float = 1.0
    pitch: float = 1.0


@dataclass(frozen=True)
class UtteranceCallbacks:
    """Completion hooks for a single utterance; exactly one of them fires."""

    on_done: Callable[[], None]
    on_stopped: Callable[[], None]
    on_error: Callable[[BaseException], None]


@dataclass(frozen=True)
class BookRecord:
    id: str
    title: str
    chapters: tuple[Chapter, ...]
    position: PlaybackPosition = field(default_factory=PlaybackPosition)
    preview: str = ""
    source: Path | None = None
    added_at: int = 0
    last_read: int = 0


@dataclass(frozen=True)
class PlaybackSnapshot:
    state: PlaybackState
    position: PlaybackPosition
    chapter_title: str
    line_text: str | None
    line_count: int
    chapter_count: int


@runtime_checkable
class ChapterSegmenter(Protocol):
    def segment(self, text: str) -> Sequence[Chapter]:  # pragma: no cover - interface
        ...


@runtime_checkable
class LineSplitter(Protocol):
    def split(self, content: str) -> Sequence[str]:  # pragma: no cover - interface
        ...


@runtime_checkable
class SpeechEngine(Protocol):
    def speak(
        self,
        text: str,
        options: SpeechOptions,
        callbacks: UtteranceCallbacks,
    ) -> None:  # pragma: no cover - interface
        ...

    def stop(self) -> None:  # pragma: no cover - interface
        ...


@runtime_checkable
class ProgressSink(Protocol):
    def persist(self, book_id: str, position: PlaybackPosition) -> None:  # pragma: no cover - interface
        ...


@runtime_checkable
class ContentSource(Protocol):
    def read(self, path: Path) -> str:  # pragma: no cover - interface
        ...


@runtime_checkable
class BookStore(Protocol):
    def load_all(self) -> list[BookRecord]:  # pragma: no cover - interface
        ...

    def get(self, book_id: str) -> BookRecord | None:  # pragma: no cover - interface
        ...

    def save(self, book: BookRecord) -> None:  # pragma: no cover - interface
        ...

    def update_position(self, book_id: str, position: PlaybackPosition) -> BookRecord:  # pragma: no cover
        ...

    def remove(self, book_id: str) -> bool:  # pragma: no cover - interface
        ...
