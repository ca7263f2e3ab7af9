from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Iterator

import pytest

from readaloud.interfaces import Chapter, PlaybackPosition, SpeechOptions, UtteranceCallbacks


@dataclass
class Utterance:
    text: str
    options: SpeechOptions
    callbacks: UtteranceCallbacks


@dataclass
class FakeSpeechEngine:
    """Records requests; tests fire the completion callbacks by hand."""

    utterances: list[Utterance] = field(default_factory=list)
    stop_calls: int = 0
    fail_with: BaseException | None = None

    def speak(self, text: str, options: SpeechOptions, callbacks: UtteranceCallbacks) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.utterances.append(Utterance(text, options, callbacks))

    def stop(self) -> None:
        self.stop_calls += 1

    @property
    def spoken(self) -> list[str]:
        return [utterance.text for utterance in self.utterances]

    @property
    def last(self) -> Utterance:
        return self.utterances[-1]


class RecordingProgress:
    def __init__(self) -> None:
        self.calls: list[tuple[str, PlaybackPosition]] = []

    def persist(self, book_id: str, position: PlaybackPosition) -> None:
        self.calls.append((book_id, position))

    @property
    def last(self) -> PlaybackPosition:
        return self.calls[-1][1]


@pytest.fixture(autouse=True)
def reset_readaloud_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("readaloud")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = True


@pytest.fixture
def engine() -> FakeSpeechEngine:
    return FakeSpeechEngine()


@pytest.fixture
def progress() -> RecordingProgress:
    return RecordingProgress()


@pytest.fixture
def chapters() -> tuple[Chapter, ...]:
    return (
        Chapter(index=0, title="第一章 开始", content="第一行\n第二行\n第三行"),
        Chapter(index=1, title="第二章 继续", content="下一章第一行\n下一章第二行"),
        Chapter(index=2, title="第三章 结束", content="最后一行"),
    )
