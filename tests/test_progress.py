from __future__ import annotations

import logging
from pathlib import Path

from readaloud.book_store import BookStoreError, JsonBookStore
from readaloud.interfaces import BookRecord, Chapter, PlaybackPosition
from readaloud.progress import ProgressTracker


def test_persist_updates_store(tmp_path: Path) -> None:
    store = JsonBookStore(tmp_path)
    store.save(BookRecord(id="b", title="书", chapters=(Chapter(0, "正文", "一\n二"),)))
    tracker = ProgressTracker(store)

    tracker.persist("b", PlaybackPosition(0, 1))

    assert store.get("b").position == PlaybackPosition(0, 1)
    assert tracker.last_persisted == {"b": PlaybackPosition(0, 1)}


def test_persist_failure_is_logged_not_raised(tmp_path: Path, caplog) -> None:
    tracker = ProgressTracker(JsonBookStore(tmp_path), logger=logging.getLogger("tests.progress"))
    with caplog.at_level("WARNING"):
        tracker.persist("unknown", PlaybackPosition(2, 3))
    assert tracker.last_persisted == {}
    assert "Failed to persist position 2:3" in caplog.text


def test_last_write_wins() -> None:
    class BrokenOnceStore:
        def __init__(self) -> None:
            self.positions: list[PlaybackPosition] = []
            self.fail = True

        def update_position(self, book_id: str, position: PlaybackPosition) -> None:
            if self.fail:
                self.fail = False
                raise BookStoreError("disk full")
            self.positions.append(position)

    store = BrokenOnceStore()
    tracker = ProgressTracker(store)  # type: ignore[arg-type]
    tracker.persist("b", PlaybackPosition(0, 1))
    tracker.persist("b", PlaybackPosition(0, 2))
    assert store.positions == [PlaybackPosition(0, 2)]
    assert tracker.last_persisted["b"] == PlaybackPosition(0, 2)
