"""Progress tracker: forwards playback positions to the book store."""

from __future__ import annotations

import logging

from .book_store import BookStoreError
from .interfaces import BookStore, PlaybackPosition, ProgressSink

_LOGGER = logging.getLogger(__name__)


class ProgressTracker(ProgressSink):
    """Fire-and-forget position sink; the last write wins."""

    def __init__(self, store: BookStore, logger: logging.Logger | None = None) -> None:
        self.store = store
        self.logger = logger or _LOGGER
        self.last_persisted: dict[str, PlaybackPosition] = {}

    def persist(self, book_id: str, position: PlaybackPosition) -> None:
        try:
            self.store.update_position(book_id, position)
        except (BookStoreError, OSError) as exc:
            self.logger.warning(
                "Failed to persist position %d:%d for %s: %s",
                position.chapter_index,
                position.line_index,
                book_id,
                exc,
            )
            return
        self.last_persisted[book_id] = position
        self.logger.debug(
            "Persisted position %d:%d for %s", position.chapter_index, position.line_index, book_id
        )
