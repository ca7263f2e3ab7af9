"""Import, list, and resolve books in the library."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from .book_store import BookNotFoundError
from .chapter_segmenter import HeuristicChapterSegmenter
from .content_source import FileContentSource
from .interfaces import BookRecord, BookStore, ChapterSegmenter, ContentSource, PlaybackPosition
from .utils import now_ms

_LOGGER = logging.getLogger(__name__)

PREVIEW_CHARS = 100


class Library:
    def __init__(
        self,
        store: BookStore,
        *,
        source: ContentSource | None = None,
        segmenter: ChapterSegmenter | None = None,
        clock: Callable[[], int] = now_ms,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.source = source or FileContentSource()
        self.segmenter = segmenter or HeuristicChapterSegmenter()
        self._clock = clock
        self.logger = logger or _LOGGER

    def import_file(self, path: Path, *, title: str | None = None) -> BookRecord:
        """Read, segment, and store a text file as a new book."""
        text = self.source.read(path)
        chapters = tuple(self.segmenter.segment(text))
        timestamp = self._clock()
        book = BookRecord(
            id=self._unique_id(timestamp),
            title=(title or "").strip() or path.stem,
            chapters=chapters,
            position=PlaybackPosition(),
            preview=make_preview(text),
            source=path.resolve(),
            added_at=timestamp,
            last_read=timestamp,
        )
        self.store.save(book)
        self.logger.info("Imported %s as %s with %d chapter(s)", path, book.id, len(chapters))
        return book

    def list_books(self) -> list[BookRecord]:
        return self.store.load_all()

    def get_book(self, book_id: str) -> BookRecord:
        book = self.store.get(book_id)
        if book is None:
            raise BookNotFoundError(f"Unknown book id: {book_id}")
        return book

    def remove_book(self, book_id: str) -> bool:
        removed = self.store.remove(book_id)
        if removed:
            self.logger.info("Removed book %s", book_id)
        return removed

    def resolve(self, ref: str) -> BookRecord:
        """Find a book by id, by its 1-based number in ``list_books``, or by title."""
        ref = ref.strip()
        books = self.list_books()
        for book in books:
            if book.id == ref:
                return book
        if ref.isdigit() and 1 <= int(ref) <= len(books):
            return books[int(ref) - 1]
        lowered = ref.casefold()
        for book in books:
            if book.title.casefold() == lowered:
                return book
        raise BookNotFoundError(f"No book matches '{ref}'.")

    def _unique_id(self, timestamp: int) -> str:
        taken = {book.id for book in self.store.load_all()}
        candidate = timestamp
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)


def make_preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    return text[:limit].replace("\r", " ").replace("\n", " ").strip()
