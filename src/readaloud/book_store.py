"""JSON-backed library of imported books."""

from __future__ import annotations

from dataclasses import replace
import json
import logging
from pathlib import Path
from typing import Any, Callable, Mapping

from .interfaces import BookRecord, BookStore, Chapter, PlaybackPosition
from .utils import ensure_dir, now_ms

_LOGGER = logging.getLogger(__name__)

BOOKS_FILENAME = "books.json"
STORE_VERSION = 1


class BookStoreError(RuntimeError):
    """Raised when the library file cannot be read or written."""


class BookNotFoundError(BookStoreError):
    """Raised when a book id is not in the library."""


class JsonBookStore(BookStore):
    """Keep every book in a single JSON document, most recently read first."""

    def __init__(self, root: Path, *, clock: Callable[[], int] = now_ms) -> None:
        self.root = ensure_dir(root)
        self.path = self.root / BOOKS_FILENAME
        self._clock = clock

    def load_all(self) -> list[BookRecord]:
        if not self.path.exists():
            return []
        try:
            payload = json.loads(self.path.read_text("utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise BookStoreError(f"Failed to read library file {self.path}: {exc}") from exc
        raw_books = payload.get("books") if isinstance(payload, dict) else None
        if not isinstance(raw_books, list):
            return []
        books: list[BookRecord] = []
        for raw in raw_books:
            try:
                books.append(_deserialize_book(raw))
            except (KeyError, TypeError, ValueError) as exc:
                _LOGGER.warning("Skipping malformed book entry in %s: %s", self.path, exc)
        return books

    def get(self, book_id: str) -> BookRecord | None:
        for book in self.load_all():
            if book.id == book_id:
                return book
        return None

    def save(self, book: BookRecord) -> None:
        books = [existing for existing in self.load_all() if existing.id != book.id]
        self._write([book, *books])

    def update_position(self, book_id: str, position: PlaybackPosition) -> BookRecord:
        books = self.load_all()
        updated: BookRecord | None = None
        for idx, book in enumerate(books):
            if book.id == book_id:
                updated = replace(book, position=position, last_read=self._clock())
                books[idx] = updated
                break
        if updated is None:
            raise BookNotFoundError(f"Unknown book id: {book_id}")
        books.sort(key=lambda item: item.last_read or 0, reverse=True)
        self._write(books)
        return updated

    def remove(self, book_id: str) -> bool:
        books = self.load_all()
        remaining = [book for book in books if book.id != book_id]
        if len(remaining) == len(books):
            return False
        self._write(remaining)
        return True

    def _write(self, books: list[BookRecord]) -> None:
        payload = {
            "version": STORE_VERSION,
            "books": [_serialize_book(book) for book in books],
        }
        tmp_path = self.path.with_suffix(".json.tmp")
        try:
            tmp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), "utf-8")
            tmp_path.replace(self.path)
        except OSError as exc:
            raise BookStoreError(f"Failed to write library file {self.path}: {exc}") from exc


def _serialize_book(book: BookRecord) -> Mapping[str, Any]:
    return {
        "id": book.id,
        "title": book.title,
        "preview": book.preview,
        "source": str(book.source) if book.source is not None else None,
        "added_at": book.added_at,
        "last_read": book.last_read,
        "position": {
            "chapter_index": book.position.chapter_index,
            "line_index": book.position.line_index,
        },
        "chapters": [
            {"index": chapter.index, "title": chapter.title, "content": chapter.content}
            for chapter in book.chapters
        ],
    }


def _deserialize_book(raw: Mapping[str, Any]) -> BookRecord:
    chapters = tuple(
        Chapter(index=int(item["index"]), title=str(item["title"]), content=str(item["content"]))
        for item in raw.get("chapters") or []
    )
    position_raw = raw.get("position") or {}
    position = PlaybackPosition(
        chapter_index=max(0, int(position_raw.get("chapter_index", 0))),
        line_index=max(0, int(position_raw.get("line_index", 0))),
    )
    source = raw.get("source")
    return BookRecord(
        id=str(raw["id"]),
        title=str(raw.get("title") or raw["id"]),
        chapters=chapters,
        position=position,
        preview=str(raw.get("preview") or ""),
        source=Path(source) if source else None,
        added_at=int(raw.get("added_at") or 0),
        last_read=int(raw.get("last_read") or 0),
    )
