"""Output rendering for readaloud CLI."""

from typing import Sequence

from ..interfaces import BookRecord
from ..line_splitter import split_lines


def render_book_list(books: Sequence[BookRecord]) -> str:
    """Render the numbered library listing."""
    if not books:
        return "The library is empty. Import a book with `readaloud import FILE`."

    lines = ["Library"]
    for number, book in enumerate(books, start=1):
        position = book.position
        lines.append(f"  {number}. {book.title}  [{book.id}]")
        lines.append(
            f"     {len(book.chapters)} chapter(s), at chapter {position.chapter_index + 1}"
            f" line {position.line_index + 1}"
        )
        if book.preview:
            lines.append(f"     {_truncate(book.preview, 60)}")
    return "\n".join(lines)


def render_chapters(book: BookRecord) -> str:
    """Render the chapter list of a book, marking the current chapter."""
    lines = [f"{book.title} ({len(book.chapters)} chapter(s))"]
    current = book.position.chapter_index
    for chapter in book.chapters:
        marker = "*" if chapter.index == current else " "
        count = len(split_lines(chapter.content))
        lines.append(f" {marker} {chapter.index + 1:>4}. {chapter.title}  ({count} line(s))")
    return "\n".join(lines)


def _truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
