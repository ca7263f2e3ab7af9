"""Read and decode plain-text documents for import."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Final

_LOGGER = logging.getLogger(__name__)

MIN_CONTENT_CHARS: Final = 50
DEFAULT_ENCODINGS: Final = ("utf-8-sig", "utf-8", "gb18030", "big5", "utf-16")


class ContentError(RuntimeError):
    """Base class for content source failures."""


class ContentNotFoundError(ContentError):
    """Raised when the document does not exist."""


class ContentDecodeError(ContentError):
    """Raised when no configured encoding can decode the document."""


class EmptyContentError(ContentError):
    """Raised when the decoded text is too short to be a book."""


@dataclass(frozen=True)
class FileContentSource:
    encodings: tuple[str, ...] = DEFAULT_ENCODINGS
    min_chars: int = MIN_CONTENT_CHARS

    def read(self, path: Path) -> str:
        if not path.is_file():
            raise ContentNotFoundError(f"File not found: {path}")
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ContentNotFoundError(f"Unable to read {path}: {exc}") from exc

        text = decode_text(data, self.encodings)
        if text is None:
            raise ContentDecodeError(
                f"Unable to decode {path} with any of: {', '.join(self.encodings)}"
            )
        if len(text.strip()) < self.min_chars:
            raise EmptyContentError(
                f"{path.name} is too short or empty (fewer than {self.min_chars} characters)."
            )
        return text


def decode_text(data: bytes, encodings: tuple[str, ...] = DEFAULT_ENCODINGS) -> str | None:
    for encoding in encodings:
        try:
            text = data.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            continue
        _LOGGER.debug("Decoded %d byte(s) as %s", len(data), encoding)
        return text
    return None
