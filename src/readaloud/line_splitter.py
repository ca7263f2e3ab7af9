"""Split chapter content into playable lines."""

from __future__ import annotations

from dataclasses import dataclass

from .utils import normalize_newlines


def split_lines(content: str) -> list[str]:
    """Return the non-empty trimmed lines of ``content`` in order."""
    if not content:
        return []
    lines = (line.strip() for line in normalize_newlines(content).split("\n"))
    return [line for line in lines if line]


@dataclass(frozen=True)
class NewlineLineSplitter:
    def split(self, content: str) -> list[str]:
        return split_lines(content)
