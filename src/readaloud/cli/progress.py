"""Quiet playback display for the read command.

Prints to stderr without timestamps: a header when the chapter changes,
the current line whenever the position moves, and short state notes
("Paused", "Finished") when playback stops.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import sys
from typing import TextIO

from ..interfaces import PlaybackPosition, PlaybackSnapshot, PlaybackState
from ..playback import PlaybackError


def _truncate(text: str, max_len: int = 80) -> str:
    """Truncate text to fit within max_len characters."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


@dataclass
class ReaderDisplay:
    stream: TextIO = field(default_factory=lambda: sys.stderr)
    max_line_len: int = 80

    _last_position: PlaybackPosition | None = field(default=None, init=False)
    _last_chapter: int | None = field(default=None, init=False)
    _last_state: PlaybackState | None = field(default=None, init=False)

    def print(self, message: str) -> None:
        print(message, file=self.stream)

    def show(self, snapshot: PlaybackSnapshot) -> None:
        """Render a controller snapshot if anything visible changed."""
        position = snapshot.position
        if position.chapter_index != self._last_chapter:
            self.print(f"== [{position.chapter_index + 1}/{snapshot.chapter_count}] {snapshot.chapter_title}")
            self._last_chapter = position.chapter_index

        if position != self._last_position and snapshot.line_text is not None:
            marker = "▶" if snapshot.state is PlaybackState.SPEAKING else " "
            line = _truncate(snapshot.line_text, self.max_line_len)
            self.print(f"{marker} {position.line_index + 1}/{snapshot.line_count}  {line}")
            self._last_position = position

        if snapshot.state is not self._last_state:
            note = _state_note(snapshot, self._last_state)
            if note:
                self.print(f"   ({note})")
            self._last_state = snapshot.state

    def show_error(self, error: PlaybackError) -> None:
        self.print(f"Playback failed: {error}")

    def show_help(self) -> None:
        self.print(CONTROLS_HELP)


CONTROLS_HELP = (
    "Controls:\n"
    "  p        play / pause\n"
    "  s        stop\n"
    "  n / b    next / previous line\n"
    "  ] / [    next / previous chapter\n"
    "  g C [L]  go to chapter C, line L (1-based)\n"
    "  r RATE   set speech rate (e.g. 0.8, 1.2)\n"
    "  h        show this help\n"
    "  q        quit"
)


def _state_note(snapshot: PlaybackSnapshot, previous: PlaybackState | None) -> str | None:
    if snapshot.state is PlaybackState.SPEAKING:
        return "playing"
    if snapshot.state is PlaybackState.STOPPED and previous is PlaybackState.SPEAKING:
        return "paused"
    if snapshot.state is PlaybackState.IDLE and previous is PlaybackState.SPEAKING:
        return "finished"
    return None
