"""Keyboard controls for the interactive read command."""

from __future__ import annotations

from dataclasses import dataclass
import threading
from typing import Callable, TextIO

from ..session import ReadingSession

_SIMPLE = {
    "p": "toggle",
    "s": "stop",
    "n": "forward",
    "b": "back",
    "]": "next_chapter",
    "[": "previous_chapter",
    "q": "quit",
}


@dataclass(frozen=True)
class ParsedCommand:
    name: str
    args: tuple[object, ...] = ()


def parse_command(line: str) -> ParsedCommand | None:
    """Translate one input line into a session command.

    Chapter and line numbers are typed 1-based and converted to indices.
    Returns ``None`` for input that is not a command.
    """
    if line == " ":
        return ParsedCommand("toggle")
    text = line.strip()
    if not text:
        return None
    if text in {"h", "?", "help"}:
        return ParsedCommand("help")
    if text in _SIMPLE:
        return ParsedCommand(_SIMPLE[text])

    head, _, rest = text.partition(" ")
    parts = rest.split()
    if head == "g" and parts:
        try:
            chapter = int(parts[0]) - 1
            line_number = int(parts[1]) - 1 if len(parts) > 1 else 0
        except ValueError:
            return None
        return ParsedCommand("seek", (chapter, line_number))
    if head == "r" and len(parts) == 1:
        try:
            return ParsedCommand("rate", (float(parts[0]),))
        except ValueError:
            return None
    return None


def start_input_thread(
    session: ReadingSession,
    stream: TextIO,
    *,
    on_help: Callable[[], None] | None = None,
    on_unknown: Callable[[str], None] | None = None,
) -> threading.Thread:
    """Feed commands typed on ``stream`` into ``session`` until quit or EOF."""

    def _read_loop() -> None:
        for raw in stream:
            command = parse_command(raw.rstrip("\n"))
            if command is None:
                if raw.strip() and on_unknown is not None:
                    on_unknown(raw.strip())
                continue
            if command.name == "help":
                if on_help is not None:
                    on_help()
                continue
            session.submit(command.name, *command.args)
            if command.name == "quit":
                return
        session.submit("quit")

    thread = threading.Thread(target=_read_loop, name="readaloud-input", daemon=True)
    thread.start()
    return thread
