"""Reading session: one actor thread owning a playback controller.

User commands and engine completions both arrive as messages on a single
queue. Only the thread draining that queue touches the controller, so the
controller itself needs no locking even when the engine reports back from
its own worker threads.
"""

from __future__ import annotations

from functools import partial
import logging
import queue
from typing import Callable

from .interfaces import (
    BookRecord,
    LineSplitter,
    PlaybackPosition,
    PlaybackSnapshot,
    ProgressSink,
    SpeechEngine,
    SpeechOptions,
)
from .playback import PlaybackController, PlaybackError

_LOGGER = logging.getLogger(__name__)

COMMANDS = (
    "play",
    "stop",
    "toggle",
    "forward",
    "back",
    "next_chapter",
    "previous_chapter",
    "seek",
    "rate",
    "quit",
)


class ReadingSession:
    def __init__(
        self,
        book: BookRecord,
        engine: SpeechEngine,
        progress: ProgressSink,
        *,
        splitter: LineSplitter | None = None,
        options: SpeechOptions | None = None,
        position: PlaybackPosition | None = None,
        on_change: Callable[[PlaybackSnapshot], None] | None = None,
        on_error: Callable[[PlaybackError], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.book = book
        self.engine = engine
        self.progress = progress
        self.splitter = splitter
        self.options = options
        self.start_position = position or book.position
        self.on_change = on_change
        self.on_error = on_error
        self.logger = logger or _LOGGER
        self._queue: queue.Queue[Callable[[], None]] = queue.Queue()
        self._controller: PlaybackController | None = None
        self._quit = False

    def __enter__(self) -> ReadingSession:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def controller(self) -> PlaybackController:
        if self._controller is None:
            raise RuntimeError("Session is not open.")
        return self._controller

    @property
    def finished(self) -> bool:
        return self._quit

    def open(self) -> PlaybackController:
        if self._controller is None:
            self._controller = PlaybackController(
                self.book.id,
                self.book.chapters,
                self.engine,
                splitter=self.splitter,
                progress=self.progress,
                options=self.options,
                position=self.start_position,
                dispatch=self._queue.put,
                on_change=self.on_change,
                on_error=self.on_error,
                logger=self.logger,
            )
            self.logger.info("Opened %s (%s)", self.book.title, self.book.id)
        return self._controller

    def submit(self, command: str, *args: object) -> None:
        """Queue a user command; safe to call from any thread."""
        if command not in COMMANDS:
            raise ValueError(f"Unknown command '{command}'.")
        self._queue.put(partial(self._execute, command, args))

    def run_once(self, timeout: float | None = None) -> bool:
        """Handle one queued message. Returns ``False`` once quit was requested."""
        try:
            task = self._queue.get(timeout=timeout)
        except queue.Empty:
            return not self._quit
        task()
        return not self._quit

    def run_until_quit(self, poll_interval: float = 0.2) -> None:
        self.open()
        try:
            while self.run_once(timeout=poll_interval):
                pass
        finally:
            self.close()

    def drain(self) -> int:
        """Handle every message already queued, without waiting."""
        handled = 0
        while True:
            try:
                task = self._queue.get_nowait()
            except queue.Empty:
                return handled
            task()
            handled += 1

    def close(self) -> None:
        if self._controller is not None and not self._controller.closed:
            self._controller.teardown()
            self.logger.info("Closed %s at %s", self.book.id, self._controller.position)

    def _execute(self, command: str, args: tuple[object, ...]) -> None:
        controller = self.controller
        if controller.closed:
            self.logger.debug("Ignoring '%s' after teardown", command)
            return
        try:
            if command == "play":
                controller.play()
            elif command == "stop":
                controller.stop()
            elif command == "toggle":
                controller.toggle()
            elif command == "forward":
                controller.skip_forward()
            elif command == "back":
                controller.skip_backward()
            elif command == "next_chapter":
                controller.next_chapter()
            elif command == "previous_chapter":
                controller.previous_chapter()
            elif command == "seek":
                chapter_index = int(args[0]) if args else controller.position.chapter_index
                line_index = int(args[1]) if len(args) > 1 else 0
                controller.seek(PlaybackPosition(chapter_index=chapter_index, line_index=line_index))
            elif command == "rate":
                controller.set_options(rate=float(args[0]))
            elif command == "quit":
                self._quit = True
        except (TypeError, ValueError, IndexError) as exc:
            self.logger.warning("Command '%s' rejected: %s", command, exc)
