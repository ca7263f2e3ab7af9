"""Sequential playback controller.

The controller walks a book line by line through a speech engine that can
hold one utterance at a time. Every ``play`` and every stop mints a new
generation token; completion callbacks carry the token they were issued
with and are discarded when it is no longer current. This is what keeps a
late ``on_done`` from an interrupted utterance from advancing the position
after the user has paused, skipped, or seeked.

Engine callbacks are routed through ``dispatch`` before they touch any
state. The default runs them in order, one at a time: a callback arriving
while another handler is running is queued and run after it returns, so an
engine that completes inside ``speak`` never nests handlers. Commands are
not serialized by the default, so with an engine that reports from its own
threads drive the controller through a ``ReadingSession``, which queues
both on one thread.
"""

from __future__ import annotations

from collections import deque
from dataclasses import replace
from functools import partial
import logging
import threading
from typing import Callable, Sequence

from .interfaces import (
    Chapter,
    LineSplitter,
    PlaybackPosition,
    PlaybackSnapshot,
    PlaybackState,
    ProgressSink,
    SpeechEngine,
    SpeechOptions,
    UtteranceCallbacks,
)
from .line_splitter import NewlineLineSplitter

_LOGGER = logging.getLogger(__name__)

Dispatch = Callable[[Callable[[], None]], None]


class PlaybackError(RuntimeError):
    """Reported to observers when the speech engine fails mid-playback."""

    def __init__(
        self,
        message: str,
        *,
        position: PlaybackPosition,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.position = position
        self.cause = cause


class SerialDispatch:
    """Run dispatched tasks one after another, never nested."""

    def __init__(self) -> None:
        self._tasks: deque[Callable[[], None]] = deque()
        self._lock = threading.Lock()
        self._running = False

    def __call__(self, task: Callable[[], None]) -> None:
        with self._lock:
            self._tasks.append(task)
            if self._running:
                return
            self._running = True
        try:
            while True:
                with self._lock:
                    if not self._tasks:
                        self._running = False
                        return
                    task = self._tasks.popleft()
                task()
        except BaseException:
            with self._lock:
                self._running = False
            raise


class PlaybackController:
    def __init__(
        self,
        book_id: str,
        chapters: Sequence[Chapter],
        engine: SpeechEngine,
        *,
        splitter: LineSplitter | None = None,
        progress: ProgressSink | None = None,
        options: SpeechOptions | None = None,
        position: PlaybackPosition | None = None,
        dispatch: Dispatch | None = None,
        on_change: Callable[[PlaybackSnapshot], None] | None = None,
        on_error: Callable[[PlaybackError], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if not chapters:
            raise ValueError("A book needs at least one chapter to play.")
        self.book_id = book_id
        self.chapters = tuple(chapters)
        self.engine = engine
        self.splitter = splitter or NewlineLineSplitter()
        self.progress = progress
        self.options = _validate_options(options or SpeechOptions())
        self.logger = logger or _LOGGER
        self.last_error: PlaybackError | None = None
        self._dispatch = dispatch or SerialDispatch()
        self._on_change = on_change
        self._on_error = on_error
        self._state = PlaybackState.IDLE
        self._generation = 0
        self._closed = False

        start = position or PlaybackPosition()
        chapter_index = _clamp(start.chapter_index, 0, len(self.chapters) - 1)
        self._lines = self._split(chapter_index)
        self._position = PlaybackPosition(
            chapter_index=chapter_index,
            line_index=_clamp(start.line_index, 0, max(len(self._lines) - 1, 0)),
        )

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def position(self) -> PlaybackPosition:
        return self._position

    @property
    def lines(self) -> tuple[str, ...]:
        return self._lines

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def current_chapter(self) -> Chapter:
        return self.chapters[self._position.chapter_index]

    def snapshot(self) -> PlaybackSnapshot:
        line_text = self._lines[self._position.line_index] if self._lines else None
        return PlaybackSnapshot(
            state=self._state,
            position=self._position,
            chapter_title=self.current_chapter.title,
            line_text=line_text,
            line_count=len(self._lines),
            chapter_count=len(self.chapters),
        )

    # Commands

    def play(self) -> bool:
        """Start speaking from the current position.

        Returns ``False`` when already speaking or when nothing is left to
        read from the current chapter onward.
        """
        self._ensure_open()
        if self._state is PlaybackState.SPEAKING:
            self.logger.debug("Play ignored for %s; already speaking.", self.book_id)
            return False

        generation = self._mint_generation()
        self.engine.stop()
        self.last_error = None

        if not self._lines and not self._roll_forward(self._position.chapter_index):
            self.logger.info("Nothing left to read in %s.", self.book_id)
            self._state = PlaybackState.IDLE
            self._notify()
            return False

        self._state = PlaybackState.SPEAKING
        self.logger.info(
            "Playing %s from chapter %d line %d",
            self.book_id,
            self._position.chapter_index,
            self._position.line_index,
        )
        self._notify()
        self._speak_current(generation)
        return True

    def stop(self) -> None:
        self._ensure_open()
        self._halt()
        self._persist()
        self._notify()

    def toggle(self) -> bool:
        """Pause while speaking, otherwise play. Returns whether speech started."""
        if self._state is PlaybackState.SPEAKING:
            self.stop()
            return False
        return self.play()

    def seek(self, position: PlaybackPosition) -> PlaybackPosition:
        self._ensure_open()
        self._halt()
        chapter_index = _clamp(position.chapter_index, 0, len(self.chapters) - 1)
        if chapter_index != self._position.chapter_index:
            self._lines = self._split(chapter_index)
        line_index = _clamp(position.line_index, 0, max(len(self._lines) - 1, 0))
        self._position = PlaybackPosition(chapter_index=chapter_index, line_index=line_index)
        self.logger.debug("Seeked %s to %d:%d", self.book_id, chapter_index, line_index)
        self._persist()
        self._notify()
        return self._position

    def skip_forward(self) -> PlaybackPosition:
        return self._skip(1)

    def skip_backward(self) -> PlaybackPosition:
        return self._skip(-1)

    def next_chapter(self) -> PlaybackPosition:
        return self._jump_chapter(1)

    def previous_chapter(self) -> PlaybackPosition:
        return self._jump_chapter(-1)

    def set_options(self, **changes: object) -> SpeechOptions:
        """Update language, rate or pitch; applies from the next utterance."""
        options = _validate_options(replace(self.options, **changes))
        self.options = options
        self.logger.debug("Speech options for %s: %s", self.book_id, options)
        return options

    def teardown(self) -> None:
        if self._closed:
            return
        if self._state is PlaybackState.SPEAKING:
            self._halt()
        self._persist()
        self._notify()
        self._closed = True
        self.logger.debug("Closed playback for %s", self.book_id)

    # Engine completions

    def _handle_done(self, generation: int) -> None:
        if self._is_stale(generation, "done") or self._state is not PlaybackState.SPEAKING:
            return

        next_line = self._position.line_index + 1
        if next_line < len(self._lines):
            self._position = PlaybackPosition(self._position.chapter_index, next_line)
            self._notify()
            self._speak_current(generation)
            return

        if self._roll_forward(self._position.chapter_index + 1):
            self.logger.info(
                "Chapter finished; continuing with chapter %d (%s)",
                self._position.chapter_index,
                self.current_chapter.title,
            )
            self._persist()
            self._notify()
            self._speak_current(generation)
            return

        self.logger.info("Reached the end of %s", self.book_id)
        self._state = PlaybackState.IDLE
        self._persist()
        self._notify()

    def _handle_stopped(self, generation: int) -> None:
        if self._is_stale(generation, "stopped") or self._state is not PlaybackState.SPEAKING:
            return
        self.logger.warning(
            "Speech engine stopped on its own at %d:%d",
            self._position.chapter_index,
            self._position.line_index,
        )
        self._state = PlaybackState.IDLE
        self._persist()
        self._notify()

    def _handle_error(self, generation: int, cause: BaseException) -> None:
        if self._is_stale(generation, "error") or self._state is not PlaybackState.SPEAKING:
            return
        position = self._position
        error = PlaybackError(
            f"Playback failed at chapter {position.chapter_index} line {position.line_index}: {cause}",
            position=position,
            cause=cause,
        )
        self.logger.error("%s", error)
        self.last_error = error
        self._state = PlaybackState.IDLE
        self._persist()
        self._notify()
        if self._on_error is not None:
            self._on_error(error)

    # Internals

    def _speak_current(self, generation: int) -> None:
        text = self._lines[self._position.line_index]
        callbacks = UtteranceCallbacks(
            on_done=lambda: self._dispatch(partial(self._handle_done, generation)),
            on_stopped=lambda: self._dispatch(partial(self._handle_stopped, generation)),
            on_error=lambda exc: self._dispatch(partial(self._handle_error, generation, exc)),
        )
        self.logger.debug(
            "Speaking %d:%d (generation %d)",
            self._position.chapter_index,
            self._position.line_index,
            generation,
        )
        try:
            self.engine.speak(text, self.options, callbacks)
        except Exception as exc:
            self._handle_error(generation, exc)

    def _halt(self) -> None:
        self._mint_generation()
        self.engine.stop()
        self._state = PlaybackState.STOPPED

    def _skip(self, delta: int) -> PlaybackPosition:
        self._ensure_open()
        self._halt()
        line_index = _clamp(self._position.line_index + delta, 0, max(len(self._lines) - 1, 0))
        self._position = PlaybackPosition(self._position.chapter_index, line_index)
        self._persist()
        self._notify()
        return self._position

    def _jump_chapter(self, delta: int) -> PlaybackPosition:
        target = _clamp(self._position.chapter_index + delta, 0, len(self.chapters) - 1)
        if target == self._position.chapter_index:
            self.stop()
            return self._position
        return self.seek(PlaybackPosition(chapter_index=target, line_index=0))

    def _roll_forward(self, start: int) -> bool:
        for chapter_index in range(start, len(self.chapters)):
            lines = self._split(chapter_index)
            if lines:
                self._lines = lines
                self._position = PlaybackPosition(chapter_index=chapter_index, line_index=0)
                return True
            self.logger.debug("Skipping chapter %d with no readable lines", chapter_index)
        return False

    def _split(self, chapter_index: int) -> tuple[str, ...]:
        return tuple(self.splitter.split(self.chapters[chapter_index].content))

    def _mint_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_stale(self, generation: int, kind: str) -> bool:
        if self._closed or generation != self._generation:
            self.logger.debug(
                "Discarding %s callback from generation %d (current %d)",
                kind,
                generation,
                self._generation,
            )
            return True
        return False

    def _persist(self) -> None:
        if self.progress is not None:
            self.progress.persist(self.book_id, self._position)

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.snapshot())

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"Playback for {self.book_id} has been torn down.")


def _validate_options(options: SpeechOptions) -> SpeechOptions:
    if options.rate <= 0:
        raise ValueError(f"rate must be positive, got {options.rate}")
    if options.pitch <= 0:
        raise ValueError(f"pitch must be positive, got {options.pitch}")
    return options


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))
