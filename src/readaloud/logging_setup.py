"""Logging for CLI runs and reading sessions.

Every run writes ``<logs>/run-<run_id>.log`` through the ``readaloud``
logger. A reading session also gets ``<logs>/books/<book>/<run_id>.log`` so
the playback history of one book can be followed across runs; session
records still reach the run log and the console through propagation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path

from .config import Config
from .utils import ensure_dir, slugify

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class LoggingContext:
    logs_dir: Path
    run_id: str
    level: int
    console_level: int
    logger: logging.Logger
    formatter: logging.Formatter

    _session_handlers: dict[str, logging.Handler] = field(default_factory=dict, init=False, repr=False)

    @property
    def run_log_path(self) -> Path:
        return self.logs_dir / f"run-{self.run_id}.log"

    def session_log_path(self, book_id: str) -> Path:
        return self.logs_dir / "books" / slugify(book_id) / f"{self.run_id}.log"

    def session_logger(self, book_id: str) -> logging.Logger:
        key = slugify(book_id)
        logger = self.logger.getChild(f"session.{key}")
        if key not in self._session_handlers:
            path = self.session_log_path(book_id)
            ensure_dir(path.parent)
            handler = logging.FileHandler(path, encoding="utf-8")
            handler.setLevel(self.level)
            handler.setFormatter(self.formatter)
            logger.addHandler(handler)
            self._session_handlers[key] = handler
        return logger

    def close_session(self, book_id: str) -> None:
        key = slugify(book_id)
        handler = self._session_handlers.pop(key, None)
        if handler is None:
            return
        self.logger.getChild(f"session.{key}").removeHandler(handler)
        handler.close()


def initialize_logging(config: Config, run_id: str) -> LoggingContext:
    logs_dir = ensure_dir(config.paths.logs)
    level = _parse_log_level(config.logging.level)
    console_level = _parse_log_level(config.logging.console_level)

    logger = logging.getLogger("readaloud")
    logger.setLevel(min(level, console_level))
    logger.propagate = False
    # Re-initializing in one process (tests, repeated commands) must not leak file handles.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    context = LoggingContext(
        logs_dir=logs_dir,
        run_id=run_id,
        level=level,
        console_level=console_level,
        logger=logger,
        formatter=formatter,
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    file_handler = logging.FileHandler(context.run_log_path, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)
    return context


def _parse_log_level(level: str) -> int:
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO
