"""Command runners for readaloud CLI."""

import argparse
from dataclasses import replace
from pathlib import Path
import sys

from ..book_store import BookStoreError, JsonBookStore
from ..chapter_segmenter import HeuristicChapterSegmenter
from ..config import Config, LoggingConfig, load_config, write_default_config
from ..content_source import ContentError, FileContentSource
from ..doctor import DoctorOptions, run_doctor
from ..interfaces import BookRecord, PlaybackPosition, SpeechOptions
from ..library import Library
from ..logging_setup import LoggingContext, initialize_logging
from ..progress import ProgressTracker
from ..session import ReadingSession
from ..speech_engine import SpeechError, build_speech_engine
from ..utils import ensure_dir, generate_run_id
from .controls import start_input_thread
from .progress import ReaderDisplay
from .rendering import render_book_list, render_chapters


def run_init_cmd(args: argparse.Namespace) -> int:
    """Initialize readaloud folders and config.toml."""
    cwd = Path.cwd()

    folders = {
        "library": cwd / "library",
        "logs": cwd / "logs",
        "cache": cwd / "cache",
    }

    created_folders = []
    for name, path in folders.items():
        if not path.exists():
            path.mkdir(parents=True, exist_ok=True)
            created_folders.append(name)
        else:
            print(f"  {name}/ already exists")

    for name in created_folders:
        print(f"  Created {name}/")

    config_path = cwd / "config.toml"
    if args.no_config:
        print("  Skipping config.toml creation (--no-config)")
    elif config_path.exists() and not args.force:
        print("  config.toml already exists (use --force to overwrite)")
    else:
        existed = config_path.exists()
        write_default_config(config_path)
        print("  Overwrote config.toml" if existed else "  Created config.toml")

    print("\nReady. Import a book with `readaloud import FILE`.")
    return 0


def run_import_cmd(args: argparse.Namespace) -> int:
    """Import a text file into the library."""
    config = _load(args)
    if config is None:
        return 2
    log_ctx = initialize_logging(config, generate_run_id())

    library = build_library(config, log_ctx)
    try:
        book = library.import_file(args.path, title=args.title)
    except (ContentError, BookStoreError) as exc:
        log_ctx.logger.error("Import of %s failed: %s", args.path, exc)
        print(f"Failed: {exc}")
        return 1

    print(f"Imported: {book.title} ({len(book.chapters)} chapter(s)) [{book.id}]")
    return 0


def run_list_cmd(args: argparse.Namespace) -> int:
    """List the books in the library."""
    config = _load(args)
    if config is None:
        return 2
    log_ctx = initialize_logging(config, generate_run_id())

    try:
        books = build_library(config, log_ctx).list_books()
    except BookStoreError as exc:
        print(f"Failed: {exc}")
        return 1
    print(render_book_list(books))
    return 0


def run_chapters_cmd(args: argparse.Namespace) -> int:
    """Print the chapter list of a book."""
    config = _load(args)
    if config is None:
        return 2
    log_ctx = initialize_logging(config, generate_run_id())

    try:
        book = build_library(config, log_ctx).resolve(args.book)
    except BookStoreError as exc:
        print(f"Failed: {exc}")
        return 1
    print(render_chapters(book))
    return 0


def run_remove_cmd(args: argparse.Namespace) -> int:
    """Remove a book from the library."""
    config = _load(args)
    if config is None:
        return 2
    log_ctx = initialize_logging(config, generate_run_id())

    library = build_library(config, log_ctx)
    try:
        book = library.resolve(args.book)
        library.remove_book(book.id)
    except BookStoreError as exc:
        print(f"Failed: {exc}")
        return 1
    print(f"Removed: {book.title}")
    return 0


def run_read_cmd(args: argparse.Namespace) -> int:
    """Open a book and read it aloud until the user quits."""
    config = _load(args)
    if config is None:
        return 2
    log_ctx = initialize_logging(config, generate_run_id())

    library = build_library(config, log_ctx)
    try:
        book = library.resolve(args.book)
    except BookStoreError as exc:
        print(f"Failed: {exc}")
        return 1

    try:
        engine = build_speech_engine(config)
    except SpeechError as exc:
        print(f"Failed: {exc}")
        return 1

    book_logger = log_ctx.session_logger(book.id)
    position = start_position(book, args.chapter, args.line)

    options = SpeechOptions(
        language=config.speech.language,
        rate=args.rate if args.rate is not None else config.speech.rate,
        pitch=config.speech.pitch,
    )
    display = ReaderDisplay()
    session = ReadingSession(
        book,
        engine,
        ProgressTracker(library.store, logger=book_logger),
        options=options,
        position=position,
        on_change=display.show,
        on_error=display.show_error,
        logger=book_logger,
    )

    try:
        session.open()
    except ValueError as exc:
        log_ctx.close_session(book.id)
        print(f"Failed: {exc}")
        return 1

    display.print(f"Reading: {book.title}")
    display.show_help()
    display.show(session.controller.snapshot())
    start_input_thread(
        session,
        sys.stdin,
        on_help=display.show_help,
        on_unknown=lambda text: display.print(f"Unknown command: {text} (h for help)"),
    )
    if args.autoplay:
        session.submit("play")

    try:
        session.run_until_quit()
    except KeyboardInterrupt:
        session.close()
        display.print("")
    finally:
        log_ctx.close_session(book.id)

    final = session.controller.position
    display.print(f"Saved position: chapter {final.chapter_index + 1}, line {final.line_index + 1}")
    return 0


def run_doctor_cmd(args: argparse.Namespace) -> int:
    """Run the doctor command."""
    config = _load(args)
    if config is None:
        return 2
    initialize_logging(config, generate_run_id())
    return run_doctor(config, DoctorOptions(smoke_test=args.smoke_test, text=args.text))


def start_position(book: BookRecord, chapter: int | None, line: int | None) -> PlaybackPosition:
    """Resolve 1-based --chapter/--line against the saved position.

    --line alone moves within the saved chapter; --chapter alone starts at
    its first line.
    """
    if chapter is None and line is None:
        return book.position
    return PlaybackPosition(
        chapter_index=chapter - 1 if chapter is not None else book.position.chapter_index,
        line_index=line - 1 if line is not None else 0,
    )


def build_library(config: Config, log_ctx: LoggingContext) -> Library:
    store = JsonBookStore(ensure_dir(config.paths.library))
    return Library(
        store,
        source=FileContentSource(encodings=config.content.encodings, min_chars=config.content.min_chars),
        segmenter=HeuristicChapterSegmenter(
            main_text_title=config.segmenter.main_text_title,
            prologue_title=config.segmenter.prologue_title,
        ),
        logger=log_ctx.logger,
    )


def override_log_level(config: Config, level: str) -> Config:
    """Override the logging configuration with a new log level."""
    logging_cfg = LoggingConfig(level=level.upper(), console_level=level.upper())
    return replace(config, logging=logging_cfg)


def override_console_level(config: Config, level: str) -> Config:
    """Override only the console log level (file level remains unchanged)."""
    logging_cfg = LoggingConfig(
        level=config.logging.level,
        console_level=level.upper(),
    )
    return replace(config, logging=logging_cfg)


def _load(args: argparse.Namespace) -> Config | None:
    try:
        config = load_config(getattr(args, "config", None), cwd=Path.cwd())
    except (FileNotFoundError, RuntimeError) as exc:
        print(str(exc))
        return None

    # --verbose only raises console output; --log-level sets both
    if getattr(args, "verbose", False):
        config = override_console_level(config, "DEBUG")
    elif getattr(args, "log_level", None):
        config = override_log_level(config, args.log_level)
    return config
