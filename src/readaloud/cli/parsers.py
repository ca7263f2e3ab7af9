"""Argument parser builders for readaloud CLI."""

import argparse
from pathlib import Path

from .. import __version__

COMMAND_NAMES = ("init", "import", "list", "chapters", "remove", "read", "doctor")


def build_main_parser() -> argparse.ArgumentParser:
    """Build the top-level parser used for help, version, and unknown commands."""
    parser = argparse.ArgumentParser(
        prog="readaloud",
        description="Read plain-text books aloud, chapter by chapter",
    )
    parser.add_argument("command", choices=COMMAND_NAMES, help="Command to run")
    parser.add_argument("--version", action="version", version=f"readaloud {__version__}")
    return parser


def build_init_parser() -> argparse.ArgumentParser:
    """Build argument parser for the init command."""
    parser = argparse.ArgumentParser(
        prog="readaloud init",
        description="Initialize readaloud folders and config.toml",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite existing config.toml if it exists",
    )
    parser.add_argument(
        "--no-config",
        action="store_true",
        help="Skip creating config.toml file",
    )
    return parser


def build_import_parser() -> argparse.ArgumentParser:
    """Build argument parser for the import command."""
    parser = argparse.ArgumentParser(
        prog="readaloud import",
        description="Import a plain-text book into the library",
    )
    parser.add_argument("path", type=Path, help="Text file to import")
    parser.add_argument("--title", type=str, help="Book title (defaults to the file name)")
    _add_common_arguments(parser)
    return parser


def build_list_parser() -> argparse.ArgumentParser:
    """Build argument parser for the list command."""
    parser = argparse.ArgumentParser(
        prog="readaloud list",
        description="List books in the library",
    )
    _add_common_arguments(parser)
    return parser


def build_chapters_parser() -> argparse.ArgumentParser:
    """Build argument parser for the chapters command."""
    parser = argparse.ArgumentParser(
        prog="readaloud chapters",
        description="List the chapters of a book",
    )
    parser.add_argument("book", type=str, help="Book id, list number, or title")
    _add_common_arguments(parser)
    return parser


def build_remove_parser() -> argparse.ArgumentParser:
    """Build argument parser for the remove command."""
    parser = argparse.ArgumentParser(
        prog="readaloud remove",
        description="Remove a book from the library",
    )
    parser.add_argument("book", type=str, help="Book id, list number, or title")
    _add_common_arguments(parser)
    return parser


def build_read_parser() -> argparse.ArgumentParser:
    """Build argument parser for the read command."""
    parser = argparse.ArgumentParser(
        prog="readaloud read",
        description="Read a book aloud interactively",
    )
    parser.add_argument("book", type=str, help="Book id, list number, or title")
    parser.add_argument(
        "--chapter",
        type=int,
        help="Start at this chapter (1-based) instead of the saved position",
    )
    parser.add_argument(
        "--line",
        type=int,
        help="Start line (1-based) within --chapter, or within the saved chapter",
    )
    parser.add_argument("--rate", type=float, help="Speech rate, e.g. 0.8, 1.0, 1.5")
    parser.add_argument(
        "--autoplay",
        action="store_true",
        help="Start speaking immediately",
    )
    _add_common_arguments(parser)
    return parser


def build_doctor_parser() -> argparse.ArgumentParser:
    """Build argument parser for the doctor command."""
    parser = argparse.ArgumentParser(
        prog="readaloud doctor",
        description="Check speech backend and audio output readiness",
    )
    parser.add_argument(
        "--smoke-test",
        action="store_true",
        help="Speak a short test line through the configured engine",
    )
    parser.add_argument(
        "--text",
        type=str,
        default="你好，世界。",
        help="Text to speak for the smoke test",
    )
    _add_common_arguments(parser)
    return parser


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config.toml (optional)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Override log level (e.g. INFO, DEBUG)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show debug output on the console",
    )
