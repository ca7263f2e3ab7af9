"""Main CLI entrypoint for readaloud."""

import sys
from typing import Sequence

from .commands import (
    run_chapters_cmd,
    run_doctor_cmd,
    run_import_cmd,
    run_init_cmd,
    run_list_cmd,
    run_read_cmd,
    run_remove_cmd,
)
from .parsers import (
    build_chapters_parser,
    build_doctor_parser,
    build_import_parser,
    build_init_parser,
    build_list_parser,
    build_main_parser,
    build_read_parser,
    build_remove_parser,
)

_COMMANDS = {
    "init": (build_init_parser, run_init_cmd),
    "import": (build_import_parser, run_import_cmd),
    "list": (build_list_parser, run_list_cmd),
    "chapters": (build_chapters_parser, run_chapters_cmd),
    "remove": (build_remove_parser, run_remove_cmd),
    "read": (build_read_parser, run_read_cmd),
    "doctor": (build_doctor_parser, run_doctor_cmd),
}


def main(argv: Sequence[str] | None = None) -> int:
    """Main entrypoint for the readaloud CLI.

    Routes to a subcommand based on the first argument. With no arguments
    the library is listed.
    """
    argv = list(argv) if argv is not None else sys.argv[1:]

    if not argv:
        args = build_list_parser().parse_args([])
        return run_list_cmd(args)

    command = _COMMANDS.get(argv[0])
    if command is None:
        build_main_parser().parse_args(argv)
        return 2

    build_parser, run = command
    args = build_parser().parse_args(argv[1:])
    return run(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
