"""
Command-line interface of the synchronization engine.

Available commands:
- run: synchronize one schema version into PostgreSQL
- report: re-render a saved result
"""

import sys

from .commands import cmd_report, cmd_run, dispatch, emit_result
from .credentials import configure_logging, resolve_connection_target
from .parser import create_parser


def main(argv: list[str] | None = None) -> None:
    """Entry point of the ``sheet-sync`` console script."""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging(args)

    if args.command is None:
        parser.print_help()
        sys.exit(2)

    sys.exit(dispatch(args))


__all__ = [
    "main",
    "cmd_run",
    "cmd_report",
    "configure_logging",
    "create_parser",
    "emit_result",
    "resolve_connection_target",
]


if __name__ == "__main__":
    main()
