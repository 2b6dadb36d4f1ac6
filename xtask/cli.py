"""
Command-line entry point.

Usage:
    xtask clang format [-- ARGS]      # Run run-clang-format.py
    xtask clang tidy [-- ARGS]        # Run run-clang-tidy
    xtask clippy [-- ARGS]            # cargo clippy on the nightly channel
    xtask doc [-- ARGS]               # cargo doc on the nightly channel
    xtask udeps [-- ARGS]             # cargo udeps on the nightly channel
    xtask tools [TOOL ...] [--fetch]  # Report which tools validate

Arguments after ``--`` are passed through to the underlying tool.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from . import commands
from .config import load_config, validate_config
from .errors import ValidationError
from .logging_config import log_failure, setup_logging

logger = logging.getLogger(__name__)


def split_tool_args(argv: Sequence[str]) -> tuple[list[str], list[str]]:
    """Split argv at the first ``--`` into (own args, pass-through args)."""
    argv = list(argv)
    if "--" in argv:
        index = argv.index("--")
        return argv[:index], argv[index + 1:]
    return argv, []


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xtask",
        description="Project task runner with tool validation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Arguments after `--` are passed to the underlying tool.",
    )
    parser.add_argument(
        "--config",
        help="Path to an xtask configuration file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output, including rejected tool candidates",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log warnings and errors",
    )
    parser.add_argument(
        "--log-file",
        help="Also write a debug log to this file",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    clang = subparsers.add_parser("clang", help="Run clang tooling on the project's C++ code")
    clang.add_argument(
        "subcommand",
        choices=("format", "tidy"),
        help="format: run-clang-format.py; tidy: run-clang-tidy",
    )

    subparsers.add_parser("clippy", help="Run cargo clippy with warnings denied")
    subparsers.add_parser("doc", help="Build documentation with rustdoc")
    subparsers.add_parser("udeps", help="Check for unused dependencies")

    tools = subparsers.add_parser("tools", help="Validate tools and report the result")
    tools.add_argument("names", nargs="*", help="Tools to validate (default: all known)")
    tools.add_argument("--json", action="store_true", help="Emit JSON instead of a table")
    tools.add_argument(
        "--fetch",
        action="store_true",
        help="Download missing helper scripts instead of reporting them",
    )

    return parser


def dispatch(args: argparse.Namespace, tool_args: list[str]) -> int:
    config = load_config(args.config)
    for warning in validate_config(config):
        logger.warning(warning)

    if args.command == "clang":
        if args.subcommand == "format":
            return commands.clang_format(config, tool_args)
        return commands.clang_tidy(config, tool_args)
    if args.command == "clippy":
        return commands.clippy(config, tool_args)
    if args.command == "doc":
        return commands.doc(config, tool_args)
    if args.command == "udeps":
        return commands.udeps(config, tool_args)
    return commands.tools_report(
        config, args.names, as_json=args.json, fetch_missing=args.fetch
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the task runner."""
    own_args, tool_args = split_tool_args(sys.argv[1:] if argv is None else argv)
    args = build_parser().parse_args(own_args)

    setup_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)

    try:
        return dispatch(args, tool_args)
    except ValidationError as e:
        log_failure(logger, e)
        return 1
    except ValueError as e:
        logger.error("configuration error: %s", e)
        return 1


def run() -> None:
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
