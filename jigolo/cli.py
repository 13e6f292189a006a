"""Command-line front door for jigolo.

Parses CLI options, discovers context files under the requested roots, and
either prints them (``--list``, or when stdin is not a terminal) or launches
the interactive browser.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from . import __version__
from .config import library_path, load_extra_skip_dirs, load_max_depth
from .discovery import (
    CONTEXT_FILE_NAME,
    SKIP_DIRS,
    SourceRoot,
    discover,
    find_global_claude_file,
    with_global_root,
)
from .library import SnippetStore
from .runtime import run_interactive

LOG_FORMAT = "%(levelname)s: %(message)s"


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def configure_logging(verbose: bool = False) -> None:
    """Send ``jigolo.*`` log records to stderr; ``verbose`` enables debug output."""
    package_logger = logging.getLogger("jigolo")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    package_logger.propagate = False


def format_list(roots: Sequence[SourceRoot]) -> str:
    """Return the ``--list`` report for ``roots``."""
    total = sum(root.file_count for root in roots)
    if total == 0:
        return f"No {CONTEXT_FILE_NAME} files found.\n"
    parts: list[str] = []
    for root in roots:
        parts.append("\n")
        parts.append(root.describe())
    file_label = "file" if total == 1 else "files"
    dir_label = "directory" if len(roots) == 1 else "directories"
    parts.append(f"Found {total} {CONTEXT_FILE_NAME} {file_label} in {len(roots)} {dir_label}.\n")
    return "".join(parts)


def _stdin_is_terminal() -> bool:
    try:
        return os.isatty(sys.stdin.fileno())
    except (AttributeError, ValueError, OSError):
        return False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jigolo",
        description=f"Browse {CONTEXT_FILE_NAME} files across directory trees and collect reusable snippets.",
    )
    parser.add_argument(
        "paths",
        nargs="*",
        type=Path,
        default=[Path(".")],
        help="Directories to scan. Defaults to the current directory.",
    )
    parser.add_argument("--list", action="store_true", help="Print discovered files and exit.")
    parser.add_argument("--no-color", action="store_true", help="Disable syntax colouring.")
    parser.add_argument(
        "--max-depth",
        type=_positive_int,
        default=None,
        help="Maximum directory depth to descend (default: config value or 100).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug details to stderr.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Parse CLI arguments, discover context files, and list or browse them.

    Exits with status 1 when every supplied path failed to resolve.
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    paths: list[Path] = args.paths or [Path(".")]
    noun = "directory" if len(paths) == 1 else "directories"
    sys.stderr.write(f"Scanning {len(paths)} {noun}...\n")

    max_depth = args.max_depth if args.max_depth is not None else load_max_depth()
    result = discover(paths, max_depth=max_depth, skip_dirs=SKIP_DIRS | load_extra_skip_dirs())
    if result.all_failed:
        raise SystemExit(1)

    roots = with_global_root(result.roots, find_global_claude_file())

    if args.list or not _stdin_is_terminal():
        sys.stdout.write(format_list(roots))
        return

    project = result.roots[0].path if result.roots else Path.cwd()
    run_interactive(
        roots,
        SnippetStore(library_path()),
        project=project,
        no_color=args.no_color,
    )


if __name__ == "__main__":
    main()
