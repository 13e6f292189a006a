"""Pygments colouring for the content pane.

Output keeps one styled line per source line so cursor and selection rows
map directly onto the plain text used for snippet capture.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pygments import highlight
from pygments.formatters import TerminalFormatter
from pygments.lexers import TextLexer, get_lexer_for_filename
from pygments.util import ClassNotFound

from .config import DEFAULT_STYLE

logger = logging.getLogger(__name__)

_FORMATTERS: dict[str, TerminalFormatter] = {}


def _formatter_for_style(style: str) -> TerminalFormatter:
    """Return cached terminal formatter, falling back to the default style."""
    formatter = _FORMATTERS.get(style)
    if formatter is not None:
        return formatter
    try:
        formatter = TerminalFormatter(style=style)
    except ClassNotFound:
        logger.debug("unknown pygments style %r, using %s", style, DEFAULT_STYLE)
        formatter = TerminalFormatter(style=DEFAULT_STYLE)
    _FORMATTERS[style] = formatter
    return formatter


def colorize(source: str, path: Path, style: str = DEFAULT_STYLE) -> str | None:
    """Return ANSI-coloured ``source`` or ``None`` when highlighting fails."""
    try:
        lexer = get_lexer_for_filename(path.name, source, stripnl=False, ensurenl=False)
    except ClassNotFound:
        lexer = TextLexer(stripnl=False, ensurenl=False)
    try:
        return highlight(source, lexer, _formatter_for_style(style))
    except Exception as exc:
        logger.debug("highlighting %s failed: %s", path, exc)
        return None
