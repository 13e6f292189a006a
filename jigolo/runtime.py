"""Interactive event loop for the terminal UI.

Builds the session from discovered roots, then repeats render, read one
key, apply it, until the session requests quit. Rendering and key handling
live elsewhere; this module only wires them to the terminal.
"""

from __future__ import annotations

import logging
import shutil
import sys
from collections.abc import Callable, Sequence
from functools import partial
from pathlib import Path

from .config import load_style
from .discovery import SourceRoot
from .highlight import colorize
from .input import read_key
from .library import SnippetStore
from .render import compute_layout, frame_to_bytes, render_frame
from .session import Session
from .settings import settings_lines
from .state import SessionState
from .terminal import TerminalController
from .tree import compute_left_width

logger = logging.getLogger(__name__)


def build_session(
    roots: Sequence[SourceRoot],
    store: SnippetStore,
    *,
    project: Path,
    style: str | None = None,
    no_color: bool = False,
) -> Session:
    """Create a started ``Session`` over ``roots`` backed by ``store``."""
    colorizer: Callable[[str, Path], str | None] | None = None
    if not no_color:
        colorizer = partial(colorize, style=style or load_style())
    session = Session(
        SessionState(roots=list(roots)),
        store,
        colorize=colorizer,
        load_settings=partial(settings_lines, project),
    )
    session.start()
    return session


def run_session(session: Session, terminal: TerminalController, stdin_fd: int) -> None:
    """Run the render/read/apply loop until the session quits."""
    state = session.state
    with terminal.raw_mode():
        while not state.quit:
            term = shutil.get_terminal_size((80, 24))
            layout = compute_layout(term.columns, term.lines, compute_left_width(term.columns))
            session.sync_viewport(
                content_rows=layout.pane_rows,
                tree_rows=layout.pane_rows,
                library_rows=layout.library_list_rows,
            )
            rows = render_frame(state, layout.width, layout.height, layout.left_width, session.store.snippets)
            terminal.write(frame_to_bytes(rows))
            key = read_key(stdin_fd)
            if not key:
                # EOF on stdin; nothing more can arrive.
                logger.debug("stdin closed, leaving")
                break
            session.handle_key(key)


def run_interactive(
    roots: Sequence[SourceRoot],
    store: SnippetStore,
    *,
    project: Path,
    style: str | None = None,
    no_color: bool = False,
) -> None:
    session = build_session(roots, store, project=project, style=style, no_color=no_color)
    terminal = TerminalController(sys.stdin.fileno(), sys.stdout.fileno())
    run_session(session, terminal, sys.stdin.fileno())
