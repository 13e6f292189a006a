"""Pure frame projection of the session state.

``render_frame`` reads ``SessionState`` and returns exactly ``height``
ANSI-styled rows, each exactly ``width`` columns wide. It never mutates the
state; ``frame_to_bytes`` turns the rows into one terminal write.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .ansi import fit_ansi_line, strip_ansi, styled
from .library import Snippet
from .state import (
    PANE_CONTENT,
    PANE_TREE,
    SCREEN_SETTINGS,
    LibraryBrowseMode,
    RenameInputMode,
    SessionState,
    TitleInputMode,
    VisualSelectMode,
)
from .tree import clamp_left_width, format_tree_entry

HEADER_STYLE = "1;38;5;81"
DIM_STYLE = "2;38;5;250"
KEY_STYLE = "38;5;229"
STATUS_STYLE = "38;5;114"
ERROR_STYLE = "1;38;5;203"
CURSOR_STYLE = "4"
SELECTED_STYLE = "7"
GUTTER_WIDTH = 5

HELP_TREE: tuple[tuple[str, str], ...] = (
    ("j/k", "move"),
    ("Enter", "open/toggle"),
    ("h/l", "collapse/expand"),
    ("Tab", "content"),
    ("L", "library"),
    ("S", "settings"),
    ("q", "quit"),
)
HELP_CONTENT: tuple[tuple[str, str], ...] = (
    ("j/k", "move"),
    ("f/b", "page"),
    ("g/G", "top/bottom"),
    ("v", "select"),
    ("Tab", "tree"),
    ("L", "library"),
    ("S", "settings"),
    ("q", "quit"),
)
HELP_VISUAL: tuple[tuple[str, str], ...] = (
    ("j/k", "extend"),
    ("f/b", "page"),
    ("s", "save snippet"),
    ("Esc", "cancel"),
)
HELP_TITLE: tuple[tuple[str, str], ...] = (
    ("Enter", "save"),
    ("#tag", "add tag"),
    ("Ctrl+U", "clear"),
    ("Esc", "cancel"),
)
HELP_LIBRARY: tuple[tuple[str, str], ...] = (
    ("j/k", "move"),
    ("r", "rename"),
    ("d", "delete"),
    ("Esc/q", "back"),
)
HELP_RENAME: tuple[tuple[str, str], ...] = (
    ("Enter", "rename"),
    ("Ctrl+U", "clear"),
    ("Esc", "cancel"),
)
HELP_SETTINGS: tuple[tuple[str, str], ...] = (
    ("j/k", "scroll"),
    ("f/b", "page"),
    ("Esc/S", "back"),
    ("q", "quit"),
)
HELP_ERROR: tuple[tuple[str, str], ...] = (
    ("any key", "dismiss"),
    ("Ctrl+C", "quit"),
)


@dataclass(frozen=True)
class Layout:
    """Row/column budget for one frame.

    ``pane_rows`` is the number of list rows below each pane's title row.
    """

    width: int
    height: int
    left_width: int
    right_width: int
    body_rows: int

    @property
    def pane_rows(self) -> int:
        return max(1, self.body_rows - 1)

    @property
    def library_list_rows(self) -> int:
        return max(1, self.pane_rows // 2)

    @property
    def library_preview_rows(self) -> int:
        return max(0, self.pane_rows - self.library_list_rows - 1)


def compute_layout(width: int, height: int, left_width: int) -> Layout:
    """Split the terminal into title row, body, input/status row and help bar."""
    width = max(1, width)
    height = max(1, height)
    left = clamp_left_width(width, left_width)
    right = max(1, width - left - 1)
    body_rows = max(0, height - 3)
    return Layout(width=width, height=height, left_width=left, right_width=right, body_rows=body_rows)


def build_status_line(left_text: str, width: int, right_text: str = "") -> str:
    """Left-align ``left_text`` and right-align ``right_text`` in ``width`` columns."""
    if width <= len(right_text):
        return right_text[-width:] if width > 0 else ""
    left_limit = max(0, width - len(right_text) - 1)
    left = left_text[:left_limit]
    gap = " " * (width - len(left) - len(right_text))
    return f"{left}{gap}{right_text}"


def help_items(state: SessionState) -> tuple[tuple[str, str], ...]:
    """Return the ``(key, action)`` pairs valid in the current mode."""
    if state.error_message:
        return HELP_ERROR
    if state.screen == SCREEN_SETTINGS:
        return HELP_SETTINGS
    mode = state.mode
    if isinstance(mode, VisualSelectMode):
        return HELP_VISUAL
    if isinstance(mode, TitleInputMode):
        return HELP_TITLE
    if isinstance(mode, LibraryBrowseMode):
        return HELP_LIBRARY
    if isinstance(mode, RenameInputMode):
        return HELP_RENAME
    return HELP_TREE if state.pane == PANE_TREE else HELP_CONTENT


def _help_bar(state: SessionState, width: int) -> str:
    text = "  ".join(f"{key} {action}" for key, action in help_items(state))
    return styled(build_status_line(f" {text}", width), SELECTED_STYLE) if width > 0 else ""


def _mode_label(state: SessionState) -> str:
    if state.error_message:
        return "ERROR"
    if state.screen == SCREEN_SETTINGS:
        return "SETTINGS"
    mode = state.mode
    if isinstance(mode, VisualSelectMode):
        return "VISUAL"
    if isinstance(mode, TitleInputMode):
        return "SAVE"
    if isinstance(mode, (LibraryBrowseMode, RenameInputMode)):
        return "LIBRARY"
    return "NORMAL"


def _title_bar(state: SessionState, width: int) -> str:
    total = sum(root.file_count for root in state.roots)
    file_label = "file" if total == 1 else "files"
    root_label = "root" if len(state.roots) == 1 else "roots"
    left = f" jigolo · {total} {file_label} in {len(state.roots)} {root_label}"
    line = build_status_line(left, width, f"[{_mode_label(state)}] ")
    return fit_ansi_line(styled(line, HEADER_STYLE), width)


def _input_row(state: SessionState, width: int) -> str:
    buffer = state.text_input
    if buffer is not None:
        prompt = "Rename: " if isinstance(state.mode, RenameInputMode) else "Title: "
        before = buffer.text[: buffer.cursor]
        at = buffer.text[buffer.cursor : buffer.cursor + 1] or " "
        after = buffer.text[buffer.cursor + 1 :]
        line = f"{styled(prompt, HEADER_STYLE)}{before}{styled(at, SELECTED_STYLE)}{after}"
        if state.status_message:
            line += "  " + styled(state.status_message, ERROR_STYLE)
        return fit_ansi_line(line, width)
    if state.status_message:
        return fit_ansi_line(styled(f" {state.status_message}", STATUS_STYLE), width)
    return " " * width


def _pane_title(text: str, width: int, focused: bool) -> str:
    return fit_ansi_line(styled(text, HEADER_STYLE if focused else DIM_STYLE), width)


def _tree_rows(state: SessionState, layout: Layout) -> list[str]:
    width = layout.left_width
    focused = state.pane == PANE_TREE and not isinstance(state.mode, (VisualSelectMode, TitleInputMode))
    rows = [_pane_title(" Files", width, focused)]
    if not state.tree_entries:
        rows.append(fit_ansi_line(styled(" No CLAUDE.md files found.", DIM_STYLE), width))
    start = state.tree_start
    for idx in range(start, start + layout.pane_rows):
        if len(rows) >= layout.body_rows:
            break
        if idx >= len(state.tree_entries):
            rows.append(" " * width)
            continue
        label = format_tree_entry(state.roots, state.tree_entries[idx], state.collapsed)
        if idx == state.tree_cursor:
            plain = fit_ansi_line(strip_ansi(label), width)
            rows.append(styled(plain, SELECTED_STYLE if focused else CURSOR_STYLE))
        else:
            rows.append(fit_ansi_line(label, width))
    return _pad_rows(rows, layout.body_rows, width)


def _content_title(state: SessionState) -> str:
    selection = state.selection
    if selection is not None and selection.active:
        bounds = selection.range()
        assert bounds is not None
        return f" VISUAL: lines {bounds[0] + 1}-{bounds[1] + 1}"
    content = state.content
    if content.path is None:
        return " No file selected"
    if content.line_count:
        return f" {content.path}  {content.cursor + 1}/{content.line_count}"
    return f" {content.path}"


def _content_rows(state: SessionState, layout: Layout) -> list[str]:
    width = layout.right_width
    content = state.content
    focused = state.pane == PANE_CONTENT or state.selection is not None
    rows = [_pane_title(_content_title(state), width, focused)]
    selection = state.selection
    text_width = max(0, width - GUTTER_WIDTH)
    for idx in range(content.scroll, content.scroll + layout.pane_rows):
        if len(rows) >= layout.body_rows:
            break
        if idx >= content.line_count:
            rows.append(" " * width)
            continue
        gutter = styled(f"{idx + 1:>{GUTTER_WIDTH - 1}} ", DIM_STYLE)
        plain = content.lines[idx]
        if selection is not None and selection.contains(idx):
            body = styled(fit_ansi_line(plain, text_width), SELECTED_STYLE)
        elif focused and idx == content.cursor:
            body = styled(fit_ansi_line(plain, text_width), CURSOR_STYLE)
        else:
            source = content.styled_lines[idx] if content.styled_lines is not None else plain
            body = fit_ansi_line(source, text_width)
        rows.append(fit_ansi_line(gutter + body, width))
    return _pad_rows(rows, layout.body_rows, width)


def _snippet_label(snippet: Snippet) -> str:
    if not snippet.tags:
        return snippet.title
    return f"{snippet.title}  " + " ".join(f"#{tag}" for tag in snippet.tags)


def _library_rows(state: SessionState, snippets: Sequence[Snippet], layout: Layout) -> list[str]:
    width = layout.right_width
    count = len(snippets)
    noun = "snippet" if count == 1 else "snippets"
    rows = [_pane_title(f" Library ({count} {noun})", width, True)]
    if not snippets:
        rows.append(fit_ansi_line(styled(" No snippets yet. Select lines with v, save with s.", DIM_STYLE), width))
        return _pad_rows(rows, layout.body_rows, width)

    start = state.library_start
    for idx in range(start, start + layout.library_list_rows):
        if len(rows) >= layout.body_rows:
            break
        if idx >= count:
            rows.append(" " * width)
            continue
        label = fit_ansi_line(f" {_snippet_label(snippets[idx])}", width)
        rows.append(styled(label, SELECTED_STYLE) if idx == state.library_cursor else label)

    if layout.library_preview_rows and len(rows) < layout.body_rows:
        current = snippets[min(state.library_cursor, count - 1)]
        divider = f"─ {current.source} " if current.source else ""
        rows.append(fit_ansi_line(styled(divider + "─" * width, DIM_STYLE), width))
        for line in current.body.splitlines()[: layout.library_preview_rows]:
            if len(rows) >= layout.body_rows:
                break
            rows.append(fit_ansi_line(f" {line}", width))
    return _pad_rows(rows, layout.body_rows, width)


def _settings_rows(state: SessionState, layout: Layout) -> list[str]:
    width = layout.width
    rows = [_pane_title(" Settings", width, True)]
    visible = state.settings_lines[state.settings_scroll : state.settings_scroll + layout.pane_rows]
    for line in visible:
        if len(rows) >= layout.body_rows:
            break
        rows.append(fit_ansi_line(f" {line}", width))
    return _pad_rows(rows, layout.body_rows, width)


def _error_rows(state: SessionState, layout: Layout) -> list[str]:
    width = layout.width
    rows = [fit_ansi_line(styled(" Error", ERROR_STYLE), width), " " * width]
    for line in state.error_message.splitlines():
        rows.append(fit_ansi_line(f" {line}", width))
    rows.append(" " * width)
    rows.append(fit_ansi_line(styled(" Press any key to continue.", DIM_STYLE), width))
    return _pad_rows(rows[: layout.body_rows], layout.body_rows, width)


def _pad_rows(rows: list[str], count: int, width: int) -> list[str]:
    rows = rows[:count]
    rows.extend(" " * width for _ in range(count - len(rows)))
    return rows


def render_frame(
    state: SessionState,
    width: int,
    height: int,
    left_width: int,
    snippets: Sequence[Snippet] = (),
) -> list[str]:
    """Project ``state`` onto a ``width`` x ``height`` grid of styled rows."""
    layout = compute_layout(width, height, left_width)
    if layout.height < 3:
        return [fit_ansi_line("", layout.width) for _ in range(layout.height)]

    rows = [_title_bar(state, layout.width)]
    if state.error_message:
        rows.extend(_error_rows(state, layout))
    elif state.screen == SCREEN_SETTINGS:
        rows.extend(_settings_rows(state, layout))
    else:
        left = _tree_rows(state, layout)
        if isinstance(state.mode, (LibraryBrowseMode, RenameInputMode)):
            right = _library_rows(state, snippets, layout)
        else:
            right = _content_rows(state, layout)
        divider = styled("│", DIM_STYLE)
        rows.extend(f"{left_row}{divider}{right_row}" for left_row, right_row in zip(left, right))
    rows.append(_input_row(state, layout.width))
    rows.append(_help_bar(state, layout.width))
    return rows


def frame_to_bytes(rows: Sequence[str]) -> bytes:
    """Home the cursor and emit ``rows`` as one CRLF-joined terminal write."""
    return ("\033[H" + "\r\n".join(rows)).encode("utf-8", errors="replace")
