"""Session state for the interactive browser.

Interaction modes are a closed set of variants, each carrying only the data
that mode needs, so transitions replace ``SessionState.mode`` wholesale.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .ansi import sanitize_terminal_text
from .discovery import SourceRoot
from .selection import Selection
from .tree import TreeEntry, build_tree_entries

TAB_SPACES = "    "


SCREEN_FILES = "files"
SCREEN_SETTINGS = "settings"
PANE_TREE = "tree"
PANE_CONTENT = "content"


@dataclass
class TextInput:
    """Single-line edit buffer with an insertion cursor."""

    text: str = ""
    cursor: int = 0

    @classmethod
    def prefilled(cls, text: str) -> TextInput:
        return cls(text=text, cursor=len(text))

    def insert(self, chars: str) -> None:
        self.text = self.text[: self.cursor] + chars + self.text[self.cursor :]
        self.cursor += len(chars)

    def backspace(self) -> None:
        if self.cursor <= 0:
            return
        self.text = self.text[: self.cursor - 1] + self.text[self.cursor :]
        self.cursor -= 1

    def delete(self) -> None:
        if self.cursor >= len(self.text):
            return
        self.text = self.text[: self.cursor] + self.text[self.cursor + 1 :]

    def move(self, delta: int) -> None:
        self.cursor = max(0, min(len(self.text), self.cursor + delta))

    def home(self) -> None:
        self.cursor = 0

    def end(self) -> None:
        self.cursor = len(self.text)

    def clear(self) -> None:
        self.text = ""
        self.cursor = 0


@dataclass
class NormalMode:
    pass


@dataclass
class VisualSelectMode:
    selection: Selection


@dataclass
class TitleInputMode:
    selection: Selection
    input: TextInput = field(default_factory=TextInput)


@dataclass
class LibraryBrowseMode:
    pass


@dataclass
class RenameInputMode:
    snippet_id: str
    input: TextInput


Mode = NormalMode | VisualSelectMode | TitleInputMode | LibraryBrowseMode | RenameInputMode


def split_display_lines(text: str) -> list[str]:
    """Split file text on ``\\n`` into display lines with tabs expanded to four spaces.

    A trailing ``\\r`` is dropped from each line; any other carriage return is
    escaped like the rest of the control bytes. A final newline does not start
    an extra empty line.
    """
    if not text:
        return []
    lines = text.replace("\t", TAB_SPACES).split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line.removesuffix("\r").replace("\r", "\\x0d") for line in lines]


@dataclass
class ContentView:
    """The file open in the content pane plus cursor/scroll position."""

    path: Path | None = None
    lines: list[str] = field(default_factory=list)
    styled_lines: list[str] | None = None
    cursor: int = 0
    scroll: int = 0

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def max_cursor(self) -> int:
        return max(0, self.line_count - 1)

    def load(self, path: Path, text: str, styled: str | None = None) -> None:
        self.path = path
        self.lines = split_display_lines(sanitize_terminal_text(text))
        self.styled_lines = None
        if styled is not None:
            styled_lines = split_display_lines(styled)
            if len(styled_lines) == len(self.lines):
                self.styled_lines = styled_lines
        self.cursor = 0
        self.scroll = 0

    def move_cursor(self, delta: int) -> None:
        self.cursor = max(0, min(self.max_cursor, self.cursor + delta))

    def set_cursor(self, line: int) -> None:
        self.cursor = max(0, min(self.max_cursor, line))


def follow_cursor(scroll: int, cursor: int, viewport: int, line_count: int) -> int:
    """Return the minimal scroll offset that keeps ``cursor`` inside the viewport.

    The result never scrolls past the last full page and never centres.
    """
    viewport = max(1, viewport)
    max_scroll = max(0, line_count - viewport)
    if cursor < scroll:
        scroll = cursor
    elif cursor >= scroll + viewport:
        scroll = cursor - viewport + 1
    return max(0, min(scroll, max_scroll))


@dataclass
class SessionState:
    roots: list[SourceRoot]
    screen: str = SCREEN_FILES
    pane: str = PANE_TREE
    mode: Mode = field(default_factory=NormalMode)
    collapsed: set[int] = field(default_factory=set)
    tree_entries: list[TreeEntry] = field(default_factory=list)
    tree_cursor: int = 0
    tree_start: int = 0
    content: ContentView = field(default_factory=ContentView)
    library_cursor: int = 0
    library_start: int = 0
    status_message: str = ""
    error_message: str = ""
    settings_lines: list[str] = field(default_factory=list)
    settings_scroll: int = 0
    viewport_height: int = 1
    quit: bool = False

    def __post_init__(self) -> None:
        if not self.tree_entries:
            self.rebuild_tree()

    def rebuild_tree(self) -> None:
        self.tree_entries = build_tree_entries(self.roots, self.collapsed)
        self.tree_cursor = max(0, min(self.tree_cursor, len(self.tree_entries) - 1))

    @property
    def selected_entry(self) -> TreeEntry | None:
        if not self.tree_entries:
            return None
        return self.tree_entries[self.tree_cursor]

    @property
    def selection(self) -> Selection | None:
        if isinstance(self.mode, (VisualSelectMode, TitleInputMode)):
            return self.mode.selection
        return None

    @property
    def text_input(self) -> TextInput | None:
        if isinstance(self.mode, (TitleInputMode, RenameInputMode)):
            return self.mode.input
        return None
