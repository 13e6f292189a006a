"""Key-driven state machine for the interactive browser.

``Session.handle_key`` is the only entry point that mutates session state.
Each interaction mode owns a key registry; the dispatcher picks the registry
for the current mode and screen, so every key is interpreted in exactly one
place. Store mutations complete their durable write before returning.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from .ansi import sanitize_terminal_text
from .key_registry import KeyComboBinding, KeyComboRegistry
from .library import LibraryError, SnippetStore
from .selection import Selection
from .state import (
    PANE_CONTENT,
    PANE_TREE,
    SCREEN_FILES,
    SCREEN_SETTINGS,
    LibraryBrowseMode,
    NormalMode,
    RenameInputMode,
    SessionState,
    TextInput,
    TitleInputMode,
    VisualSelectMode,
    follow_cursor,
)
from .tree import entry_path, root_entry_index

logger = logging.getLogger(__name__)

QUIT_KEY = "CTRL_C"


def read_text(path: Path) -> str:
    for encoding in ("utf-8", "utf-8-sig", "latin-1"):
        try:
            return path.read_text(encoding=encoding)
        except UnicodeDecodeError:
            continue
    return path.read_bytes().decode("utf-8", errors="replace")


def parse_title_and_tags(raw: str) -> tuple[str, list[str]]:
    """Split trailing ``#tag`` words off a title: ``"Style #rust #fmt"`` -> ``("Style", ["rust", "fmt"])``."""
    words = raw.split()
    tags: list[str] = []
    while words and words[-1].startswith("#") and len(words[-1]) > 1:
        tags.insert(0, words.pop()[1:])
    return " ".join(words), tags


class Session:
    """Owns ``SessionState`` and the snippet store for one interactive run."""

    def __init__(
        self,
        state: SessionState,
        store: SnippetStore,
        *,
        load_text: Callable[[Path], str] = read_text,
        colorize: Callable[[str, Path], str | None] | None = None,
        load_settings: Callable[[], list[str]] | None = None,
    ) -> None:
        self.state = state
        self.store = store
        self._load_text = load_text
        self._colorize = colorize
        self._load_settings = load_settings
        self._tree_keys = self._build_tree_registry()
        self._content_keys = self._build_content_registry()
        self._visual_keys = self._build_visual_registry()
        self._library_keys = self._build_library_registry()
        self._settings_keys = self._build_settings_registry()
        self._mode_handlers: dict[type, Callable[[str], None]] = {
            NormalMode: self._handle_normal_key,
            VisualSelectMode: self._handle_visual_key,
            TitleInputMode: self._handle_title_input_key,
            LibraryBrowseMode: self._handle_library_key,
            RenameInputMode: self._handle_rename_input_key,
        }

    # -- lifecycle -------------------------------------------------------

    def start(self) -> None:
        """Load the snippet library and open the first discovered file."""
        try:
            self.store.load()
        except LibraryError as exc:
            logger.error("%s", exc)
            self.state.error_message = f"Could not load snippet library: {exc}"
        for idx, entry in enumerate(self.state.tree_entries):
            if not entry.is_root:
                self.state.tree_cursor = idx
                self.open_selected_file()
                break

    def sync_viewport(
        self,
        content_rows: int,
        tree_rows: int,
        library_rows: int = 1,
    ) -> None:
        """Record viewport heights and scroll each list minimally to its cursor."""
        state = self.state
        state.viewport_height = max(1, content_rows)
        content = state.content
        content.set_cursor(content.cursor)
        content.scroll = follow_cursor(content.scroll, content.cursor, state.viewport_height, content.line_count)
        state.tree_start = follow_cursor(state.tree_start, state.tree_cursor, tree_rows, len(state.tree_entries))
        state.library_start = follow_cursor(
            state.library_start,
            state.library_cursor,
            library_rows,
            len(self.store.snippets),
        )
        max_settings = max(0, len(state.settings_lines) - state.viewport_height)
        state.settings_scroll = max(0, min(state.settings_scroll, max_settings))

    # -- dispatch --------------------------------------------------------

    def handle_key(self, key: str) -> None:
        """Apply one key token to the session."""
        state = self.state
        if not key:
            return
        if key == QUIT_KEY:
            state.quit = True
            return
        if state.error_message:
            state.error_message = ""
            return
        state.status_message = ""
        self._mode_handlers[type(state.mode)](key)

    def _handle_normal_key(self, key: str) -> None:
        state = self.state
        if state.screen == SCREEN_SETTINGS:
            self._settings_keys.dispatch(key)
        elif state.pane == PANE_TREE:
            self._tree_keys.dispatch(key)
        else:
            self._content_keys.dispatch(key)

    def _handle_visual_key(self, key: str) -> None:
        self._visual_keys.dispatch(key)

    def _handle_title_input_key(self, key: str) -> None:
        mode = self.state.mode
        assert isinstance(mode, TitleInputMode)
        if key == "ESC":
            self.state.mode = NormalMode()
            return
        if key == "ENTER":
            self._commit_title(mode)
            return
        self._edit_text(mode.input, key)

    def _handle_library_key(self, key: str) -> None:
        self._library_keys.dispatch(key)

    def _handle_rename_input_key(self, key: str) -> None:
        mode = self.state.mode
        assert isinstance(mode, RenameInputMode)
        if key == "ESC":
            self.state.mode = LibraryBrowseMode()
            return
        if key == "ENTER":
            self._commit_rename(mode)
            return
        self._edit_text(mode.input, key)

    # -- registries ------------------------------------------------------

    def _build_tree_registry(self) -> KeyComboRegistry:
        return KeyComboRegistry().register_bindings(
            KeyComboBinding(("q",), self.request_quit),
            KeyComboBinding(("TAB",), self.toggle_pane),
            KeyComboBinding(("j", "DOWN"), lambda: self.move_tree_cursor(1)),
            KeyComboBinding(("k", "UP"), lambda: self.move_tree_cursor(-1)),
            KeyComboBinding(("g", "HOME"), lambda: self.set_tree_cursor(0)),
            KeyComboBinding(("G", "END"), lambda: self.set_tree_cursor(len(self.state.tree_entries) - 1)),
            KeyComboBinding(("ENTER",), self.activate_tree_entry),
            KeyComboBinding(("h", "LEFT"), self.collapse_tree_entry),
            KeyComboBinding(("l", "RIGHT"), self.expand_tree_entry),
            KeyComboBinding(("L",), self.open_library),
            KeyComboBinding(("S",), self.open_settings),
        )

    def _build_content_registry(self) -> KeyComboRegistry:
        return KeyComboRegistry().register_bindings(
            KeyComboBinding(("q",), self.request_quit),
            KeyComboBinding(("TAB",), self.toggle_pane),
            KeyComboBinding(("j", "DOWN"), lambda: self.move_content_cursor(1)),
            KeyComboBinding(("k", "UP"), lambda: self.move_content_cursor(-1)),
            KeyComboBinding(("f", "PAGE_DOWN"), lambda: self.move_content_cursor(self.state.viewport_height)),
            KeyComboBinding(("b", "PAGE_UP"), lambda: self.move_content_cursor(-self.state.viewport_height)),
            KeyComboBinding(("g", "HOME"), lambda: self.set_content_cursor(0)),
            KeyComboBinding(("G", "END"), lambda: self.set_content_cursor(self.state.content.max_cursor)),
            KeyComboBinding(("v",), self.begin_visual_select),
            KeyComboBinding(("L",), self.open_library),
            KeyComboBinding(("S",), self.open_settings),
        )

    def _build_visual_registry(self) -> KeyComboRegistry:
        return KeyComboRegistry().register_bindings(
            KeyComboBinding(("ESC",), self.cancel_visual_select),
            KeyComboBinding(("j", "DOWN"), lambda: self.extend_selection(1)),
            KeyComboBinding(("k", "UP"), lambda: self.extend_selection(-1)),
            KeyComboBinding(("f", "PAGE_DOWN"), lambda: self.extend_selection(self.state.viewport_height)),
            KeyComboBinding(("b", "PAGE_UP"), lambda: self.extend_selection(-self.state.viewport_height)),
            KeyComboBinding(("g", "HOME"), lambda: self.extend_selection(-self.state.content.line_count)),
            KeyComboBinding(("G", "END"), lambda: self.extend_selection(self.state.content.line_count)),
            KeyComboBinding(("s",), self.begin_title_input),
        )

    def _build_library_registry(self) -> KeyComboRegistry:
        return KeyComboRegistry().register_bindings(
            KeyComboBinding(("ESC", "q"), self.close_library),
            KeyComboBinding(("j", "DOWN"), lambda: self.move_library_cursor(1)),
            KeyComboBinding(("k", "UP"), lambda: self.move_library_cursor(-1)),
            KeyComboBinding(("g", "HOME"), lambda: self.move_library_cursor(-len(self.store.snippets))),
            KeyComboBinding(("G", "END"), lambda: self.move_library_cursor(len(self.store.snippets))),
            KeyComboBinding(("r",), self.begin_rename),
            KeyComboBinding(("d",), self.delete_selected_snippet),
        )

    def _build_settings_registry(self) -> KeyComboRegistry:
        return KeyComboRegistry().register_bindings(
            KeyComboBinding(("q",), self.request_quit),
            KeyComboBinding(("ESC", "S"), self.close_settings),
            KeyComboBinding(("j", "DOWN"), lambda: self.scroll_settings(1)),
            KeyComboBinding(("k", "UP"), lambda: self.scroll_settings(-1)),
            KeyComboBinding(("f", "PAGE_DOWN"), lambda: self.scroll_settings(self.state.viewport_height)),
            KeyComboBinding(("b", "PAGE_UP"), lambda: self.scroll_settings(-self.state.viewport_height)),
        )

    # -- normal-mode actions ---------------------------------------------

    def request_quit(self) -> None:
        self.state.quit = True

    def toggle_pane(self) -> None:
        self.state.pane = PANE_CONTENT if self.state.pane == PANE_TREE else PANE_TREE

    def set_tree_cursor(self, index: int) -> None:
        state = self.state
        if not state.tree_entries:
            return
        index = max(0, min(len(state.tree_entries) - 1, index))
        if index == state.tree_cursor:
            return
        state.tree_cursor = index
        self.open_selected_file()

    def move_tree_cursor(self, delta: int) -> None:
        self.set_tree_cursor(self.state.tree_cursor + delta)

    def activate_tree_entry(self) -> None:
        entry = self.state.selected_entry
        if entry is None:
            return
        if entry.is_root:
            self._set_root_collapsed(entry.root_index, entry.root_index not in self.state.collapsed)
        else:
            self.open_selected_file()

    def collapse_tree_entry(self) -> None:
        state = self.state
        entry = state.selected_entry
        if entry is None:
            return
        if entry.is_root:
            self._set_root_collapsed(entry.root_index, True)
        else:
            state.tree_cursor = root_entry_index(state.tree_entries, entry.root_index)

    def expand_tree_entry(self) -> None:
        state = self.state
        entry = state.selected_entry
        if entry is None or not entry.is_root:
            return
        if entry.root_index in state.collapsed:
            self._set_root_collapsed(entry.root_index, False)
        elif state.roots[entry.root_index].file_count:
            self.set_tree_cursor(state.tree_cursor + 1)

    def _set_root_collapsed(self, root_index: int, collapsed: bool) -> None:
        state = self.state
        if collapsed:
            state.collapsed.add(root_index)
        else:
            state.collapsed.discard(root_index)
        state.rebuild_tree()
        state.tree_cursor = root_entry_index(state.tree_entries, root_index)

    def open_selected_file(self) -> None:
        """Load the file under the tree cursor, resetting cursor, scroll and selection."""
        state = self.state
        entry = state.selected_entry
        if entry is None or entry.is_root:
            return
        path = entry_path(state.roots, entry)
        try:
            text = sanitize_terminal_text(self._load_text(path))
        except OSError as exc:
            state.content.load(path, f"Error reading {path}: {exc.strerror or exc}")
            return
        styled = self._colorize(text, path) if self._colorize is not None else None
        state.content.load(path, text, styled)

    def move_content_cursor(self, delta: int) -> None:
        content = self.state.content
        content.move_cursor(delta)
        content.scroll = follow_cursor(content.scroll, content.cursor, self.state.viewport_height, content.line_count)

    def set_content_cursor(self, line: int) -> None:
        self.move_content_cursor(line - self.state.content.cursor)

    def begin_visual_select(self) -> None:
        content = self.state.content
        if content.path is None or not content.line_count:
            return
        selection = Selection()
        selection.begin(content.cursor)
        self.state.mode = VisualSelectMode(selection=selection)

    def open_library(self) -> None:
        self.state.library_cursor = max(0, min(self.state.library_cursor, len(self.store.snippets) - 1))
        self.state.mode = LibraryBrowseMode()

    def open_settings(self) -> None:
        state = self.state
        state.settings_lines = self._load_settings() if self._load_settings is not None else []
        state.settings_scroll = 0
        state.screen = SCREEN_SETTINGS

    def close_settings(self) -> None:
        self.state.screen = SCREEN_FILES

    def scroll_settings(self, delta: int) -> None:
        state = self.state
        max_scroll = max(0, len(state.settings_lines) - state.viewport_height)
        state.settings_scroll = max(0, min(max_scroll, state.settings_scroll + delta))

    # -- visual selection --------------------------------------------------

    def extend_selection(self, delta: int) -> None:
        mode = self.state.mode
        assert isinstance(mode, VisualSelectMode)
        self.move_content_cursor(delta)
        mode.selection.extend(self.state.content.cursor)

    def cancel_visual_select(self) -> None:
        self.state.mode = NormalMode()

    def begin_title_input(self) -> None:
        mode = self.state.mode
        assert isinstance(mode, VisualSelectMode)
        self.state.mode = TitleInputMode(selection=mode.selection)

    def _commit_title(self, mode: TitleInputMode) -> None:
        state = self.state
        title, tags = parse_title_and_tags(mode.input.text)
        if not title:
            state.status_message = "Title cannot be empty."
            return
        body = mode.selection.extract(state.content.lines)
        state.mode = NormalMode()
        if body is None:
            state.status_message = "No text selected."
            return
        try:
            self.store.create(title, tags, body, state.content.path)
        except OSError as exc:
            logger.warning("saving snippet failed: %s", exc)
            state.status_message = f"Save failed: {exc}"
            return
        state.status_message = "Snippet saved!"

    # -- library -----------------------------------------------------------

    def close_library(self) -> None:
        self.state.mode = NormalMode()

    def move_library_cursor(self, delta: int) -> None:
        count = len(self.store.snippets)
        self.state.library_cursor = max(0, min(count - 1, self.state.library_cursor + delta)) if count else 0

    def selected_snippet_id(self) -> str | None:
        snippets = self.store.snippets
        if not snippets:
            return None
        return snippets[min(self.state.library_cursor, len(snippets) - 1)].id

    def begin_rename(self) -> None:
        snippet_id = self.selected_snippet_id()
        if snippet_id is None:
            return
        snippet = self.store.get(snippet_id)
        assert snippet is not None
        self.state.mode = RenameInputMode(snippet_id=snippet_id, input=TextInput.prefilled(snippet.title))

    def _commit_rename(self, mode: RenameInputMode) -> None:
        state = self.state
        new_title = mode.input.text.strip()
        if not new_title:
            state.status_message = "Title cannot be empty."
            return
        state.mode = LibraryBrowseMode()
        try:
            renamed = self.store.rename(mode.snippet_id, new_title)
        except OSError as exc:
            logger.warning("renaming snippet failed: %s", exc)
            state.status_message = f"Rename failed: {exc}"
            return
        if renamed:
            state.status_message = "Snippet renamed."

    def delete_selected_snippet(self) -> None:
        state = self.state
        snippet_id = self.selected_snippet_id()
        if snippet_id is None:
            return
        try:
            self.store.delete(snippet_id)
        except OSError as exc:
            logger.warning("deleting snippet failed: %s", exc)
            state.status_message = f"Delete failed: {exc}"
            return
        self.move_library_cursor(0)
        state.status_message = "Snippet deleted."

    # -- text input --------------------------------------------------------

    @staticmethod
    def _edit_text(buffer: TextInput, key: str) -> None:
        if key == "BACKSPACE":
            buffer.backspace()
        elif key == "DELETE":
            buffer.delete()
        elif key == "LEFT":
            buffer.move(-1)
        elif key == "RIGHT":
            buffer.move(1)
        elif key == "HOME":
            buffer.home()
        elif key == "END":
            buffer.end()
        elif key == "CTRL_U":
            buffer.clear()
        elif len(key) == 1 and key.isprintable():
            buffer.insert(key)
