"""Key-driven session behaviour tests.

Drives ``Session.handle_key`` with decoded key tokens and checks mode
transitions, tree navigation, visual selection, and snippet management.
"""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from jigolo.discovery import discover
from jigolo.library import SnippetStore
from jigolo.session import Session, parse_title_and_tags
from jigolo.state import (
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
)

MAIN_TEXT = "L1\nL2\nL3\nL4\nL5\n"
SUB_TEXT = "sub one\nsub two\n"


class SessionTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        base = Path(self._tmp.name).resolve()
        self.project = base / "proj"
        (self.project / "sub").mkdir(parents=True)
        self.main_file = self.project / "CLAUDE.md"
        self.sub_file = self.project / "sub" / "CLAUDE.md"
        self.main_file.write_text(MAIN_TEXT, encoding="utf-8")
        self.sub_file.write_text(SUB_TEXT, encoding="utf-8")
        self.library_path = base / "library.json"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def make_session(self, **kwargs) -> Session:
        roots = discover([self.project]).roots
        session = Session(SessionState(roots=roots), SnippetStore(self.library_path), **kwargs)
        session.start()
        session.sync_viewport(content_rows=3, tree_rows=10, library_rows=5)
        return session

    def press(self, session: Session, *keys: str) -> None:
        for key in keys:
            session.handle_key(key)

    def type_text(self, session: Session, text: str) -> None:
        self.press(session, *text)


class StartupTests(SessionTestCase):
    def test_start_opens_first_file(self) -> None:
        session = self.make_session()

        self.assertEqual(session.state.tree_cursor, 1)
        self.assertEqual(session.state.content.path, self.main_file)
        self.assertEqual(session.state.content.lines, ["L1", "L2", "L3", "L4", "L5"])

    def test_corrupt_library_shows_blocking_error_and_keeps_running(self) -> None:
        self.library_path.write_text("{broken", encoding="utf-8")
        with self.assertLogs("jigolo.session", level="ERROR"):
            session = self.make_session()

        self.assertIn("Could not load snippet library", session.state.error_message)
        self.assertEqual(session.store.snippets, [])

        self.press(session, "q")
        self.assertFalse(session.state.quit)
        self.assertEqual(session.state.error_message, "")

        self.press(session, "q")
        self.assertTrue(session.state.quit)

    def test_unreadable_file_shows_error_text(self) -> None:
        def failing_read(path: Path) -> str:
            raise PermissionError(13, "Permission denied")

        session = self.make_session(load_text=failing_read)

        self.assertEqual(
            session.state.content.lines,
            [f"Error reading {self.main_file}: Permission denied"],
        )

    def test_colorizer_output_is_used_for_styled_lines(self) -> None:
        session = self.make_session(colorize=lambda text, path: text.replace("L", "\x1b[1mL\x1b[0m"))

        styled_lines = session.state.content.styled_lines
        assert styled_lines is not None
        self.assertEqual(styled_lines[0], "\x1b[1mL\x1b[0m1")
        self.assertEqual(session.state.content.lines[0], "L1")


class GlobalKeyTests(SessionTestCase):
    def test_ctrl_c_quits_from_title_input(self) -> None:
        session = self.make_session()
        self.press(session, "TAB", "v", "s")
        self.assertIsInstance(session.state.mode, TitleInputMode)

        self.press(session, "CTRL_C")

        self.assertTrue(session.state.quit)

    def test_q_quits_from_normal(self) -> None:
        session = self.make_session()
        self.press(session, "q")
        self.assertTrue(session.state.quit)

    def test_status_is_cleared_by_next_key(self) -> None:
        session = self.make_session()
        session.state.status_message = "Snippet saved!"

        self.press(session, "j")

        self.assertEqual(session.state.status_message, "")

    def test_tab_toggles_focus(self) -> None:
        session = self.make_session()
        self.press(session, "TAB")
        self.assertEqual(session.state.pane, PANE_CONTENT)
        self.press(session, "TAB")
        self.assertEqual(session.state.pane, PANE_TREE)


class TreeNavigationTests(SessionTestCase):
    def test_moving_onto_file_opens_it_and_resets_cursor(self) -> None:
        session = self.make_session()
        self.press(session, "TAB", "j", "j", "TAB")
        self.assertEqual(session.state.content.cursor, 2)

        self.press(session, "j")

        self.assertEqual(session.state.content.path, self.sub_file)
        self.assertEqual(session.state.content.cursor, 0)
        self.assertEqual(session.state.content.scroll, 0)

    def test_enter_on_open_file_reloads_and_resets_cursor(self) -> None:
        session = self.make_session()
        self.press(session, "TAB", "G", "TAB")
        self.assertEqual(session.state.content.cursor, 4)
        self.main_file.write_text("new\n", encoding="utf-8")

        self.press(session, "ENTER")

        self.assertEqual(session.state.content.lines, ["new"])
        self.assertEqual(session.state.content.cursor, 0)
        self.assertEqual(session.state.content.scroll, 0)

    def test_same_file_under_second_root_resets_cursor(self) -> None:
        roots = discover([self.project, self.project / "sub"]).roots
        session = Session(SessionState(roots=roots), SnippetStore(self.library_path))
        session.start()
        session.sync_viewport(content_rows=3, tree_rows=10, library_rows=5)
        self.press(session, "j", "TAB", "j", "TAB")
        self.assertEqual(session.state.content.path, self.sub_file)
        self.assertEqual(session.state.content.cursor, 1)

        self.press(session, "j", "j")

        self.assertEqual(session.state.tree_cursor, 4)
        self.assertEqual(session.state.content.path, self.sub_file)
        self.assertEqual(session.state.content.cursor, 0)

    def test_cursor_clamps_at_edges(self) -> None:
        session = self.make_session()
        self.press(session, "G", "j", "j")
        self.assertEqual(session.state.tree_cursor, 2)
        self.press(session, "g", "k")
        self.assertEqual(session.state.tree_cursor, 0)

    def test_enter_on_root_toggles_collapse(self) -> None:
        session = self.make_session()
        self.press(session, "k", "ENTER")

        self.assertEqual(len(session.state.tree_entries), 1)
        self.assertEqual(session.state.tree_cursor, 0)

        self.press(session, "ENTER")
        self.assertEqual(len(session.state.tree_entries), 3)

    def test_left_jumps_to_root_then_collapses_and_right_expands(self) -> None:
        session = self.make_session()
        self.press(session, "h")
        self.assertEqual(session.state.tree_cursor, 0)
        self.assertEqual(len(session.state.tree_entries), 3)

        self.press(session, "LEFT")
        self.assertIn(0, session.state.collapsed)

        self.press(session, "l")
        self.assertEqual(len(session.state.tree_entries), 3)
        self.assertEqual(session.state.tree_cursor, 0)

        self.press(session, "RIGHT")
        self.assertEqual(session.state.tree_cursor, 1)

    def test_empty_session_ignores_navigation(self) -> None:
        session = Session(SessionState(roots=[]), SnippetStore(self.library_path))
        session.start()

        self.press(session, "j", "ENTER", "h", "l", "TAB", "v")

        self.assertIsNone(session.state.content.path)
        self.assertIsInstance(session.state.mode, NormalMode)


class ContentNavigationTests(SessionTestCase):
    def test_page_keys_move_by_viewport(self) -> None:
        session = self.make_session()
        self.press(session, "TAB", "PAGE_DOWN")
        self.assertEqual(session.state.content.cursor, 3)
        self.assertEqual(session.state.content.scroll, 1)

        self.press(session, "b")
        self.assertEqual(session.state.content.cursor, 0)
        self.assertEqual(session.state.content.scroll, 0)

    def test_g_and_shift_g(self) -> None:
        session = self.make_session()
        self.press(session, "TAB", "G")
        self.assertEqual(session.state.content.cursor, 4)
        self.assertEqual(session.state.content.scroll, 2)
        self.press(session, "g")
        self.assertEqual(session.state.content.cursor, 0)

    def test_tree_keys_do_not_switch_file_when_content_focused(self) -> None:
        session = self.make_session()
        self.press(session, "TAB", "ENTER", "h", "l")

        self.assertEqual(session.state.content.path, self.main_file)
        self.assertEqual(session.state.tree_cursor, 1)


class VisualSelectionTests(SessionTestCase):
    def test_select_upward_and_save_snippet(self) -> None:
        session = self.make_session()
        self.press(session, "TAB", "j", "j", "v", "k", "k")

        mode = session.state.mode
        self.assertIsInstance(mode, VisualSelectMode)
        self.assertEqual(mode.selection.range(), (0, 2))

        self.press(session, "s")
        self.type_text(session, "Intro")
        self.press(session, "ENTER")

        self.assertIsInstance(session.state.mode, NormalMode)
        self.assertEqual(session.state.status_message, "Snippet saved!")
        self.assertEqual(len(session.store.snippets), 1)
        snippet = session.store.snippets[0]
        self.assertEqual(snippet.title, "Intro")
        self.assertEqual(snippet.body, "L1\nL2\nL3")
        self.assertEqual(snippet.source, str(self.main_file))

        reloaded = SnippetStore(self.library_path)
        reloaded.load()
        self.assertEqual(reloaded.snippets, session.store.snippets)

    def test_trailing_hash_words_become_tags(self) -> None:
        session = self.make_session()
        self.press(session, "TAB", "v", "s")
        self.type_text(session, "Style guide #rust #fmt")
        self.press(session, "ENTER")

        snippet = session.store.snippets[0]
        self.assertEqual(snippet.title, "Style guide")
        self.assertEqual(snippet.tags, ("fmt", "rust"))

    def test_empty_title_is_rejected(self) -> None:
        session = self.make_session()
        self.press(session, "TAB", "v", "s", " ", "ENTER")

        self.assertIsInstance(session.state.mode, TitleInputMode)
        self.assertEqual(session.state.status_message, "Title cannot be empty.")
        self.assertEqual(session.store.snippets, [])

    def test_escape_from_visual_clears_selection(self) -> None:
        session = self.make_session()
        self.press(session, "TAB", "v", "j", "ESC")

        self.assertIsInstance(session.state.mode, NormalMode)
        self.assertIsNone(session.state.selection)

    def test_escape_from_title_input_discards(self) -> None:
        session = self.make_session()
        self.press(session, "TAB", "v", "s", "x", "ESC")

        self.assertIsInstance(session.state.mode, NormalMode)
        self.assertEqual(session.store.snippets, [])

    def test_tree_and_tab_keys_are_ignored_while_selecting(self) -> None:
        session = self.make_session()
        self.press(session, "TAB", "v", "TAB", "ENTER", "h", "L", "S")

        self.assertIsInstance(session.state.mode, VisualSelectMode)
        self.assertEqual(session.state.pane, PANE_CONTENT)
        self.assertEqual(session.state.screen, SCREEN_FILES)

    def test_title_editing_keys(self) -> None:
        session = self.make_session()
        self.press(session, "TAB", "v", "s")
        self.type_text(session, "abd")
        self.press(session, "LEFT", "BACKSPACE", "c")
        self.assertEqual(session.state.text_input.text, "acd")
        self.press(session, "HOME", "DELETE")
        self.assertEqual(session.state.text_input.text, "cd")
        self.press(session, "CTRL_U")
        self.assertEqual(session.state.text_input.text, "")

    def test_save_failure_reports_status(self) -> None:
        session = self.make_session()
        self.press(session, "TAB", "v", "s", "x")

        with mock.patch.object(session.store, "create", side_effect=OSError("read-only file system")), self.assertLogs(
            "jigolo.session", level="WARNING"
        ):
            self.press(session, "ENTER")

        self.assertTrue(session.state.status_message.startswith("Save failed:"))
        self.assertIsInstance(session.state.mode, NormalMode)


class LibraryTests(SessionTestCase):
    def make_with_snippets(self, *titles: str) -> Session:
        session = self.make_session()
        for title in titles:
            session.store.create(title, [], f"{title} body")
        return session

    def test_open_and_close_library(self) -> None:
        session = self.make_with_snippets("a")
        self.press(session, "L")
        self.assertIsInstance(session.state.mode, LibraryBrowseMode)

        self.press(session, "q")
        self.assertIsInstance(session.state.mode, NormalMode)
        self.assertFalse(session.state.quit)

        self.press(session, "L", "ESC")
        self.assertIsInstance(session.state.mode, NormalMode)

    def test_delete_clamps_cursor(self) -> None:
        session = self.make_with_snippets("a", "b")
        self.press(session, "L", "j")
        self.assertEqual(session.state.library_cursor, 1)

        self.press(session, "d")

        self.assertEqual([s.title for s in session.store.snippets], ["a"])
        self.assertEqual(session.state.library_cursor, 0)

        self.press(session, "d", "d")
        self.assertEqual(session.store.snippets, [])
        self.assertEqual(session.state.library_cursor, 0)

    def test_rename_prefills_and_commits(self) -> None:
        session = self.make_with_snippets("old title")
        self.press(session, "L", "r")

        mode = session.state.mode
        self.assertIsInstance(mode, RenameInputMode)
        self.assertEqual(mode.input.text, "old title")
        self.assertEqual(mode.input.cursor, len("old title"))

        self.press(session, "CTRL_U")
        self.type_text(session, "new")
        self.press(session, "ENTER")

        self.assertIsInstance(session.state.mode, LibraryBrowseMode)
        self.assertEqual(session.store.snippets[0].title, "new")

    def test_rename_escape_returns_to_library(self) -> None:
        session = self.make_with_snippets("keep")
        self.press(session, "L", "r", "x", "ESC")

        self.assertIsInstance(session.state.mode, LibraryBrowseMode)
        self.assertEqual(session.store.snippets[0].title, "keep")

    def test_rename_of_vanished_id_is_silent(self) -> None:
        session = self.make_with_snippets("keep")
        before = self.library_path.read_text(encoding="utf-8")
        session.state.mode = RenameInputMode(snippet_id="gone", input=TextInput.prefilled("x"))

        self.press(session, "ENTER")

        self.assertIsInstance(session.state.mode, LibraryBrowseMode)
        self.assertEqual(session.state.status_message, "")
        self.assertEqual(self.library_path.read_text(encoding="utf-8"), before)

    def test_rename_rejects_empty_title(self) -> None:
        session = self.make_with_snippets("keep")
        self.press(session, "L", "r", "CTRL_U", "ENTER")

        self.assertIsInstance(session.state.mode, RenameInputMode)
        self.assertEqual(session.state.status_message, "Title cannot be empty.")

    def test_empty_library_ignores_rename_and_delete(self) -> None:
        session = self.make_session()
        self.press(session, "L", "r", "d", "j")

        self.assertIsInstance(session.state.mode, LibraryBrowseMode)
        self.assertEqual(session.state.library_cursor, 0)


class SettingsScreenTests(SessionTestCase):
    def test_settings_screen_scrolls_and_returns(self) -> None:
        lines = [f"line {idx}" for idx in range(10)]
        session = self.make_session(load_settings=lambda: lines)

        self.press(session, "S")
        self.assertEqual(session.state.screen, SCREEN_SETTINGS)
        self.assertEqual(session.state.settings_lines, lines)

        self.press(session, "j", "j")
        self.assertEqual(session.state.settings_scroll, 2)
        self.press(session, "PAGE_DOWN", "PAGE_DOWN", "PAGE_DOWN")
        self.assertEqual(session.state.settings_scroll, 7)

        self.press(session, "ESC")
        self.assertEqual(session.state.screen, SCREEN_FILES)

    def test_q_quits_from_settings(self) -> None:
        session = self.make_session(load_settings=lambda: [])
        self.press(session, "S", "q")
        self.assertTrue(session.state.quit)


class ParseTitleTests(unittest.TestCase):
    def test_plain_title(self) -> None:
        self.assertEqual(parse_title_and_tags("  Hello world "), ("Hello world", []))

    def test_only_trailing_tags_are_split(self) -> None:
        self.assertEqual(parse_title_and_tags("Use #rust here #fmt"), ("Use #rust here", ["fmt"]))

    def test_bare_hash_is_part_of_title(self) -> None:
        self.assertEqual(parse_title_and_tags("Item #"), ("Item #", []))


if __name__ == "__main__":
    unittest.main()
