from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from .discovery import SourceRoot


@dataclass(frozen=True)
class TreeEntry:
    """One visible tree row: a root header (``file_index is None``) or a file."""

    root_index: int
    file_index: int | None = None

    @property
    def is_root(self) -> bool:
        return self.file_index is None


def build_tree_entries(roots: Sequence[SourceRoot], collapsed: set[int]) -> list[TreeEntry]:
    entries: list[TreeEntry] = []
    for root_idx, root in enumerate(roots):
        entries.append(TreeEntry(root_idx))
        if root_idx in collapsed:
            continue
        entries.extend(TreeEntry(root_idx, file_idx) for file_idx in range(root.file_count))
    return entries


def entry_path(roots: Sequence[SourceRoot], entry: TreeEntry) -> Path:
    root = roots[entry.root_index]
    if entry.file_index is None:
        return root.path
    return root.files[entry.file_index]


def root_entry_index(entries: Sequence[TreeEntry], root_index: int) -> int:
    for idx, entry in enumerate(entries):
        if entry.is_root and entry.root_index == root_index:
            return idx
    return 0


def compute_left_width(total_width: int) -> int:
    if total_width <= 60:
        return max(16, total_width // 2)
    return max(20, min(48, (total_width * 3) // 10))


def clamp_left_width(total_width: int, desired_left: int) -> int:
    max_possible = max(1, total_width - 2)
    min_left = max(12, min(20, total_width - 12))
    max_left = max(min_left, total_width - 12)
    max_left = min(max_left, max_possible)
    min_left = min(min_left, max_left)
    return max(min_left, min(desired_left, max_left))


def format_tree_entry(roots: Sequence[SourceRoot], entry: TreeEntry, collapsed: set[int]) -> str:
    """Return the styled label for ``entry``; files show their root-relative path."""
    root = roots[entry.root_index]
    if entry.file_index is None:
        marker = "▸" if entry.root_index in collapsed else "▾"
        count = f"({root.file_count})"
        return f"\033[1;38;5;81m{marker} {root.path}\033[0m \033[2;38;5;250m{count}\033[0m"
    relative = root.relative(root.files[entry.file_index])
    return f"    \033[38;5;252m{relative}\033[0m"
