"""Context-file discovery across user-supplied directory trees.

Walks each root depth-first with ``os.scandir`` and prunes dependency/VCS
directories at the descend decision, so skipped subtrees are never opened.
Per-root and per-entry failures are logged and never abort discovery.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

CONTEXT_FILE_NAME = "CLAUDE.md"
DEFAULT_MAX_DEPTH = 100

# Directories that never hold context files worth showing. Checked before
# descending so a pruned subtree costs a single directory entry.
SKIP_DIRS: frozenset[str] = frozenset(
    {
        "node_modules",
        ".git",
        "target",
        ".cache",
        "__pycache__",
        ".venv",
        "vendor",
        "dist",
        ".next",
        ".nuxt",
        "build",
    }
)


@dataclass(frozen=True)
class SourceRoot:
    """One discovery root and the context files found beneath it."""

    path: Path
    files: tuple[Path, ...] = ()

    @property
    def file_count(self) -> int:
        return len(self.files)

    def relative(self, file_path: Path) -> Path:
        """Return ``file_path`` relative to this root, or unchanged when outside it."""
        try:
            return file_path.relative_to(self.path)
        except ValueError:
            return file_path

    def describe(self) -> str:
        """Return the ``--list`` block: header with count, then indented relative paths."""
        label = "file" if self.file_count == 1 else "files"
        lines = [f"{self.path} ({self.file_count} {label})"]
        lines.extend(f"  {self.relative(file_path)}" for file_path in self.files)
        return "\n".join(lines) + "\n"


@dataclass(frozen=True)
class DiscoveryResult:
    """Roots that resolved plus the input paths that did not."""

    roots: list[SourceRoot] = field(default_factory=list)
    failed_paths: list[Path] = field(default_factory=list)

    @property
    def total_files(self) -> int:
        return sum(root.file_count for root in self.roots)

    @property
    def all_failed(self) -> bool:
        return not self.roots and bool(self.failed_paths)


def _dir_identity(path: str) -> tuple[int, int] | None:
    try:
        stat = os.stat(path)
    except OSError:
        return None
    return (stat.st_dev, stat.st_ino)


def find_context_files(
    root: Path,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    skip_dirs: Iterable[str] = SKIP_DIRS,
    file_name: str = CONTEXT_FILE_NAME,
) -> list[Path]:
    """Return sorted, de-duplicated paths of ``file_name`` beneath ``root``.

    Symlinks are followed. A directory whose (device, inode) identity is
    already on the current descent path is a loop: it is logged and skipped.
    Directories at ``max_depth`` are not opened.
    """
    skip = frozenset(skip_dirs)
    found: set[Path] = set()

    def walk(directory: str, depth: int, ancestors: frozenset[tuple[int, int]]) -> None:
        if depth >= max_depth:
            logger.debug("max depth %d reached, not descending into %s", max_depth, directory)
            return
        try:
            scanner = os.scandir(directory)
        except OSError as exc:
            logger.warning("%s: %s", directory, exc.strerror or exc)
            return

        subdirs: list[str] = []
        with scanner:
            for entry in scanner:
                try:
                    is_dir = entry.is_dir()
                    if is_dir:
                        if entry.name not in skip:
                            subdirs.append(entry.path)
                        continue
                    if entry.name == file_name and entry.is_file():
                        found.add(Path(entry.path))
                except OSError as exc:
                    logger.warning("%s: %s", entry.path, exc.strerror or exc)

        for subdir in subdirs:
            identity = _dir_identity(subdir)
            if identity is None:
                logger.warning("%s: directory vanished during scan", subdir)
                continue
            if identity in ancestors:
                logger.warning("symlink loop detected: %s", subdir)
                continue
            walk(subdir, depth + 1, ancestors | {identity})

    root_identity = _dir_identity(str(root))
    walk(str(root), 0, frozenset({root_identity}) if root_identity else frozenset())
    return sorted(found)


def find_global_claude_file(home: Path | None = None) -> Path | None:
    """Return ``~/.claude/CLAUDE.md`` when it exists, else ``None``."""
    if home is None:
        try:
            home = Path.home()
        except RuntimeError:
            return None
    candidate = home / ".claude" / CONTEXT_FILE_NAME
    return candidate if candidate.is_file() else None


def with_global_root(roots: Sequence[SourceRoot], global_file: Path | None) -> list[SourceRoot]:
    """Prepend an implicit root for ``global_file`` unless a root already lists it."""
    merged = list(roots)
    if global_file is None:
        return merged
    if any(global_file in root.files for root in merged):
        return merged
    merged.insert(0, SourceRoot(path=global_file.parent, files=(global_file,)))
    return merged


def discover(
    paths: Sequence[Path],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    skip_dirs: Iterable[str] = SKIP_DIRS,
    file_name: str = CONTEXT_FILE_NAME,
) -> DiscoveryResult:
    """Scan every path in order, collecting roots and unresolved inputs.

    Never raises for a bad root: missing paths and non-directories are logged
    as warnings and reported through ``failed_paths``.
    """
    skip = frozenset(skip_dirs)
    roots: list[SourceRoot] = []
    failed: list[Path] = []
    for raw_path in paths:
        path = Path(raw_path)
        if not path.exists():
            logger.warning("path does not exist: %s", path)
            failed.append(path)
            continue
        if not path.is_dir():
            logger.warning("not a directory: %s", path)
            failed.append(path)
            continue
        try:
            resolved = path.resolve()
        except OSError:
            resolved = path
        files = find_context_files(resolved, max_depth=max_depth, skip_dirs=skip, file_name=file_name)
        logger.debug("found %d file(s) under %s", len(files), resolved)
        roots.append(SourceRoot(path=resolved, files=tuple(files)))
    return DiscoveryResult(roots=roots, failed_paths=failed)
