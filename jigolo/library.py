"""Snippet library persistence.

The library is a flat, ordered JSON list of snippet records kept at a
config-directory path. Every mutation is written to a temporary sibling and
atomically swapped into place before the in-memory collection changes, so
memory and disk never disagree between key events.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from pathlib import Path

logger = logging.getLogger(__name__)

LIBRARY_FORMAT_VERSION = 1
UNTITLED = "Untitled"


class LibraryError(Exception):
    """Raised when an existing library file cannot be read or parsed."""


def normalize_tags(tags: Iterable[str]) -> tuple[str, ...]:
    """Return stripped, de-duplicated, sorted tags with empties dropped."""
    return tuple(sorted({tag.strip() for tag in tags if tag and tag.strip()}))


def new_snippet_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Snippet:
    """One saved excerpt. ``id`` is opaque and independent of ``title``."""

    id: str
    title: str
    body: str
    tags: tuple[str, ...] = ()
    source: str | None = None

    def to_record(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "tags": list(self.tags),
            "body": self.body,
            "source": self.source,
        }

    @classmethod
    def from_record(cls, record: object) -> Snippet:
        """Build a snippet from one decoded record, ignoring unknown fields.

        Records without an ``id`` (hand-written entries) get a fresh uuid4 on
        every load; it becomes stable once the store next writes the file. A
        blank title is replaced with ``UNTITLED`` so titles are never empty.
        """
        if not isinstance(record, dict):
            raise ValueError("snippet record is not an object")
        title = record.get("title")
        body = record.get("body")
        if not isinstance(title, str) or not isinstance(body, str):
            raise ValueError("snippet record needs string 'title' and 'body'")
        if not title.strip():
            title = UNTITLED
        raw_id = record.get("id")
        snippet_id = raw_id if isinstance(raw_id, str) and raw_id else new_snippet_id()
        raw_tags = record.get("tags", [])
        tags = normalize_tags(tag for tag in raw_tags if isinstance(tag, str)) if isinstance(raw_tags, list) else ()
        raw_source = record.get("source")
        source = raw_source if isinstance(raw_source, str) and raw_source else None
        return cls(id=snippet_id, title=title, body=body, tags=tags, source=source)


def parse_library(text: str) -> list[Snippet]:
    """Decode a library document; raises ``ValueError`` on malformed content."""
    data = json.loads(text)
    if isinstance(data, list):
        records = data
    elif isinstance(data, dict):
        records = data.get("snippets", [])
    else:
        raise ValueError("library root must be an object or a list")
    if not isinstance(records, list):
        raise ValueError("'snippets' must be a list")
    return [Snippet.from_record(record) for record in records]


def serialize_library(snippets: Iterable[Snippet]) -> str:
    payload = {
        "version": LIBRARY_FORMAT_VERSION,
        "snippets": [snippet.to_record() for snippet in snippets],
    }
    return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"


def atomic_write_text(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` via temp file, fsync, and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            tmp_path.unlink()
        except OSError:
            pass
        raise


@dataclass
class SnippetStore:
    """In-memory snippet collection bound to its backing file.

    ``load`` fills the collection; ``create``/``rename``/``delete`` persist
    before returning. Write failures raise ``OSError`` and leave the
    collection untouched.
    """

    path: Path
    snippets: list[Snippet] = field(default_factory=list)
    load_failed: bool = False

    def load(self) -> list[Snippet]:
        """Read the backing file; a missing file yields an empty collection.

        On a corrupt file the collection is emptied, ``load_failed`` is set,
        and ``LibraryError`` is raised. The corrupt file is moved aside on the
        next successful save instead of being overwritten.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self.snippets = []
            self.load_failed = False
            return []
        except OSError as exc:
            self.snippets = []
            self.load_failed = True
            raise LibraryError(f"failed to read {self.path}: {exc}") from exc
        try:
            snippets = parse_library(text)
        except ValueError as exc:
            self.snippets = []
            self.load_failed = True
            raise LibraryError(f"failed to parse {self.path}: {exc}") from exc
        self.snippets = snippets
        self.load_failed = False
        logger.debug("loaded %d snippet(s) from %s", len(snippets), self.path)
        return list(snippets)

    def save(self, snippets: Iterable[Snippet] | None = None) -> None:
        """Persist ``snippets`` (default: the current collection) atomically."""
        collection = list(self.snippets if snippets is None else snippets)
        if self.load_failed and self.path.exists():
            backup = self.path.with_name(self.path.name + ".corrupt")
            os.replace(self.path, backup)
            logger.warning("moved unreadable library aside to %s", backup)
            self.load_failed = False
        atomic_write_text(self.path, serialize_library(collection))
        self.snippets = collection

    def get(self, snippet_id: str) -> Snippet | None:
        for snippet in self.snippets:
            if snippet.id == snippet_id:
                return snippet
        return None

    def create(
        self,
        title: str,
        tags: Iterable[str],
        body: str,
        source: Path | str | None = None,
    ) -> Snippet:
        snippet = Snippet(
            id=new_snippet_id(),
            title=title,
            body=body,
            tags=normalize_tags(tags),
            source=str(source) if source else None,
        )
        self.save([*self.snippets, snippet])
        return snippet

    def rename(self, snippet_id: str, new_title: str) -> bool:
        """Retitle ``snippet_id``; returns ``False`` (and writes nothing) when absent."""
        updated: list[Snippet] = []
        found = False
        for snippet in self.snippets:
            if snippet.id == snippet_id:
                snippet = replace(snippet, title=new_title)
                found = True
            updated.append(snippet)
        if not found:
            return False
        self.save(updated)
        return True

    def delete(self, snippet_id: str) -> bool:
        """Remove ``snippet_id``; deleting an absent id is a no-op returning ``False``."""
        remaining = [snippet for snippet in self.snippets if snippet.id != snippet_id]
        if len(remaining) == len(self.snippets):
            return False
        self.save(remaining)
        return True
