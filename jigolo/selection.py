"""Line-range selection anchored inside the open file."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass


@dataclass
class Selection:
    """Anchor line plus moving current line; inactive when ``anchor`` is ``None``.

    ``range()`` is direction-agnostic: selecting 5 -> 2 and 2 -> 5 both give
    ``(2, 5)``.
    """

    anchor: int | None = None
    current: int = 0

    @property
    def active(self) -> bool:
        return self.anchor is not None

    def begin(self, at_line: int) -> None:
        at_line = max(0, at_line)
        self.anchor = at_line
        self.current = at_line

    def extend(self, to_line: int) -> None:
        if self.anchor is None:
            return
        self.current = max(0, to_line)

    def clear(self) -> None:
        self.anchor = None
        self.current = 0

    def range(self) -> tuple[int, int] | None:
        if self.anchor is None:
            return None
        return (min(self.anchor, self.current), max(self.anchor, self.current))

    def clamp(self, line_count: int) -> None:
        """Pull both endpoints into ``[0, line_count - 1]``; clear on empty files."""
        if self.anchor is None:
            return
        if line_count <= 0:
            self.clear()
            return
        last = line_count - 1
        self.anchor = max(0, min(self.anchor, last))
        self.current = max(0, min(self.current, last))

    def contains(self, line: int) -> bool:
        bounds = self.range()
        return bounds is not None and bounds[0] <= line <= bounds[1]

    def extract(self, lines: Sequence[str]) -> str | None:
        """Return the selected lines joined with newlines, in file order."""
        self.clamp(len(lines))
        bounds = self.range()
        if bounds is None:
            return None
        start, end = bounds
        return "\n".join(lines[start : end + 1])
