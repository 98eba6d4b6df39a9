"""Offset-addressed selections and the splice merge used by selection rewrites."""

from __future__ import annotations

from dataclasses import dataclass


def clamp_span(start: int, end: int, length: int) -> tuple[int, int]:
    """Clamp ``(start, end)`` into ``[0, length]`` and order the pair."""

    start = max(0, min(int(start), length))
    end = max(0, min(int(end), length))
    if end < start:
        start, end = end, start
    return start, end


@dataclass(slots=True, frozen=True)
class Selection:
    """Substring of the document captured at a specific document version."""

    text: str
    start: int
    end: int
    version_id: int = 0

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid selection bounds ({self.start}, {self.end})")

    @property
    def length(self) -> int:
        """Return the width of the selected range."""

        return self.end - self.start

    @property
    def is_caret(self) -> bool:
        """Return ``True`` when the selection collapses to a caret."""

        return self.start == self.end

    def to_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)

    def matches(self, document: str) -> bool:
        """Return ``True`` when the captured text still sits at the captured offsets."""

        if self.end > len(document):
            return False
        return document[self.start : self.end] == self.text


def splice(document: str, start: int, end: int, replacement: str) -> str:
    """Replace ``document[start:end]`` with ``replacement``.

    Offsets are used verbatim; they are never re-derived from the document.
    """

    if start < 0 or end < start or end > len(document):
        raise ValueError(
            f"Splice range ({start}, {end}) outside document of length {len(document)}"
        )
    return document[:start] + replacement + document[end:]


__all__ = ["Selection", "clamp_span", "splice"]
