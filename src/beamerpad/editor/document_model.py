"""Dataclass representing the canonical document and its revision counter."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class DocumentState:
    """The LaTeX source plus the version counter used to detect stale results."""

    text: str = ""
    version_id: int = 1

    def update_text(self, new_text: str) -> None:
        """Replace the text and advance the version."""

        self.text = new_text
        self.version_id += 1


__all__ = ["DocumentState"]
