"""Selection tracking for the editable LaTeX view.

The tracker remembers the last ``(text, start, end)`` reported by the view and
republishes it on the event bus. It never judges whether a selection is usable
for a rewrite; the session controller does that.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from ..core.ranges import Selection, clamp_span
from ..ui.events import DocumentModified, EventBus, SelectionChanged

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class HighlightSegments:
    """Document split around the passively highlighted range."""

    before: str
    selected: str
    after: str

    @property
    def start(self) -> int:
        return len(self.before)

    @property
    def end(self) -> int:
        return len(self.before) + len(self.selected)


class SelectionTracker:
    """Captures editor selections and invalidates them when the document changes.

    Events Emitted:
        - SelectionChanged: On every capture or clear that changes state
    """

    def __init__(self, document_provider: Callable[[], str], version_provider: Callable[[], int], event_bus: EventBus) -> None:
        """Initialize the tracker.

        Args:
            document_provider: Returns the current canonical document text.
            version_provider: Returns the current document version id.
            event_bus: Bus used to publish selection changes and to observe
                document modifications.
        """
        self._document = document_provider
        self._version = version_provider
        self._bus = event_bus
        self._selection: Selection | None = None
        self._bus.subscribe(DocumentModified, self._on_document_modified)

    @property
    def selection(self) -> Selection | None:
        """The last captured non-empty selection, if any."""
        return self._selection

    def has_selection(self) -> bool:
        return self._selection is not None

    def capture(self, text: str | None, start: int | None, end: int | None) -> Selection | None:
        """Record the selection reported by the view.

        Offsets are clamped to the document and reversed ranges are ordered.
        A zero-width (or missing) range clears the selection. If ``text``
        disagrees with the document slice, the slice wins.
        """
        if start is None or end is None:
            self.clear()
            return None

        document = self._document()
        begin, finish = clamp_span(start, end, len(document))
        if begin == finish:
            self.clear()
            return None

        captured = document[begin:finish]
        if text is not None and text != captured:
            LOGGER.debug(
                "SelectionTracker.capture: view text disagrees with document at (%d, %d)",
                begin,
                finish,
            )
        selection = Selection(text=captured, start=begin, end=finish, version_id=self._version())
        if selection == self._selection:
            return selection
        self._selection = selection
        self._bus.publish(SelectionChanged(selection=selection))
        return selection

    def clear(self) -> None:
        """Forget the current selection."""
        if self._selection is None:
            return
        self._selection = None
        self._bus.publish(SelectionChanged(selection=None))

    def highlight_segments(self, document: str | None = None) -> HighlightSegments | None:
        """Split the current document around the last known offsets.

        Uses the canonical document content rather than the captured text, so
        the highlight reflects what is actually in the buffer now.
        """
        if self._selection is None:
            return None
        text = self._document() if document is None else document
        begin, finish = clamp_span(self._selection.start, self._selection.end, len(text))
        if begin == finish:
            return None
        return HighlightSegments(before=text[:begin], selected=text[begin:finish], after=text[finish:])

    def _on_document_modified(self, event: DocumentModified) -> None:
        if self._selection is not None and self._selection.version_id != event.version_id:
            LOGGER.debug("SelectionTracker: document changed (source=%s), clearing selection", event.source)
            self.clear()


__all__ = ["HighlightSegments", "SelectionTracker"]
