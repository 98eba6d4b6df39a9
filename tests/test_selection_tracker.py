"""Tests for SelectionTracker and the passive highlight helpers."""

from __future__ import annotations

from beamerpad.editor.document_store import DocumentStore
from beamerpad.editor.selection_tracker import SelectionTracker
from beamerpad.ui.events import Event, EventBus, SelectionChanged

# SAMPLE_DOCUMENT is "\begin{document}X\end{document}"; "X" sits at offset 16.
X_OFFSET = 16


class TestCapture:
    def test_captures_document_slice(self, tracker: SelectionTracker, store: DocumentStore) -> None:
        selection = tracker.capture("X", X_OFFSET, X_OFFSET + 1)

        assert selection is not None
        assert selection.text == "X"
        assert selection.to_tuple() == (X_OFFSET, X_OFFSET + 1)
        assert selection.version_id == store.version_id
        assert tracker.has_selection()

    def test_reversed_range_is_normalized(self, tracker: SelectionTracker) -> None:
        selection = tracker.capture(None, X_OFFSET + 1, X_OFFSET)

        assert selection is not None
        assert selection.to_tuple() == (X_OFFSET, X_OFFSET + 1)

    def test_offsets_are_clamped(self, tracker: SelectionTracker, store: DocumentStore) -> None:
        selection = tracker.capture(None, X_OFFSET, 10_000)

        assert selection is not None
        assert selection.end == len(store)
        assert selection.text == store.get_document()[X_OFFSET:]

    def test_document_slice_wins_over_view_text(self, tracker: SelectionTracker) -> None:
        selection = tracker.capture("stale echo", X_OFFSET, X_OFFSET + 1)

        assert selection is not None
        assert selection.text == "X"

    def test_zero_width_clears(self, tracker: SelectionTracker) -> None:
        tracker.capture("X", X_OFFSET, X_OFFSET + 1)

        assert tracker.capture("", 3, 3) is None
        assert tracker.selection is None

    def test_missing_offsets_clear(self, tracker: SelectionTracker) -> None:
        tracker.capture("X", X_OFFSET, X_OFFSET + 1)

        assert tracker.capture(None, None, None) is None
        assert tracker.selection is None


class TestEvents:
    def test_publishes_only_on_change(self, tracker: SelectionTracker, event_bus: EventBus) -> None:
        events: list[Event] = []
        event_bus.subscribe(SelectionChanged, events.append)

        tracker.capture("X", X_OFFSET, X_OFFSET + 1)
        tracker.capture("X", X_OFFSET, X_OFFSET + 1)
        tracker.clear()
        tracker.clear()

        assert len(events) == 2
        assert isinstance(events[0], SelectionChanged)
        assert events[0].selection is not None
        assert isinstance(events[1], SelectionChanged)
        assert events[1].selection is None

    def test_document_change_clears_selection(self, tracker: SelectionTracker, store: DocumentStore) -> None:
        tracker.capture("X", X_OFFSET, X_OFFSET + 1)

        store.set_document(store.get_document() + "\n% typed")

        assert tracker.selection is None

    def test_unchanged_document_keeps_selection(self, tracker: SelectionTracker, store: DocumentStore) -> None:
        tracker.capture("X", X_OFFSET, X_OFFSET + 1)

        store.set_document(store.get_document())

        assert tracker.selection is not None


class TestHighlight:
    def test_segments_split_current_document(self, tracker: SelectionTracker) -> None:
        tracker.capture("X", X_OFFSET, X_OFFSET + 1)

        segments = tracker.highlight_segments()

        assert segments is not None
        assert segments.before == "\\begin{document}"
        assert segments.selected == "X"
        assert segments.after == "\\end{document}"
        assert (segments.start, segments.end) == (X_OFFSET, X_OFFSET + 1)

    def test_segments_use_given_document_with_clamping(self, tracker: SelectionTracker) -> None:
        tracker.capture("X", X_OFFSET, X_OFFSET + 1)

        segments = tracker.highlight_segments("short")

        assert segments is None

    def test_no_selection_means_no_highlight(self, tracker: SelectionTracker) -> None:
        assert tracker.highlight_segments() is None

