"""Tests for selections, clamping and the splice merge."""

from __future__ import annotations

import pytest

from beamerpad.core.ranges import Selection, clamp_span, splice


def test_clamp_span_orders_and_bounds() -> None:
    assert clamp_span(8, 2, 10) == (2, 8)
    assert clamp_span(-4, 50, 10) == (0, 10)
    assert clamp_span(3, 3, 0) == (0, 0)


def test_selection_rejects_invalid_bounds() -> None:
    with pytest.raises(ValueError):
        Selection(text="", start=-1, end=2)
    with pytest.raises(ValueError):
        Selection(text="", start=5, end=2)


def test_selection_properties() -> None:
    selection = Selection(text="OLD", start=4, end=7, version_id=3)

    assert selection.length == 3
    assert selection.is_caret is False
    assert selection.to_tuple() == (4, 7)
    assert Selection(text="", start=2, end=2).is_caret is True


def test_selection_matches_document_slice() -> None:
    selection = Selection(text="OLD", start=4, end=7)

    assert selection.matches("abc OLD def") is True
    assert selection.matches("abc NEW def") is False
    assert selection.matches("abc") is False


@pytest.mark.parametrize(
    ("document", "start", "end", "replacement", "expected"),
    [
        ("hello world", 6, 11, "there", "hello there"),
        ("hello world", 5, 11, "", "hello"),
        ("hello world", 0, 5, "hello", "hello world"),
        ("", 0, 0, "x", "x"),
    ],
)
def test_splice(document: str, start: int, end: int, replacement: str, expected: str) -> None:
    assert splice(document, start, end, replacement) == expected


def test_splice_rejects_out_of_range_offsets() -> None:
    with pytest.raises(ValueError):
        splice("abc", 2, 9, "x")
    with pytest.raises(ValueError):
        splice("abc", 2, 1, "x")
