"""Normalization of raw model output into LaTeX text."""

from __future__ import annotations

import logging
import re

from ..core.errors import EmptyResponseError

LOGGER = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"^```(?:latex|tex)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)


def strip_fences(text: str) -> str:
    """Trim ``text`` and unwrap it if the whole thing is one fenced block.

    Idempotent: unfenced text is returned trimmed and otherwise unchanged.
    """

    trimmed = text.strip()
    match = _FENCE_PATTERN.match(trimmed)
    if match:
        return match.group(1).strip()
    return trimmed


def clean_latex_response(raw_text: str | None, *, allow_empty: bool = False) -> str:
    """Return the usable LaTeX in ``raw_text``.

    Args:
        raw_text: Text returned by the model, possibly ``None``.
        allow_empty: Accept an empty result. Selection rewrites use this,
            since an empty snippet means "delete the selection".

    Raises:
        EmptyResponseError: When nothing usable remains and ``allow_empty``
            is false.
    """

    cleaned = strip_fences(raw_text or "")
    if not cleaned and not allow_empty:
        LOGGER.warning("Received empty or undefined response from AI model.")
        raise EmptyResponseError()
    return cleaned


__all__ = ["clean_latex_response", "strip_fences"]
