"""Core domain types and utilities.

This package contains the value objects used throughout the application:
selections, media attachments and the action vocabulary.
"""

from .models import ActionKind, ActionOutcome, MediaAttachment, MediaKind, MediaPayload
from .ranges import Selection, clamp_span, splice

__all__ = [
    "ActionKind",
    "ActionOutcome",
    "MediaAttachment",
    "MediaKind",
    "MediaPayload",
    "Selection",
    "clamp_span",
    "splice",
]
