"""Editor package containing the document store and selection tracking."""

from .document_model import DocumentState
from .document_store import DocumentStore
from .selection_tracker import HighlightSegments, SelectionTracker
from .template import INITIAL_LATEX_CODE

__all__ = [
    "DocumentState",
    "DocumentStore",
    "HighlightSegments",
    "INITIAL_LATEX_CODE",
    "SelectionTracker",
]
