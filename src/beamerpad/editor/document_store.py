"""Document store holding the single canonical LaTeX source.

This is the single source of truth for document content. Every writer, user
typing and AI merges alike, goes through :meth:`DocumentStore.set_document`.
"""

from __future__ import annotations

import logging

from ..ui.events import DocumentModified, EventBus
from .document_model import DocumentState
from .template import INITIAL_LATEX_CODE

LOGGER = logging.getLogger(__name__)


class DocumentStore:
    """Owner of the canonical document string.

    Writes are unconditional (last writer wins) and carry no LaTeX
    validation. Each accepted write advances the document version and emits
    an event so views can replace a stale local buffer.

    Events Emitted:
        - DocumentModified: After every write that changes the text
    """

    def __init__(self, event_bus: EventBus, initial_text: str = INITIAL_LATEX_CODE) -> None:
        self._bus = event_bus
        self._state = DocumentState(text=initial_text)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_document(self) -> str:
        """Return the canonical document text."""
        return self._state.text

    @property
    def version_id(self) -> int:
        return self._state.version_id

    def __len__(self) -> int:
        return len(self._state.text)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_document(self, new_text: str, *, source: str = "user") -> bool:
        """Replace the canonical document.

        Args:
            new_text: The complete new document.
            source: ``"user"`` for direct edits, otherwise the action kind
                value that produced the text.

        Returns:
            ``False`` when the text is unchanged, ``True`` otherwise.

        Emits:
            DocumentModified: When the text changed.
        """
        if not isinstance(new_text, str):
            raise TypeError(f"Document text must be str, not {type(new_text).__name__}")
        if new_text == self._state.text:
            return False

        self._state.update_text(new_text)
        LOGGER.debug(
            "DocumentStore.set_document: version=%d, length=%d, source=%s",
            self._state.version_id,
            len(new_text),
            source,
        )
        self._bus.publish(DocumentModified(
            version_id=self._state.version_id,
            source=source,
        ))
        return True


__all__ = ["DocumentStore"]
