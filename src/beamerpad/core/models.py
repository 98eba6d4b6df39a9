"""Domain enums and value objects shared by the session, AI and UI layers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ActionKind(Enum):
    """The four mutually exclusive user actions."""

    WHOLE_DOCUMENT_UPDATE = "update"
    SELECTION_REWRITE = "modify"
    IMAGE_GENERATION = "generate_image"
    PDF_GENERATION = "generate_pdf"

    @property
    def replaces_document(self) -> bool:
        """Return ``True`` for actions whose result replaces the whole document."""

        return self is not ActionKind.SELECTION_REWRITE


class MediaKind(Enum):
    """Kind of auxiliary media that can accompany a generation request."""

    IMAGE = "image"
    PDF = "pdf"


class ActionOutcome(Enum):
    """Settlement of a single action request.

    Values:
        SUCCEEDED: The result was merged into the document.
        FAILED: A local precondition or the generator failed; nothing merged.
        CANCELED: The in-flight call was canceled; nothing merged.
        REJECTED: Another action was already in flight; nothing happened.
    """

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    REJECTED = "rejected"


@dataclass(slots=True, frozen=True)
class MediaAttachment:
    """A user supplied image or PDF held as a ``data:`` URI."""

    data_uri: str
    mime_type: str
    kind: MediaKind
    file_name: str | None = None


@dataclass(slots=True, frozen=True)
class MediaPayload:
    """Base64 payload extracted from an attachment, ready for the model."""

    data: str
    mime_type: str
    file_name: str | None = None

    def as_data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


__all__ = [
    "ActionKind",
    "ActionOutcome",
    "MediaAttachment",
    "MediaKind",
    "MediaPayload",
]
