"""Media ingestion: turning user files and pasted images into attachments."""

from __future__ import annotations

import asyncio
import base64
import logging
import mimetypes
from pathlib import Path

from ..core.errors import InvalidLocalInputError
from ..core.models import MediaAttachment, MediaKind, MediaPayload

LOGGER = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
_KIND_LABELS = {MediaKind.IMAGE: "image", MediaKind.PDF: "PDF"}


def accepts_mime_type(kind: MediaKind, mime_type: str | None) -> bool:
    """Return ``True`` if ``mime_type`` is acceptable for the ``kind`` flow."""

    if not mime_type:
        return False
    if kind is MediaKind.IMAGE:
        return mime_type.startswith("image/")
    return mime_type == PDF_MIME_TYPE


def guess_mime_type(path: Path | str) -> str | None:
    mime_type, _ = mimetypes.guess_type(str(path))
    return mime_type


def attachment_from_bytes(
    data: bytes,
    mime_type: str,
    kind: MediaKind,
    *,
    file_name: str | None = None,
) -> MediaAttachment:
    """Encode ``data`` as a ``data:`` URI attachment.

    Raises:
        InvalidLocalInputError: If ``mime_type`` does not fit ``kind``.
    """

    if not accepts_mime_type(kind, mime_type):
        raise _wrong_type(kind)
    encoded = base64.b64encode(data).decode("ascii")
    return MediaAttachment(
        data_uri=f"data:{mime_type};base64,{encoded}",
        mime_type=mime_type,
        kind=kind,
        file_name=file_name,
    )


async def read_media_file(path: Path | str, kind: MediaKind) -> MediaAttachment:
    """Read ``path`` to completion off the event loop and wrap it as an attachment.

    Raises:
        InvalidLocalInputError: On a wrong file type or an unreadable file.
    """

    target = Path(path)
    mime_type = guess_mime_type(target)
    if not accepts_mime_type(kind, mime_type):
        raise _wrong_type(kind)
    try:
        data = await asyncio.to_thread(target.read_bytes)
    except OSError as exc:
        LOGGER.warning("Failed to read %s file %s: %s", _KIND_LABELS[kind], target, exc)
        raise InvalidLocalInputError(
            f"Failed to read {_KIND_LABELS[kind]} file.", details={"path": str(target)}
        ) from exc
    LOGGER.debug("Read %s file %s (%d bytes)", _KIND_LABELS[kind], target, len(data))
    return attachment_from_bytes(data, mime_type or "", kind, file_name=target.name)


def _wrong_type(kind: MediaKind) -> InvalidLocalInputError:
    if kind is MediaKind.IMAGE:
        return InvalidLocalInputError("Invalid file type. Please select an image.")
    return InvalidLocalInputError("Invalid file type. Please select a PDF file.")


def extract_payload(attachment: MediaAttachment) -> MediaPayload:
    """Split the attachment's data URI on the first comma and return the base64 part.

    Raises:
        InvalidLocalInputError: If there is no payload after the comma.
    """

    _, separator, payload = attachment.data_uri.partition(",")
    if not separator or not payload:
        raise InvalidLocalInputError(f"Invalid {_KIND_LABELS[attachment.kind]} data format.")
    return MediaPayload(data=payload, mime_type=attachment.mime_type, file_name=attachment.file_name)


__all__ = [
    "PDF_MIME_TYPE",
    "accepts_mime_type",
    "attachment_from_bytes",
    "extract_payload",
    "guess_mime_type",
    "read_media_file",
]
