"""Tests for media ingestion helpers."""

from __future__ import annotations

import base64
from pathlib import Path

import pytest

from beamerpad.ai.media import (
    accepts_mime_type,
    attachment_from_bytes,
    extract_payload,
    read_media_file,
)
from beamerpad.core.errors import InvalidLocalInputError
from beamerpad.core.models import MediaAttachment, MediaKind

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


def test_accepts_mime_type() -> None:
    assert accepts_mime_type(MediaKind.IMAGE, "image/png") is True
    assert accepts_mime_type(MediaKind.IMAGE, "image/webp") is True
    assert accepts_mime_type(MediaKind.IMAGE, "application/pdf") is False
    assert accepts_mime_type(MediaKind.PDF, "application/pdf") is True
    assert accepts_mime_type(MediaKind.PDF, "image/png") is False
    assert accepts_mime_type(MediaKind.PDF, None) is False


def test_attachment_from_bytes_builds_data_uri() -> None:
    attachment = attachment_from_bytes(PNG_BYTES, "image/png", MediaKind.IMAGE, file_name="shot.png")

    assert attachment.data_uri == "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")
    assert attachment.kind is MediaKind.IMAGE
    assert attachment.file_name == "shot.png"


def test_attachment_from_bytes_rejects_wrong_type() -> None:
    with pytest.raises(InvalidLocalInputError, match="Please select a PDF file"):
        attachment_from_bytes(PNG_BYTES, "image/png", MediaKind.PDF)


@pytest.mark.asyncio
async def test_read_media_file(tmp_path: Path) -> None:
    path = tmp_path / "slide.png"
    path.write_bytes(PNG_BYTES)

    attachment = await read_media_file(path, MediaKind.IMAGE)

    assert attachment.mime_type == "image/png"
    assert attachment.file_name == "slide.png"
    assert extract_payload(attachment).data == base64.b64encode(PNG_BYTES).decode("ascii")


@pytest.mark.asyncio
async def test_read_media_file_rejects_extension(tmp_path: Path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("hello", encoding="utf-8")

    with pytest.raises(InvalidLocalInputError, match="Please select an image"):
        await read_media_file(path, MediaKind.IMAGE)


@pytest.mark.asyncio
async def test_read_media_file_reports_unreadable_file(tmp_path: Path) -> None:
    with pytest.raises(InvalidLocalInputError) as excinfo:
        await read_media_file(tmp_path / "missing.pdf", MediaKind.PDF)

    assert excinfo.value.message == "Failed to read PDF file."


def test_extract_payload_keeps_file_name() -> None:
    attachment = MediaAttachment(
        data_uri="data:application/pdf;base64,JVBERi0=",
        mime_type="application/pdf",
        kind=MediaKind.PDF,
        file_name="notes.pdf",
    )

    payload = extract_payload(attachment)

    assert payload.data == "JVBERi0="
    assert payload.file_name == "notes.pdf"
    assert payload.as_data_uri() == attachment.data_uri


@pytest.mark.parametrize("data_uri", ["data:image/png;base64", "data:image/png;base64,"])
def test_extract_payload_rejects_missing_payload(data_uri: str) -> None:
    attachment = MediaAttachment(data_uri=data_uri, mime_type="image/png", kind=MediaKind.IMAGE)

    with pytest.raises(InvalidLocalInputError, match="Invalid image data format."):
        extract_payload(attachment)
